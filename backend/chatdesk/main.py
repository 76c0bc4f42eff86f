"""Punto de entrada principal para la aplicación FastAPI."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatdesk.api.routes.events import router as events_router
from chatdesk.api.routes.health import router as health_router
from chatdesk.api.routes.reminders import router as reminders_router
from chatdesk.core.config import settings
from chatdesk.core.logging import configure_logging, get_logger, log_event, resolve_log_level
from chatdesk.core.middleware import RequestLoggingMiddleware
from chatdesk.core.sessions import SessionMiddleware
from chatdesk.services.container import Services, build_services

log = get_logger("chatdesk")


def _configure_logging() -> None:
    default_log_level = logging.DEBUG if settings.environment != "production" else logging.INFO
    log_level = resolve_log_level(settings.log_level, default=default_log_level)
    per_logger_files: dict[str, str] = {}
    if settings.log_file_path:
        log_dir = Path(settings.log_file_path).parent
        per_logger_files = {
            "chatdesk.request": str(log_dir / "request.log"),
            "chatdesk.scheduler": str(log_dir / "scheduler.log"),
            "chatdesk.sessions": str(log_dir / "sessions.log"),
        }
    configure_logging(
        level=log_level,
        log_file=settings.log_file_path,
        per_logger_files=per_logger_files,
    )


def create_app(
    services: Services | None = None,
    *,
    start_background: bool | None = None,
) -> FastAPI:
    """Crea y configura la instancia de FastAPI."""
    _configure_logging()
    services = services or build_services()
    run_background = settings.scheduler_enabled if start_background is None else start_background

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if run_background:
            services.scheduler.start()
            services.session_store.start_cleanup()
        try:
            yield
        finally:
            await services.scheduler.stop()
            await services.session_store.stop_cleanup()

    app = FastAPI(title="Chatdesk API", version="0.1.0", root_path="/api", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Se ajustará por ambiente
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.session_secret:
        app.add_middleware(
            SessionMiddleware,
            store=services.session_store,
            secret=settings.session_secret,
            cookie_name=settings.session_cookie_name,
            max_age=settings.session_max_age_seconds,
            secure=settings.cookie_secure,
            samesite=settings.session_cookie_samesite,
            rolling=settings.session_rolling,
        )
    else:
        log_event(log, "sessions.secret_missing", level=logging.WARNING)

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(reminders_router)
    app.include_router(events_router)

    @app.get("/info", tags=["info"])
    def info() -> dict[str, str | float | bool]:  # pragma: no cover - ruta simple de apoyo
        return {
            "environment": settings.environment,
            "timezone": settings.timezone,
            "scheduler_enabled": settings.scheduler_enabled,
            "scheduler_interval_seconds": settings.scheduler_interval_seconds,
        }

    return app


app = create_app()
