"""Middlewares personalizados del backend."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, resolve_log_level

logger = get_logger("chatdesk.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Registra inicio, fin y fallos de cada request entrante."""

    def __init__(
        self,
        app,
        *,
        skip_prefixes: tuple[str, ...] | None = None,
        level: int | str | None = None,
    ) -> None:
        super().__init__(app)
        self._skip_prefixes = (
            skip_prefixes if skip_prefixes is not None else settings.request_log_skip_prefixes
        )
        self._level = resolve_log_level(
            level if level is not None else settings.request_log_level
        )

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self._skip_prefixes):
            return await call_next(request)

        request_id = uuid4().hex
        start = time.perf_counter()
        client_ip = request.headers.get("x-forwarded-for")
        if client_ip:
            client_ip = client_ip.split(",")[0].strip()
        elif request.client:
            client_ip = request.client.host

        logger.log(
            self._level,
            "request.started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "client_ip": client_ip,
                "user_agent": request.headers.get("user-agent"),
            },
        )

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "request.failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": client_ip,
                },
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["x-request-id"] = request_id

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            max(level, self._level),
            "request.completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
