"""Lectura cacheada de la configuración del sistema."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from chatdesk.core.clock import Clock, SystemClock
from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.repositories.base import RepositoryError
from chatdesk.repositories.system_settings import SystemSettingsRepository

logger = get_logger(__name__)

DEFAULT_SYSTEM_SETTINGS: dict[str, Any] = {
    "timezone": settings.timezone,
    "language": "es",
    "date_format": "DD/MM/YYYY",
    "auto_close_minutes": settings.auto_close_minutes,
}


class SystemSettingsService:
    """Mantiene en memoria la fila `system_settings` durante `ttl`."""

    def __init__(
        self,
        repository: SystemSettingsRepository | None = None,
        *,
        clock: Clock | None = None,
        ttl: timedelta | None = None,
    ) -> None:
        self._repo = repository or SystemSettingsRepository()
        self._clock = clock or SystemClock()
        self._ttl = ttl if ttl is not None else timedelta(seconds=settings.settings_cache_ttl_seconds)
        self._cached: dict[str, Any] | None = None
        self._loaded_at: datetime | None = None

    async def get(self, *, refresh: bool = False) -> dict[str, Any]:
        now = self._clock.now()
        if (
            not refresh
            and self._cached is not None
            and self._loaded_at is not None
            and now - self._loaded_at < self._ttl
        ):
            return self._cached
        self._cached = await self._repo.fetch_or_create(DEFAULT_SYSTEM_SETTINGS)
        self._loaded_at = now
        return self._cached

    def invalidate(self) -> None:
        self._cached = None
        self._loaded_at = None

    async def auto_close_minutes(self) -> int:
        """Minutos de inactividad para el cierre automático.

        Usa el valor del entorno cuando el guardado no es positivo o no puede leerse.
        """
        fallback = settings.auto_close_minutes
        try:
            current = await self.get()
        except RepositoryError as exc:
            log_event(
                logger,
                "system_settings.read_failed",
                level=logging.WARNING,
                error=str(exc),
                fallback_minutes=fallback,
            )
            return fallback
        value = current.get("auto_close_minutes")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return fallback
