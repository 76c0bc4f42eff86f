"""Almacén persistente de sesiones web con expiración.

Las sesiones se guardan serializadas en la tabla `sessions`. Un registro expirado
nunca se devuelve: se elimina al leerlo o en la limpieza periódica. Un registro
que no puede deserializarse se trata como inexistente y se elimina.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from chatdesk.core.clock import Clock, SystemClock, ensure_aware
from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.models.session import CookieMeta
from chatdesk.repositories.base import RepositoryError
from chatdesk.repositories.sessions import SessionsRepository

logger = get_logger("chatdesk.sessions")

Serializer = Callable[[dict[str, Any]], str]
Deserializer = Callable[[str], Any]


class SessionStoreError(RuntimeError):
    """Errores del almacén de sesiones."""


class SessionSerializationError(SessionStoreError):
    """Los datos de la sesión no pueden serializarse."""


def _json_serializer(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False)


class SessionStore:
    def __init__(
        self,
        repository: SessionsRepository | None = None,
        *,
        ttl: timedelta | None = None,
        clock: Clock | None = None,
        serializer: Serializer = _json_serializer,
        deserializer: Deserializer = json.loads,
    ) -> None:
        self._repo = repository or SessionsRepository()
        self._ttl = ttl if ttl is not None else timedelta(seconds=settings.session_max_age_seconds)
        self._clock = clock or SystemClock()
        self._serialize = serializer
        self._deserialize = deserializer
        self._cleanup_task: asyncio.Task[None] | None = None

    def compute_expiry(self, cookie: CookieMeta | None = None) -> datetime:
        """`cookie.expires` si existe; si no, ahora + `max_age`; si no, ahora + ttl."""
        if cookie is not None and cookie.expires is not None:
            return ensure_aware(cookie.expires)
        now = self._clock.now()
        if cookie is not None and cookie.max_age is not None:
            return now + timedelta(seconds=cookie.max_age)
        return now + self._ttl

    async def get(self, sid: str) -> dict[str, Any] | None:
        record = await self._repo.get(sid)
        if record is None:
            return None
        if record.is_expired(self._clock.now()):
            await self._repo.delete(sid)
            log_event(logger, "sessions.expired_removed", level=logging.DEBUG, sid_prefix=sid[:8])
            return None
        if not record.data:
            return {}
        try:
            data = self._deserialize(record.data)
            if not isinstance(data, dict):
                raise TypeError(f"se esperaba un objeto, se obtuvo {type(data).__name__}")
        except Exception as exc:  # noqa: BLE001 - un payload ilegible equivale a sesión inexistente
            await self._repo.delete(sid)
            log_event(
                logger,
                "sessions.corrupt_payload_removed",
                level=logging.WARNING,
                sid_prefix=sid[:8],
                error=str(exc),
            )
            return None
        return data

    async def set(self, sid: str, data: dict[str, Any], cookie: CookieMeta | None = None) -> None:
        try:
            payload = self._serialize(data)
        except (ValueError, TypeError) as exc:
            log_event(
                logger,
                "sessions.serialize_failed",
                level=logging.ERROR,
                sid_prefix=sid[:8],
                error=str(exc),
            )
            raise SessionSerializationError(f"No fue posible serializar la sesión: {exc}") from exc
        await self._repo.upsert(sid, data=payload, expires=self.compute_expiry(cookie))

    async def touch(
        self,
        sid: str,
        data: dict[str, Any] | None = None,
        cookie: CookieMeta | None = None,
    ) -> None:
        """Extiende la expiración sin tocar los datos; no crea la sesión si no existe.

        `data` se recibe por simetría con `set` y no se persiste.
        """
        await self._repo.update_expiry(sid, expires=self.compute_expiry(cookie))

    async def destroy(self, sid: str) -> None:
        await self._repo.delete(sid)

    async def clear(self) -> None:
        await self._repo.delete_all()

    async def length(self) -> int:
        """Cantidad de registros guardados, incluidos los expirados aún no eliminados."""
        return await self._repo.count()

    async def cleanup_expired(self) -> int:
        try:
            removed = await self._repo.delete_expired(self._clock.now())
        except RepositoryError as exc:
            log_event(logger, "sessions.cleanup_failed", level=logging.WARNING, error=str(exc))
            return 0
        if removed:
            log_event(logger, "sessions.cleanup_completed", removed=removed)
        return removed

    def start_cleanup(self, interval_seconds: float | None = None) -> bool:
        """Inicia la limpieza periódica; devuelve `False` si está desactivada o ya corre."""
        interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.session_cleanup_interval_seconds
        )
        if interval <= 0 or self._cleanup_task is not None:
            return False
        self._cleanup_task = asyncio.create_task(
            self._cleanup_loop(interval), name="session-cleanup"
        )
        return True

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.cleanup_expired()
            except Exception:  # noqa: BLE001 - la limpieza nunca detiene el proceso
                logger.exception("sessions.cleanup_crashed")
