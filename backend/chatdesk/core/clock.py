"""Fuente de tiempo del backend.

Los servicios periódicos reciben un `Clock` en lugar de llamar a `datetime.now`
directamente, así las pruebas fijan el instante sin esperas reales.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Protocol
from zoneinfo import ZoneInfo

from chatdesk.core.config import settings


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Reloj real en UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Reloj detenido en un instante; `advance` lo mueve manualmente."""

    def __init__(self, instant: datetime) -> None:
        self._instant = ensure_aware(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> datetime:
        self._instant += delta
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_aware(instant)


def ensure_aware(value: datetime) -> datetime:
    """Interpreta fechas sin zona como UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@lru_cache(maxsize=8)
def local_zone(name: str | None = None) -> tzinfo:
    """Zona horaria configurada para el día calendario local."""
    return ZoneInfo(name or settings.timezone)


def start_of_day(reference: datetime, zone: tzinfo | None = None) -> datetime:
    zone = zone or local_zone()
    local = ensure_aware(reference).astimezone(zone)
    return datetime.combine(local.date(), time.min, tzinfo=zone)


def end_of_day(reference: datetime, zone: tzinfo | None = None) -> datetime:
    zone = zone or local_zone()
    local = ensure_aware(reference).astimezone(zone)
    return datetime.combine(local.date(), time.max, tzinfo=zone)
