"""Modelos de sesiones web persistidas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from chatdesk.models.fields import UTCDateTime


class SessionRecord(BaseModel):
    """Fila de la tabla `sessions`; `data` es opaco para el store."""

    model_config = ConfigDict(extra="ignore")

    sid: str
    data: str | None = None
    expires: UTCDateTime

    def is_expired(self, now: datetime) -> bool:
        return self.expires < now


class CookieMeta(BaseModel):
    """Metadatos de la cookie de sesión usados para calcular la expiración.

    `expires` tiene prioridad sobre `max_age` (segundos).
    """

    expires: UTCDateTime | None = None
    max_age: int | None = None
