"""Modelos de recordatorios asociados a contactos."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, PositiveInt

from chatdesk.models.fields import UTCDateTime


class ReminderContact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str | None = None
    phone: str | None = None


class Reminder(BaseModel):
    """Recordatorio, posiblemente recurrente.

    `remind_at` es siempre la próxima ocurrencia pendiente. Un intervalo de
    repetición debe ser positivo; valores cero o negativos se rechazan al
    construir el modelo.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    contact_id: int
    title: str
    description: str | None = None
    remind_at: UTCDateTime
    repeat_interval_days: PositiveInt | None = None
    repeat_until: UTCDateTime | None = None
    last_triggered_at: UTCDateTime | None = None
    completed_at: UTCDateTime | None = None
    contact: ReminderContact | None = None

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    @property
    def is_recurring(self) -> bool:
        return self.repeat_interval_days is not None


class DueReminder(BaseModel):
    """Elemento publicado en el aviso diario de recordatorios."""

    id: int
    title: str
    contact_id: int
    contact_name: str | None = None
    remind_at: UTCDateTime

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> DueReminder:
        return cls(
            id=reminder.id,
            title=reminder.title,
            contact_id=reminder.contact_id,
            contact_name=reminder.contact.name if reminder.contact else None,
            remind_at=reminder.remind_at,
        )


@dataclass(frozen=True, slots=True)
class Advancement:
    """Resultado de disparar un recordatorio."""

    next_remind_at: datetime | None
    completed: bool
