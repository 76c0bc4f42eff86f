"""Repositorio de recordatorios de contactos."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from chatdesk.models.reminder import Reminder

from .base import RepositoryError, SupabaseRepository, pg_timestamp

_REMINDER_SELECT = (
    "id,contact_id,title,description,remind_at,repeat_interval_days,repeat_until,"
    "last_triggered_at,completed_at,contact:contacts(id,name,phone)"
)


class RemindersRepository(SupabaseRepository):
    """Lecturas y actualizaciones de `contact_reminders`."""

    async def list_due_between(self, start: datetime, end: datetime) -> list[Reminder]:
        """Recordatorios activos con `remind_at` en `[start, end]` y sin fin vencido antes de `start`."""
        start_value = pg_timestamp(start)
        params = {
            "select": _REMINDER_SELECT,
            "completed_at": "is.null",
            "and": f'(remind_at.gte."{start_value}",remind_at.lte."{pg_timestamp(end)}")',
            "or": f'(repeat_until.is.null,repeat_until.gte."{start_value}")',
            "order": "remind_at.asc",
        }
        response = await self._request("GET", "/rest/v1/contact_reminders", params=params)
        return [Reminder.model_validate(row) for row in self._json_list(response)]

    async def list_all(self, *, include_completed: bool = False) -> list[Reminder]:
        params = {"select": _REMINDER_SELECT, "order": "remind_at.asc"}
        if not include_completed:
            params["completed_at"] = "is.null"
        response = await self._request("GET", "/rest/v1/contact_reminders", params=params)
        return [Reminder.model_validate(row) for row in self._json_list(response)]

    async def get(self, reminder_id: int) -> Reminder | None:
        params = {"select": _REMINDER_SELECT, "id": f"eq.{reminder_id}", "limit": "1"}
        response = await self._request("GET", "/rest/v1/contact_reminders", params=params)
        rows = self._json_list(response)
        return Reminder.model_validate(rows[0]) if rows else None

    async def update(self, reminder_id: int, patch: dict[str, Any]) -> Reminder:
        body = {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in patch.items()
        }
        response = await self._request(
            "PATCH",
            "/rest/v1/contact_reminders",
            params={"id": f"eq.{reminder_id}", "select": _REMINDER_SELECT},
            json=body,
            prefer="return=representation",
        )
        rows = self._json_list(response)
        if not rows:
            raise RepositoryError(f"Recordatorio {reminder_id} no encontrado o sin cambios")
        return Reminder.model_validate(rows[0])
