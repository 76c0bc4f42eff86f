"""Aviso diario y avance de recordatorios de contactos."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from chatdesk.core.clock import Clock, SystemClock, end_of_day, local_zone, start_of_day
from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.models.reminder import DueReminder, Reminder
from chatdesk.repositories.reminders import RemindersRepository
from chatdesk.services import recurrence
from chatdesk.services.broadcast import REMINDERS_DUE, EventBroadcaster

logger = get_logger("chatdesk.scheduler.reminders")

DAILY_PASS_INTERVAL = timedelta(days=1)


class ReminderSchedulerError(RuntimeError):
    """Errores de uso del programador de recordatorios."""


class ReminderNotFoundError(ReminderSchedulerError):
    """El recordatorio solicitado no existe."""


class ReminderScheduler:
    """Publica los recordatorios del día y avanza los recurrentes al dispararse.

    La marca de última ejecución vive en memoria del proceso: tras un reinicio el
    aviso del día puede publicarse una vez más.
    """

    def __init__(
        self,
        *,
        repository: RemindersRepository | None = None,
        broadcaster: EventBroadcaster | None = None,
        clock: Clock | None = None,
        zone: tzinfo | None = None,
        horizon_days: int | None = None,
    ) -> None:
        self._repo = repository or RemindersRepository()
        self._broadcaster = broadcaster or EventBroadcaster()
        self._clock = clock or SystemClock()
        self._zone = zone
        self._horizon_days = horizon_days or settings.reminder_horizon_days
        self._last_run_at: datetime | None = None

    @property
    def zone(self) -> tzinfo:
        return self._zone or local_zone()

    @property
    def last_run_at(self) -> datetime | None:
        return self._last_run_at

    async def run_daily_pass(self, now: datetime | None = None) -> list[DueReminder] | None:
        """Publica `reminders:due` como mucho una vez por día.

        Devuelve `None` si todavía no pasó un día completo desde la última ejecución
        exitosa; de lo contrario, la lista publicada (posiblemente vacía).
        """
        now = now or self._clock.now()
        if self._last_run_at is not None and now - self._last_run_at < DAILY_PASS_INTERVAL:
            return None

        due = [DueReminder.from_reminder(reminder) for reminder in await self.list_due(now)]
        self._broadcaster.publish(REMINDERS_DUE, [item.model_dump(mode="json") for item in due])
        self._last_run_at = now
        log_event(
            logger,
            "reminders.daily_pass_published",
            count=len(due),
            local_date=now.astimezone(self.zone).date().isoformat(),
        )
        return due

    async def list_due(self, reference: datetime | date) -> list[Reminder]:
        """Recordatorios activos cuya próxima ocurrencia cae en el día local de `reference`."""
        if not isinstance(reference, datetime):
            reference = datetime.combine(reference, time(12), tzinfo=self.zone)
        start = start_of_day(reference, self.zone)
        end = end_of_day(reference, self.zone)
        reminders = await self._repo.list_due_between(start, end)
        return [
            reminder
            for reminder in reminders
            if reminder.is_active and recurrence.is_due_today(reminder, reference, self.zone)
        ]

    async def advance_on_fire(self, reminder_id: int, fired_at: datetime | None = None) -> Reminder:
        """Registra el disparo del recordatorio y calcula su próxima ocurrencia."""
        fired_at = fired_at or self._clock.now()
        reminder = await self._repo.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(f"Recordatorio {reminder_id} no encontrado")

        step = recurrence.advance(reminder, fired_at)
        patch: dict[str, object] = {"last_triggered_at": fired_at}
        if step.completed:
            patch["completed_at"] = fired_at
        else:
            patch["remind_at"] = step.next_remind_at

        updated = await self._repo.update(reminder_id, patch)
        log_event(
            logger,
            "reminders.fired",
            level=logging.DEBUG,
            reminder_id=reminder_id,
            completed=step.completed,
            next_remind_at=step.next_remind_at,
        )
        return updated

    async def list_all_reminders(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        *,
        include_completed: bool = False,
    ) -> list[Reminder]:
        """Recordatorios ordenados por `remind_at`.

        Con rango, se incluye un recordatorio si alguna de sus ocurrencias cae dentro
        de `[start, end]`; un extremo ausente deja el rango abierto de ese lado.
        """
        reminders = await self._repo.list_all(include_completed=include_completed)
        if start is None and end is None:
            return sorted(reminders, key=lambda item: item.remind_at)

        selected: list[Reminder] = []
        for reminder in reminders:
            range_start = start if start is not None else reminder.remind_at
            range_end = end if end is not None else _open_end(reminder, range_start, self._horizon_days)
            if recurrence.has_occurrence_in_range(
                reminder, range_start, range_end, horizon_days=self._horizon_days
            ):
                selected.append(reminder)
        return sorted(selected, key=lambda item: item.remind_at)


def _open_end(reminder: Reminder, range_start: datetime, horizon_days: int) -> datetime:
    return max(reminder.remind_at, range_start) + timedelta(days=horizon_days)
