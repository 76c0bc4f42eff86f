"""Cálculo de ocurrencias de recordatorios.

Funciones puras: no consultan almacenamiento ni reloj. La recurrencia es una suma
de días calendario, sin ajustes por horario de verano ni largo de mes.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, tzinfo

from chatdesk.core.clock import end_of_day, start_of_day
from chatdesk.models.reminder import Advancement, Reminder

DEFAULT_HORIZON_DAYS = 365


def is_due_today(reminder: Reminder, reference: datetime, zone: tzinfo | None = None) -> bool:
    """Indica si `remind_at` cae dentro del día calendario local de `reference`."""
    return start_of_day(reference, zone) <= reminder.remind_at <= end_of_day(reference, zone)


def occurrences_in_range(
    reminder: Reminder,
    range_start: datetime,
    range_end: datetime,
    *,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Iterator[datetime]:
    """Genera las ocurrencias de `reminder` hasta el límite efectivo del rango.

    Sin repetición se produce, como mucho, `remind_at` cuando cae en el rango.
    Con repetición se parte de `remind_at` y se suma el intervalo mientras el
    candidato no supere `min(range_end, repeat_until o range_start + horizon_days)`;
    se entregan todos los instantes generados, incluso los anteriores a
    `range_start`, y el llamador decide cuáles caen dentro del rango.
    """
    if not reminder.repeat_interval_days:
        if range_start <= reminder.remind_at <= range_end:
            yield reminder.remind_at
        return

    step = timedelta(days=reminder.repeat_interval_days)
    limit = reminder.repeat_until or range_start + timedelta(days=horizon_days)
    upper = min(range_end, limit)
    candidate = reminder.remind_at
    while candidate <= upper:
        yield candidate
        candidate += step


def has_occurrence_in_range(
    reminder: Reminder,
    range_start: datetime,
    range_end: datetime,
    *,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> bool:
    return any(
        range_start <= instant <= range_end
        for instant in occurrences_in_range(
            reminder, range_start, range_end, horizon_days=horizon_days
        )
    )


def advance(reminder: Reminder, fired_at: datetime) -> Advancement:
    """Calcula la siguiente ocurrencia tras disparar el recordatorio en `fired_at`.

    La próxima fecha se calcula desde `remind_at`, nunca desde `fired_at`.
    """
    if not reminder.repeat_interval_days:
        return Advancement(next_remind_at=None, completed=True)
    candidate = reminder.remind_at + timedelta(days=reminder.repeat_interval_days)
    if reminder.repeat_until is not None and candidate > reminder.repeat_until:
        return Advancement(next_remind_at=None, completed=True)
    return Advancement(next_remind_at=candidate, completed=False)
