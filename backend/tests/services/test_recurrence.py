"""Pruebas del cálculo de ocurrencias de recordatorios."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from chatdesk.models.reminder import Reminder
from chatdesk.services import recurrence

ART = timezone(timedelta(hours=-3))
D = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _reminder(**overrides) -> Reminder:
    data = {"id": 1, "contact_id": 7, "title": "Llamar", "remind_at": D}
    data.update(overrides)
    return Reminder(**data)


def test_advance_weekly_moves_from_remind_at_not_fired_at() -> None:
    reminder = _reminder(repeat_interval_days=7, repeat_until=D + timedelta(days=10))

    step = recurrence.advance(reminder, fired_at=D + timedelta(hours=5))

    assert step.completed is False
    assert step.next_remind_at == D + timedelta(days=7)


def test_advance_completes_when_next_passes_repeat_until() -> None:
    reminder = _reminder(
        remind_at=D + timedelta(days=7),
        repeat_interval_days=7,
        repeat_until=D + timedelta(days=10),
    )

    step = recurrence.advance(reminder, fired_at=D + timedelta(days=7))

    assert step.completed is True
    assert step.next_remind_at is None


def test_advance_non_repeating_completes() -> None:
    step = recurrence.advance(_reminder(), fired_at=D)
    assert step.completed is True
    assert step.next_remind_at is None


def test_advance_keeps_occurrence_equal_to_repeat_until() -> None:
    reminder = _reminder(repeat_interval_days=7, repeat_until=D + timedelta(days=7))
    step = recurrence.advance(reminder, fired_at=D)
    assert step.next_remind_at == D + timedelta(days=7)


@pytest.mark.parametrize("interval", [0, -3])
def test_non_positive_interval_is_rejected(interval: int) -> None:
    with pytest.raises(ValidationError):
        _reminder(repeat_interval_days=interval)


def test_range_with_weekly_occurrence_inside() -> None:
    reminder = _reminder(repeat_interval_days=7)
    start = D + timedelta(days=5)

    assert recurrence.has_occurrence_in_range(reminder, start, start + timedelta(days=3))


def test_range_without_any_occurrence_is_excluded() -> None:
    reminder = _reminder(repeat_interval_days=7)
    start = D + timedelta(days=1)

    assert not recurrence.has_occurrence_in_range(reminder, start, start + timedelta(days=4))


def test_range_after_repeat_until_is_excluded() -> None:
    reminder = _reminder(repeat_interval_days=7, repeat_until=D + timedelta(days=10))
    start = D + timedelta(days=12)

    assert not recurrence.has_occurrence_in_range(reminder, start, start + timedelta(days=7))


def test_occurrences_are_generated_from_remind_at() -> None:
    reminder = _reminder(repeat_interval_days=2)

    generated = list(
        recurrence.occurrences_in_range(reminder, D + timedelta(days=3), D + timedelta(days=6))
    )

    assert generated == [D, D + timedelta(days=2), D + timedelta(days=4), D + timedelta(days=6)]


def test_occurrences_stop_at_horizon_without_repeat_until() -> None:
    reminder = _reminder(repeat_interval_days=1)
    far_end = D + timedelta(days=1000)

    generated = list(recurrence.occurrences_in_range(reminder, D, far_end, horizon_days=3))

    assert generated[-1] == D + timedelta(days=3)


def test_non_repeating_occurrence_only_inside_range() -> None:
    reminder = _reminder()
    assert list(recurrence.occurrences_in_range(reminder, D, D)) == [D]
    assert list(recurrence.occurrences_in_range(reminder, D + timedelta(seconds=1), D + timedelta(days=1))) == []


def test_is_due_today_uses_local_calendar_day() -> None:
    # 01/03 23:30 en Buenos Aires es 02/03 02:30 UTC.
    reminder = _reminder(remind_at=datetime(2025, 3, 2, 2, 30, tzinfo=timezone.utc))
    reference = datetime(2025, 3, 1, 12, 0, tzinfo=ART)

    assert recurrence.is_due_today(reminder, reference, ART)
    assert not recurrence.is_due_today(reminder, reference, timezone.utc)


def test_is_due_today_accepts_naive_store_timestamp() -> None:
    reminder = Reminder.model_validate(
        {"id": 1, "contact_id": 7, "title": "Llamar", "remind_at": "2025-03-10T12:00:00"}
    )

    assert reminder.remind_at.tzinfo is timezone.utc
    assert recurrence.is_due_today(reminder, datetime(2025, 3, 10, 12, 0, tzinfo=ART), ART)
