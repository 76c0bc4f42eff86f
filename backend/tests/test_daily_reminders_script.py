"""Pruebas del script `scripts/daily_reminders.py`."""

import importlib.util
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from chatdesk.models.reminder import Reminder, ReminderContact
from chatdesk.services.reminder_scheduler import ReminderScheduler
from tests.fakes import FakeRemindersRepository, RecordingBroadcaster

ART = timezone(timedelta(hours=-3))
SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "daily_reminders.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("daily_reminders", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _scheduler(*reminders: Reminder) -> ReminderScheduler:
    return ReminderScheduler(
        repository=FakeRemindersRepository(reminders), broadcaster=RecordingBroadcaster(), zone=ART
    )


def test_format_line_includes_contact_and_repetition() -> None:
    script = _load_script()
    reminder = Reminder(
        id=1,
        contact_id=2,
        title="Control",
        remind_at=datetime(2025, 3, 10, 13, 30, tzinfo=timezone.utc),
        repeat_interval_days=7,
        contact=ReminderContact(id=2, name="Ana"),
    )

    assert script.format_reminder_line(reminder, ART) == " - Control (Ana) a las 10:30 [Repite cada 7 días]"


@pytest.mark.asyncio
async def test_run_lists_reminders_of_the_requested_day(capsys: pytest.CaptureFixture[str]) -> None:
    script = _load_script()
    scheduler = _scheduler(
        Reminder(id=1, contact_id=2, title="Llamar", remind_at=datetime(2025, 3, 10, 13, tzinfo=timezone.utc))
    )

    code = await script.run(script.parse_args(["--date", "2025-03-10"]), scheduler)

    out = capsys.readouterr().out
    assert code == 0
    assert "Recordatorios para 10/03/2025" in out
    assert " - Llamar (Contacto) a las 10:00" in out


@pytest.mark.asyncio
async def test_run_reports_empty_day(capsys: pytest.CaptureFixture[str]) -> None:
    script = _load_script()

    code = await script.run(script.parse_args(["--date", "2025-03-10"]), _scheduler())

    assert code == 0
    assert "No hay recordatorios" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_trigger_unknown_reminder_fails(capsys: pytest.CaptureFixture[str]) -> None:
    script = _load_script()

    code = await script.run(script.parse_args(["--trigger", "5"]), _scheduler())

    assert code == 1
    assert "no encontrado" in capsys.readouterr().err
