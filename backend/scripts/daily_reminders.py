#!/usr/bin/env python3
"""Lista los recordatorios del día o marca uno como disparado."""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date, datetime, tzinfo

from chatdesk.core.clock import local_zone
from chatdesk.models.reminder import Reminder
from chatdesk.repositories.base import RepositoryError
from chatdesk.services.reminder_scheduler import ReminderNotFoundError, ReminderScheduler


def format_reminder_line(reminder: Reminder, zone: tzinfo) -> str:
    contact = (reminder.contact.name if reminder.contact else None) or "Contacto"
    at = reminder.remind_at.astimezone(zone).strftime("%H:%M")
    line = f" - {reminder.title} ({contact}) a las {at}"
    if reminder.repeat_interval_days:
        line += f" [Repite cada {reminder.repeat_interval_days} días]"
    return line


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Muestra los recordatorios pendientes de un día (hoy por defecto)."
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Día a consultar en formato YYYY-MM-DD.",
    )
    parser.add_argument(
        "--trigger",
        type=int,
        metavar="ID",
        help="Marca el recordatorio como disparado y calcula su próxima ocurrencia.",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, scheduler: ReminderScheduler | None = None) -> int:
    scheduler = scheduler or ReminderScheduler()
    zone = scheduler.zone

    if args.trigger is not None:
        try:
            reminder = await scheduler.advance_on_fire(args.trigger)
        except ReminderNotFoundError as exc:
            print(f"[Reminders] ERROR: {exc}", file=sys.stderr)
            return 1
        if reminder.completed_at is not None:
            print(f"[Reminders] Recordatorio {reminder.id} completado.")
        else:
            next_at = reminder.remind_at.astimezone(zone).strftime("%d/%m/%Y %H:%M")
            print(f"[Reminders] Recordatorio {reminder.id} reprogramado para {next_at}.")
        return 0

    day = args.date or datetime.now(zone).date()
    reminders = await scheduler.list_due(day)
    if not reminders:
        print("[Reminders] No hay recordatorios para hoy.")
        return 0

    print(f"[Reminders] Recordatorios para {day.strftime('%d/%m/%Y')}:")
    for reminder in reminders:
        print(format_reminder_line(reminder, zone))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except RepositoryError as exc:  # pragma: no cover - CLI
        print(f"[Reminders] ERROR al consultar Supabase: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - script manual
    sys.exit(main())
