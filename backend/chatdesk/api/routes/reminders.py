"""Endpoints de recordatorios de contactos."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from chatdesk.api.deps import get_reminder_scheduler
from chatdesk.core.clock import ensure_aware
from chatdesk.models.reminder import DueReminder, Reminder
from chatdesk.repositories.base import RepositoryError
from chatdesk.services.reminder_scheduler import ReminderNotFoundError, ReminderScheduler

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=list[Reminder], summary="Lista recordatorios")
async def list_reminders(
    start: datetime | None = Query(None, description="Inicio del rango (inclusive)."),
    end: datetime | None = Query(None, description="Fin del rango (inclusive)."),
    include_completed: bool = Query(False, description="Incluye recordatorios completados."),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> list[Reminder]:
    """Devuelve los recordatorios con alguna ocurrencia dentro del rango pedido."""
    if start and end and ensure_aware(start) > ensure_aware(end):
        raise HTTPException(status_code=422, detail="`start` debe ser anterior a `end`")
    try:
        return await scheduler.list_all_reminders(
            ensure_aware(start) if start else None,
            ensure_aware(end) if end else None,
            include_completed=include_completed,
        )
    except RepositoryError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.get("/due", response_model=list[DueReminder], summary="Recordatorios del día")
async def list_due_reminders(
    day: date | None = Query(None, alias="date", description="Día local (YYYY-MM-DD); hoy por defecto."),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> list[DueReminder]:
    reference = day or datetime.now(scheduler.zone).date()
    try:
        reminders = await scheduler.list_due(reference)
    except RepositoryError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [DueReminder.from_reminder(reminder) for reminder in reminders]


@router.post("/{reminder_id}/trigger", response_model=Reminder, summary="Marca un recordatorio como disparado")
async def trigger_reminder(
    reminder_id: int,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> Reminder:
    """Registra el disparo y avanza la próxima ocurrencia o completa el recordatorio."""
    try:
        return await scheduler.advance_on_fire(reminder_id)
    except ReminderNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
