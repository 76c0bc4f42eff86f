"""Dependencias comunes para las rutas."""

from fastapi import Request, WebSocket

from chatdesk.services.broadcast import EventBroadcaster
from chatdesk.services.container import Services
from chatdesk.services.reminder_scheduler import ReminderScheduler


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    return get_services(request).reminders


def get_broadcaster(websocket: WebSocket) -> EventBroadcaster:
    return websocket.app.state.services.broadcaster
