"""Construcción de los servicios compartidos por la aplicación."""

from __future__ import annotations

from dataclasses import dataclass

from chatdesk.core.clock import Clock, SystemClock
from chatdesk.repositories.conversations import ConversationsRepository
from chatdesk.repositories.reminders import RemindersRepository
from chatdesk.repositories.sessions import SessionsRepository
from chatdesk.services.broadcast import EventBroadcaster
from chatdesk.services.conversation_sweeper import ConversationSweeper
from chatdesk.services.notifications import SenderRegistry
from chatdesk.services.reminder_scheduler import ReminderScheduler
from chatdesk.services.scheduler import BackgroundScheduler
from chatdesk.services.session_store import SessionStore
from chatdesk.services.system_settings import SystemSettingsService
from chatdesk.services.templates import TemplateResolver


@dataclass(slots=True)
class Services:
    broadcaster: EventBroadcaster
    sweeper: ConversationSweeper
    reminders: ReminderScheduler
    session_store: SessionStore
    scheduler: BackgroundScheduler


def build_services(clock: Clock | None = None) -> Services:
    clock = clock or SystemClock()
    broadcaster = EventBroadcaster()
    conversations = ConversationsRepository()
    sweeper = ConversationSweeper(
        repository=conversations,
        settings_service=SystemSettingsService(clock=clock),
        registry=SenderRegistry.from_settings(),
        templates=TemplateResolver(conversations),
        broadcaster=broadcaster,
        clock=clock,
    )
    reminders = ReminderScheduler(
        repository=RemindersRepository(), broadcaster=broadcaster, clock=clock
    )
    return Services(
        broadcaster=broadcaster,
        sweeper=sweeper,
        reminders=reminders,
        session_store=SessionStore(SessionsRepository(), clock=clock),
        scheduler=BackgroundScheduler(sweeper, reminders, clock=clock),
    )
