"""Fixtures compartidas para las pruebas."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from chatdesk.core.clock import FixedClock
from chatdesk.main import create_app
from chatdesk.services.broadcast import EventBroadcaster
from chatdesk.services.container import Services
from chatdesk.services.conversation_sweeper import ConversationSweeper
from chatdesk.services.notifications import SenderRegistry
from chatdesk.services.reminder_scheduler import ReminderScheduler
from chatdesk.services.scheduler import BackgroundScheduler
from chatdesk.services.session_store import SessionStore
from tests.fakes import (
    FakeConversationsRepository,
    FakeRemindersRepository,
    FakeSessionsRepository,
    FakeSettingsService,
)

ART = timezone(timedelta(hours=-3))


@pytest.fixture(name="clock")
def fixture_clock() -> FixedClock:
    """Reloj fijo: 10/03/2025 12:00 hora de Buenos Aires."""
    return FixedClock(datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc))


@pytest.fixture(name="reminders_repo")
def fixture_reminders_repo() -> FakeRemindersRepository:
    return FakeRemindersRepository()


@pytest.fixture(name="services")
def fixture_services(clock: FixedClock, reminders_repo: FakeRemindersRepository) -> Services:
    broadcaster = EventBroadcaster()
    conversations = FakeConversationsRepository()
    sweeper = ConversationSweeper(
        repository=conversations,
        settings_service=FakeSettingsService(),
        registry=SenderRegistry(),
        broadcaster=broadcaster,
        clock=clock,
        message="Chat cerrado",
    )
    reminders = ReminderScheduler(
        repository=reminders_repo, broadcaster=broadcaster, clock=clock, zone=ART
    )
    return Services(
        broadcaster=broadcaster,
        sweeper=sweeper,
        reminders=reminders,
        session_store=SessionStore(FakeSessionsRepository(), clock=clock),
        scheduler=BackgroundScheduler(sweeper, reminders, clock=clock),
    )


@pytest.fixture(name="async_client")
async def fixture_async_client(services: Services) -> AsyncClient:
    """Retorna un cliente asíncrono contra la app principal utilizando ASGITransport."""
    app = create_app(services, start_background=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
