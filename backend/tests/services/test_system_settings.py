"""Pruebas de la configuración del sistema cacheada."""

from datetime import datetime, timedelta, timezone

import pytest

from chatdesk.core.clock import FixedClock
from chatdesk.core.config import settings
from chatdesk.repositories.base import RepositoryError
from chatdesk.services.system_settings import SystemSettingsService


class CountingRepository:
    def __init__(self, row: dict | None = None, *, fail: bool = False) -> None:
        self.row = row if row is not None else {"id": 1, "auto_close_minutes": 45}
        self.fail = fail
        self.calls = 0

    async def fetch_or_create(self, defaults: dict) -> dict:
        self.calls += 1
        if self.fail:
            raise RepositoryError("Supabase respondió 500")
        return dict(self.row)


@pytest.fixture(name="clock")
def fixture_clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_settings_are_cached_during_ttl(clock: FixedClock) -> None:
    repo = CountingRepository()
    service = SystemSettingsService(repo, clock=clock, ttl=timedelta(seconds=30))

    await service.get()
    clock.advance(timedelta(seconds=29))
    await service.get()
    assert repo.calls == 1

    clock.advance(timedelta(seconds=1))
    await service.get()
    assert repo.calls == 2


@pytest.mark.asyncio
async def test_refresh_and_invalidate_reload(clock: FixedClock) -> None:
    repo = CountingRepository()
    service = SystemSettingsService(repo, clock=clock, ttl=timedelta(minutes=5))

    await service.get()
    await service.get(refresh=True)
    service.invalidate()
    await service.get()

    assert repo.calls == 3


@pytest.mark.asyncio
async def test_auto_close_minutes_reads_stored_value(clock: FixedClock) -> None:
    service = SystemSettingsService(CountingRepository(), clock=clock)
    assert await service.auto_close_minutes() == 45


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", [0, -5, None, "15", True])
async def test_invalid_stored_minutes_fall_back_to_environment(clock: FixedClock, stored) -> None:
    repo = CountingRepository({"id": 1, "auto_close_minutes": stored})
    service = SystemSettingsService(repo, clock=clock)

    assert await service.auto_close_minutes() == settings.auto_close_minutes


@pytest.mark.asyncio
async def test_read_failure_falls_back_to_environment(clock: FixedClock) -> None:
    service = SystemSettingsService(CountingRepository(fail=True), clock=clock)
    assert await service.auto_close_minutes() == settings.auto_close_minutes
