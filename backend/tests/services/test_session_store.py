"""Pruebas del almacén persistente de sesiones."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from chatdesk.core.clock import FixedClock
from chatdesk.models.session import CookieMeta, SessionRecord
from chatdesk.services.session_store import SessionSerializationError, SessionStore
from tests.fakes import FakeSessionsRepository

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture(name="repo")
def fixture_repo() -> FakeSessionsRepository:
    return FakeSessionsRepository()


@pytest.fixture(name="store")
def fixture_store(repo: FakeSessionsRepository) -> SessionStore:
    return SessionStore(repo, ttl=timedelta(hours=12), clock=FixedClock(NOW))


@pytest.mark.asyncio
async def test_set_then_get_returns_data(store: SessionStore) -> None:
    await store.set("abc", {"user_id": 4, "roles": ["agent"]})

    assert await store.get("abc") == {"user_id": 4, "roles": ["agent"]}


@pytest.mark.asyncio
async def test_expired_session_is_counted_until_read(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    await store.set("live", {"a": 1})
    repo.rows["old"] = SessionRecord(sid="old", data='{"a": 2}', expires=NOW - timedelta(seconds=1))

    assert await store.length() == 2
    assert await store.get("old") is None
    assert await store.length() == 1
    assert repo.deleted == ["old"]


@pytest.mark.asyncio
async def test_corrupt_payload_is_removed(store: SessionStore, repo: FakeSessionsRepository) -> None:
    repo.rows["bad"] = SessionRecord(sid="bad", data="{not json", expires=NOW + timedelta(hours=1))

    assert await store.get("bad") is None
    assert "bad" not in repo.rows
    assert await store.get("bad") is None


@pytest.mark.asyncio
async def test_non_object_payload_is_treated_as_corrupt(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    repo.rows["list"] = SessionRecord(sid="list", data="[1, 2]", expires=NOW + timedelta(hours=1))

    assert await store.get("list") is None
    assert "list" not in repo.rows


@pytest.mark.asyncio
async def test_deserializer_failure_of_any_kind_is_treated_as_corrupt(
    repo: FakeSessionsRepository,
) -> None:
    def strict_loads(raw: str):
        raise EOFError("payload truncado")

    store = SessionStore(repo, clock=FixedClock(NOW), deserializer=strict_loads)
    repo.rows["bad"] = SessionRecord(sid="bad", data="\x80\x04", expires=NOW + timedelta(hours=1))

    assert await store.get("bad") is None
    assert "bad" not in repo.rows


@pytest.mark.asyncio
async def test_naive_store_timestamp_is_read_as_utc(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    repo.rows["live"] = SessionRecord.model_validate(
        {"sid": "live", "data": '{"a": 1}', "expires": "2025-03-11T10:00:00"}
    )
    repo.rows["old"] = SessionRecord.model_validate(
        {"sid": "old", "data": '{"a": 2}', "expires": "2025-03-10T14:59:59"}
    )

    assert repo.rows["live"].expires == datetime(2025, 3, 11, 10, 0, tzinfo=timezone.utc)
    assert await store.get("live") == {"a": 1}
    assert await store.get("old") is None


@pytest.mark.asyncio
async def test_empty_payload_is_an_empty_session(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    repo.rows["empty"] = SessionRecord(sid="empty", data="", expires=NOW + timedelta(hours=1))

    assert await store.get("empty") == {}


@pytest.mark.asyncio
async def test_expiry_prefers_cookie_expires_then_max_age_then_ttl(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    explicit = NOW + timedelta(days=3)
    await store.set("a", {}, CookieMeta(expires=explicit, max_age=60))
    await store.set("b", {}, CookieMeta(max_age=60))
    await store.set("c", {})

    assert repo.rows["a"].expires == explicit
    assert repo.rows["b"].expires == NOW + timedelta(seconds=60)
    assert repo.rows["c"].expires == NOW + timedelta(hours=12)


@pytest.mark.asyncio
async def test_unserializable_data_raises_and_keeps_previous_record(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    await store.set("abc", {"ok": True})

    with pytest.raises(SessionSerializationError):
        await store.set("abc", {"when": object()})

    assert await store.get("abc") == {"ok": True}


@pytest.mark.asyncio
async def test_custom_serializer_pair_is_used(repo: FakeSessionsRepository) -> None:
    store = SessionStore(
        repo,
        clock=FixedClock(NOW),
        serializer=lambda data: "|".join(f"{key}={value}" for key, value in data.items()),
        deserializer=lambda raw: dict(part.split("=") for part in raw.split("|")),
    )

    await store.set("abc", {"lang": "es"})

    assert repo.rows["abc"].data == "lang=es"
    assert await store.get("abc") == {"lang": "es"}


@pytest.mark.asyncio
async def test_touch_only_extends_existing_sessions(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    await store.set("abc", {"a": 1}, CookieMeta(max_age=60))

    await store.touch("abc", {"a": 99}, CookieMeta(max_age=3600))
    await store.touch("missing", {"a": 1})

    assert repo.rows["abc"].expires == NOW + timedelta(hours=1)
    assert repo.rows["abc"].data == '{"a": 1}'
    assert "missing" not in repo.rows


@pytest.mark.asyncio
async def test_destroy_is_idempotent_and_clear_removes_everything(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    await store.set("a", {"x": 1})
    await store.set("b", {"x": 2})

    await store.destroy("a")
    await store.destroy("a")
    assert await store.length() == 1

    await store.clear()
    assert await store.length() == 0


@pytest.mark.asyncio
async def test_cleanup_removes_expired_and_swallows_errors(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    await store.set("live", {})
    repo.rows["old"] = SessionRecord(sid="old", data="{}", expires=NOW - timedelta(minutes=1))

    assert await store.cleanup_expired() == 1
    assert set(repo.rows) == {"live"}

    repo.fail_cleanup = True
    assert await store.cleanup_expired() == 0


@pytest.mark.asyncio
async def test_cleanup_task_runs_periodically_and_stops(
    store: SessionStore, repo: FakeSessionsRepository
) -> None:
    repo.rows["old"] = SessionRecord(sid="old", data="{}", expires=NOW - timedelta(minutes=1))

    assert store.start_cleanup(0.01) is True
    assert store.start_cleanup(0.01) is False
    for _ in range(50):
        if "old" not in repo.rows:
            break
        await asyncio.sleep(0.01)
    await store.stop_cleanup()

    assert "old" not in repo.rows


def test_cleanup_disabled_with_zero_interval(store: SessionStore) -> None:
    assert store.start_cleanup(0) is False
