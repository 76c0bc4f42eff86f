"""Difusión de eventos en tiempo real hacia el panel.

Publicar nunca bloquea ni falla: cada listener tiene una cola acotada y, si está
llena, el evento se descarta para ese listener.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from chatdesk.core.logging import get_logger, log_event

logger = get_logger(__name__)

CONVERSATION_UPDATE = "conversation:update"
CONVERSATION_CLOSED = "conversation:closed"
MESSAGE_NEW = "message:new"
REMINDERS_DUE = "reminders:due"


def build_envelope(
    event: str,
    payload: Any,
    *,
    user_ids: Iterable[int] | None = None,
) -> dict[str, Any]:
    return {
        "event": event,
        "payload": payload,
        "user_ids": sorted(set(user_ids or ())),
        "emitted_at": datetime.now(timezone.utc).isoformat(),
    }


class EventBroadcaster:
    """Fan-out en memoria de eventos hacia suscriptores del proceso."""

    def __init__(self, *, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(
        self,
        event: str,
        payload: Any,
        *,
        user_ids: Iterable[int] | None = None,
    ) -> None:
        envelope = build_envelope(event, payload, user_ids=user_ids)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(envelope)
            except asyncio.QueueFull:
                log_event(logger, "broadcast.event_dropped", level=logging.DEBUG, event=event)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[dict[str, Any]]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)
