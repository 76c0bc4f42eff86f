"""Canal WebSocket con los eventos en tiempo real del panel."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, WebSocket

from chatdesk.api.deps import get_broadcaster
from chatdesk.core.logging import get_logger, log_event
from chatdesk.services.broadcast import EventBroadcaster

logger = get_logger(__name__)

router = APIRouter(tags=["events"])


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Los mensajes del cliente se ignoran; sólo interesa el cierre.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/events")
async def stream_events(
    websocket: WebSocket,
    user_id: int | None = None,
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> None:
    """Reenvía cada evento publicado; los dirigidos a otros operadores se omiten."""
    await websocket.accept()
    log_event(logger, "events.client_connected", user_id=user_id)
    async with broadcaster.subscribe() as queue:
        disconnected = asyncio.ensure_future(_wait_for_disconnect(websocket))
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _pending = await asyncio.wait(
                    {getter, disconnected}, return_when=asyncio.FIRST_COMPLETED
                )
                if disconnected in done:
                    getter.cancel()
                    break
                envelope = getter.result()
                targets = envelope.get("user_ids") or []
                if targets and user_id is not None and user_id not in targets:
                    continue
                await websocket.send_json(envelope)
        finally:
            disconnected.cancel()
    log_event(logger, "events.client_disconnected", user_id=user_id)
