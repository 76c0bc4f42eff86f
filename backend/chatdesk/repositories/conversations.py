"""Repositorio de conversaciones, su bitácora de eventos y mensajes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from chatdesk.models.conversation import (
    OPEN_STATUSES,
    Conversation,
    ConversationMessage,
    ConversationStatus,
)

from .base import RepositoryError, SupabaseRepository, pg_timestamp

_CONVERSATION_SELECT = (
    "id,status,user_phone,contact_name,contact_id,assigned_to_id,area_id,"
    "bot_active,last_activity,closed_at,closed_reason"
)
_MESSAGE_SELECT = (
    "id,conversation_id,sender_type,sender_id,content,is_delivered,external_id,created_at"
)


def _status_filter(statuses: Iterable[ConversationStatus]) -> str:
    return f"in.({','.join(status.value for status in statuses)})"


class ConversationsRepository(SupabaseRepository):
    """Consultas que el barrido de inactividad necesita sobre `conversations`."""

    async def list_stale(
        self,
        *,
        before: datetime,
        statuses: Iterable[ConversationStatus] = OPEN_STATUSES,
    ) -> list[Conversation]:
        """Conversaciones abiertas cuya última actividad es estrictamente anterior a `before`."""
        params = {
            "select": _CONVERSATION_SELECT,
            "status": _status_filter(statuses),
            "last_activity": f"lt.{pg_timestamp(before)}",
            "order": "last_activity.asc",
        }
        response = await self._request("GET", "/rest/v1/conversations", params=params)
        return [Conversation.model_validate(row) for row in self._json_list(response)]

    async def fetch(self, conversation_id: int) -> Conversation | None:
        params = {"select": _CONVERSATION_SELECT, "id": f"eq.{conversation_id}", "limit": "1"}
        response = await self._request("GET", "/rest/v1/conversations", params=params)
        rows = self._json_list(response)
        return Conversation.model_validate(rows[0]) if rows else None

    async def close_if_open(
        self,
        conversation_id: int,
        *,
        closed_at: datetime,
        reason: str,
    ) -> Conversation | None:
        """Cierra la conversación sólo si sigue abierta.

        Devuelve `None` cuando otra operación ya la cerró; así un episodio abierto
        se cierra una única vez.
        """
        patch = {
            "status": ConversationStatus.CLOSED.value,
            "closed_at": closed_at.isoformat(),
            "closed_reason": reason,
            "bot_active": True,
            "last_activity": closed_at.isoformat(),
        }
        response = await self._request(
            "PATCH",
            "/rest/v1/conversations",
            params={
                "id": f"eq.{conversation_id}",
                "status": _status_filter(OPEN_STATUSES),
                "select": _CONVERSATION_SELECT,
            },
            json=patch,
            prefer="return=representation",
        )
        rows = self._json_list(response)
        return Conversation.model_validate(rows[0]) if rows else None

    async def add_event(
        self,
        conversation_id: int,
        event_type: str,
        payload: dict[str, Any] | None,
        *,
        created_by_id: int | None = None,
    ) -> None:
        """Agrega un evento inmutable a la bitácora de la conversación."""
        await self._request(
            "POST",
            "/rest/v1/conversation_events",
            json={
                "conversation_id": conversation_id,
                "event_type": event_type,
                "payload": payload,
                "created_by_id": created_by_id,
            },
            prefer="return=minimal",
        )

    async def create_message(
        self,
        *,
        conversation_id: int,
        content: str,
        sender_type: str = "BOT",
        sender_id: int | None = None,
        is_delivered: bool = True,
        external_id: str | None = None,
        created_at: datetime | None = None,
    ) -> ConversationMessage:
        payload: dict[str, Any] = {
            "conversation_id": conversation_id,
            "sender_type": sender_type,
            "sender_id": sender_id,
            "content": content,
            "is_delivered": is_delivered,
            "external_id": external_id,
        }
        if created_at is not None:
            payload["created_at"] = created_at.isoformat()
        response = await self._request(
            "POST",
            "/rest/v1/messages",
            params={"select": _MESSAGE_SELECT},
            json=[payload],
            prefer="return=representation",
        )
        rows = self._json_list(response)
        if not rows:
            raise RepositoryError("Supabase no devolvió el mensaje creado")
        return ConversationMessage.model_validate(rows[0])
