"""Modelos de conversaciones del inbox y sus mensajes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from chatdesk.models.fields import UTCDateTime


class ConversationStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


OPEN_STATUSES: tuple[ConversationStatus, ...] = (
    ConversationStatus.PENDING,
    ConversationStatus.ACTIVE,
    ConversationStatus.PAUSED,
)

AUTO_CLOSE_REASON = "auto_inactivity"


class Conversation(BaseModel):
    """Conversación con un cliente.

    `closed_at` está definido únicamente cuando `status` es CLOSED; reabrir una
    conversación (fuera de este backend) limpia `closed_at` y `closed_reason`.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    status: ConversationStatus
    user_phone: str | None = None
    contact_name: str | None = None
    contact_id: int | None = None
    assigned_to_id: int | None = None
    area_id: int | None = None
    bot_active: bool = True
    last_activity: UTCDateTime
    closed_at: UTCDateTime | None = None
    closed_reason: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def snapshot(self) -> dict[str, Any]:
        """Representación enviada a los listeners en tiempo real."""
        return self.model_dump(mode="json")


class ConversationMessage(BaseModel):
    """Mensaje registrado en el historial de la conversación."""

    model_config = ConfigDict(extra="ignore")

    id: int
    conversation_id: int
    sender_type: str
    sender_id: int | None = None
    content: str
    is_delivered: bool
    external_id: str | None = None
    created_at: UTCDateTime
