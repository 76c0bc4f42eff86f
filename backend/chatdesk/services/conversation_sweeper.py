"""Cierre automático de conversaciones inactivas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from chatdesk.core.clock import Clock, SystemClock
from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.models.conversation import (
    AUTO_CLOSE_REASON,
    Conversation,
    ConversationMessage,
    ConversationStatus,
)
from chatdesk.repositories.conversations import ConversationsRepository
from chatdesk.services.broadcast import (
    CONVERSATION_CLOSED,
    CONVERSATION_UPDATE,
    MESSAGE_NEW,
    EventBroadcaster,
)
from chatdesk.services.notifications import SenderRegistry
from chatdesk.services.system_settings import SystemSettingsService
from chatdesk.services.templates import TemplateResolver

logger = get_logger("chatdesk.scheduler.sweeper")

STATUS_CHANGE_EVENT = "STATUS_CHANGE"


@dataclass(slots=True)
class SweepResult:
    threshold: datetime
    closed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


class ConversationSweeper:
    """Cierra conversaciones abiertas sin actividad reciente y avisa al cliente.

    Cada conversación se procesa de forma aislada: un error en una se registra y el
    barrido sigue con la siguiente. El cierre queda confirmado antes de auditar y
    notificar, por lo que un fallo posterior no revierte el cambio de estado.
    """

    def __init__(
        self,
        *,
        repository: ConversationsRepository | None = None,
        settings_service: SystemSettingsService | None = None,
        registry: SenderRegistry | None = None,
        templates: TemplateResolver | None = None,
        broadcaster: EventBroadcaster | None = None,
        clock: Clock | None = None,
        message: str | None = None,
    ) -> None:
        self._repo = repository or ConversationsRepository()
        self._settings = settings_service or SystemSettingsService()
        self._registry = registry or SenderRegistry()
        self._templates = templates or TemplateResolver(self._repo)
        self._broadcaster = broadcaster or EventBroadcaster()
        self._clock = clock or SystemClock()
        self._message = message if message is not None else settings.auto_close_message

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        now = now or self._clock.now()
        minutes = await self._settings.auto_close_minutes()
        threshold = now - timedelta(minutes=minutes)
        result = SweepResult(threshold=threshold)

        stale = await self._repo.list_stale(before=threshold)
        if not stale:
            return result

        for conversation in stale:
            try:
                closed = await self._close(conversation, now)
            except Exception as exc:  # noqa: BLE001 - una conversación no detiene el barrido
                result.failed.append(conversation.id)
                logger.exception(
                    "sweeper.conversation_failed",
                    extra={"conversation_id": conversation.id, "error": str(exc)},
                )
                continue
            (result.closed if closed else result.skipped).append(conversation.id)

        log_event(
            logger,
            "sweeper.completed",
            level=logging.INFO if result.closed or result.failed else logging.DEBUG,
            threshold=threshold.isoformat(),
            closed=len(result.closed),
            skipped=len(result.skipped),
            failed=len(result.failed),
        )
        return result

    def candidate_owner_ids(self, conversation: Conversation) -> list[int]:
        """Dueño asignado primero y luego los operadores con canal vivo, sin repetidos."""
        owners: list[int] = []
        if conversation.assigned_to_id is not None:
            owners.append(conversation.assigned_to_id)
        for owner_id in self._registry.live_owner_ids():
            if owner_id not in owners:
                owners.append(owner_id)
        return owners

    async def _close(self, conversation: Conversation, now: datetime) -> bool:
        closed = await self._repo.close_if_open(
            conversation.id, closed_at=now, reason=AUTO_CLOSE_REASON
        )
        if closed is None:
            log_event(
                logger,
                "sweeper.conversation_already_closed",
                level=logging.DEBUG,
                conversation_id=conversation.id,
            )
            return False

        await self._repo.add_event(
            conversation.id,
            STATUS_CHANGE_EVENT,
            {
                "previous_status": conversation.status.value,
                "new_status": ConversationStatus.CLOSED.value,
                "reason": AUTO_CLOSE_REASON,
            },
        )

        owners = self.candidate_owner_ids(conversation)
        text = await self._templates.render(self._message, conversation.id, now=now)
        message, delivered_by = await self._notify(conversation, owners, text)

        self._broadcaster.publish(
            MESSAGE_NEW,
            {"conversation_id": conversation.id, "message": message.model_dump(mode="json")},
            user_ids=[delivered_by] if delivered_by is not None else None,
        )
        snapshot = closed.snapshot()
        self._broadcaster.publish(CONVERSATION_UPDATE, snapshot)
        self._broadcaster.publish(CONVERSATION_CLOSED, snapshot)

        log_event(
            logger,
            "sweeper.conversation_closed",
            conversation_id=conversation.id,
            previous_status=conversation.status.value,
            delivered=message.is_delivered,
            delivered_by=delivered_by,
        )
        return True

    async def _notify(
        self,
        conversation: Conversation,
        owners: list[int],
        text: str,
    ) -> tuple[ConversationMessage, int | None]:
        """Intenta enviar el aviso con cada operador en orden y registra el mensaje."""
        if conversation.user_phone:
            for owner_id in owners:
                sender = self._registry.get(owner_id)
                if sender is None:
                    continue
                try:
                    outbound = await sender.try_send(conversation.user_phone, text)
                except Exception as exc:  # noqa: BLE001 - un canal que falla cuenta como no entregado
                    log_event(
                        logger,
                        "sweeper.sender_failed",
                        level=logging.WARNING,
                        conversation_id=conversation.id,
                        owner_id=owner_id,
                        error=str(exc),
                    )
                    continue
                if outbound is None:
                    continue
                message = await self._repo.create_message(
                    conversation_id=conversation.id,
                    content=text,
                    is_delivered=True,
                    external_id=outbound.external_id,
                    created_at=outbound.sent_at,
                )
                return message, owner_id

        message = await self._repo.create_message(
            conversation_id=conversation.id,
            content=text,
            is_delivered=False,
        )
        return message, None
