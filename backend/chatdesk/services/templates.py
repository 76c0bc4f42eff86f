"""Reemplazo de variables `{{nombre}}` en mensajes automáticos."""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo

from chatdesk.core.clock import local_zone
from chatdesk.models.conversation import Conversation
from chatdesk.repositories.conversations import ConversationsRepository

_PLACEHOLDER = re.compile(r"\{\{\s*([a-z_]+)\s*\}\}")


class TemplateResolver:
    """Completa plantillas con datos de la conversación.

    Variables soportadas: `contact_name`, `phone`, `conversation_id`, `date` y
    `time` (hora local). Las desconocidas se dejan tal cual.
    """

    def __init__(
        self,
        repository: ConversationsRepository | None = None,
        *,
        zone: tzinfo | None = None,
    ) -> None:
        self._repo = repository or ConversationsRepository()
        self._zone = zone

    async def render(
        self,
        template: str,
        conversation_id: int,
        *,
        now: datetime | None = None,
    ) -> str:
        if "{{" not in template:
            return template
        conversation = await self._repo.fetch(conversation_id)
        return render_template(
            template,
            conversation_id,
            conversation,
            now=now or datetime.now(timezone.utc),
            zone=self._zone or local_zone(),
        )


def render_template(
    template: str,
    conversation_id: int,
    conversation: Conversation | None,
    *,
    now: datetime,
    zone: tzinfo,
) -> str:
    local_now = now.astimezone(zone)
    values = {
        "contact_name": (conversation.contact_name if conversation else None) or "",
        "phone": (conversation.user_phone if conversation else None) or "",
        "conversation_id": str(conversation_id),
        "date": local_now.strftime("%d/%m/%Y"),
        "time": local_now.strftime("%H:%M"),
    }

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _PLACEHOLDER.sub(_replace, template)
