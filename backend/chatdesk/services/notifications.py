"""Canal saliente de WhatsApp a través de Twilio.

Cada operador con un número de WhatsApp activo tiene un `OutboundSender`. El envío
nunca lanza excepciones hacia el llamador: un fallo se registra y se devuelve `None`
para que quien envía pruebe con el siguiente operador.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol

from twilio.rest import Client

from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger, log_event
from chatdesk.core.security import mask_secret

logger = get_logger(__name__)


class NotificationError(RuntimeError):
    """Configuración del canal saliente ausente o inválida."""


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    external_id: str | None
    sent_at: datetime


class OutboundSender(Protocol):
    owner_id: int

    async def try_send(self, to: str, text: str) -> OutboundMessage | None: ...


@lru_cache(maxsize=1)
def get_twilio_client() -> Client:
    """Retorna el cliente reutilizable de Twilio."""
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise NotificationError("Las credenciales de Twilio no están configuradas")
    return Client(settings.twilio_account_sid, settings.twilio_auth_token)


def whatsapp_address(number: str) -> str:
    number = number.strip()
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class TwilioWhatsAppSender:
    """Envía mensajes desde el número de WhatsApp de un operador."""

    def __init__(
        self,
        owner_id: int,
        from_number: str,
        *,
        client: Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.from_number = whatsapp_address(from_number)
        self._client = client
        self._timeout = timeout if timeout is not None else settings.notification_timeout_seconds

    def _send_blocking(self, to: str, text: str) -> str | None:
        client = self._client or get_twilio_client()
        message = client.messages.create(from_=self.from_number, to=whatsapp_address(to), body=text)
        return getattr(message, "sid", None)

    async def try_send(self, to: str, text: str) -> OutboundMessage | None:
        if not to:
            return None
        try:
            external_id = await asyncio.wait_for(
                asyncio.to_thread(self._send_blocking, to, text), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            log_event(
                logger,
                "notifications.send_timeout",
                level=logging.WARNING,
                owner_id=self.owner_id,
                to=mask_secret(to),
                timeout_seconds=self._timeout,
            )
            return None
        except Exception as exc:  # noqa: BLE001 - cualquier fallo del proveedor es "no entregado"
            log_event(
                logger,
                "notifications.send_failed",
                level=logging.WARNING,
                owner_id=self.owner_id,
                to=mask_secret(to),
                error=str(exc),
            )
            return None
        return OutboundMessage(external_id=external_id, sent_at=datetime.now(timezone.utc))


class SenderRegistry:
    """Operadores con un canal saliente vivo, en orden de registro."""

    def __init__(self) -> None:
        self._senders: dict[int, OutboundSender] = {}

    @classmethod
    def from_settings(cls) -> SenderRegistry:
        registry = cls()
        for owner_id, number in settings.whatsapp_senders.items():
            registry.register(TwilioWhatsAppSender(owner_id, number))
        return registry

    def register(self, sender: OutboundSender) -> None:
        self._senders[sender.owner_id] = sender

    def unregister(self, owner_id: int) -> None:
        self._senders.pop(owner_id, None)

    def get(self, owner_id: int) -> OutboundSender | None:
        return self._senders.get(owner_id)

    def live_owner_ids(self) -> list[int]:
        return list(self._senders)
