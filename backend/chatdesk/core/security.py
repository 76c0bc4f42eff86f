"""Firma de identificadores de sesión y utilidades para secretos."""

import hmac
from hashlib import sha256


class SignatureError(Exception):
    """La cookie recibida no tiene una firma válida."""


def sign_value(secret: str, value: str) -> str:
    """Devuelve `valor.firma` con HMAC-SHA256."""
    return f"{value}.{_build_signature(secret, value.encode())}"


def unsign_value(secret: str, token: str) -> str:
    """Valida `valor.firma` y retorna el valor original.

    Raises:
        SignatureError: si falta la firma o no coincide.
    """
    value, separator, signature = token.rpartition(".")
    if not separator or not value:
        raise SignatureError("Cookie sin firma")
    expected = _build_signature(secret, value.encode())
    if not hmac.compare_digest(expected, signature):
        raise SignatureError("Firma de cookie inválida")
    return value


def _build_signature(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode(), payload, sha256)
    return digest.hexdigest()


def mask_secret(value: str | None) -> str | None:
    """Enmascara secretos para logging seguro."""
    if not value:
        return value
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"
