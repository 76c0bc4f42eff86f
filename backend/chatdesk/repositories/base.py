"""Acceso base a Supabase REST (PostgREST) con la service role del backend."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from chatdesk.core.config import settings
from chatdesk.core.logging import get_logger

logger = get_logger(__name__)


class RepositoryError(RuntimeError):
    """Errores derivados de llamadas a Supabase."""


def pg_timestamp(value: datetime) -> str:
    """Formatea un instante para filtros PostgREST (entre comillas dentro de `and`/`or`)."""
    return value.isoformat()


class SupabaseRepository:
    """Pequeña capa HTTP compartida por los repositorios de cada agregado.

    La configuración se valida en cada llamada y no al construir, de modo que la
    aplicación puede iniciar sin Supabase (p. ej. en pruebas).
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        service_role: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url_override = base_url
        self._service_role_override = service_role
        self._timeout = timeout

    @property
    def _base_url(self) -> str:
        base = self._base_url_override or settings.supabase_url
        if not base:
            raise RepositoryError("Supabase no está configurado (SUPABASE_URL)")
        return base.rstrip("/")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        headers = self._headers(prefer, has_body=json is not None)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                )
        except httpx.RequestError as exc:
            logger.exception("supabase.request_failed", extra={"path": path, "error": str(exc)})
            raise RepositoryError(f"Error al conectar a Supabase: {exc}") from exc
        if response.status_code >= 400:
            logger.error(
                "supabase.response_error",
                extra={"path": path, "status": response.status_code, "body": response.text},
            )
            raise RepositoryError(f"Supabase respondió {response.status_code}: {response.text}")
        return response

    def _headers(self, prefer: str | None, *, has_body: bool) -> dict[str, str]:
        service_role = self._service_role_override or settings.supabase_service_role
        if not service_role:
            raise RepositoryError("Falta SUPABASE_SERVICE_ROLE para realizar la operación")
        headers: dict[str, str] = {
            "Accept": "application/json",
            "apikey": service_role,
            "Authorization": f"Bearer {service_role}",
        }
        if prefer:
            headers["Prefer"] = prefer
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _json_list(response: httpx.Response) -> list[dict[str, Any]]:
        if not response.content:
            return []
        payload = response.json() or []
        if not isinstance(payload, list):
            raise RepositoryError("Respuesta inesperada de Supabase")
        return [row for row in payload if isinstance(row, dict)]

    @staticmethod
    def _content_range_total(header: str | None) -> int | None:
        if not header:
            return None
        _range, _, total = header.partition("/")
        total = total.strip()
        if not total or total == "*":
            return None
        try:
            return int(total)
        except ValueError:
            return None
