"""Repositorio de sesiones web (`sessions`)."""

from __future__ import annotations

from datetime import datetime

from chatdesk.models.session import SessionRecord

from .base import SupabaseRepository, pg_timestamp

_SESSION_SELECT = "sid,data,expires"


class SessionsRepository(SupabaseRepository):
    """Operaciones por `sid`; cada fila es independiente de las demás."""

    async def get(self, sid: str) -> SessionRecord | None:
        params = {"select": _SESSION_SELECT, "sid": f"eq.{sid}", "limit": "1"}
        response = await self._request("GET", "/rest/v1/sessions", params=params)
        rows = self._json_list(response)
        return SessionRecord.model_validate(rows[0]) if rows else None

    async def upsert(self, sid: str, *, data: str, expires: datetime) -> None:
        await self._request(
            "POST",
            "/rest/v1/sessions",
            params={"on_conflict": "sid"},
            json={"sid": sid, "data": data, "expires": expires.isoformat()},
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def update_expiry(self, sid: str, *, expires: datetime) -> None:
        """Actualiza sólo la expiración; no hace nada si el `sid` no existe."""
        await self._request(
            "PATCH",
            "/rest/v1/sessions",
            params={"sid": f"eq.{sid}"},
            json={"expires": expires.isoformat()},
            prefer="return=minimal",
        )

    async def delete(self, sid: str) -> None:
        await self._request("DELETE", "/rest/v1/sessions", params={"sid": f"eq.{sid}"})

    async def delete_all(self) -> None:
        # PostgREST exige un filtro en DELETE; `sid` nunca es nulo.
        await self._request("DELETE", "/rest/v1/sessions", params={"sid": "not.is.null"})

    async def delete_expired(self, now: datetime) -> int:
        response = await self._request(
            "DELETE",
            "/rest/v1/sessions",
            params={"expires": f"lt.{pg_timestamp(now)}", "select": "sid"},
            prefer="return=representation",
        )
        return len(self._json_list(response))

    async def count(self) -> int:
        response = await self._request(
            "GET",
            "/rest/v1/sessions",
            params={"select": "sid", "limit": "1"},
            prefer="count=exact",
        )
        total = self._content_range_total(response.headers.get("content-range"))
        return total if total is not None else len(self._json_list(response))
