"""Repositorio de la fila única de configuración del sistema."""

from __future__ import annotations

from typing import Any

from .base import RepositoryError, SupabaseRepository

SYSTEM_SETTINGS_ID = 1
_SETTINGS_SELECT = "id,timezone,language,date_format,auto_close_minutes,updated_at"


class SystemSettingsRepository(SupabaseRepository):
    async def fetch_or_create(self, defaults: dict[str, Any]) -> dict[str, Any]:
        """Devuelve la configuración del sistema, creándola con `defaults` si no existe."""
        params = {"select": _SETTINGS_SELECT, "id": f"eq.{SYSTEM_SETTINGS_ID}", "limit": "1"}
        response = await self._request("GET", "/rest/v1/system_settings", params=params)
        rows = self._json_list(response)
        if rows:
            return rows[0]

        response = await self._request(
            "POST",
            "/rest/v1/system_settings",
            params={"on_conflict": "id", "select": _SETTINGS_SELECT},
            json=[{"id": SYSTEM_SETTINGS_ID, **defaults}],
            prefer="resolution=ignore-duplicates,return=representation",
        )
        rows = self._json_list(response)
        if rows:
            return rows[0]
        # Otra instancia la creó entre la lectura y la inserción.
        response = await self._request("GET", "/rest/v1/system_settings", params=params)
        rows = self._json_list(response)
        if not rows:
            raise RepositoryError("No fue posible inicializar la configuración del sistema")
        return rows[0]
