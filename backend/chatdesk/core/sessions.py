"""Sesiones web del lado del servidor.

La cookie sólo transporta el identificador de sesión firmado; los datos viven en
`SessionStore`. Cada request expone un `dict` mutable en `request.state.session`.
"""

from __future__ import annotations

import copy
import logging
import secrets
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from chatdesk.core.logging import get_logger, log_event
from chatdesk.core.security import SignatureError, sign_value, unsign_value
from chatdesk.models.session import CookieMeta
from chatdesk.services.session_store import SessionStore

logger = get_logger("chatdesk.sessions")


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionMiddleware(BaseHTTPMiddleware):
    """Carga y persiste la sesión de cada request.

    La sesión se guarda sólo si cambió; si queda vacía se elimina junto con la
    cookie. Con `rolling` activo, cada request extiende la expiración.
    """

    def __init__(
        self,
        app,
        *,
        store: SessionStore,
        secret: str,
        cookie_name: str = "chatdesk.sid",
        max_age: int = 60 * 60 * 12,
        secure: bool = False,
        samesite: str = "lax",
        rolling: bool = False,
    ) -> None:
        super().__init__(app)
        self._store = store
        self._secret = secret
        self._cookie_name = cookie_name
        self._max_age = max_age
        self._secure = secure
        self._samesite = samesite
        self._rolling = rolling

    def _read_sid(self, request: Request) -> str | None:
        token = request.cookies.get(self._cookie_name)
        if not token:
            return None
        try:
            return unsign_value(self._secret, token)
        except SignatureError:
            log_event(logger, "sessions.invalid_cookie", level=logging.DEBUG)
            return None

    async def dispatch(self, request: Request, call_next):
        sid = self._read_sid(request)
        loaded: dict[str, Any] | None = await self._store.get(sid) if sid else None
        if loaded is None:
            sid = None
        original = copy.deepcopy(loaded or {})
        request.state.session = copy.deepcopy(original)

        response = await call_next(request)

        session: dict[str, Any] = request.state.session
        cookie = CookieMeta(max_age=self._max_age)
        if sid is not None and not session:
            await self._store.destroy(sid)
            response.delete_cookie(self._cookie_name, path="/")
        elif session and session != original:
            sid = sid or new_session_id()
            await self._store.set(sid, session, cookie)
            self._set_cookie(response, sid)
        elif sid is not None and self._rolling:
            await self._store.touch(sid, session, cookie)
            self._set_cookie(response, sid)
        return response

    def _set_cookie(self, response, sid: str) -> None:
        response.set_cookie(
            self._cookie_name,
            sign_value(self._secret, sid),
            max_age=self._max_age,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite=self._samesite,
        )
