"""Almacén de sesión: token de autenticación y datos del usuario.

English: Session store holding the auth token and the user record.

La sesión vive en la cookie firmada de ``SessionMiddleware`` (equivalente del
almacenamiento local por pestaña). Token y usuario se escriben y se borran
siempre juntos. Sin E/S de red.
"""

from __future__ import annotations

import json
from typing import Any, MutableMapping, Optional

import structlog
from fastapi import Request
from starlette.responses import RedirectResponse

from .schemas import Usuario

logger = structlog.get_logger(__name__)

SESSION_TOKEN_KEY = "auth-token"
SESSION_USER_KEY = "user-data"
SESSION_FLASH_KEY = "flash"

FLASH_KINDS = ("error", "success", "info")


class SessionStore:
    """Acceso explícito a la sesión del usuario actual.

    English: Explicit access to the current user's session.

    ``data`` es ``None`` cuando la petición no trae sesión (por ejemplo, sin
    ``SessionMiddleware`` instalado); en ese caso todo responde como anónimo.
    """

    def __init__(self, data: Optional[MutableMapping[str, Any]]) -> None:
        self._data = data

    @classmethod
    def from_request(cls, request: Request) -> "SessionStore":
        return cls(request.scope.get("session"))

    @property
    def available(self) -> bool:
        return self._data is not None

    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    def get_token(self) -> Optional[str]:
        if self._data is None:
            return None
        token = self._data.get(SESSION_TOKEN_KEY)
        return token or None

    def get_user(self) -> Optional[Usuario]:
        """Usuario guardado o ``None``; un JSON corrupto no lanza.

        English: Stored user or ``None``; corrupt JSON never raises.
        """
        if self._data is None:
            return None
        raw = self._data.get(SESSION_USER_KEY)
        if not raw:
            return None
        try:
            return Usuario.model_validate(json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.error("session_user_parse_failed", error=str(exc))
            return None

    def is_admin(self) -> bool:
        user = self.get_user()
        return user is not None and user.es_admin

    def login(self, token: str, user: Usuario) -> None:
        if self._data is None:
            raise RuntimeError("Session storage is not available for this request")
        self._data[SESSION_TOKEN_KEY] = token
        self._data[SESSION_USER_KEY] = user.model_dump_json(by_alias=True)
        logger.info("session_started", usuario_id=user.id, admin=user.es_admin)

    def logout(self, redirect_to: str = "/") -> RedirectResponse:
        """Borra token y usuario y fuerza la navegación a ``redirect_to``.

        English: Clear token and user and force navigation to ``redirect_to``.
        """
        if self._data is not None:
            self._data.pop(SESSION_TOKEN_KEY, None)
            self._data.pop(SESSION_USER_KEY, None)
        logger.info("session_closed")
        return RedirectResponse(redirect_to, status_code=303)

    # -- Notificaciones / Notifications --

    def flash(self, kind: str, message: str) -> None:
        if self._data is None:
            return
        if kind not in FLASH_KINDS:
            kind = "info"
        pending = list(self._data.get(SESSION_FLASH_KEY, []))
        pending.append({"tipo": kind, "mensaje": message})
        self._data[SESSION_FLASH_KEY] = pending

    def consume_flashes(self) -> list[dict[str, str]]:
        if self._data is None:
            return []
        return list(self._data.pop(SESSION_FLASH_KEY, []))


def get_session_store(request: Request) -> SessionStore:
    """Dependencia FastAPI que entrega la sesión de la petición.

    English: FastAPI dependency providing the request's session.
    """
    return SessionStore.from_request(request)
