"""Protección de páginas por sesión y rol.

English: Page protection by session and role.

``requiere_sesion`` envuelve un manejador de página. La decisión se recalcula
desde la sesión en cada petición y se toma en el servidor antes de ejecutar el
manejador, así que nunca se genera HTML protegido para un visitante sin
permiso.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from fastapi import Request
from starlette.responses import RedirectResponse

from votaciones.session import SessionStore

logger = structlog.get_logger(__name__)

RUTA_INICIO = "/"
RUTA_VOTAR = "/votar"

MENSAJE_SIN_SESION = "Debes iniciar sesión para acceder a esta página"
MENSAJE_SIN_PERMISO = "No tienes permisos para acceder a esta página"

Handler = TypeVar("Handler", bound=Callable[..., Awaitable[Any]])


@dataclass(frozen=True)
class DecisionAcceso:
    permitido: bool
    redirigir_a: Optional[str] = None
    mensaje: Optional[str] = None


PERMITIDO = DecisionAcceso(permitido=True)


def evaluar_acceso(store: SessionStore, admin_only: bool = False) -> DecisionAcceso:
    """Decide si la sesión puede ver la página.

    English: Decide whether the session may see the page.
    """
    if not store.is_authenticated():
        return DecisionAcceso(False, RUTA_INICIO, MENSAJE_SIN_SESION)
    if admin_only and not store.is_admin():
        return DecisionAcceso(False, RUTA_VOTAR, MENSAJE_SIN_PERMISO)
    return PERMITIDO


def _find_request(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Request:
    request = kwargs.get("request")
    if isinstance(request, Request):
        return request
    for value in args:
        if isinstance(value, Request):
            return value
    raise RuntimeError("Protected handler was called without a Request")


def requiere_sesion(handler: Optional[Handler] = None, *, admin_only: bool = False) -> Any:
    """Decorador para manejadores async que declaran ``request: Request``.

    English: Decorator for async handlers declaring ``request: Request``.

    Uso / Usage::

        @router.get("/votar")
        @requiere_sesion
        async def votar(request: Request): ...

        @router.get("/admin/estadisticas")
        @requiere_sesion(admin_only=True)
        async def estadisticas(request: Request): ...
    """

    def decorator(func: Handler) -> Handler:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"{func.__name__} must be an async function")
        if "request" not in inspect.signature(func).parameters:
            raise TypeError(f"{func.__name__} must declare a 'request: Request' parameter")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request = _find_request(args, kwargs)
            store = SessionStore.from_request(request)
            decision = evaluar_acceso(store, admin_only=admin_only)
            if not decision.permitido:
                logger.info(
                    "access_denied",
                    path=request.url.path,
                    redirect=decision.redirigir_a,
                    admin_only=admin_only,
                )
                store.flash("error", decision.mensaje or MENSAJE_SIN_SESION)
                return RedirectResponse(decision.redirigir_a or RUTA_INICIO, status_code=303)
            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    if handler is not None:
        return decorator(handler)
    return decorator
