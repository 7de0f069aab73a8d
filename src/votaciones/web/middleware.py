"""Filtro de peticiones por dirección IP para las páginas de Votaciones.
(IP-based request filter for the Votaciones pages.)

Cada navegación de página se evalúa contra una lista de bloques CIDR
permitidos (ALLOWED_NETWORKS).  Una IP suelta equivale a /32.  Las peticiones
denegadas reciben una redirección 307 a /acceso-denegado; esta capa nunca
responde 403.  Rutas /api, /static, favicon y la propia página de acceso
denegado quedan fuera del filtro.

(Every page navigation is checked against the allowed CIDR blocks.  Denied
requests get a 307 redirect to /acceso-denegado; this layer never answers
403.  /api, /static, favicon and the denied page itself bypass the filter.)
"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import Iterable, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from votaciones.config import VotacionesSettings

logger = logging.getLogger("votaciones.middleware")

ACCESS_DENIED_PATH = "/acceso-denegado"
UNKNOWN_ADDRESS = "unknown"

# Rutas que nunca pasan por el filtro (Paths that always bypass the filter)
_BYPASS_PATTERN = re.compile(r"^/(?:api(?:/|$)|static/|favicon\.ico$|acceso-denegado/?$)")

_IPV4_BITS = 32
_IPV4_FULL_MASK = 0xFFFFFFFF


# ---------------------------------------------------------------------------
# CIDR helpers (Helpers de CIDR)
# ---------------------------------------------------------------------------

def ip_to_int(address: str) -> int:
    """Convert a dotted IPv4 address into its 32-bit big-endian integer.
    (Convierte una IPv4 con puntos en su entero de 32 bits big-endian.)

    Raises ValueError for anything that is not an IPv4 address.
    """
    return int(ipaddress.IPv4Address(address.strip()))


def ip_in_cidr(address: str, cidr: str) -> bool:
    """Return True if ``address`` falls inside ``cidr``.
    (Retorna True si ``address`` cae dentro de ``cidr``.)

    ``(address & mask) == (base & mask)`` with the mask built from the prefix
    length.  Any parse error means "not permitted" (fail closed).
    """
    try:
        base, separator, prefix = cidr.strip().partition("/")
        prefix_len = int(prefix) if separator else _IPV4_BITS
        if not 0 <= prefix_len <= _IPV4_BITS:
            return False
        mask = (_IPV4_FULL_MASK << (_IPV4_BITS - prefix_len)) & _IPV4_FULL_MASK
        return (ip_to_int(address) & mask) == (ip_to_int(base) & mask)
    except (AttributeError, TypeError, ValueError):
        return False


def _is_local_or_unknown(address: str) -> bool:
    """Loopback, private or unparseable addresses (used only in dev mode)."""
    if address == UNKNOWN_ADDRESS:
        return True
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return True
    return parsed.is_loopback or parsed.is_private


def is_address_allowed(address: str, networks: Iterable[str], dev_mode: bool = False) -> bool:
    """Apply the allow-list policy to one caller address.
    (Aplica la política de lista permitida a una dirección.)
    """
    if dev_mode and _is_local_or_unknown(address):
        return True
    return any(ip_in_cidr(address, cidr) for cidr in networks)


def invalid_networks(networks: Iterable[str]) -> list[str]:
    """Entries of the allow-list that can never match.
    (Entradas de la lista que nunca pueden coincidir.)
    """
    invalid = []
    for entry in networks:
        base, separator, prefix = entry.strip().partition("/")
        try:
            ipaddress.IPv4Address(base)
            if separator and not 0 <= int(prefix) <= _IPV4_BITS:
                raise ValueError(prefix)
        except ValueError:
            invalid.append(entry)
    return invalid


def extract_client_ip(request: Request) -> str:
    """Extract the caller IP from X-Forwarded-For (first hop, trimmed).
    (Extrae la IP del cliente desde X-Forwarded-For, primer valor.)

    Falls back to request.client.host, then to "unknown".
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ADDRESS


# ---------------------------------------------------------------------------
# The middleware class (La clase de middleware)
# ---------------------------------------------------------------------------

class IPAllowListMiddleware(BaseHTTPMiddleware):
    """Redirect page requests from addresses outside the allow-list.
    (Redirige peticiones de página desde direcciones fuera de la lista.)
    """

    def __init__(self, app: FastAPI, settings: Optional[VotacionesSettings] = None) -> None:
        super().__init__(app)
        settings = settings or VotacionesSettings()
        self._enabled: bool = settings.IP_FILTER_ENABLED
        self._dev_mode: bool = settings.DEV_MODE
        self._networks: tuple[str, ...] = tuple(settings.ALLOWED_NETWORKS)

        for entry in invalid_networks(self._networks):
            logger.warning("ip_filter_invalid_network entry=%s", entry)

        if self._enabled:
            logger.info(
                "ip_filter_enabled networks=%d dev_mode=%s",
                len(self._networks),
                self._dev_mode,
            )
        else:
            logger.info("ip_filter_disabled")

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if not self._enabled or _BYPASS_PATTERN.match(request.url.path):
            return await call_next(request)

        client_ip = extract_client_ip(request)
        if is_address_allowed(client_ip, self._networks, self._dev_mode):
            return await call_next(request)

        logger.warning("ip_filter_denied ip=%s path=%s", client_ip, request.url.path)
        return RedirectResponse(ACCESS_DENIED_PATH, status_code=307)


def install_ip_filter(app: FastAPI, settings: VotacionesSettings) -> None:
    """Install the IP filter as the outermost middleware.
    (Instala el filtro IP como el middleware más externo.)

    Call this *after* every other ``add_middleware`` so it runs first.
    """
    app.add_middleware(IPAllowListMiddleware, settings=settings)
    logger.info("ip_filter_middleware_installed")
