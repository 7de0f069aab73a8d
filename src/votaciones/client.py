"""Cliente asíncrono de la API REST de votación.

Async client for the voting REST API.

Cada operación hace una llamada HTTP a ``API_BASE_URL``, adjunta
``Authorization: Bearer <token>`` cuando hace falta y valida el sobre
``{success, data, error}``. Las GET idempotentes se reintentan ante errores de
transporte; las POST nunca.
"""

from __future__ import annotations

import time
from typing import Any, List, Optional

import httpx
import structlog
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import VotacionesSettings
from .errors import (
    ApiError,
    CredencialesInvalidasError,
    NoAutenticadoError,
    PeticionFallidaError,
    RespuestaInvalidaError,
)
from .schemas import (
    AuthResponse,
    Candidato,
    EstadisticasVotacion,
    EstadoVoto,
    Respuesta,
    Votante,
)

logger = structlog.get_logger(__name__)

USER_AGENT = "Votaciones/0.3.0"
MENSAJE_PETICION_FALLIDA = "Error en la petición"


def _mensaje_servidor(response: httpx.Response) -> Optional[str]:
    """Extrae ``message`` o ``error`` del cuerpo, si existe.

    English: Extract ``message`` or ``error`` from the body when present.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class VotacionesClient:
    """Cliente con alcance de petición; usar con ``async with``.

    English: Request-scoped client; use it as ``async with``. Leaving the
    block closes the connection pool and any request still in flight.
    """

    def __init__(
        self,
        settings: VotacionesSettings,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._token = token
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "VotacionesClient":
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self._settings.REQUEST_TIMEOUT),
            headers={"User-Agent": USER_AGENT, "Content-Type": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # ------------------------------------------------------------------
    # Transporte / Transport
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            raise NoAutenticadoError("No hay token de autenticación")
        return {"Authorization": f"Bearer {self._token}"}

    async def _send(
        self,
        method: str,
        url: str,
        *,
        auth: bool = True,
        payload: Optional[dict[str, Any]] = None,
        retry: bool = False,
    ) -> httpx.Response:
        if self._http is None:
            raise RuntimeError("VotacionesClient must be used inside 'async with'")
        headers = self._auth_headers() if auth else {}
        attempts = self._settings.MAX_RETRIES if retry else 1
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self._settings.RETRY_WAIT_SECONDS, max=10),
            reraise=True,
        )
        start = time.monotonic()
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._http.request(method, url, headers=headers, json=payload)
        except httpx.TransportError as exc:
            logger.warning(
                "api_transport_error",
                method=method,
                url=url,
                attempts=attempts,
                error=str(exc),
            )
            raise PeticionFallidaError("No fue posible conectar con el servidor de votaciones") from exc
        logger.info(
            "api_response",
            method=method,
            url=url,
            status_code=response.status_code,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
        return response

    async def _fetch_json(self, endpoint: str, *, retry: bool = True) -> Any:
        """GET autenticado que exige estado 2xx y cuerpo JSON."""
        response = await self._send("GET", f"{self._settings.API_BASE_URL}{endpoint}", retry=retry)
        if not response.is_success:
            raise PeticionFallidaError(
                _mensaje_servidor(response) or MENSAJE_PETICION_FALLIDA,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RespuestaInvalidaError("La respuesta no es JSON válido") from exc

    # ------------------------------------------------------------------
    # Operaciones / Operations
    # ------------------------------------------------------------------

    async def obtener_token(self, rfc: str) -> AuthResponse:
        """Emite un token a partir del RFC del miembro.

        English: Issue a token from the member's RFC.

        Raises:
            CredencialesInvalidasError: RFC rechazado (401/403 o ``success:false``).
            PeticionFallidaError: cualquier otro estado no exitoso.
        """
        response = await self._send("POST", self._settings.AUTH_URL, auth=False, payload={"rfc": rfc})
        if response.status_code in (401, 403):
            raise CredencialesInvalidasError(_mensaje_servidor(response) or "RFC no autorizado")
        if not response.is_success:
            raise PeticionFallidaError(
                _mensaje_servidor(response) or "Ha ocurrido un error durante la autenticación",
                status_code=response.status_code,
            )
        try:
            auth = AuthResponse.model_validate(response.json())
        except ValueError as exc:
            raise RespuestaInvalidaError("Respuesta de autenticación inválida") from exc
        if not auth.success or not auth.token or auth.user is None:
            raise CredencialesInvalidasError(auth.error or auth.message or "No fue posible iniciar sesión")
        return auth

    async def get_candidatos(self) -> List[Candidato]:
        """Candidatos activos; acepta sobre o lista simple (compatibilidad).

        English: Active candidates; accepts an envelope or a bare list.
        """
        body = await self._fetch_json("/candidatos")
        if isinstance(body, dict) and body.get("success") and isinstance(body.get("data"), list):
            items = body["data"]
        elif isinstance(body, list):
            items = body
        else:
            logger.error("candidatos_invalid_shape", body_type=type(body).__name__)
            raise RespuestaInvalidaError("El formato de respuesta no es válido")
        try:
            return [Candidato.model_validate(item) for item in items]
        except ValidationError as exc:
            logger.error("candidatos_invalid_item", error=str(exc))
            raise RespuestaInvalidaError("El formato de respuesta no es válido") from exc

    async def comprobar_voto(self) -> Respuesta[EstadoVoto]:
        """Estado de voto del usuario; nunca lanza.

        English: The user's vote status; never raises.
        """
        try:
            response = await self._send("GET", f"{self._settings.API_BASE_URL}/voto-usuario", retry=True)
            return Respuesta[EstadoVoto].model_validate(response.json())
        except (ApiError, ValueError) as exc:
            logger.error("comprobar_voto_failed", error=str(exc))
            return Respuesta[EstadoVoto](success=False, data=None, error="Error al comprobar voto")

    async def get_lista_votantes(self) -> Respuesta[List[Votante]]:
        """Lista de votantes (solo administradores); nunca lanza."""
        try:
            response = await self._send("GET", f"{self._settings.API_BASE_URL}/lista-votantes", retry=True)
            respuesta = Respuesta[List[Votante]].model_validate(response.json())
            if not respuesta.success:
                raise PeticionFallidaError(
                    respuesta.error or "Error al obtener lista de votantes",
                    status_code=response.status_code,
                )
            return respuesta
        except (ApiError, ValueError) as exc:
            logger.error("lista_votantes_failed", error=str(exc))
            return Respuesta[List[Votante]](
                success=False,
                data=None,
                error="No se pudo cargar la lista de votantes",
            )

    async def votar_por_candidato(self, candidato_id: int) -> Respuesta[Any]:
        """Registra el voto y devuelve el sobre tal cual.

        English: Cast the vote and return the envelope as-is.

        Un rechazo de negocio ("ya votó") llega como ``success: false`` aunque
        el estado HTTP no sea 2xx, y se devuelve sin lanzar.
        """
        response = await self._send(
            "POST",
            f"{self._settings.API_BASE_URL}/votar",
            payload={"candidatoId": candidato_id},
        )
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("success"), bool):
            respuesta = Respuesta[Any].model_validate(body)
            logger.info(
                "voto_enviado",
                candidato_id=candidato_id,
                success=respuesta.success,
                status_code=response.status_code,
            )
            return respuesta
        if not response.is_success:
            raise PeticionFallidaError(
                _mensaje_servidor(response) or MENSAJE_PETICION_FALLIDA,
                status_code=response.status_code,
            )
        raise RespuestaInvalidaError("El formato de respuesta no es válido")

    async def get_estadisticas(self) -> EstadisticasVotacion:
        """Estadísticas de votación (solo administradores).

        Raises:
            PeticionFallidaError: ante cualquier fallo, con mensaje genérico.
        """
        try:
            body = await self._fetch_json("/resultados")
            respuesta = Respuesta[EstadisticasVotacion].model_validate(body)
            if not respuesta.success or respuesta.data is None:
                raise PeticionFallidaError(respuesta.error or "Error al obtener estadísticas")
            return respuesta.data
        except (ApiError, ValueError) as exc:
            logger.error("estadisticas_failed", error=str(exc))
            raise PeticionFallidaError("No se pudieron cargar las estadísticas") from exc
