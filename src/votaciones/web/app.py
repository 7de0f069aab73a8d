"""Aplicación web de votaciones: inicio de sesión, voto y estadísticas.

English:
    Voting web application: login, vote casting and statistics.

Rutas / Routes:
    GET/POST /                     inicio de sesión por RFC
    GET/POST /votar                emisión del voto (sesión requerida)
    GET /admin/estadisticas        resultados y votantes (solo administradores)
    GET /admin/estadisticas/reporte  descarga del reporte PDF
    GET /acceso-denegado           destino del filtro IP
    POST /logout                   cierre de sesión
    GET /api/salud                 healthcheck (fuera del filtro IP)
"""

import asyncio
import base64
import datetime as dt
from pathlib import Path
from typing import AsyncIterator, List, Optional

import structlog
from fastapi import Depends, FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import RedirectResponse

from votaciones import __version__
from votaciones.client import VotacionesClient
from votaciones.config import VotacionesSettings, load_config
from votaciones.errors import ApiError, CredencialesInvalidasError, NoAutenticadoError, ReporteSinDatosError
from votaciones.estadisticas import (
    candidato_lider,
    datos_grafica,
    formatear_fecha,
    hace_cuanto,
    ordenar_resultados,
    paginar,
)
from votaciones.logging import bind_context
from votaciones.reportes import generar_reporte_pdf, grafica_barras, grafica_pastel, nombre_reporte
from votaciones.schemas import EstadisticasVotacion, LoginForm, Usuario, Votante
from votaciones.session import SessionStore, get_session_store
from votaciones.web.guard import requiere_sesion
from votaciones.web.middleware import install_ip_filter

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

RUTA_ESTADISTICAS = "/admin/estadisticas"
TABS = ("graficos", "votantes")


# ---------------------------------------------------------------------------
# Dependencias / Dependencies
# ---------------------------------------------------------------------------


def get_settings(request: Request) -> VotacionesSettings:
    return request.app.state.settings


async def get_api_client(
    settings: VotacionesSettings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
) -> AsyncIterator[VotacionesClient]:
    """Cliente de API con alcance de petición, cerrado al terminar el manejador.

    English: Request-scoped API client, closed when the handler finishes.
    """
    async with VotacionesClient(settings, token=store.get_token()) as client:
        yield client


def _destino_para(usuario: Optional[Usuario]) -> str:
    return RUTA_ESTADISTICAS if usuario is not None and usuario.es_admin else "/votar"


def _render(request: Request, store: SessionStore, template: str, status_code: int = 200, **context) -> HTMLResponse:
    context.setdefault("usuario", store.get_user())
    context["notificaciones"] = store.consume_flashes()
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def _png_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


async def _cargar_estadisticas(client: VotacionesClient, store: SessionStore) -> Optional[EstadisticasVotacion]:
    try:
        return await client.get_estadisticas()
    except ApiError as exc:
        logger.error("panel_estadisticas_failed", error=str(exc))
        store.flash("error", "Error al cargar las estadísticas. Inténtalo de nuevo.")
        return None


async def _cargar_votantes(client: VotacionesClient, store: SessionStore) -> Optional[List[Votante]]:
    respuesta = await client.get_lista_votantes()
    if respuesta.success and respuesta.data is not None:
        return respuesta.data
    logger.error("panel_votantes_failed", error=respuesta.error)
    store.flash("error", "Error al cargar la lista de votantes. Inténtalo de nuevo.")
    return None


async def cargar_panel(
    client: VotacionesClient, store: SessionStore
) -> tuple[Optional[EstadisticasVotacion], Optional[List[Votante]]]:
    """Pide estadísticas y votantes en paralelo y espera a ambos.

    English: Fetch statistics and voters concurrently and join both.
    """
    estadisticas, votantes = await asyncio.gather(
        _cargar_estadisticas(client, store),
        _cargar_votantes(client, store),
    )
    return estadisticas, votantes


# ---------------------------------------------------------------------------
# Páginas / Pages
# ---------------------------------------------------------------------------


async def pagina_login(request: Request, store: SessionStore = Depends(get_session_store)):
    if store.is_authenticated():
        return RedirectResponse(_destino_para(store.get_user()), status_code=303)
    return _render(request, store, "login.html", rfc="")


async def iniciar_sesion(
    request: Request,
    rfc: str = Form(""),
    store: SessionStore = Depends(get_session_store),
    client: VotacionesClient = Depends(get_api_client),
):
    try:
        formulario = LoginForm(rfc=rfc)
    except ValidationError:
        return _render(request, store, "login.html", status_code=422, rfc=rfc, error_rfc="El RFC es requerido")

    try:
        auth = await client.obtener_token(formulario.rfc)
    except CredencialesInvalidasError as exc:
        logger.info("login_rejected", error=str(exc))
        store.flash("error", str(exc))
        return _render(request, store, "login.html", status_code=401, rfc=formulario.rfc)
    except ApiError as exc:
        logger.error("login_failed", error=str(exc))
        store.flash("error", "Ha ocurrido un error durante la autenticación")
        return _render(request, store, "login.html", status_code=502, rfc=formulario.rfc)

    store.login(auth.token, auth.user)
    store.flash("success", "Autenticación exitosa")
    return RedirectResponse(_destino_para(auth.user), status_code=303)


@requiere_sesion
async def pagina_votar(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    client: VotacionesClient = Depends(get_api_client),
):
    usuario = store.get_user()
    log = bind_context(logger, request_path=request.url.path, usuario_id=usuario.id if usuario else None)

    ya_voto = False
    candidato_votado = None
    fecha_voto = None
    candidatos = []
    error_carga = False

    estado = await client.comprobar_voto()
    if estado.success and estado.data is not None:
        ya_voto = estado.data.ha_votado
        if ya_voto and estado.data.candidato is not None:
            candidato_votado = estado.data.candidato
            if estado.data.voto is not None:
                fecha_voto = hace_cuanto(estado.data.voto.fecha_voto)

    if not ya_voto:
        try:
            candidatos = await client.get_candidatos()
        except NoAutenticadoError:
            raise
        except ApiError as exc:
            log.error("votar_carga_failed", error=str(exc))
            store.flash("error", "Error al cargar los datos. Inténtalo de nuevo.")
            error_carga = True

    return _render(
        request,
        store,
        "votar.html",
        usuario=usuario,
        ya_voto=ya_voto,
        candidato_votado=candidato_votado,
        fecha_voto=fecha_voto,
        candidatos=candidatos,
        error_carga=error_carga,
    )


@requiere_sesion
async def emitir_voto(
    request: Request,
    candidato_id: Optional[int] = Form(None),
    store: SessionStore = Depends(get_session_store),
    client: VotacionesClient = Depends(get_api_client),
):
    if not candidato_id:
        store.flash("error", "Debes seleccionar un candidato para votar")
        return RedirectResponse("/votar", status_code=303)

    try:
        resultado = await client.votar_por_candidato(candidato_id)
    except NoAutenticadoError:
        raise
    except ApiError as exc:
        logger.error("voto_failed", candidato_id=candidato_id, error=str(exc))
        store.flash("error", str(exc) or "Ocurrió un error al procesar tu voto")
        return RedirectResponse("/votar", status_code=303)

    if not resultado.success:
        store.flash("error", resultado.error or "Ocurrió un error al procesar tu voto")
    else:
        store.flash("success", resultado.message or "Voto registrado con éxito")
    return RedirectResponse("/votar", status_code=303)


@requiere_sesion(admin_only=True)
async def pagina_estadisticas(
    request: Request,
    pagina: int = Query(1),
    tab: str = Query("graficos"),
    actualizar: bool = Query(False),
    settings: VotacionesSettings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
    client: VotacionesClient = Depends(get_api_client),
):
    estadisticas, votantes = await cargar_panel(client, store)
    if actualizar:
        store.flash("success", "Datos actualizados correctamente")

    tab = tab if tab in TABS else TABS[0]
    ordenados = ordenar_resultados(estadisticas.resultados) if estadisticas else []
    graficas = None
    if estadisticas is not None and tab == "graficos":
        filas = datos_grafica(ordenados)
        graficas = {
            "barras": _png_data_uri(grafica_barras(filas)),
            "pastel": _png_data_uri(grafica_pastel(filas)),
        }

    pagina_votantes = paginar(votantes or [], pagina, settings.PAGE_SIZE)
    return _render(
        request,
        store,
        "estadisticas.html",
        estadisticas=estadisticas,
        resultados=ordenados,
        lider=candidato_lider(ordenados),
        graficas=graficas,
        votantes=votantes,
        pagina=pagina_votantes,
        tab=tab,
        formatear_fecha=lambda valor: formatear_fecha(valor, settings.TIMEZONE),
    )


@requiere_sesion(admin_only=True)
async def descargar_reporte(
    request: Request,
    settings: VotacionesSettings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
    client: VotacionesClient = Depends(get_api_client),
):
    estadisticas, votantes = await cargar_panel(client, store)
    generado_el = dt.datetime.now()
    try:
        pdf = generar_reporte_pdf(estadisticas, votantes, generado_el=generado_el, zona=settings.TIMEZONE)
    except ReporteSinDatosError as exc:
        store.flash("error", str(exc))
        return RedirectResponse(RUTA_ESTADISTICAS, status_code=303)
    except Exception as exc:  # noqa: BLE001
        logger.exception("reporte_failed", error=str(exc))
        store.flash("error", "Error al generar el reporte PDF")
        return RedirectResponse(RUTA_ESTADISTICAS, status_code=303)

    logger.info("reporte_generado", bytes=len(pdf), votantes=len(votantes or []))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{nombre_reporte(generado_el)}"'},
    )


async def acceso_denegado(request: Request, store: SessionStore = Depends(get_session_store)):
    return _render(request, store, "acceso_denegado.html", status_code=200)


async def cerrar_sesion(store: SessionStore = Depends(get_session_store)):
    return store.logout()


async def salud():
    return {"status": "ok", "version": __version__}


async def _no_autenticado_handler(request: Request, exc: NoAutenticadoError):
    store = SessionStore.from_request(request)
    store.flash("error", "Debes iniciar sesión para acceder a esta página")
    return RedirectResponse("/", status_code=303)


# ---------------------------------------------------------------------------
# Fábrica / Factory
# ---------------------------------------------------------------------------


def create_app(settings: Optional[VotacionesSettings] = None) -> FastAPI:
    """Construye la aplicación con sesión firmada y filtro IP.

    English: Build the app with signed session and IP filter. The IP filter is
    installed last so it is the outermost middleware and runs first.
    """
    settings = settings or load_config()
    app = FastAPI(title="AMCE - Votaciones", version=__version__, docs_url=None, redoc_url=None)
    app.state.settings = settings

    app.add_api_route("/", pagina_login, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/", iniciar_sesion, methods=["POST"])
    app.add_api_route("/votar", pagina_votar, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/votar", emitir_voto, methods=["POST"])
    app.add_api_route(RUTA_ESTADISTICAS, pagina_estadisticas, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route(f"{RUTA_ESTADISTICAS}/reporte", descargar_reporte, methods=["GET"])
    app.add_api_route("/acceso-denegado", acceso_denegado, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/logout", cerrar_sesion, methods=["POST"])
    app.add_api_route("/api/salud", salud, methods=["GET"], response_class=JSONResponse)
    app.add_exception_handler(NoAutenticadoError, _no_autenticado_handler)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        session_cookie="votaciones_session",
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.HTTPS_ONLY,
    )
    install_ip_filter(app, settings)
    logger.info("app_created", version=__version__, dev_mode=settings.DEV_MODE)
    return app
