"""Agregación y formato de resultados para la vista de administración.

English: Aggregation and formatting of results for the admin view.

Todo se calcula sobre datos ya descargados; aquí no hay E/S.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, List, Optional, Sequence, TypeVar

from dateutil import parser as date_parser
from dateutil import tz

from .schemas import ResultadoCandidato

T = TypeVar("T")

ELEMENTOS_POR_PAGINA = 10

MESES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def ordenar_resultados(resultados: Sequence[ResultadoCandidato]) -> List[ResultadoCandidato]:
    """Ordena por votos de mayor a menor; los empates conservan el orden de la API.

    English: Sort by votes, descending; ties keep the API order (stable sort).
    """
    return sorted(resultados, key=lambda resultado: resultado.votos, reverse=True)


def candidato_lider(resultados_ordenados: Sequence[ResultadoCandidato]) -> Optional[ResultadoCandidato]:
    return resultados_ordenados[0] if resultados_ordenados else None


@dataclass(frozen=True)
class FilaGrafica:
    nombre: str
    nombre_completo: str
    votos: int
    porcentaje: float


def datos_grafica(resultados_ordenados: Sequence[ResultadoCandidato]) -> List[FilaGrafica]:
    """Filas para las gráficas, etiquetadas con el último apellido.

    English: Chart rows labelled with the candidate's last name.
    """
    filas = []
    for resultado in resultados_ordenados:
        partes = resultado.nombre.split()
        filas.append(
            FilaGrafica(
                nombre=partes[-1] if partes else resultado.nombre,
                nombre_completo=resultado.nombre,
                votos=resultado.votos,
                porcentaje=resultado.porcentaje,
            )
        )
    return filas


# ---------------------------------------------------------------------------
# Paginación / Pagination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pagina(Generic[T]):
    """Una página de elementos con sus límites.

    English: One page of items plus its bounds.

    Attributes:
        items: Elementos de la página.
        numero: Número de página (desde 1), ya acotado al rango válido.
        total_paginas: 0 cuando no hay elementos.
        inicio: Índice (desde 0) del primer elemento mostrado.
        fin: Índice exclusivo del último elemento mostrado.
        total_items: Número total de elementos.
    """

    items: List[T]
    numero: int
    total_paginas: int
    inicio: int
    fin: int
    total_items: int

    @property
    def tiene_anterior(self) -> bool:
        return self.numero > 1

    @property
    def tiene_siguiente(self) -> bool:
        return self.numero < self.total_paginas

    def enlaces(self) -> List[Optional[int]]:
        """Números de página visibles; ``None`` marca un salto (puntos suspensivos).

        English: Visible page numbers; ``None`` marks an ellipsis.
        """
        actual, total = self.numero, self.total_paginas
        enlaces: List[Optional[int]] = []
        if actual > 3:
            enlaces.append(1)
        if actual > 4:
            enlaces.append(None)
        if actual > 1:
            enlaces.append(actual - 1)
        enlaces.append(actual)
        if actual < total:
            enlaces.append(actual + 1)
        if actual < total - 3:
            enlaces.append(None)
        if actual < total - 2 and total > 1:
            enlaces.append(total)
        return enlaces


def paginar(items: Sequence[T], pagina: int, por_pagina: int = ELEMENTOS_POR_PAGINA) -> Pagina[T]:
    if por_pagina < 1:
        raise ValueError("por_pagina must be >= 1")
    total_items = len(items)
    total_paginas = math.ceil(total_items / por_pagina)
    numero = min(max(pagina, 1), max(total_paginas, 1))
    inicio = (numero - 1) * por_pagina
    fin = min(inicio + por_pagina, total_items)
    return Pagina(
        items=list(items[inicio:fin]),
        numero=numero,
        total_paginas=total_paginas,
        inicio=inicio,
        fin=fin,
        total_items=total_items,
    )


# ---------------------------------------------------------------------------
# Fechas / Dates
# ---------------------------------------------------------------------------


def _a_zona(fecha: datetime, zona: Optional[str]) -> datetime:
    if zona and fecha.tzinfo is not None:
        zona_tz = tz.gettz(zona)
        if zona_tz is not None:
            return fecha.astimezone(zona_tz)
    return fecha


def formatear_fecha(valor: str, zona: Optional[str] = None) -> str:
    """``"05 de marzo de 2025 a las 14:30"``; si no se puede leer, devuelve ``valor``.

    English: Long Spanish date; returns ``valor`` unchanged when unparseable.
    """
    try:
        fecha = _a_zona(date_parser.isoparse(valor), zona)
    except (TypeError, ValueError, OverflowError):
        return valor
    return f"{fecha.day:02d} de {MESES[fecha.month - 1]} de {fecha.year} a las {fecha:%H:%M}"


def hace_cuanto(valor: str, ahora: Optional[datetime] = None) -> Optional[str]:
    """Distancia relativa en español con sufijo, p. ej. ``"hace 5 minutos"``.

    English: Spanish relative distance with suffix. ``None`` if unparseable.
    """
    try:
        fecha = date_parser.isoparse(valor)
    except (TypeError, ValueError, OverflowError):
        return None
    if fecha.tzinfo is None:
        fecha = fecha.replace(tzinfo=timezone.utc)
    referencia = ahora or datetime.now(timezone.utc)
    segundos = max((referencia - fecha).total_seconds(), 0)

    minutos = round(segundos / 60)
    if segundos < 45:
        return "hace menos de un minuto"
    if minutos < 2:
        return "hace 1 minuto"
    if minutos < 45:
        return f"hace {minutos} minutos"
    if minutos < 90:
        return "hace alrededor de 1 hora"
    horas = round(minutos / 60)
    if minutos < 1440:
        return f"hace alrededor de {horas} horas"
    if minutos < 2520:
        return "hace 1 día"
    dias = round(minutos / 1440)
    if dias < 30:
        return f"hace {dias} días"
    meses = round(dias / 30)
    if meses < 2:
        return "hace alrededor de 1 mes"
    if meses < 12:
        return f"hace {meses} meses"
    anios = dias // 365
    return "hace alrededor de 1 año" if anios <= 1 else f"hace {anios} años"
