"""Pruebas de orden, paginación y formato de fechas del panel.

English: Ordering, pagination and date formatting tests for the admin panel.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from votaciones.estadisticas import (
    candidato_lider,
    datos_grafica,
    formatear_fecha,
    hace_cuanto,
    ordenar_resultados,
    paginar,
)
from votaciones.schemas import ResultadoCandidato


def _resultado(candidato_id: int, nombre: str, votos: int) -> ResultadoCandidato:
    return ResultadoCandidato(candidato_id=candidato_id, nombre=nombre, votos=votos, porcentaje=0.0)


def test_results_sorted_by_votes_descending():
    ordenados = ordenar_resultados(
        [
            _resultado(1, "Dra. María López", 10),
            _resultado(2, "Dr. Juan Pérez", 25),
            _resultado(3, "Dr. Pedro Ruiz", 5),
        ]
    )

    assert [r.votos for r in ordenados] == [25, 10, 5]
    assert candidato_lider(ordenados).nombre == "Dr. Juan Pérez"


def test_ties_keep_api_order():
    ordenados = ordenar_resultados([_resultado(1, "A", 4), _resultado(2, "B", 7), _resultado(3, "C", 4)])

    assert [r.candidato_id for r in ordenados] == [2, 1, 3]


def test_no_leader_without_results():
    assert candidato_lider([]) is None


def test_chart_rows_use_last_name():
    filas = datos_grafica([_resultado(1, "Dr. Juan Pérez", 3)])

    assert filas[0].nombre == "Pérez"
    assert filas[0].nombre_completo == "Dr. Juan Pérez"


def test_pagination_of_23_voters():
    items = list(range(23))

    primera = paginar(items, 1)
    tercera = paginar(items, 3)

    assert primera.total_paginas == 3
    assert primera.items == list(range(10))
    assert primera.tiene_anterior is False
    assert tercera.items == [20, 21, 22]
    assert (tercera.inicio, tercera.fin) == (20, 23)
    assert tercera.tiene_siguiente is False


@pytest.mark.parametrize(("solicitada", "esperada"), [(0, 1), (-4, 1), (99, 3)])
def test_page_number_is_clamped(solicitada, esperada):
    assert paginar(list(range(23)), solicitada).numero == esperada


def test_empty_list_paginates_to_nothing():
    pagina = paginar([], 1)

    assert pagina.items == []
    assert pagina.total_paginas == 0
    assert pagina.tiene_siguiente is False


def test_invalid_page_size():
    with pytest.raises(ValueError):
        paginar([1, 2], 1, por_pagina=0)


def test_page_links_with_ellipsis():
    items = list(range(100))

    assert paginar(items, 5).enlaces() == [1, None, 4, 5, 6, None, 10]
    assert paginar(items, 1).enlaces() == [1, 2, None, 10]
    assert paginar(items, 10).enlaces() == [1, None, 9, 10]


def test_formatear_fecha_long_spanish():
    assert formatear_fecha("2025-03-05T14:30:00") == "05 de marzo de 2025 a las 14:30"


def test_formatear_fecha_converts_timezone():
    assert formatear_fecha("2025-03-05T20:30:00Z", "America/Mexico_City") == "05 de marzo de 2025 a las 14:30"


def test_formatear_fecha_returns_input_when_unparseable():
    assert formatear_fecha("ayer por la tarde") == "ayer por la tarde"


@pytest.mark.parametrize(
    ("delta", "esperado"),
    [
        (timedelta(seconds=20), "hace menos de un minuto"),
        (timedelta(minutes=5), "hace 5 minutos"),
        (timedelta(minutes=60), "hace alrededor de 1 hora"),
        (timedelta(hours=3), "hace alrededor de 3 horas"),
        (timedelta(hours=30), "hace 1 día"),
        (timedelta(days=4), "hace 4 días"),
    ],
)
def test_hace_cuanto(delta, esperado):
    ahora = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    assert hace_cuanto((ahora - delta).isoformat(), ahora=ahora) == esperado


def test_hace_cuanto_unparseable():
    assert hace_cuanto("no es fecha") is None
