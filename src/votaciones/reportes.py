"""ES: Generador del reporte PDF de votación.

EN: Voting PDF report generator.

Secciones del documento / Document sections:
- Resumen general (total, candidato liderando, porcentaje).
- Gráficas de resultados (barras y pastel, PNG de matplotlib).
- Resultados por candidato.
- Lista de votantes.
"""

from __future__ import annotations

import datetime as dt
import io
from typing import Any, Optional, Sequence
from xml.sax.saxutils import escape

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from reportlab.lib import colors  # noqa: E402
from reportlab.lib.pagesizes import A4  # noqa: E402
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet  # noqa: E402
from reportlab.lib.units import cm  # noqa: E402
from reportlab.platypus import (  # noqa: E402
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .errors import ReporteSinDatosError  # noqa: E402
from .estadisticas import FilaGrafica, candidato_lider, datos_grafica, formatear_fecha, ordenar_resultados  # noqa: E402
from .schemas import EstadisticasVotacion, Votante  # noqa: E402

COLORES = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884d8", "#82ca9d", "#ffc658"]
COLOR_INSTITUCIONAL = colors.HexColor("#235789")


def nombre_reporte(generado_el: Optional[dt.datetime] = None) -> str:
    """ES: Nombre de archivo con marca de tiempo.

    EN: Timestamped file name.
    """
    momento = generado_el or dt.datetime.now()
    return f"reporte-votacion-amce-{momento:%Y%m%d-%H%M}.pdf"


# ---------------------------------------------------------------------------
# Gráficas / Charts
# ---------------------------------------------------------------------------


def _figura_a_png(fig: Any) -> bytes:
    buf = io.BytesIO()
    fig.tight_layout()
    fig.savefig(buf, format="png", dpi=150)
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()


def grafica_barras(filas: Sequence[FilaGrafica]) -> bytes:
    """ES: Barras de votos por candidato. EN: Votes-per-candidate bar chart."""
    fig, ax = plt.subplots(figsize=(7.2, 2.8))
    etiquetas = [fila.nombre for fila in filas]
    votos = [fila.votos for fila in filas]
    barras = ax.bar(etiquetas, votos, color=[COLORES[i % len(COLORES)] for i in range(len(filas))])
    for barra, fila in zip(barras, filas):
        ax.annotate(
            f"{fila.votos}",
            xy=(barra.get_x() + barra.get_width() / 2, barra.get_height()),
            ha="center",
            va="bottom",
            fontsize=8,
        )
    ax.set_title("Votos por candidato")
    ax.set_ylabel("Votos")
    ax.grid(axis="y", alpha=0.2)
    return _figura_a_png(fig)


def grafica_pastel(filas: Sequence[FilaGrafica]) -> bytes:
    """ES: Distribución porcentual. EN: Percentage distribution pie chart."""
    fig, ax = plt.subplots(figsize=(7.2, 2.8))
    votos = [fila.votos for fila in filas]
    if sum(votos) > 0:
        ax.pie(
            votos,
            labels=[fila.nombre for fila in filas],
            colors=[COLORES[i % len(COLORES)] for i in range(len(filas))],
            autopct="%1.0f%%",
            textprops={"fontsize": 8},
        )
        ax.axis("equal")
    else:
        ax.axis("off")
        ax.text(0.5, 0.5, "Sin votos registrados", ha="center", va="center")
    ax.set_title("Distribución de votos")
    return _figura_a_png(fig)


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def _estilo_tabla(font_size: int = 9) -> TableStyle:
    return TableStyle(
        [
            ("GRID", (0, 0), (-1, -1), 0.4, colors.HexColor("#94A3B8")),
            ("BACKGROUND", (0, 0), (-1, 0), COLOR_INSTITUCIONAL),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), font_size),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
    )


def _build_story(
    estadisticas: EstadisticasVotacion,
    votantes: Sequence[Votante],
    generado_el: dt.datetime,
    zona: Optional[str],
) -> list[Any]:
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "VotacionesTitle",
        parent=styles["Heading1"],
        fontSize=18,
        alignment=1,
        textColor=COLOR_INSTITUCIONAL,
    )
    subtitle_style = ParagraphStyle("VotacionesSubtitle", parent=styles["BodyText"], alignment=1, textColor=colors.grey)
    section_style = ParagraphStyle("VotacionesSection", parent=styles["Heading2"], fontSize=15, textColor=COLOR_INSTITUCIONAL)
    cell_style = ParagraphStyle("VotacionesCell", parent=styles["BodyText"], fontSize=8, leading=9)

    ordenados = ordenar_resultados(estadisticas.resultados)
    lider = candidato_lider(ordenados)
    filas = datos_grafica(ordenados)

    story: list[Any] = []
    story.append(Paragraph("Reporte de Votación AMCE", title_style))
    story.append(Paragraph(f"Generado el {generado_el:%d/%m/%Y %H:%M}", subtitle_style))
    story.append(Spacer(1, 0.5 * cm))

    story.append(Paragraph("Resumen General", section_style))
    resumen = Table(
        [
            ["Total de Votos", "Candidato Liderando", "Porcentaje"],
            [
                str(estadisticas.total_votos),
                lider.nombre if lider else "Sin datos",
                f"{lider.porcentaje:.2f}%" if lider else "0%",
            ],
        ],
        colWidths=[4.5 * cm, 8.0 * cm, 4.5 * cm],
    )
    resumen.setStyle(_estilo_tabla())
    story.append(resumen)
    story.append(Spacer(1, 0.6 * cm))

    story.append(Paragraph("Gráficas de Resultados", section_style))
    story.append(Image(io.BytesIO(grafica_barras(filas)), width=18 * cm, height=7 * cm))
    story.append(Spacer(1, 0.3 * cm))
    story.append(Image(io.BytesIO(grafica_pastel(filas)), width=18 * cm, height=7 * cm))

    story.append(PageBreak())
    story.append(Paragraph("Resultados por Candidato", section_style))
    resultados_rows = [["Candidato", "Votos", "Porcentaje"]] + [
        [resultado.nombre, str(resultado.votos), f"{resultado.porcentaje:.2f}%"] for resultado in ordenados
    ]
    resultados = Table(resultados_rows, colWidths=[10.0 * cm, 3.5 * cm, 3.5 * cm], repeatRows=1)
    resultados.setStyle(_estilo_tabla())
    story.append(resultados)

    story.append(PageBreak())
    story.append(Paragraph("Lista de Votantes", section_style))
    votantes_rows: list[list[Any]] = [["Nombre", "RFC", "Candidato", "Fecha de Voto"]]
    for votante in votantes:
        votantes_rows.append(
            [
                Paragraph(escape(votante.nombre_completo), cell_style),
                votante.rfc,
                Paragraph(escape(votante.candidato_nombre), cell_style),
                formatear_fecha(votante.fecha_voto, zona),
            ]
        )
    tabla_votantes = Table(votantes_rows, colWidths=[5.2 * cm, 3.2 * cm, 4.1 * cm, 5.0 * cm], repeatRows=1)
    tabla_votantes.setStyle(_estilo_tabla(font_size=8))
    story.append(tabla_votantes)
    return story


def generar_reporte_pdf(
    estadisticas: Optional[EstadisticasVotacion],
    votantes: Optional[Sequence[Votante]],
    generado_el: Optional[dt.datetime] = None,
    zona: Optional[str] = None,
) -> bytes:
    """ES: Genera el PDF completo del reporte de votación.

    EN: Build the complete voting report PDF.

    Raises:
        ReporteSinDatosError: si faltan estadísticas o no hay votantes.
    """
    if estadisticas is None or not votantes:
        raise ReporteSinDatosError("No hay datos suficientes para generar el reporte")

    momento = generado_el or dt.datetime.now()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.6 * cm,
        title="Reporte de Votación AMCE",
    )

    def _footer(canvas_obj: Any, _doc: Any) -> None:
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.HexColor("#334155"))
        canvas_obj.drawString(1.5 * cm, 1.0 * cm, "AMCE – Votaciones")
        canvas_obj.drawRightString(A4[0] - 1.5 * cm, 1.0 * cm, f"Página {canvas_obj.getPageNumber()}")
        canvas_obj.restoreState()

    doc.build(_build_story(estadisticas, votantes, momento, zona), onFirstPage=_footer, onLaterPages=_footer)
    return buffer.getvalue()
