"""
PDF back end

TableLayoutEngine wraps the ReportLab platypus table capability and is
created once at startup. PDFLayoutBuilder places blocks on an A4 canvas
with an explicit vertical cursor `y` in millimetres from the top of the
page: every block method receives `y` and returns the advanced value.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..exceptions import RenderError
from ..utils import calculate_optimal_column_widths, format_datetime, truncate_text
from .sections import ReportDocument


logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297
TOP_MARGIN = 20
LEFT_MARGIN = 20
CONTENT_WIDTH = 170
# Un bloque que empieza después de esta posición va a la página siguiente
PAGE_BREAK_Y = 260
BOTTOM_LIMIT = PAGE_HEIGHT_MM - 20

TITLE_SIZE = 18
SECTION_SIZE = 14
BODY_SIZE = 10
TABLE_SIZE = 9
SECTION_GAP = 8

HEAD_FILL = colors.HexColor("#2c3e50")
ROW_FILL = colors.HexColor("#f2f4f6")


@dataclass(frozen=True)
class Placement:
    """Posición de un bloque dibujado, en mm desde el borde superior"""
    page: int
    top: float
    bottom: float
    kind: str


class TableLayoutEngine:
    """Construye tablas platypus con los estilos del reporte"""

    def __init__(self, font_name: str = "Helvetica", bold_font_name: str = "Helvetica-Bold",
                 font_size: int = TABLE_SIZE):
        self.font_name = font_name
        self.bold_font_name = bold_font_name
        self.font_size = font_size

    def verify(self):
        """Falla antes de empezar el documento si las fuentes no están disponibles"""
        try:
            pdfmetrics.getFont(self.font_name)
            pdfmetrics.getFont(self.bold_font_name)
        except Exception as e:
            raise RenderError(f"Fuente no disponible para tablas: {e}") from e

    def build_table(self, headers: Sequence[str], rows: Sequence[Sequence[str]], widths_mm: Sequence[float]) -> Table:
        table = Table([list(headers)] + [list(row) for row in rows],
                      colWidths=[w * mm for w in widths_mm], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEAD_FILL),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), self.bold_font_name),
            ("FONTNAME", (0, 1), (-1, -1), self.font_name),
            ("FONTSIZE", (0, 0), (-1, -1), self.font_size),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_FILL]),
        ]))
        return table


def default_max_lengths(widths_mm: Sequence[float]) -> List[int]:
    # ~1.9 mm por carácter a 9 pt
    return [max(4, int(width / 1.9)) for width in widths_mm]


class PDFLayoutBuilder:
    """Coloca bloques en el canvas avanzando el cursor vertical"""

    def __init__(self, pdf: canvas.Canvas, engine: TableLayoutEngine):
        self.pdf = pdf
        self.engine = engine
        self.page_number = 1
        self.placements: List[Placement] = []

    @property
    def page_count(self) -> int:
        return self.page_number

    def new_page(self) -> float:
        self._footer()
        self.pdf.showPage()
        self.page_number += 1
        return TOP_MARGIN

    def ensure_space(self, y: float) -> float:
        if y > PAGE_BREAK_Y:
            return self.new_page()
        return y

    def _draw_text(self, y: float, text: str, font: str, size: int, kind: str) -> float:
        y = self.ensure_space(y)
        line_height = size * 0.3528 * 1.4  # pt -> mm con interlineado
        self.pdf.setFont(font, size)
        self.pdf.drawString(LEFT_MARGIN * mm, (PAGE_HEIGHT_MM - y - size * 0.3528) * mm, text)
        self.placements.append(Placement(self.page_number, y, y + line_height, kind))
        return y + line_height

    def title(self, y: float, text: str) -> float:
        return self._draw_text(y, text, self.engine.bold_font_name, TITLE_SIZE, "title")

    def section_title(self, y: float, text: str) -> float:
        return self._draw_text(y, text, self.engine.bold_font_name, SECTION_SIZE, "section") + 1

    def text(self, y: float, text: str) -> float:
        return self._draw_text(y, text, self.engine.font_name, BODY_SIZE, "text")

    def header(self, y: float, business_name: str, report_title: str, period: str, generated: str) -> float:
        y = self.title(y, business_name)
        y = self.text(y, f"Reporte de {report_title}")
        y = self.text(y, f"Período: {period}")
        y = self.text(y, f"Generado: {generated}")
        self.pdf.setLineWidth(0.5)
        self.pdf.line(LEFT_MARGIN * mm, (PAGE_HEIGHT_MM - y - 1) * mm,
                      (LEFT_MARGIN + CONTENT_WIDTH) * mm, (PAGE_HEIGHT_MM - y - 1) * mm)
        return y + 5

    def _build_table(self, headers: Sequence[str], rows: Sequence[Sequence[str]],
                     max_lengths: Optional[Sequence[int]]) -> Table:
        widths = calculate_optimal_column_widths(headers, CONTENT_WIDTH)
        limits = list(max_lengths) if max_lengths else default_max_lengths(widths)
        cells = [
            [truncate_text(value, limits[i] if i < len(limits) else 40) for i, value in enumerate(row)]
            for row in rows
        ]
        return self.engine.build_table(headers, cells, widths)

    def section(self, y: float, title: str, headers: Sequence[str], rows: Sequence[Sequence[str]],
                max_lengths: Optional[Sequence[int]] = None) -> float:
        """
        Título de sección seguido de su tabla.

        El título nunca queda solo al final de una página: si no cabe junto
        con el encabezado y la primera fila de la tabla, ambos empiezan en
        la página siguiente.
        """
        title_height = SECTION_SIZE * 0.3528 * 1.4 + 1
        if rows:
            lead = self._build_table(headers, rows[:1], max_lengths)
            _, lead_height = lead.wrapOn(self.pdf, CONTENT_WIDTH * mm, BOTTOM_LIMIT * mm)
            lead_height = lead_height / mm
        else:
            lead_height = BODY_SIZE * 0.3528 * 1.4

        if y > PAGE_BREAK_Y or y + title_height + lead_height > BOTTOM_LIMIT:
            y = self.new_page()
        y = self.section_title(y, title)
        return self.table(y, headers, rows, max_lengths)

    def table(self, y: float, headers: Sequence[str], rows: Sequence[Sequence[str]],
              max_lengths: Optional[Sequence[int]] = None) -> float:
        """
        Dibuja una tabla a partir de `y` sin cruzar el margen inferior.

        Si las filas no caben en lo que queda de la página se divide la
        tabla, repitiendo el encabezado en la página siguiente.
        """
        if not rows:
            return self.text(y, "Sin datos para el período")

        remaining = self._build_table(headers, rows, max_lengths)
        y = self.ensure_space(y)
        while True:
            avail_width = CONTENT_WIDTH * mm
            avail_height = (BOTTOM_LIMIT - y) * mm
            _, height = remaining.wrapOn(self.pdf, avail_width, avail_height)
            if height <= avail_height:
                return self._place(remaining, y, height)

            parts = remaining.split(avail_width, avail_height)
            if len(parts) < 2:
                if y == TOP_MARGIN:
                    raise RenderError("Una fila de la tabla excede el alto de la página")
                y = self.new_page()
                continue

            first, remaining = parts[0], parts[1]
            _, first_height = first.wrapOn(self.pdf, avail_width, avail_height)
            self._place(first, y, first_height)
            y = self.new_page()

    def _place(self, table: Table, y: float, height: float) -> float:
        table.drawOn(self.pdf, LEFT_MARGIN * mm, PAGE_HEIGHT_MM * mm - y * mm - height)
        bottom = y + height / mm
        self.placements.append(Placement(self.page_number, y, bottom, "table"))
        return bottom

    def _footer(self):
        self.pdf.setFont(self.engine.font_name, 8)
        self.pdf.drawRightString((LEFT_MARGIN + CONTENT_WIDTH) * mm, 10 * mm, f"Página {self.page_number}")

    def finish(self):
        self._footer()
        self.pdf.showPage()
        self.pdf.save()


class PDFReportRenderer:
    """Renderiza un ReportDocument como PDF A4"""

    def __init__(self, engine: TableLayoutEngine, business_name: str):
        self.engine = engine
        self.business_name = business_name

    def render(self, document: ReportDocument) -> bytes:
        content, _ = self.layout(document)
        return content

    def layout(self, document: ReportDocument) -> Tuple[bytes, PDFLayoutBuilder]:
        """Genera el PDF y devuelve también el builder con las posiciones usadas"""
        self.engine.verify()

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        pdf.setTitle(f"{self.business_name} - Reporte {document.title}")
        pdf.setAuthor(self.business_name)

        builder = PDFLayoutBuilder(pdf, self.engine)
        y = builder.header(
            TOP_MARGIN,
            self.business_name,
            document.title,
            document.period,
            format_datetime(document.generated_at),
        )
        for section in document.sections:
            y = builder.section(y, section.title, section.headers, section.rows, section.max_lengths)
            y += SECTION_GAP
        builder.finish()

        logger.debug(f"PDF {document.report_type}: {builder.page_count} páginas")
        return buffer.getvalue(), builder
