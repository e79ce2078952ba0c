"""
Utilities for Reports module

Number and date formatting (es-DO), cell truncation, column width
allocation for the PDF tables and the file download response.
"""

import math
import re
from datetime import date, datetime
from typing import Any, List, Sequence

from fastapi import Response


# Prioridad de ancho por palabra clave del encabezado; gana la primera coincidencia
COLUMN_WEIGHTS = [
    (("Cliente", "Producto", "Nombre", "Descripción", "Dirección"), 3),
    (("Categoría", "Monto", "Total", "Precio", "Ingresos", "RNC", "Cédula", "NCF"), 2),
    (("#", "Pos", "Cant", "Stock", "Tipo", "Estado", "%", "ID"), 1),
]
DEFAULT_COLUMN_WEIGHT = 1.5
MIN_COLUMN_WIDTH = 15
MAX_COLUMN_WIDTH = 60


def format_number(value: Any, decimals: int = 2) -> str:
    """1234.5 -> '1,234.50'"""
    if value is None:
        value = 0
    return f"{float(value):,.{decimals}f}"


def format_currency(value: Any, symbol: str = "RD$") -> str:
    return f"{symbol} {format_number(value)}"


def format_percent(value: Any) -> str:
    return f"{format_number(value)}%"


def format_date(value: Any) -> str:
    """Fecha en formato DD/MM/YYYY"""
    if value is None:
        return "N/A"
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d/%m/%Y")


def format_datetime(value: Any) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y %H:%M")


def truncate_text(text: Any, max_length: int) -> str:
    """Trunca con '...' al exceder max_length; vacío -> 'N/A'"""
    if text is None or text == "":
        return "N/A"
    text = str(text)
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3] + "..."


def _matches(keyword: str, header: str) -> bool:
    # palabras por prefijo sin distinguir mayúsculas; símbolos en cualquier posición
    keyword = keyword.lower()
    if not keyword.isalnum():
        return keyword in header
    return any(word.startswith(keyword) for word in re.findall(r"\w+", header))


def column_weight(header: str) -> float:
    header = header.lower()
    for keywords, weight in COLUMN_WEIGHTS:
        if any(_matches(keyword, header) for keyword in keywords):
            return weight
    return DEFAULT_COLUMN_WEIGHT


def calculate_optimal_column_widths(headers: Sequence[str], available_width: float = 170) -> List[float]:
    """
    Reparte el ancho disponible (mm) según el peso de cada encabezado.

    Cada columna recibe su proporción del total, limitada a [15, 60] mm.
    Si al aplicar el mínimo la suma excede el ancho disponible, el exceso
    se descuenta de las columnas más anchas que el mínimo. Cuando ni así
    caben, todas se reducen en la misma proporción.
    """
    if not headers:
        return []

    weights = [column_weight(header) for header in headers]
    total_weight = sum(weights)
    widths = []
    for weight in weights:
        width = available_width * weight / total_weight
        widths.append(round(min(max(width, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH), 1))

    total = sum(widths)
    if round(total, 1) > available_width:
        excess = total - available_width
        slack = sum(width - MIN_COLUMN_WIDTH for width in widths)
        if slack >= excess:
            widths = [max(width - excess * (width - MIN_COLUMN_WIDTH) / slack, MIN_COLUMN_WIDTH)
                      for width in widths]
        else:
            widths = [width * available_width / total for width in widths]
        # truncado a 0.1 mm para no volver a pasarse por redondeo
        widths = [math.floor(width * 10) / 10 for width in widths]
    return widths


def build_filename(report_type: str, extension: str, generated: date) -> str:
    return f"{report_type}-report-{generated.isoformat()}.{extension}"


def create_file_response(content: bytes, content_type: str, filename: str) -> Response:
    """
    Create a download response for an exported report.

    Args:
        content: File bytes
        content_type: MIME type of the file
        filename: Name for the attachment

    Returns:
        FastAPI Response with attachment headers
    """
    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(content)),
        },
    )
