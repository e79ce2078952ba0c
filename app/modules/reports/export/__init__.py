"""
Report export

ReportExporter turns a typed report result into a downloadable file.
The table layout engine is created once at startup and passed in.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.core.config import settings

from ..exceptions import RenderError, ReportError, UnsupportedFormatError
from ..utils import build_filename
from .csv import CSVReportRenderer
from .pdf import PDFReportRenderer, TableLayoutEngine
from .sections import ReportDocument, Section, build_document


logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    PDF = "pdf"
    CSV = "csv"


CONTENT_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.CSV: "text/csv; charset=utf-8",
}


@dataclass(frozen=True)
class ExportedReport:
    content: bytes
    content_type: str
    filename: str


class ReportExporter:
    def __init__(self, table_layout_engine: TableLayoutEngine, business_name: Optional[str] = None):
        business_name = business_name or settings.BUSINESS_NAME
        self.pdf = PDFReportRenderer(table_layout_engine, business_name)
        self.csv = CSVReportRenderer(business_name)

    def export(self, result, export_format) -> ExportedReport:
        try:
            fmt = ExportFormat(export_format)
        except ValueError:
            raise UnsupportedFormatError(f"Formato no soportado: {export_format}",
                                         report_type=getattr(result, "report_type", None))

        document = build_document(result)
        try:
            if fmt == ExportFormat.PDF:
                content = self.pdf.render(document)
            else:
                content = self.csv.render(document)
        except ReportError:
            raise
        except Exception as e:
            logger.error(f"Error rendering {document.report_type} report as {fmt.value}: {e}", exc_info=True)
            raise RenderError(f"Error generando {fmt.value}", report_type=document.report_type) from e

        filename = build_filename(document.report_type, fmt.value, document.generated_at.date())
        logger.info(f"Exported {filename} ({len(content)} bytes)")
        return ExportedReport(content=content, content_type=CONTENT_TYPES[fmt], filename=filename)


__all__ = [
    "CSVReportRenderer",
    "ExportFormat",
    "ExportedReport",
    "PDFReportRenderer",
    "ReportDocument",
    "ReportExporter",
    "Section",
    "TableLayoutEngine",
    "build_document",
]
