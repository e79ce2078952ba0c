"""
Report orchestrator

Validates the requested range, normalizes it to whole days and
dispatches to the service of each report type. Rejected requests and
store failures are logged with the request context; store failures
are re-raised as AggregationError.
"""

import logging
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import AggregationError, InvalidRangeError, UnsupportedReportTypeError
from .audit import AuditReportService
from .customers import CustomersReportService
from .daily import DailySalesReportService
from .dgii import DGIIReportService
from .inventory import InventoryReportService
from .itbis import ITBISReportService
from .ncf import NCFReportService


logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


class ReportType(str, Enum):
    DAILY = "daily"
    ITBIS = "itbis"
    NCF = "ncf"
    INVENTORY = "inventory"
    CUSTOMERS = "customers"
    AUDIT = "audit"
    DGII = "dgii"


REPORT_SERVICES = {
    ReportType.DAILY: DailySalesReportService,
    ReportType.ITBIS: ITBISReportService,
    ReportType.NCF: NCFReportService,
    ReportType.INVENTORY: InventoryReportService,
    ReportType.CUSTOMERS: CustomersReportService,
    ReportType.AUDIT: AuditReportService,
    ReportType.DGII: DGIIReportService,
}

# Tipos que no dependen del rango solicitado
RANGE_OPTIONAL = {ReportType.INVENTORY}


def parse_report_type(value) -> ReportType:
    try:
        return ReportType(value)
    except ValueError:
        raise UnsupportedReportTypeError(f"Tipo de reporte no válido: {value}", report_type=str(value))


def normalize_range(report_type: ReportType, date_from: Optional[date], date_to: Optional[date]):
    """
    Convierte el rango a [inicio del día `from`, 23:59:59.999 del día `to`].
    Inventario acepta rango vacío.
    """
    if date_from is None or date_to is None:
        if report_type in RANGE_OPTIONAL:
            return None, None
        raise InvalidRangeError(report_type=report_type.value)

    if date_from > date_to:
        raise InvalidRangeError(
            "La fecha de inicio debe ser anterior o igual a la fecha de fin",
            report_type=report_type.value,
        )

    return datetime.combine(date_from, time.min), datetime.combine(date_to, END_OF_DAY)


class ReportOrchestrator:
    """Punto de entrada único para generar cualquier reporte"""

    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.now = now

    def generate(self, report_type, date_from: Optional[date] = None, date_to: Optional[date] = None):
        try:
            kind = parse_report_type(report_type)
            start, end = normalize_range(kind, date_from, date_to)
        except (UnsupportedReportTypeError, InvalidRangeError) as e:
            logger.warning(f"Rejected {report_type} report for {date_from} - {date_to}: {e}")
            raise

        service = REPORT_SERVICES[kind](self.db, now=self.now)
        logger.info(f"Generating {kind.value} report for {date_from} - {date_to}")

        try:
            return service.generate(start, end)
        except SQLAlchemyError as e:
            logger.error(
                f"Error generating {kind.value} report for {date_from} - {date_to}: {e}",
                exc_info=True,
            )
            raise AggregationError(f"Error generando reporte {kind.value}", report_type=kind.value) from e
