"""
Services package for Reports module

Exports the orchestrator and every report service class.
"""

from .audit import AuditReportService
from .customers import CustomersReportService
from .daily import DailySalesReportService
from .dgii import DGIIReportService
from .inventory import InventoryReportService
from .itbis import ITBISReportService
from .ncf import NCFReportService
from .orchestrator import ReportOrchestrator, ReportType

__all__ = [
    "AuditReportService",
    "CustomersReportService",
    "DailySalesReportService",
    "DGIIReportService",
    "InventoryReportService",
    "ITBISReportService",
    "NCFReportService",
    "ReportOrchestrator",
    "ReportType",
]
