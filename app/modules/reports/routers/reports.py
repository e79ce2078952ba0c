"""
Reports Router

GET /reports genera cualquier reporte como JSON; POST /reports/export lo
descarga como PDF o CSV.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.database.database import get_db
from ..exceptions import ReportError
from ..export import ReportExporter
from ..schemas import ExportRequest, ReportResponse
from ..services import ReportOrchestrator
from ..utils import create_file_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def get_exporter(request: Request) -> ReportExporter:
    """El motor de tablas se crea una sola vez al arrancar la aplicación"""
    return ReportExporter(request.app.state.table_layout_engine)


def to_http_error(e: ReportError) -> HTTPException:
    # Los 500 no exponen el detalle interno
    detail = str(e) if e.status_code < 500 else e.public_message
    return HTTPException(status_code=e.status_code, detail=detail)


@router.get("", response_model=ReportResponse)
async def get_report(
    type: str = Query(..., description="daily, itbis, ncf, inventory, customers, audit o dgii"),
    date_from: Optional[date] = Query(None, alias="from", description="Fecha inicial (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, alias="to", description="Fecha final (YYYY-MM-DD)"),
    db: Session = Depends(get_db)
):
    """Generate a report for the requested range."""
    try:
        result = ReportOrchestrator(db).generate(type, date_from, date_to)
        return ReportResponse(data=result)
    except ReportError as e:
        logger.warning(f"Report {type} failed for {date_from} - {date_to}: {e}")
        raise to_http_error(e)


@router.post("/export")
async def export_report(
    payload: ExportRequest,
    db: Session = Depends(get_db),
    exporter: ReportExporter = Depends(get_exporter)
):
    """Generate a report and return it as a PDF or CSV download."""
    date_from = payload.date_range.date_from
    date_to = payload.date_range.date_to
    try:
        result = ReportOrchestrator(db).generate(payload.report_type, date_from, date_to)
        exported = exporter.export(result, payload.format)
    except ReportError as e:
        logger.warning(
            f"Export {payload.report_type}/{payload.format} failed for {date_from} - {date_to}: {e}"
        )
        raise to_http_error(e)

    return create_file_response(exported.content, exported.content_type, exported.filename)
