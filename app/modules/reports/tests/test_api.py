"""
Tests HTTP de los endpoints de reportes
"""

import logging
import re
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from app.modules.reports.exceptions import AggregationError, InvalidRangeError, UnsupportedReportTypeError
from app.modules.reports.services import ReportOrchestrator
from app.modules.reports.services.daily import DailySalesReportService


JANUARY = {"from": "2024-01-01", "to": "2024-01-31"}


def export_body(report_type="daily", fmt="pdf", date_range=None):
    return {
        "reportType": report_type,
        "format": fmt,
        "dateRange": JANUARY if date_range is None else date_range,
    }


# ===== ORCHESTRATOR =====

class TestOrchestrator:

    def test_unknown_type(self, db):
        with pytest.raises(UnsupportedReportTypeError):
            ReportOrchestrator(db).generate("weekly")

    def test_missing_range(self, db):
        with pytest.raises(InvalidRangeError) as exc:
            ReportOrchestrator(db).generate("daily")
        assert exc.value.report_type == "daily"

    def test_inverted_range(self, db):
        with pytest.raises(InvalidRangeError):
            ReportOrchestrator(db).generate("itbis", date(2024, 2, 1), date(2024, 1, 1))

    def test_rejected_requests_are_logged(self, db, caplog):
        caplog.set_level(logging.WARNING, logger="app.modules.reports.services.orchestrator")

        with pytest.raises(InvalidRangeError):
            ReportOrchestrator(db).generate("itbis", date(2024, 2, 1), date(2024, 1, 1))
        with pytest.raises(UnsupportedReportTypeError):
            ReportOrchestrator(db).generate("weekly", date(2024, 1, 1), date(2024, 1, 31))

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(messages) == 2
        assert "itbis" in messages[0] and "2024-02-01 - 2024-01-01" in messages[0]
        assert "weekly" in messages[1] and "2024-01-01 - 2024-01-31" in messages[1]

    def test_store_failure_becomes_aggregation_error(self, db, monkeypatch):
        def broken(self, start, end):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        monkeypatch.setattr(DailySalesReportService, "generate", broken)
        with pytest.raises(AggregationError) as exc:
            ReportOrchestrator(db).generate("daily", date(2024, 1, 1), date(2024, 1, 31))
        assert isinstance(exc.value.__cause__, OperationalError)


# ===== GET /reports =====

class TestGetReport:

    def test_daily(self, client, three_cash_sales):
        response = client.get("/api/v1/reports", params={"type": "daily", **JANUARY})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["report_type"] == "daily"
        assert body["data"]["sales_summary"]["total_sales"] == 3
        assert body["data"]["sales_summary"]["total_amount"] == 3000.0
        assert body["data"]["date_from"] == "2024-01-01"

    @pytest.mark.parametrize("report_type", ["itbis", "ncf", "customers", "audit", "dgii"])
    def test_every_type(self, client, report_type):
        response = client.get("/api/v1/reports", params={"type": report_type, **JANUARY})

        assert response.status_code == 200
        assert response.json()["data"]["report_type"] == report_type

    def test_inventory_without_range(self, client):
        response = client.get("/api/v1/reports", params={"type": "inventory"})

        assert response.status_code == 200
        assert response.json()["data"]["date_from"] is None

    def test_missing_dates(self, client):
        response = client.get("/api/v1/reports", params={"type": "daily"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Fechas de inicio y fin son requeridas"

    def test_unknown_type(self, client):
        response = client.get("/api/v1/reports", params={"type": "weekly", **JANUARY})

        assert response.status_code == 400
        assert "no válido" in response.json()["detail"]

    def test_store_failure_hides_details(self, client, monkeypatch):
        def broken(self, start, end):
            raise OperationalError("SELECT secret", {}, Exception("password=123"))

        monkeypatch.setattr(DailySalesReportService, "generate", broken)
        response = client.get("/api/v1/reports", params={"type": "daily", **JANUARY})

        assert response.status_code == 500
        assert response.json()["detail"] == "Error interno del servidor"


# ===== POST /reports/export =====

class TestExportReport:

    def test_pdf(self, client, three_cash_sales):
        response = client.post("/api/v1/reports/export", json=export_body())

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        disposition = response.headers["content-disposition"]
        assert re.fullmatch(r'attachment; filename="daily-report-\d{4}-\d{2}-\d{2}\.pdf"', disposition)
        assert response.content.startswith(b"%PDF")

    def test_csv(self, client, three_cash_sales):
        response = client.post("/api/v1/reports/export", json=export_body(fmt="CSV"))

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv; charset=utf-8"
        assert response.content.startswith(b"\xef\xbb\xbf")
        assert "RD$ 3,000.00" in response.content.decode("utf-8-sig")

    def test_default_format_is_pdf(self, client):
        body = export_body()
        del body["format"]

        response = client.post("/api/v1/reports/export", json=body)

        assert response.headers["content-type"] == "application/pdf"

    def test_unsupported_format(self, client):
        response = client.post("/api/v1/reports/export", json=export_body(fmt="xlsx"))

        assert response.status_code == 400
        assert "Formato no soportado" in response.json()["detail"]

    def test_missing_range(self, client):
        response = client.post("/api/v1/reports/export", json=export_body(date_range={}))

        assert response.status_code == 400

    def test_inventory_without_range(self, client):
        response = client.post("/api/v1/reports/export", json=export_body("inventory", "csv", {}))

        assert response.status_code == 200
        assert 'filename="inventory-report-' in response.headers["content-disposition"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["x-content-type-options"] == "nosniff"
