"""
DGII Summary Service

Receipt, RNC and cédula coverage against total sales, ITBIS collection check
and an overall compliance score.
"""

from datetime import datetime

from app.common.validators import validate_cedula, validate_rnc
from app.modules.sales.models import Sale

from .base import BaseReportService, money, percentage
from .compliance import evaluate_compliance
from .intelligence import check_tax_variance, round_half_up, tax_compliance_percentage
from ..schemas import DGIIComplianceStatus, DGIIReport, DGIISummary


class DGIIReportService(BaseReportService):
    """Service for the DGII compliance summary"""

    def generate(self, start: datetime, end: datetime) -> DGIIReport:
        totals = self._aggregate_sales(start, end)
        with_ncf = self._aggregate_sales(start, end, Sale.ncf.isnot(None)).count

        by_customer = self._group_sales(start, end, Sale.customer_id, Sale.customer_id.isnot(None))
        customers = self._customers_by_ids(g.key for g in by_customer)
        with_valid_rnc = sum(
            g.count for g in by_customer
            if customers[g.key].is_business and validate_rnc(customers[g.key].rnc)
        )
        with_valid_cedula = sum(
            g.count for g in by_customer
            if not customers[g.key].is_business and validate_cedula(customers[g.key].cedula)
        )

        ncfs = [s.ncf for s in self._fetch_sales(start, end, Sale.ncf.isnot(None))]
        ncf_check = evaluate_compliance(ncfs, [])
        variance = check_tax_variance(totals.subtotal, totals.itbis)
        itbis_pct = tax_compliance_percentage(percentage(totals.itbis, totals.subtotal))

        ncf_coverage = percentage(with_ncf, totals.count) if totals.count else 100.0
        rnc_coverage = percentage(with_valid_rnc, totals.count)

        score = round_half_up((ncf_coverage + ncf_check.compliance_score + itbis_pct) / 3)

        return DGIIReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            compliance_status=DGIIComplianceStatus(
                ncf_compliance=round(ncf_coverage, 2),
                rnc_validation=round(rnc_coverage, 2),
                itbis_collection=variance.compliant,
                sequential_control=ncf_check.sequential_compliance,
            ),
            summary=DGIISummary(
                total_sales=totals.count,
                sales_with_ncf=with_ncf,
                sales_with_valid_rnc=with_valid_rnc,
                sales_with_valid_cedula=with_valid_cedula,
                total_itbis=money(totals.itbis),
                taxable_base=money(totals.subtotal),
                ncf_compliance_score=ncf_check.compliance_score,
                itbis_compliance_percentage=round(itbis_pct, 2),
                compliance_score=min(max(score, 0), 100),
            ),
            tax_variance=variance,
        )
