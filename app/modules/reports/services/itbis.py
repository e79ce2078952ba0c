"""
ITBIS Reports Service

Tax collected over a date range: effective rate, breakdown by NCF type
and payment method, daily trend and the 18% compliance checks.
"""

from datetime import datetime
from typing import Dict, List

from app.modules.sales.models import Sale
from app.modules.ncf.models import get_ncf_type_description

from .base import BaseReportService, GroupTotals, money, payment_label, percentage, safe_average
from .intelligence import check_tax_variance, collection_trend, tax_compliance_percentage
from ..schemas import DailyTaxTrend, ITBISInsights, ITBISReport, TaxBreakdown, TaxComplianceMetrics


NO_NCF = "SIN_NCF"


class ITBISReportService(BaseReportService):
    """Service for the ITBIS report"""

    def generate(self, start: datetime, end: datetime) -> ITBISReport:
        totals = self._aggregate_sales(start, end)
        by_ncf = self._group_sales(start, end, Sale.ncf_type)
        by_method = self._group_sales(start, end, Sale.payment_method)
        sales = self._fetch_sales(start, end)

        effective_rate = percentage(totals.itbis, totals.subtotal)

        daily: Dict = {}
        for sale in sales:
            day = sale.created_at.date()
            trend = daily.setdefault(day, DailyTaxTrend(day=day))
            trend.itbis = round(trend.itbis + float(sale.itbis), 2)
            trend.subtotal = round(trend.subtotal + float(sale.subtotal), 2)
            trend.total = round(trend.total + float(sale.total), 2)
            trend.transactions += 1
        daily_trends = [daily[day] for day in sorted(daily)]

        compliance = TaxComplianceMetrics(
            compliance_percentage=round(tax_compliance_percentage(effective_rate), 2),
            exempt_transactions=sum(1 for s in sales if s.itbis == 0),
            regular_transactions=sum(1 for s in sales if s.itbis > 0),
        )

        tax_by_ncf = [
            self._breakdown(g.key or NO_NCF, _ncf_label(g.key), g, totals.itbis) for g in by_ncf
        ]
        tax_by_method = [
            self._breakdown(g.key, payment_label(g.key), g, totals.itbis) for g in by_method
        ]

        insights = ITBISInsights(
            peak_tax_day=max(daily_trends, key=lambda t: t.itbis) if daily_trends else None,
            dominant_ncf_type=_largest_tax(tax_by_ncf),
            preferred_payment_method=_largest_tax(tax_by_method),
            tax_collection_trend=collection_trend([t.itbis for t in daily_trends]),
        )

        return ITBISReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            total_itbis=money(totals.itbis),
            taxable_base=money(totals.subtotal),
            total_with_tax=money(totals.total),
            transaction_count=totals.count,
            avg_itbis_per_transaction=round(safe_average(totals.itbis, totals.count), 2),
            effective_rate=round(effective_rate, 2),
            tax_by_ncf=tax_by_ncf,
            tax_by_payment_method=tax_by_method,
            daily_trends=daily_trends,
            compliance_metrics=compliance,
            tax_variance=check_tax_variance(totals.subtotal, totals.itbis),
            insights=insights,
        )

    @staticmethod
    def _breakdown(key: str, label: str, group: GroupTotals, total_tax) -> TaxBreakdown:
        return TaxBreakdown(
            key=key,
            label=label,
            tax=money(group.itbis),
            base=money(group.subtotal),
            total=money(group.total),
            transactions=group.count,
            percentage=round(percentage(group.itbis, total_tax), 2),
        )


def _ncf_label(ncf_type) -> str:
    if not ncf_type:
        return "Sin NCF"
    return get_ncf_type_description(ncf_type)


def _largest_tax(rows: List[TaxBreakdown]):
    if not rows:
        return None
    return max(rows, key=lambda row: row.tax).key
