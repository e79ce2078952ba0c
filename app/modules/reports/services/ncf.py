"""
NCF Sequence Control Service

Usage of each active fiscal sequence in the period, consumption
patterns, compliance checks and depletion estimates.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, List

from app.modules.sales.models import Sale

from .base import BaseReportService, SaleRecord, days_between, money, percentage, safe_average
from .compliance import build_insights, evaluate_compliance, sequence_status
from ..schemas import (
    DailyNCFUsage,
    NCFReport,
    NCFSegment,
    NCFSequenceStatus,
    NCFSummary,
    NCFTypeUsage,
    NCFUsagePatterns,
)


UNKNOWN_TYPE = "UNKNOWN"
GUEST_SEGMENT = "GENERAL"


class NCFReportService(BaseReportService):
    """Service for the NCF sequence control report"""

    def generate(self, start: datetime, end: datetime) -> NCFReport:
        sequences = self._active_sequences()
        used = {g.key: g.count for g in self._group_sales(start, end, Sale.ncf_type, Sale.ncf_type.isnot(None))}
        # más recientes primero: el primero es el último NCF emitido
        sales = self._fetch_sales(start, end, Sale.ncf.isnot(None), newest_first=True)

        statuses = []
        for seq in sequences:
            of_type = [s for s in sales if s.ncf_type == seq.type]
            revenue = sum(s.total for s in of_type)
            statuses.append(NCFSequenceStatus(
                type=seq.type,
                description=seq.description,
                current=seq.current_number,
                to_number=seq.max_number,
                used=used.get(seq.type, 0),
                remaining=seq.remaining,
                percentage=round(percentage(seq.current_number, seq.max_number), 2),
                status=sequence_status(seq.remaining),
                sales_in_period=len(of_type),
                revenue_in_period=money(revenue),
                itbis_in_period=money(sum(s.itbis for s in of_type)),
                average_ticket=round(safe_average(revenue, len(of_type)), 2),
                last_used=of_type[0].created_at if of_type else None,
            ))

        total_amount = sum(s.total for s in sales)
        period_days = days_between(start, end)
        summary = NCFSummary(
            total_sequences=len(sequences),
            total_used_in_period=len(sales),
            total_sales_amount=money(total_amount),
            total_itbis=money(sum(s.itbis for s in sales)),
            last_ncf_issued=sales[0].ncf if sales else None,
            alert_sequences=sum(1 for s in statuses if s.status == "low"),
            average_ticket=round(safe_average(total_amount, len(sales)), 2),
            period_days=period_days,
            avg_daily_consumption=round(len(sales) / max(1, period_days), 2),
        )

        daily_usage = self._daily_usage(sales, start, end)
        type_counts = Counter(s.ncf_type or UNKNOWN_TYPE for s in sales)

        return NCFReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            sequences=statuses,
            summary=summary,
            usage_patterns=self._usage_patterns(sales),
            daily_usage=daily_usage,
            by_customer_type=self._by_customer_type(sales),
            by_payment_method=_segments(sales, lambda s: s.payment_method),
            compliance=evaluate_compliance([s.ncf for s in sales], statuses),
            insights=build_insights(
                statuses,
                dict(type_counts),
                {day.day: day.total_ncf for day in daily_usage},
            ),
        )

    @staticmethod
    def _usage_patterns(sales: List[SaleRecord]) -> NCFUsagePatterns:
        total_revenue: Dict[str, float] = {}
        counts: Counter = Counter()
        for sale in sales:
            key = sale.ncf_type or UNKNOWN_TYPE
            counts[key] += 1
            total_revenue[key] = total_revenue.get(key, 0.0) + float(sale.total)

        by_type = [
            NCFTypeUsage(
                ncf_type=key,
                count=count,
                revenue=round(total_revenue[key], 2),
                percentage=round(count / len(sales) * 100, 2),
            )
            for key, count in sorted(counts.items())
        ]
        return NCFUsagePatterns(
            by_type=by_type,
            by_hour=dict(sorted(Counter(s.created_at.hour for s in sales).items())),
            by_weekday=dict(sorted(Counter(s.created_at.weekday() for s in sales).items())),
        )

    def _daily_usage(self, sales: List[SaleRecord], start: datetime, end: datetime) -> List[DailyNCFUsage]:
        usage = {day: DailyNCFUsage(day=day) for day in self._calendar_days(start, end)}
        for sale in sales:
            entry = usage.get(sale.created_at.date())
            if entry is None:
                continue
            entry.total_ncf += 1
            entry.revenue = round(entry.revenue + float(sale.total), 2)
            entry.itbis = round(entry.itbis + float(sale.itbis), 2)
            key = sale.ncf_type or UNKNOWN_TYPE
            entry.by_type[key] = entry.by_type.get(key, 0) + 1
        return list(usage.values())

    def _by_customer_type(self, sales: List[SaleRecord]) -> List[NCFSegment]:
        customers = self._customers_by_ids(s.customer_id for s in sales)

        def segment(sale: SaleRecord) -> str:
            if sale.customer_id is None:
                return GUEST_SEGMENT
            return customers[sale.customer_id].customer_type

        return _segments(sales, segment)


def _segments(sales: List[SaleRecord], key_of) -> List[NCFSegment]:
    segments: Dict[str, NCFSegment] = {}
    for sale in sales:
        key = key_of(sale)
        segment = segments.setdefault(key, NCFSegment(key=key))
        segment.count += 1
        segment.revenue = round(segment.revenue + float(sale.total), 2)
        segment.itbis = round(segment.itbis + float(sale.itbis), 2)
        ncf_type = sale.ncf_type or UNKNOWN_TYPE
        segment.ncf_types[ncf_type] = segment.ncf_types.get(ncf_type, 0) + 1

    for segment in segments.values():
        segment.average_ticket = round(safe_average(segment.revenue, segment.count), 2)
    return sorted(segments.values(), key=lambda s: s.key)
