"""
Daily Sales Reports Service

Totals, payment methods, NCF types, top products and customers, cashier
performance and hourly distribution for a date range, plus the stock
alert counters shown on the dashboard.
"""

from datetime import datetime
from typing import Dict, List

from app.modules.sales.models import PaymentMethod, Sale

from .base import (
    BaseReportService,
    GroupTotals,
    money,
    payment_label,
    percentage,
    safe_average,
)
from .inventory import count_stock_alerts
from ..schemas import (
    CashierPerformance,
    DailySalesReport,
    DailySalesSummary,
    HourlySales,
    NCFTypeTotal,
    PaymentMethodTotal,
    TopCustomer,
    TopProduct,
)


BASE_NCF_TYPES = ("B01", "B02", "B03", "B04")
TOP_LIMIT = 10


class DailySalesReportService(BaseReportService):
    """Service for the daily sales report"""

    def generate(self, start: datetime, end: datetime) -> DailySalesReport:
        totals = self._aggregate_sales(start, end)
        by_method = {g.key: g for g in self._group_sales(start, end, Sale.payment_method)}

        payment_breakdown = []
        for method in PaymentMethod:
            row = PaymentMethodTotal(method=method.name, label=payment_label(method.name))
            group = by_method.get(method.name)
            if group:
                row.transactions = group.count
                row.amount = money(group.total)
                row.percentage = round(percentage(group.total, totals.total), 2)
            payment_breakdown.append(row)
        amounts = {row.method: row.amount for row in payment_breakdown}

        product_sales = self._group_items_by_product(start, end)

        summary = DailySalesSummary(
            total_sales=totals.count,
            subtotal=money(totals.subtotal),
            total_amount=money(totals.total),
            total_tax=money(totals.itbis),
            average_ticket=round(safe_average(totals.total, totals.count), 2),
            total_cash=amounts["CASH"],
            total_card=amounts["CARD"],
            total_transfer=amounts["TRANSFER"],
            units_sold=sum(row.quantity for row in product_sales),
        )

        sold_recently = self._units_sold_since(self._trailing_window_start())
        alerts = count_stock_alerts(self._active_products(), sold_recently)

        return DailySalesReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            sales_summary=summary,
            payment_breakdown=payment_breakdown,
            ncf_breakdown=self._ncf_breakdown(start, end),
            top_products=self._top_products(product_sales),
            top_customers=self._top_customers(start, end),
            cashier_performance=self._cashier_performance(start, end),
            sales_by_hour=self._sales_by_hour(start, end),
            alerts=alerts,
        )

    def _ncf_breakdown(self, start: datetime, end: datetime) -> List[NCFTypeTotal]:
        groups: Dict[str, GroupTotals] = {
            g.key: g for g in self._group_sales(start, end, Sale.ncf_type, Sale.ncf_type.isnot(None))
        }
        types = list(BASE_NCF_TYPES) + sorted(t for t in groups if t not in BASE_NCF_TYPES)
        return [
            NCFTypeTotal(
                ncf_type=ncf_type,
                count=groups[ncf_type].count if ncf_type in groups else 0,
                amount=money(groups[ncf_type].total) if ncf_type in groups else 0.0,
            )
            for ncf_type in types
        ]

    def _top_products(self, product_sales) -> List[TopProduct]:
        # el orden SQL ya es por ingresos; sorted() es estable ante empates
        top = sorted(product_sales, key=lambda row: row.revenue, reverse=True)[:TOP_LIMIT]
        products = self._products_by_ids(row.product_id for row in top)
        return [
            TopProduct(
                id=row.product_id,
                name=products[row.product_id].name,
                category=products[row.product_id].category_name,
                quantity=row.quantity,
                revenue=money(row.revenue),
            )
            for row in top
        ]

    def _top_customers(self, start: datetime, end: datetime) -> List[TopCustomer]:
        groups = self._group_sales(start, end, Sale.customer_id, Sale.customer_id.isnot(None))[:TOP_LIMIT]
        customers = self._customers_by_ids(g.key for g in groups)
        return [
            TopCustomer(
                id=g.key,
                name=customers[g.key].name,
                document=customers[g.key].document or "N/A",
                total_purchases=g.count,
                total_amount=money(g.total),
            )
            for g in groups
        ]

    def _cashier_performance(self, start: datetime, end: datetime) -> List[CashierPerformance]:
        groups = self._group_sales(start, end, Sale.cashier_id)
        users = self._users_by_ids(g.key for g in groups)
        return [
            CashierPerformance(
                cashier_id=g.key,
                cashier=users[g.key].name if g.key in users else "N/A",
                sales=g.count,
                amount=money(g.total),
            )
            for g in groups
        ]

    def _sales_by_hour(self, start: datetime, end: datetime) -> List[HourlySales]:
        buckets = [HourlySales(hour=hour) for hour in range(24)]
        for sale in self._fetch_sales(start, end):
            bucket = buckets[sale.created_at.hour]
            bucket.transactions += 1
            bucket.amount = round(bucket.amount + float(sale.total), 2)
        return buckets
