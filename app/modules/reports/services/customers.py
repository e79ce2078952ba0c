"""
Customer Reports Service

Segmentation, payment preferences, category preferences by customer
type and a ranked customer list with loyalty scores.
"""

from datetime import datetime
from typing import Dict, List, Set
from uuid import UUID

from app.core.config import settings
from app.modules.sales.models import Sale

from .base import (
    BaseReportService,
    CustomerRecord,
    SaleRecord,
    days_between,
    money,
    payment_label,
    percentage,
    safe_average,
)
from .intelligence import customer_insights, days_since, loyalty_score
from ..schemas import (
    CategoryPreference,
    CustomerRanking,
    CustomerSegment,
    CustomerSegmentation,
    CustomerSummary,
    CustomersReport,
    PaymentPreference,
)


SEGMENT_LABELS = {"BUSINESS": "Empresas", "INDIVIDUAL": "Individuales"}


class CustomersReportService(BaseReportService):
    """Service for the customers report"""

    def generate(self, start: datetime, end: datetime) -> CustomersReport:
        customers = self._all_customers()
        known = {c.id for c in customers}

        sales_by_customer: Dict[UUID, List[SaleRecord]] = {c.id: [] for c in customers}
        for sale in self._fetch_sales(start, end, Sale.customer_id.isnot(None)):
            if sale.customer_id in known:
                sales_by_customer[sale.customer_id].append(sale)

        active = [c for c in customers if sales_by_customer[c.id]]
        business = [c for c in customers if c.is_business]
        individual = [c for c in customers if not c.is_business]
        total_revenue = sum(s.total for sales in sales_by_customer.values() for s in sales)
        total_sales = sum(len(sales) for sales in sales_by_customer.values())

        summary = CustomerSummary(
            total_customers=len(customers),
            active_customers=len(active),
            inactive_customers=len(customers) - len(active),
            business_customers=len(business),
            individual_customers=len(individual),
            customers_with_rnc=sum(1 for c in customers if c.rnc),
            customers_with_cedula=sum(1 for c in customers if c.cedula),
            total_revenue=money(total_revenue),
            total_sales=total_sales,
            average_order_value=round(safe_average(total_revenue, total_sales), 2),
            average_customer_value=round(safe_average(total_revenue, len(active)), 2),
        )

        segments = [
            self._segment(code, members, sales_by_customer, len(customers))
            for code, members in (("BUSINESS", business), ("INDIVIDUAL", individual))
        ]

        segmentation = CustomerSegmentation(
            by_type=segments,
            payment_methods=self._payment_preferences(sales_by_customer, total_revenue),
            category_preferences=self._category_preferences(start, end, customers, sales_by_customer),
        )

        days_in_range = days_between(start, end)
        ranking = [self._rank(c, sales_by_customer[c.id], days_in_range) for c in active]
        ranking.sort(key=lambda r: r.total_amount, reverse=True)

        insights = customer_insights(
            total_customers=len(customers),
            active_customers=len(active),
            business_customers=len(business),
            business_with_rnc=sum(1 for c in business if c.rnc),
            customers_with_rnc=summary.customers_with_rnc,
            total_revenue=float(total_revenue),
            currency=settings.CURRENCY_SYMBOL,
        )

        return CustomersReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            summary=summary,
            segmentation=segmentation,
            top_customers=ranking,
            insights=insights,
        )

    @staticmethod
    def _segment(code: str, members: List[CustomerRecord], sales_by_customer, total_customers: int) -> CustomerSegment:
        return CustomerSegment(
            customer_type=code,
            label=SEGMENT_LABELS[code],
            count=len(members),
            active_count=sum(1 for c in members if sales_by_customer[c.id]),
            revenue=money(sum(s.total for c in members for s in sales_by_customer[c.id])),
            percentage=round(percentage(len(members), total_customers), 1),
        )

    @staticmethod
    def _payment_preferences(sales_by_customer, total_revenue) -> List[PaymentPreference]:
        customers: Dict[str, Set[UUID]] = {}
        rows: Dict[str, PaymentPreference] = {}
        for customer_id, sales in sales_by_customer.items():
            for sale in sales:
                method = sale.payment_method
                row = rows.setdefault(method, PaymentPreference(method=method, label=payment_label(method)))
                customers.setdefault(method, set()).add(customer_id)
                row.amount += float(sale.total)
                row.transactions += 1

        for method, row in rows.items():
            row.customers = len(customers[method])
            row.percentage = round(percentage(row.amount, total_revenue), 2)
            row.amount = round(row.amount, 2)
        return sorted(rows.values(), key=lambda r: r.amount, reverse=True)

    def _category_preferences(self, start, end, customers, sales_by_customer) -> Dict[str, List[CategoryPreference]]:
        items_by_sale = self._fetch_items(start, end)
        product_ids = {item.product_id for items in items_by_sale.values() for item in items}
        products = self._products_by_ids(product_ids)

        preferences: Dict[str, Dict[str, CategoryPreference]] = {"BUSINESS": {}, "INDIVIDUAL": {}}
        buyers: Dict[tuple, Set[UUID]] = {}
        for customer in customers:
            bucket = preferences.setdefault(customer.customer_type, {})
            for sale in sales_by_customer[customer.id]:
                for item in items_by_sale.get(sale.id, []):
                    category = products[item.product_id].category_name
                    row = bucket.setdefault(category, CategoryPreference(category=category))
                    row.revenue = round(row.revenue + float(item.unit_price * item.quantity), 2)
                    row.quantity += item.quantity
                    buyers.setdefault((customer.customer_type, category), set()).add(customer.id)

        result = {}
        for customer_type, bucket in preferences.items():
            for category, row in bucket.items():
                row.customer_count = len(buyers[(customer_type, category)])
            result[customer_type] = sorted(bucket.values(), key=lambda r: r.revenue, reverse=True)
        return result

    def _rank(self, customer: CustomerRecord, sales: List[SaleRecord], days_in_range: int) -> CustomerRanking:
        total = sum(s.total for s in sales)
        first = min(s.created_at for s in sales)
        last = max(s.created_at for s in sales)

        methods: Dict[str, int] = {}
        for sale in sales:
            methods[sale.payment_method] = methods.get(sale.payment_method, 0) + 1

        return CustomerRanking(
            id=customer.id,
            name=customer.name,
            customer_type=customer.customer_type,
            document_type="RNC" if customer.is_business else "Cédula",
            document_number=customer.document or "N/A",
            email=customer.email or "N/A",
            phone=customer.phone or "N/A",
            total_sales=len(sales),
            total_amount=money(total),
            total_tax=money(sum(s.itbis for s in sales)),
            average_order_value=round(safe_average(total, len(sales)), 2),
            first_purchase=first,
            last_purchase=last,
            payment_methods=methods,
            loyalty_score=loyalty_score(len(sales), total, days_in_range, days_since(last, self.now)),
        )
