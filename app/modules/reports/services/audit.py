"""
Audit Reports Service

Full transaction trail of a date range with cashier activity, NCF usage,
payment and customer behaviour, timing, security checks and risk
analysis.
"""

from datetime import datetime
from typing import Dict, List
from uuid import UUID

from app.common.validators import validate_ncf

from .base import (
    BaseReportService,
    CustomerRecord,
    GUEST_CUSTOMER,
    ProductRecord,
    SaleItemRecord,
    SaleRecord,
    UserRecord,
    days_between,
    money,
    payment_label,
    percentage,
    safe_average,
)
from .intelligence import audit_insights, high_value_threshold, risk_score, security_findings
from ..schemas import (
    AuditItem,
    AuditNCFUsage,
    AuditReport,
    AuditSummary,
    AuditTransaction,
    CashierActivity,
    CustomerBehavior,
    DayBucket,
    FrequentCustomer,
    HighValueTransaction,
    HourBucket,
    NCFTypeUsage,
    PaymentAnalysis,
    PaymentMethodStat,
    RiskAnalysis,
    SecurityAnalysis,
    SecurityChecks,
    TimingAnalysis,
    UserActivity,
)


HIGH_CASH_SHARE = 80
PEAK_HOURS_LIMIT = 5
BUSY_DAYS_LIMIT = 10


def has_valid_receipt(sale: SaleRecord) -> bool:
    return bool(sale.ncf and sale.ncf_type and validate_ncf(sale.ncf))


class AuditReportService(BaseReportService):
    """Service for the audit report"""

    def generate(self, start: datetime, end: datetime) -> AuditReport:
        sales = self._fetch_sales(start, end, newest_first=True)
        items = self._fetch_items(start, end)
        users = self._users_by_ids(s.cashier_id for s in sales)
        customers = self._customers_by_ids(s.customer_id for s in sales)
        products = self._products_by_ids(i.product_id for rows in items.values() for i in rows)

        total_revenue = sum(s.total for s in sales)
        total_items = sum(len(items.get(s.id, [])) for s in sales)

        summary = AuditSummary(
            total_transactions=len(sales),
            total_revenue=money(total_revenue),
            total_tax=money(sum(s.itbis for s in sales)),
            total_items=total_items,
            days=days_between(start, end),
            average_transaction=round(safe_average(total_revenue, len(sales)), 2),
            average_items_per_sale=round(safe_average(total_items, len(sales)), 2),
        )

        transactions = [
            self._transaction(sale, items.get(sale.id, []), users, customers, products)
            for sale in sales
        ]

        user_activity = self._user_activity(sales, items, users)
        security = self._security(sales, customers)
        risk = self._risk(sales, users, customers)

        return AuditReport(
            date_from=start.date(),
            date_to=end.date(),
            generated_at=self.now,
            summary=summary,
            transactions=transactions,
            user_activity=user_activity,
            ncf_usage=self._ncf_usage(sales),
            payment_analysis=self._payments(sales, total_revenue),
            customer_analysis=self._customer_behavior(sales, customers),
            time_analysis=self._timing(sales),
            security_analysis=security,
            risk_analysis=risk,
            insights=audit_insights(
                security.compliance_score,
                user_activity.active_users,
                risk.risk_score,
                security.recommendations,
            ),
        )

    @staticmethod
    def _transaction(
        sale: SaleRecord,
        sale_items: List[SaleItemRecord],
        users: Dict[UUID, UserRecord],
        customers: Dict[UUID, CustomerRecord],
        products: Dict[UUID, ProductRecord],
    ) -> AuditTransaction:
        cashier = users.get(sale.cashier_id)
        customer = customers.get(sale.customer_id)
        return AuditTransaction(
            id=sale.id,
            sale_number=sale.sale_number,
            ncf=sale.ncf,
            ncf_type=sale.ncf_type,
            total=money(sale.total),
            subtotal=money(sale.subtotal),
            tax=money(sale.itbis),
            payment_method=sale.payment_method,
            status=sale.status,
            cashier_id=sale.cashier_id,
            cashier_name=cashier.name if cashier else "N/A",
            cashier_role=cashier.role if cashier else "N/A",
            customer_id=sale.customer_id,
            customer_name=customer.name if customer else GUEST_CUSTOMER,
            customer_document=(customer.document if customer else None) or "N/A",
            customer_type=customer.customer_type if customer else "INDIVIDUAL",
            items=[
                AuditItem(
                    product_id=item.product_id,
                    product_name=products[item.product_id].name,
                    product_code=products[item.product_id].code,
                    category=products[item.product_id].category_name,
                    quantity=item.quantity,
                    unit_price=money(item.unit_price),
                    total=money(item.unit_price * item.quantity),
                )
                for item in sale_items
            ],
            item_count=len(sale_items),
            created_at=sale.created_at,
        )

    def _user_activity(self, sales, items, users) -> UserActivity:
        rollup: Dict[UUID, CashierActivity] = {}
        for sale in sales:
            if sale.cashier_id is None:
                continue
            user = users[sale.cashier_id]
            row = rollup.setdefault(sale.cashier_id, CashierActivity(
                user_id=sale.cashier_id,
                name=user.name,
                role=user.role,
                first_sale=sale.created_at,
                last_sale=sale.created_at,
            ))
            row.transactions += 1
            row.revenue = round(row.revenue + float(sale.total), 2)
            row.items += len(items.get(sale.id, []))
            row.first_sale = min(row.first_sale, sale.created_at)
            row.last_sale = max(row.last_sale, sale.created_at)

        performance = sorted(rollup.values(), key=lambda r: r.revenue, reverse=True)
        for row in performance:
            row.avg_transaction_value = round(safe_average(row.revenue, row.transactions), 2)

        return UserActivity(
            user_performance=performance,
            active_users=len(performance),
            total_users=self._count_users(),
            top_performer=performance[0] if performance else None,
        )

    @staticmethod
    def _ncf_usage(sales: List[SaleRecord]) -> AuditNCFUsage:
        by_type: Dict[str, NCFTypeUsage] = {}
        with_ncf = 0
        for sale in sales:
            if not (sale.ncf and sale.ncf_type):
                continue
            with_ncf += 1
            row = by_type.setdefault(sale.ncf_type, NCFTypeUsage(ncf_type=sale.ncf_type))
            row.count += 1
            row.revenue = round(row.revenue + float(sale.total), 2)

        for row in by_type.values():
            row.percentage = round(percentage(row.count, len(sales)), 2)

        valid = sum(1 for s in sales if has_valid_receipt(s))
        return AuditNCFUsage(
            total_with_ncf=with_ncf,
            total_without_ncf=len(sales) - with_ncf,
            by_type=sorted(by_type.values(), key=lambda r: r.ncf_type),
            compliance_rate=round(percentage(valid, len(sales)), 2),
        )

    @staticmethod
    def _payments(sales: List[SaleRecord], total_revenue) -> PaymentAnalysis:
        methods: Dict[str, PaymentMethodStat] = {}
        for sale in sales:
            row = methods.setdefault(
                sale.payment_method,
                PaymentMethodStat(method=sale.payment_method, label=payment_label(sale.payment_method)),
            )
            row.count += 1
            row.amount = round(row.amount + float(sale.total), 2)

        for row in methods.values():
            row.percentage = round(percentage(row.amount, total_revenue), 2)
            row.average_ticket = round(safe_average(row.amount, row.count), 2)

        def total_for(method: str) -> float:
            return methods[method].amount if method in methods else 0.0

        analysis = PaymentAnalysis(
            methods=sorted(methods.values(), key=lambda r: r.amount, reverse=True),
            total_cash=total_for("CASH"),
            total_card=total_for("CARD"),
            total_transfer=total_for("TRANSFER"),
        )

        cash_share = percentage(analysis.total_cash, total_revenue)
        if cash_share > HIGH_CASH_SHARE:
            analysis.high_cash_volume = True
            analysis.unusual_patterns.append(f"Alto volumen en efectivo: {cash_share:.1f}%")
        return analysis

    @staticmethod
    def _customer_behavior(sales: List[SaleRecord], customers: Dict[UUID, CustomerRecord]) -> CustomerBehavior:
        behavior = CustomerBehavior()
        frequent: Dict[UUID, FrequentCustomer] = {}
        for sale in sales:
            if sale.customer_id is None:
                behavior.guest_sales += 1
                continue

            customer = customers[sale.customer_id]
            if customer.is_business:
                behavior.business_customers += 1
            else:
                behavior.individual_customers += 1

            row = frequent.setdefault(sale.customer_id, FrequentCustomer(
                customer_id=customer.id,
                name=customer.name,
                document=customer.document or "N/A",
            ))
            row.transactions += 1
            row.total_spent = round(row.total_spent + float(sale.total), 2)

        for row in frequent.values():
            row.average_order = round(safe_average(row.total_spent, row.transactions), 2)

        behavior.total_customers = len(frequent)
        behavior.frequent_customers = sorted(frequent.values(), key=lambda r: r.total_spent, reverse=True)
        return behavior

    @staticmethod
    def _timing(sales: List[SaleRecord]) -> TimingAnalysis:
        hours: Dict[int, HourBucket] = {}
        days: Dict = {}
        for sale in sales:
            hour = hours.setdefault(sale.created_at.hour, HourBucket(hour=sale.created_at.hour))
            hour.count += 1
            hour.revenue = round(hour.revenue + float(sale.total), 2)

            day_key = sale.created_at.date()
            day = days.setdefault(day_key, DayBucket(day=day_key))
            day.count += 1
            day.revenue = round(day.revenue + float(sale.total), 2)

        by_hour = [hours[h] for h in sorted(hours)]
        by_day = [days[d] for d in sorted(days)]
        return TimingAnalysis(
            by_hour=by_hour,
            by_day=by_day,
            peak_hours=sorted(by_hour, key=lambda b: b.count, reverse=True)[:PEAK_HOURS_LIMIT],
            busy_days=sorted(by_day, key=lambda b: b.count, reverse=True)[:BUSY_DAYS_LIMIT],
        )

    @staticmethod
    def _security(sales: List[SaleRecord], customers: Dict[UUID, CustomerRecord]) -> SecurityAnalysis:
        total = len(sales)
        if not total:
            return SecurityAnalysis(checks=SecurityChecks())

        documented = sum(
            1 for s in sales
            if s.customer_id is not None and customers[s.customer_id].document
        )
        checks = SecurityChecks(
            ncf_compliance=round(percentage(sum(1 for s in sales if has_valid_receipt(s)), total), 2),
            user_tracking=round(percentage(sum(1 for s in sales if s.cashier_id), total), 2),
            customer_documentation=round(percentage(documented, total), 2),
            payment_validation=round(percentage(sum(1 for s in sales if s.total > 0), total), 2),
        )
        score = (
            checks.ncf_compliance + checks.user_tracking
            + checks.customer_documentation + checks.payment_validation
        ) / 4
        issues, recommendations = security_findings(checks.ncf_compliance, checks.user_tracking)

        return SecurityAnalysis(
            compliance_score=round(score, 2),
            checks=checks,
            issues=issues,
            recommendations=recommendations,
        )

    @staticmethod
    def _risk(sales: List[SaleRecord], users, customers) -> RiskAnalysis:
        threshold = high_value_threshold([float(s.total) for s in sales])
        high_value = [
            HighValueTransaction(
                id=s.id,
                amount=money(s.total),
                cashier=users[s.cashier_id].name if s.cashier_id else "N/A",
                customer=customers[s.customer_id].name if s.customer_id else GUEST_CUSTOMER,
                created_at=s.created_at,
            )
            for s in sales
            if float(s.total) > threshold
        ]

        score = risk_score(len(high_value), len(sales))
        patterns = []
        if score:
            patterns.append("Alto número de transacciones de alto valor")

        return RiskAnalysis(
            high_value_threshold=round(threshold, 2),
            high_value_transactions=high_value,
            unusual_patterns=patterns,
            risk_score=score,
        )
