"""
Tests de los servicios de agregación

Cada reporte se genera con la base en memoria y un `now` fijo para que
las ventanas de 30 días y los cálculos de recencia sean deterministas.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app.modules.customers.models import CustomerType
from app.modules.reports.services import ReportOrchestrator
from app.modules.reports.services.intelligence import loyalty_score
from app.modules.sales.models import PaymentMethod
from app.modules.users.models import UserRole

# Fecha de referencia para ventanas de 30 días y recencia
NOW = datetime(2024, 1, 31, 18, 0, 0)


JANUARY = (date(2024, 1, 1), date(2024, 1, 31))


def generate(db, report_type, date_from=JANUARY[0], date_to=JANUARY[1]):
    return ReportOrchestrator(db, now=NOW).generate(report_type, date_from, date_to)


# ===== DAILY =====

class TestDailySalesReport:

    def test_three_cash_sales(self, db, three_cash_sales):
        report = generate(db, "daily")

        assert report.report_type == "daily"
        assert report.sales_summary.total_sales == 3
        assert report.sales_summary.total_amount == 3000.0
        assert report.sales_summary.total_tax == 540.0
        assert report.sales_summary.total_cash == 3000.0
        assert report.sales_summary.average_ticket == 1000.0

    def test_payment_breakdown_sums_to_total(self, db, seed):
        seed.sale(datetime(2024, 1, 3, 9), total="250.50", itbis="38.21", payment_method=PaymentMethod.CARD)
        seed.sale(datetime(2024, 1, 4, 9), total="1000.00", payment_method=PaymentMethod.CASH)
        seed.sale(datetime(2024, 1, 5, 9), total="99.99", itbis="15.25", payment_method=PaymentMethod.TRANSFER)
        seed.sale(datetime(2024, 1, 6, 9), total="10.00", itbis="1.53", payment_method=PaymentMethod.CHECK)
        db.commit()

        report = generate(db, "daily")

        methods = [row.method for row in report.payment_breakdown]
        assert methods == ["CASH", "CARD", "TRANSFER", "CHECK", "CREDIT"]
        assert round(sum(row.amount for row in report.payment_breakdown), 2) == report.sales_summary.total_amount
        credit = report.payment_breakdown[-1]
        assert credit.transactions == 0 and credit.amount == 0.0

    def test_sales_outside_range_are_excluded(self, db, seed):
        seed.sale(datetime(2023, 12, 31, 23, 59))
        seed.sale(datetime(2024, 1, 31, 23, 59, 59))
        seed.sale(datetime(2024, 2, 1, 0, 0))
        db.commit()

        report = generate(db, "daily")

        assert report.sales_summary.total_sales == 1

    def test_ncf_breakdown_always_lists_base_types(self, db, seed):
        seed.sale(datetime(2024, 1, 2, 11), ncf="B1500000001", ncf_type="B15")
        db.commit()

        report = generate(db, "daily")

        types = [row.ncf_type for row in report.ncf_breakdown]
        assert types == ["B01", "B02", "B03", "B04", "B15"]
        assert report.ncf_breakdown[-1].count == 1

    def test_top_products_customers_and_cashiers(self, db, seed):
        category = seed.category("Bebidas")
        water = seed.product("Agua", price="25.00", category=category)
        rum = seed.product("Ron", price="800.00", category=category)
        cashier = seed.user("Luis", "Gómez")
        customer = seed.customer("Colmado Don José", CustomerType.BUSINESS, rnc="101234567")

        seed.sale(datetime(2024, 1, 8, 14), total="850.00", itbis="129.66",
                  cashier=cashier, customer=customer, items=[(water, 2), (rum, 1)])
        seed.sale(datetime(2024, 1, 9, 14), total="25.00", itbis="3.81", items=[(water, 1)])
        db.commit()

        report = generate(db, "daily")

        assert [p.name for p in report.top_products] == ["Ron", "Agua"]
        assert report.top_products[1].quantity == 3
        assert report.top_products[0].category == "Bebidas"
        assert report.sales_summary.units_sold == 4

        assert len(report.top_customers) == 1
        assert report.top_customers[0].document == "101234567"

        cashiers = {row.cashier: row.sales for row in report.cashier_performance}
        assert cashiers == {"Luis Gómez": 1, "N/A": 1}

    def test_hourly_buckets(self, db, three_cash_sales):
        report = generate(db, "daily")

        assert len(report.sales_by_hour) == 24
        assert report.sales_by_hour[10].transactions == 3
        assert sum(h.transactions for h in report.sales_by_hour) == 3

    def test_empty_range(self, db):
        report = generate(db, "daily")

        assert report.sales_summary.total_sales == 0
        assert report.sales_summary.average_ticket == 0.0
        assert report.top_products == []


# ===== ITBIS =====

class TestITBISReport:

    def test_standard_rate_has_no_variance(self, db, seed):
        seed.sale(datetime(2024, 1, 10, 9), subtotal="10000.00", itbis="1800.00", total="11800.00")
        db.commit()

        report = generate(db, "itbis")

        assert report.taxable_base == 10000.0
        assert report.total_itbis == 1800.0
        assert report.effective_rate == 18.0
        assert report.tax_variance.compliant is True
        assert report.compliance_metrics.compliance_percentage == 100.0

    def test_variance_above_tolerance(self, db, seed):
        seed.sale(datetime(2024, 1, 10, 9), subtotal="10000.00", itbis="1700.00", total="11700.00")
        db.commit()

        report = generate(db, "itbis")

        assert report.tax_variance.compliant is False
        assert report.tax_variance.variance == 100.0

    def test_breakdowns_and_trend(self, db, seed):
        seed.sale(datetime(2024, 1, 2, 9), total="118.00", itbis="18.00", ncf="B0200000001", ncf_type="B02")
        seed.sale(datetime(2024, 1, 3, 9), total="236.00", itbis="36.00",
                  payment_method=PaymentMethod.CARD, ncf="B0100000001", ncf_type="B01")
        seed.sale(datetime(2024, 1, 3, 12), total="100.00", itbis="0.00")
        db.commit()

        report = generate(db, "itbis")

        keys = {row.key: row for row in report.tax_by_ncf}
        assert set(keys) == {"B01", "B02", "SIN_NCF"}
        assert keys["SIN_NCF"].label == "Sin NCF"
        assert report.compliance_metrics.exempt_transactions == 1
        assert report.compliance_metrics.regular_transactions == 2
        assert [t.day for t in report.daily_trends] == [date(2024, 1, 2), date(2024, 1, 3)]
        assert report.insights.dominant_ncf_type == "B01"
        assert report.insights.tax_collection_trend == "increasing"
        assert report.insights.preferred_payment_method == "CARD"


# ===== NCF =====

class TestNCFReport:

    def test_low_sequence(self, db, seed):
        seed.sequence("B01", current=9950, maximum=10000)
        db.commit()

        report = generate(db, "ncf")

        status = report.sequences[0]
        assert status.remaining == 50
        assert status.status == "low"
        assert status.used + status.remaining <= status.to_number
        assert report.summary.alert_sequences == 1
        assert "1 secuencias con stock bajo" in report.compliance.issues

    def test_usage_in_period(self, db, seed):
        seed.sequence("B02", current=2, maximum=1000)
        customer = seed.customer("Juan Rodríguez", cedula="00112345678")
        seed.sale(datetime(2024, 1, 1, 8), ncf="B0200000001", ncf_type="B02", customer=customer)
        seed.sale(datetime(2024, 1, 3, 8), ncf="B0200000002", ncf_type="B02")
        seed.sale(datetime(2024, 1, 3, 9))
        db.commit()

        report = generate(db, "ncf", date(2024, 1, 1), date(2024, 1, 3))

        status = report.sequences[0]
        assert status.used == 2
        assert status.status == "ok"
        assert status.last_used == datetime(2024, 1, 3, 8)
        assert report.summary.last_ncf_issued == "B0200000002"
        assert report.summary.total_used_in_period == 2
        assert [d.total_ncf for d in report.daily_usage] == [1, 0, 1]
        assert report.usage_patterns.by_weekday == {0: 1, 2: 1}
        assert {s.key for s in report.by_customer_type} == {"GENERAL", "INDIVIDUAL"}
        assert report.compliance.sequential_compliance is True
        assert report.compliance.compliance_score == 100.0
        assert report.insights.most_used_ncf_type == "B02"

    def test_duplicate_and_invalid_ncfs(self, db, seed):
        seed.sale(datetime(2024, 1, 5, 8), ncf="B0100000001", ncf_type="B01")
        seed.sale(datetime(2024, 1, 5, 9), ncf="B0100000001", ncf_type="B01")
        seed.sale(datetime(2024, 1, 5, 10), ncf="B01-1", ncf_type="B01")
        db.commit()

        report = generate(db, "ncf")

        assert report.compliance.duplicate_count == 1
        assert report.compliance.invalid_format_count == 1
        assert report.compliance.sequential_compliance is False
        assert report.compliance.compliance_score == pytest.approx(33.33, abs=0.01)


# ===== INVENTORY =====

class TestInventoryReport:

    def test_statuses_and_alerts(self, db, seed):
        category = seed.category("Víveres")
        seed.product("Arroz", stock=0, category=category)
        seed.product("Habichuelas", stock=3, min_stock=5, category=category)
        fast = seed.product("Aceite", stock=10, min_stock=2, category=category)
        seed.product("Licuadora", price="3500.00", cost="2500.00", stock=2, min_stock=1)
        seed.sale(NOW - timedelta(days=10), items=[(fast, 50)])
        db.commit()

        report = ReportOrchestrator(db, now=NOW).generate("inventory")

        by_name = {p.name: p for p in report.products}
        assert by_name["Arroz"].status == "out_of_stock"
        assert by_name["Habichuelas"].status == "low_stock"
        assert by_name["Aceite"].status == "reorder_soon"
        assert by_name["Aceite"].stock_days == 6
        assert by_name["Licuadora"].stock_days == 999
        assert by_name["Licuadora"].margin == pytest.approx(28.6)
        assert by_name["Licuadora"].category == "Sin categoría"

        assert report.alerts.critical_stock == 1
        assert report.alerts.low_stock == 1
        assert report.alerts.reorder_needed == 1
        assert report.alerts.high_value_slow_moving == 1
        assert report.date_from is None

        rollup = report.categories[0]
        assert rollup.name == "Víveres"
        assert rollup.product_count == 3
        assert rollup.out_of_stock_count == 1

    def test_sales_older_than_window_are_ignored(self, db, seed):
        product = seed.product("Café", stock=40)
        seed.sale(NOW - timedelta(days=45), items=[(product, 10)])
        db.commit()

        report = ReportOrchestrator(db, now=NOW).generate("inventory")

        assert report.products[0].total_sold_30_days == 0
        assert report.insights.slow_moving[0].name == "Café"

    def test_daily_report_uses_same_alert_rules(self, db, seed):
        seed.product("Arroz", stock=0)
        seed.product("Habichuelas", stock=3, min_stock=5)
        db.commit()

        daily = generate(db, "daily")

        assert daily.alerts.critical_stock == 1
        assert daily.alerts.low_stock == 1


# ===== CUSTOMERS =====

class TestCustomersReport:

    def test_loyalty_score_matches_formula(self, db, seed):
        customer = seed.customer("Farmacia Central", CustomerType.BUSINESS, rnc="130000001")
        for days_ago in (27, 20, 12, 8, 3):
            seed.sale(NOW - timedelta(days=days_ago), total="1200.00", itbis="183.05", customer=customer)
        db.commit()

        report = generate(db, "customers", date(2024, 1, 2), date(2024, 1, 31))

        ranking = report.top_customers[0]
        assert ranking.total_sales == 5
        assert ranking.total_amount == 6000.0
        assert ranking.loyalty_score == loyalty_score(5, Decimal("6000"), 30, 3)
        assert ranking.loyalty_score == 100
        assert ranking.document_type == "RNC"

    def test_segmentation(self, db, seed):
        category = seed.category("Limpieza")
        soap = seed.product("Jabón", price="50.00", category=category)
        business = seed.customer("Hotel Caribe", CustomerType.BUSINESS, rnc="101000001")
        person = seed.customer("María López", cedula="00100000001")
        seed.customer("Cliente Inactivo", cedula="00200000002")

        seed.sale(datetime(2024, 1, 10, 9), total="500.00", itbis="76.27", customer=business,
                  payment_method=PaymentMethod.TRANSFER, items=[(soap, 10)])
        seed.sale(datetime(2024, 1, 11, 9), total="50.00", itbis="7.63", customer=person, items=[(soap, 1)])
        seed.sale(datetime(2024, 1, 12, 9), total="75.00", itbis="11.44")
        db.commit()

        report = generate(db, "customers")

        assert report.summary.total_customers == 3
        assert report.summary.active_customers == 2
        assert report.summary.inactive_customers == 1
        assert report.summary.total_revenue == 550.0

        segments = {s.customer_type: s for s in report.segmentation.by_type}
        assert segments["BUSINESS"].label == "Empresas"
        assert segments["INDIVIDUAL"].count == 2
        assert segments["INDIVIDUAL"].active_count == 1

        assert report.segmentation.payment_methods[0].method == "TRANSFER"
        business_prefs = report.segmentation.category_preferences["BUSINESS"]
        assert business_prefs[0].category == "Limpieza"
        assert business_prefs[0].quantity == 10

        assert [c.name for c in report.top_customers] == ["Hotel Caribe", "María López"]
        assert all(0 <= c.loyalty_score <= 100 for c in report.top_customers)
        assert report.insights.documentation_recommendation == "Documentación empresarial completa"


# ===== AUDIT =====

class TestAuditReport:

    def test_transactions_and_security(self, db, seed):
        cashier = seed.user("Rosa", "Díaz", role=UserRole.MANAGER)
        product = seed.product("Pan", price="10.00")
        customer = seed.customer("Pedro Martínez", cedula="00300000003")
        seed.sale(datetime(2024, 1, 20, 9), total="20.00", itbis="3.05", ncf="B0200000001", ncf_type="B02",
                  cashier=cashier, customer=customer, items=[(product, 2)])
        seed.sale(datetime(2024, 1, 21, 9), total="10.00", itbis="1.53", items=[(product, 1)])
        db.commit()

        report = generate(db, "audit")

        assert report.summary.total_transactions == 2
        assert report.summary.total_items == 2
        newest, oldest = report.transactions
        assert newest.created_at > oldest.created_at
        assert newest.cashier_name == "N/A"
        assert newest.customer_name == "Cliente General"
        assert oldest.cashier_role == "MANAGER"
        assert oldest.items[0].total == 20.0

        checks = report.security_analysis.checks
        assert checks.ncf_compliance == 50.0
        assert checks.user_tracking == 50.0
        assert "Transacciones sin usuario asignado" in report.security_analysis.issues
        assert report.ncf_usage.total_with_ncf == 1
        assert report.user_activity.active_users == 1
        assert report.user_activity.total_users == 1
        assert report.insights.compliance_status == "NEEDS_ATTENTION"

    def test_high_value_risk(self, db, seed):
        for day in range(1, 11):
            seed.sale(datetime(2024, 1, day, 12), total="100.00", itbis="15.25")
        seed.sale(datetime(2024, 1, 15, 12), total="10000.00", itbis="1525.42")
        db.commit()

        report = generate(db, "audit")

        assert report.risk_analysis.high_value_threshold == 3000.0
        assert len(report.risk_analysis.high_value_transactions) == 1
        assert report.risk_analysis.risk_score == 20
        assert report.payment_analysis.high_cash_volume is True


# ===== DGII =====

class TestDGIIReport:

    def test_summary(self, db, seed):
        business = seed.customer("Constructora Norte", CustomerType.BUSINESS, rnc="101234567")
        seed.sale(datetime(2024, 1, 5, 9), subtotal="1000.00", itbis="180.00", total="1180.00",
                  ncf="B0100000001", ncf_type="B01", customer=business)
        seed.sale(datetime(2024, 1, 6, 9), subtotal="1000.00", itbis="180.00", total="1180.00",
                  ncf="B0200000001", ncf_type="B02")
        seed.sale(datetime(2024, 1, 7, 9), subtotal="1000.00", itbis="180.00", total="1180.00")
        db.commit()

        report = generate(db, "dgii")

        assert report.summary.total_sales == 3
        assert report.summary.sales_with_ncf == 2
        assert report.summary.sales_with_valid_rnc == 1
        assert report.compliance_status.ncf_compliance == pytest.approx(66.67)
        assert report.compliance_status.itbis_collection is True
        assert report.compliance_status.sequential_control is True
        # (66.67 + 100 + 100) / 3
        assert report.summary.compliance_score == 89
        assert 0 <= report.summary.compliance_score <= 100

    def test_individuals_counted_by_valid_cedula(self, db, seed):
        valid = seed.customer("María Pérez", cedula="00112345678")
        invalid = seed.customer("Juan Gómez", cedula="001-123")
        # una empresa con cédula no cuenta como persona física
        business = seed.customer("Colmado Sur", CustomerType.BUSINESS, cedula="00198765432")
        for customer in (valid, valid, invalid, business):
            seed.sale(datetime(2024, 1, 10, 9), customer=customer)
        seed.sale(datetime(2024, 1, 11, 9))
        db.commit()

        report = generate(db, "dgii")

        assert report.summary.total_sales == 5
        assert report.summary.sales_with_valid_cedula == 2
        assert report.summary.sales_with_valid_rnc == 0

    def test_empty_period_is_fully_compliant(self, db):
        report = generate(db, "dgii")

        assert report.summary.total_sales == 0
        assert report.compliance_status.ncf_compliance == 100.0
