"""
Tests de las funciones puras de cumplimiento e inteligencia de negocio
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.common.validators import validate_cedula, validate_ncf, validate_rnc
from app.modules.reports.schemas import NCFSequenceStatus
from app.modules.reports.services.compliance import (
    build_insights,
    estimate_days_remaining,
    evaluate_compliance,
    find_duplicates,
    sequence_status,
)
from app.modules.reports.services.intelligence import (
    audit_insights,
    check_tax_variance,
    collection_trend,
    compliance_status,
    customer_insights,
    days_since,
    high_value_threshold,
    loyalty_score,
    risk_score,
    round_half_up,
    tax_compliance_percentage,
)


def make_status(type="B01", current=0, maximum=1000):
    remaining = maximum - current
    return NCFSequenceStatus(
        type=type,
        description="",
        current=current,
        to_number=maximum,
        remaining=remaining,
        percentage=current / maximum * 100,
        status=sequence_status(remaining),
    )


# ===== LOYALTY =====

class TestLoyaltyScore:

    def test_reference_customer(self):
        # frecuencia 40 (tope) + recencia 30 - 3/7 + valor 30 (tope)
        assert loyalty_score(5, Decimal("6000"), 30, 3) == 100

    def test_no_purchases(self):
        assert loyalty_score(0, 0, 30, 0) == 0

    def test_net_credit_history_stays_in_range(self):
        # solo frecuencia: 1 compra en 30 días
        assert loyalty_score(1, Decimal("0"), 30, 300) == 10
        assert loyalty_score(1, Decimal("-2000"), 30, 300) == 0
        assert loyalty_score(3, Decimal("-150"), 30, 1000) >= 0

    @pytest.mark.parametrize("count,spent,days,since", [
        (1, 10, 365, 400),
        (200, 1_000_000, 1, 0),
        (3, 500, 90, 45),
    ])
    def test_bounded(self, count, spent, days, since):
        assert 0 <= loyalty_score(count, spent, days, since) <= 100

    def test_recency_decreases_score(self):
        assert loyalty_score(2, 500, 60, 1) > loyalty_score(2, 500, 60, 60)

    def test_days_since(self):
        now = datetime(2024, 1, 31, 12)
        assert days_since(datetime(2024, 1, 28, 12), now) == 3
        assert days_since(datetime(2024, 1, 31, 11), now) == 1
        assert days_since(datetime(2024, 2, 1), now) == 0

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2


# ===== ITBIS =====

class TestTaxVariance:

    def test_exact_rate(self):
        variance = check_tax_variance(Decimal("10000"), Decimal("1800"))
        assert variance.compliant is True
        assert variance.variance == 0.0
        assert variance.expected_tax == 1800.0

    def test_above_tolerance(self):
        # 1 / 1800 = 0.0556%
        assert check_tax_variance(Decimal("10000"), Decimal("1801")).compliant is False

    def test_within_tolerance(self):
        # 0.1 / 1800 = 0.0056%
        assert check_tax_variance(Decimal("10000"), Decimal("1800.10")).compliant is True

    def test_no_base(self):
        variance = check_tax_variance(0, 0)
        assert variance.variance_percentage == 0.0
        assert variance.compliant is True

    def test_compliance_percentage(self):
        assert tax_compliance_percentage(18.0) == 100.0
        assert tax_compliance_percentage(10.0) == 92.0
        assert tax_compliance_percentage(200.0) == 0.0

    @pytest.mark.parametrize("values,expected", [
        ([], "stable"),
        ([5.0], "stable"),
        ([1.0, 2.0], "increasing"),
        ([3.0, 1.0, 2.0], "decreasing"),
        ([2.0, 9.0, 2.0], "stable"),
    ])
    def test_collection_trend(self, values, expected):
        assert collection_trend(values) == expected


# ===== RISK AND INSIGHTS =====

class TestRisk:

    def test_threshold(self):
        assert high_value_threshold([]) == 0.0
        assert high_value_threshold([100.0, 200.0]) == 450.0

    def test_risk_score(self):
        assert risk_score(0, 0) == 0
        assert risk_score(1, 100) == 0
        assert risk_score(6, 100) == 20

    def test_compliance_status(self):
        assert compliance_status(95) == "EXCELLENT"
        assert compliance_status(70) == "GOOD"
        assert compliance_status(69.9) == "NEEDS_ATTENTION"

    def test_audit_insights_defaults(self):
        insights = audit_insights(100, 2, 0, [])
        assert insights.compliance_status == "EXCELLENT"
        assert "2 usuarios activos registrados" in insights.key_findings
        assert insights.recommendations == [
            "Mantener prácticas actuales de cumplimiento",
            "Realizar auditorías periódicas",
        ]
        assert insights.next_actions == []

    def test_audit_insights_high_risk(self):
        insights = audit_insights(50, 0, 60, ["Verificar emisión de NCF en todas las ventas"])
        assert insights.next_actions == ["Revisar transacciones de alto valor"]
        assert insights.recommendations == ["Verificar emisión de NCF en todas las ventas"]

    def test_customer_insights(self):
        insights = customer_insights(
            total_customers=10,
            active_customers=2,
            business_customers=4,
            business_with_rnc=3,
            customers_with_rnc=3,
            total_revenue=5000.0,
        )
        assert insights.retention_rate == 20.0
        assert insights.retention_recommendation.startswith("Implementar programa")
        assert insights.growth_opportunity == "Buena penetración en sector empresarial"
        assert insights.average_spending == "Promedio de RD$ 2,500.00 por cliente activo"
        assert insights.business_documentation == "75.0% empresas con RNC válido"


# ===== NCF COMPLIANCE =====

class TestNCFCompliance:

    @pytest.mark.parametrize("remaining,expected", [
        (0, "low"), (99, "low"), (100, "warning"), (499, "warning"), (500, "ok"),
    ])
    def test_sequence_status(self, remaining, expected):
        assert sequence_status(remaining) == expected

    def test_find_duplicates(self):
        assert find_duplicates(["B0100000001", "B0100000001", None, "B0100000002"]) == {"B0100000001"}

    def test_no_ncfs_is_fully_compliant(self):
        result = evaluate_compliance([], [])
        assert result.compliance_score == 100.0
        assert result.sequential_compliance is True
        assert result.issues == []

    def test_score_never_negative(self):
        result = evaluate_compliance(["bad", "bad"], [])
        assert result.compliance_score == 0.0
        assert result.duplicate_count == 1
        assert result.invalid_format_count == 2

    def test_estimate_days_remaining(self):
        assert estimate_days_remaining([450, 5000], 10.0) == 45
        assert estimate_days_remaining([5000], 10.0) == 0
        assert estimate_days_remaining([450], 0.0) == 0

    def test_build_insights(self):
        sequences = [make_status("B01", current=950, maximum=1000), make_status("B02", current=850, maximum=1000)]
        insights = build_insights(
            sequences,
            {"B01": 3, "B02": 5},
            {date(2024, 1, 1): 2, date(2024, 1, 2): 6},
        )
        assert insights.most_used_ncf_type == "B02"
        assert insights.peak_usage_day == date(2024, 1, 2)
        assert insights.average_daily_consumption == 4.0
        # 50 restantes / 4 por día
        assert insights.estimated_days_remaining == 12
        assert "Solicitar nuevas secuencias NCF a DGII inmediatamente" in insights.urgent_actions
        assert "Secuencia B01 al 90% de capacidad" in insights.urgent_actions
        assert insights.recommendations == ["Planificar renovación de secuencia B02"]


# ===== VALIDATORS =====

class TestValidators:

    def test_rnc(self):
        assert validate_rnc("101-23456-7")
        assert validate_rnc("00112345678")
        assert not validate_rnc("1234")
        assert not validate_rnc(None)

    def test_cedula(self):
        assert validate_cedula("001-1234567-8")
        assert not validate_cedula("001-123")

    def test_ncf(self):
        assert validate_ncf("B0100000001")
        assert not validate_ncf("B01000001")
        assert not validate_ncf("b0100000001")
        assert not validate_ncf("")
