"""
Business intelligence helpers

Pure functions shared by the customer, ITBIS, audit and DGII reports:
loyalty scoring, ITBIS variance check, transaction risk scoring and the
Spanish recommendation texts shown to the business owner.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import List, Sequence

from ..schemas import AuditInsights, CustomerInsights, TaxVariance


ITBIS_RATE = Decimal("0.18")
STANDARD_ITBIS_PERCENT = 18
VARIANCE_TOLERANCE_PERCENT = 0.01

HIGH_VALUE_MULTIPLIER = 3
HIGH_VALUE_SHARE = 0.05
HIGH_VALUE_RISK_POINTS = 20
HIGH_RISK_SCORE = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ===== LOYALTY =====

def loyalty_score(purchase_count: int, total_spent, days_in_range: int, days_since_last: float) -> int:
    """
    Puntaje de lealtad 0-100.

    - Frecuencia: compras por mes * 10, máximo 40
    - Recencia: 30 menos una unidad por semana desde la última compra, mínimo 0
    - Valor: 30 puntos por cada RD$ 1,000 gastados, máximo 30
    """
    if purchase_count <= 0:
        return 0

    per_month = purchase_count / max(days_in_range, 1) * 30
    frequency = min(per_month * 10, 40)
    recency = max(30 - days_since_last / 7, 0)
    value = min(float(total_spent) / 1000 * 30, 30)

    # notas de crédito pueden dejar el gasto neto en negativo
    return round_half_up(min(max(frequency + recency + value, 0), 100))


def days_since(moment: datetime, now: datetime) -> int:
    return max(math.ceil((now - moment).total_seconds() / 86400), 0)


# ===== TAX =====

def check_tax_variance(taxable_base, actual_tax) -> TaxVariance:
    """ITBIS cobrado contra el 18% esperado sobre la base imponible"""
    base = Decimal(str(taxable_base or 0))
    actual = Decimal(str(actual_tax or 0))
    expected = base * ITBIS_RATE
    variance = abs(expected - actual)
    variance_pct = float(variance / expected * 100) if expected else 0.0

    return TaxVariance(
        expected_tax=round(float(expected), 2),
        actual_tax=round(float(actual), 2),
        variance=round(float(variance), 2),
        variance_percentage=round(variance_pct, 4),
        compliant=variance_pct <= VARIANCE_TOLERANCE_PERCENT,
    )


def tax_compliance_percentage(effective_rate: float) -> float:
    return min(max(100 - abs(effective_rate - STANDARD_ITBIS_PERCENT), 0.0), 100.0)


def collection_trend(daily_values: Sequence[float]) -> str:
    if len(daily_values) < 2:
        return "stable"
    first, last = daily_values[0], daily_values[-1]
    if last > first:
        return "increasing"
    if last < first:
        return "decreasing"
    return "stable"


# ===== RISK =====

def high_value_threshold(amounts: Sequence[float]) -> float:
    if not amounts:
        return 0.0
    return sum(amounts) / len(amounts) * HIGH_VALUE_MULTIPLIER


def risk_score(high_value_count: int, transaction_count: int) -> int:
    score = 0
    if transaction_count and high_value_count > transaction_count * HIGH_VALUE_SHARE:
        score += HIGH_VALUE_RISK_POINTS
    return min(score, 100)


# ===== RECOMMENDATIONS =====

def customer_insights(
    total_customers: int,
    active_customers: int,
    business_customers: int,
    business_with_rnc: int,
    customers_with_rnc: int,
    total_revenue: float,
    currency: str = "RD$",
) -> CustomerInsights:
    retention_rate = active_customers / total_customers * 100 if total_customers else 0.0

    if active_customers < total_customers * 0.3:
        retention_recommendation = "Implementar programa de fidelización para reactivar clientes inactivos"
    else:
        retention_recommendation = "Continuar con estrategias actuales de retención"

    if business_customers < total_customers * 0.3:
        growth_opportunity = "Oportunidad de crecimiento en sector empresarial"
    else:
        growth_opportunity = "Buena penetración en sector empresarial"

    if total_revenue > 0 and active_customers > 0:
        average_spending = f"Promedio de {currency} {total_revenue / active_customers:,.2f} por cliente activo"
    else:
        average_spending = "Necesario aumentar frecuencia de compras"

    if total_customers:
        rnc_coverage = f"{customers_with_rnc / total_customers * 100:.1f}% clientes con RNC"
    else:
        rnc_coverage = "0% clientes con RNC"

    if business_customers:
        business_documentation = f"{business_with_rnc / business_customers * 100:.1f}% empresas con RNC válido"
    else:
        business_documentation = "0% empresas documentadas"

    if business_with_rnc < business_customers:
        documentation_recommendation = "Completar documentación RNC para clientes empresariales"
    else:
        documentation_recommendation = "Documentación empresarial completa"

    return CustomerInsights(
        retention_rate=round(retention_rate, 1),
        retention_recommendation=retention_recommendation,
        growth_opportunity=growth_opportunity,
        average_spending=average_spending,
        growth_recommendation="Enfocar en incrementar valor promedio por transacción",
        rnc_coverage=rnc_coverage,
        business_documentation=business_documentation,
        documentation_recommendation=documentation_recommendation,
    )


def security_findings(ncf_compliance: float, user_tracking: float):
    """Issues y recomendaciones de los chequeos de seguridad"""
    issues: List[str] = []
    recommendations: List[str] = []

    if ncf_compliance < 95:
        issues.append("Algunas transacciones sin NCF válido")
        recommendations.append("Verificar emisión de NCF en todas las ventas")
    if user_tracking < 100:
        issues.append("Transacciones sin usuario asignado")
        recommendations.append("Asegurar que todos los cajeros estén identificados")

    return issues, recommendations


def compliance_status(score: float) -> str:
    if score >= 90:
        return "EXCELLENT"
    if score >= 70:
        return "GOOD"
    return "NEEDS_ATTENTION"


def audit_insights(
    security_score: float,
    active_users: int,
    risk: int,
    security_recommendations: List[str],
) -> AuditInsights:
    status = compliance_status(security_score)
    key_findings = {
        "EXCELLENT": ["Excelente cumplimiento de normativas DGII"],
        "GOOD": ["Buen cumplimiento con áreas de mejora"],
        "NEEDS_ATTENTION": ["Requiere atención inmediata en cumplimiento"],
    }[status]
    next_actions: List[str] = []

    if active_users > 0:
        key_findings.append(f"{active_users} usuarios activos registrados")

    if risk > HIGH_RISK_SCORE:
        key_findings.append("Patrones de riesgo detectados que requieren revisión")
        next_actions.append("Revisar transacciones de alto valor")

    recommendations = list(security_recommendations) or [
        "Mantener prácticas actuales de cumplimiento",
        "Realizar auditorías periódicas",
    ]

    return AuditInsights(
        summary="Sistema de auditoría completo para cumplimiento DGII",
        key_findings=key_findings,
        recommendations=recommendations,
        compliance_status=status,
        next_actions=next_actions,
    )
