"""
Report document model

Converts each typed report result into a ReportDocument: an ordered list
of titled tables with already formatted cells. Both the PDF and the CSV
back ends render from this same structure.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from app.core.config import settings

from ..exceptions import UnsupportedReportTypeError
from ..schemas import (
    AuditReport,
    CustomersReport,
    DailySalesReport,
    DGIIReport,
    InventoryReport,
    ITBISReport,
    NCFReport,
)
from ..utils import format_date, format_datetime, format_number, format_percent
from ..utils import format_currency as _format_currency


REPORT_TITLES = {
    "daily": "Ventas Diarias",
    "itbis": "ITBIS",
    "ncf": "Números de Comprobante Fiscal",
    "inventory": "Inventario",
    "customers": "Clientes",
    "audit": "Auditoría",
    "dgii": "DGII",
}

STATUS_LABELS = {
    "low": "Bajo",
    "warning": "Advertencia",
    "ok": "Normal",
    "out_of_stock": "Agotado",
    "low_stock": "Stock bajo",
    "reorder_soon": "Reordenar",
    "in_stock": "Disponible",
}

SUMMARY_HEADERS = ["Concepto", "Valor"]


@dataclass
class Section:
    title: str
    headers: List[str]
    rows: List[List[str]]
    max_lengths: Optional[List[int]] = None


@dataclass
class ReportDocument:
    report_type: str
    title: str
    date_from: Optional[date]
    date_to: Optional[date]
    generated_at: datetime
    sections: List[Section] = field(default_factory=list)

    @property
    def period(self) -> str:
        if self.date_from is None or self.date_to is None:
            return "Últimos 30 días"
        return f"{format_date(self.date_from)} - {format_date(self.date_to)}"


def currency(value) -> str:
    return _format_currency(value, settings.CURRENCY_SYMBOL)


def yes_no(value: bool) -> str:
    return "Sí" if value else "No"


def _summary(title: str, pairs) -> Section:
    return Section(title, SUMMARY_HEADERS, [[label, value] for label, value in pairs])


def _list_section(title: str, lines: List[str]) -> Optional[Section]:
    if not lines:
        return None
    return Section(title, ["#", "Descripción"], [[str(i), line] for i, line in enumerate(lines, 1)])


# ===== BUILDERS =====

def _daily(report: DailySalesReport) -> List[Section]:
    s = report.sales_summary
    sections = [
        _summary("Resumen de ventas", [
            ("Total de ventas", str(s.total_sales)),
            ("Subtotal", currency(s.subtotal)),
            ("ITBIS", currency(s.total_tax)),
            ("Monto total", currency(s.total_amount)),
            ("Ticket promedio", currency(s.average_ticket)),
            ("Efectivo", currency(s.total_cash)),
            ("Tarjeta", currency(s.total_card)),
            ("Transferencia", currency(s.total_transfer)),
            ("Unidades vendidas", str(s.units_sold)),
        ]),
        Section("Métodos de pago", ["Método", "Cant", "Monto", "%"], [
            [p.label, str(p.transactions), currency(p.amount), format_percent(p.percentage)]
            for p in report.payment_breakdown
        ]),
        Section("Comprobantes fiscales (NCF)", ["Tipo", "Cant", "Monto"], [
            [n.ncf_type, str(n.count), currency(n.amount)] for n in report.ncf_breakdown
        ]),
        Section("Productos más vendidos", ["#", "Producto", "Categoría", "Cant", "Ingresos"], [
            [str(i), p.name, p.category, str(p.quantity), currency(p.revenue)]
            for i, p in enumerate(report.top_products, 1)
        ], max_lengths=[3, 35, 20, 6, 18]),
        Section("Mejores clientes", ["#", "Cliente", "RNC/Cédula", "Compras", "Total"], [
            [str(i), c.name, c.document, str(c.total_purchases), currency(c.total_amount)]
            for i, c in enumerate(report.top_customers, 1)
        ], max_lengths=[3, 35, 15, 8, 18]),
        Section("Rendimiento de cajeros", ["Cajero", "Ventas", "Monto"], [
            [c.cashier, str(c.sales), currency(c.amount)] for c in report.cashier_performance
        ]),
        Section("Ventas por hora", ["Hora", "Cant", "Monto"], [
            [f"{h.hour:02d}:00", str(h.transactions), currency(h.amount)]
            for h in report.sales_by_hour if h.transactions
        ]),
        _summary("Alertas de inventario", [
            ("Sin stock", str(report.alerts.critical_stock)),
            ("Stock bajo", str(report.alerts.low_stock)),
            ("Reorden necesario", str(report.alerts.reorder_needed)),
            ("Alto valor sin movimiento", str(report.alerts.high_value_slow_moving)),
        ]),
    ]
    return sections


def _itbis(report: ITBISReport) -> List[Section]:
    return [
        _summary("Resumen de ITBIS", [
            ("ITBIS total", currency(report.total_itbis)),
            ("Base imponible", currency(report.taxable_base)),
            ("Total con impuestos", currency(report.total_with_tax)),
            ("Transacciones", str(report.transaction_count)),
            ("ITBIS promedio", currency(report.avg_itbis_per_transaction)),
            ("Tasa efectiva", format_percent(report.effective_rate)),
            ("Cumplimiento de tasa", format_percent(report.compliance_metrics.compliance_percentage)),
            ("Transacciones exentas", str(report.compliance_metrics.exempt_transactions)),
            ("Variación ITBIS", currency(report.tax_variance.variance)),
            ("ITBIS conforme", yes_no(report.tax_variance.compliant)),
        ]),
        Section("ITBIS por tipo de NCF", ["Tipo", "Descripción", "Base", "ITBIS", "%"], [
            [t.key, t.label, currency(t.base), currency(t.tax), format_percent(t.percentage)]
            for t in report.tax_by_ncf
        ], max_lengths=[8, 40, 18, 18, 10]),
        Section("ITBIS por método de pago", ["Método", "Cant", "Base", "ITBIS", "%"], [
            [t.label, str(t.transactions), currency(t.base), currency(t.tax), format_percent(t.percentage)]
            for t in report.tax_by_payment_method
        ]),
        Section("Tendencia diaria", ["Fecha", "Cant", "Base", "ITBIS", "Total"], [
            [format_date(d.day), str(d.transactions), currency(d.subtotal), currency(d.itbis), currency(d.total)]
            for d in report.daily_trends
        ]),
    ]


def _ncf(report: NCFReport) -> List[Section]:
    s = report.summary
    sections = [
        _summary("Resumen de NCF", [
            ("Secuencias activas", str(s.total_sequences)),
            ("NCF emitidos en el período", str(s.total_used_in_period)),
            ("Monto facturado", currency(s.total_sales_amount)),
            ("ITBIS", currency(s.total_itbis)),
            ("Último NCF emitido", s.last_ncf_issued or "N/A"),
            ("Secuencias en alerta", str(s.alert_sequences)),
            ("Consumo diario promedio", format_number(s.avg_daily_consumption)),
            ("Días estimados restantes", str(report.insights.estimated_days_remaining)),
        ]),
        Section("Secuencias", ["Tipo", "Descripción", "Actual", "Máximo", "Usados", "Restantes", "%", "Estado"], [
            [q.type, q.description, str(q.current), str(q.to_number), str(q.used), str(q.remaining),
             format_percent(q.percentage), STATUS_LABELS[q.status]]
            for q in report.sequences
        ], max_lengths=[5, 30, 9, 9, 7, 9, 9, 11]),
        Section("Uso diario", ["Fecha", "Cant", "Ingresos", "ITBIS"], [
            [format_date(d.day), str(d.total_ncf), currency(d.revenue), currency(d.itbis)]
            for d in report.daily_usage
        ]),
        _summary("Cumplimiento", [
            ("Puntaje", format_percent(report.compliance.compliance_score)),
            ("NCF duplicados", str(report.compliance.duplicate_count)),
            ("Formato inválido", str(report.compliance.invalid_format_count)),
            ("Control secuencial", yes_no(report.compliance.sequential_compliance)),
        ]),
        _list_section("Incidencias", report.compliance.issues),
        _list_section("Acciones urgentes", report.insights.urgent_actions),
        _list_section("Recomendaciones", report.insights.recommendations),
    ]
    return [section for section in sections if section]


def _inventory(report: InventoryReport) -> List[Section]:
    s = report.summary
    return [
        _summary("Resumen de inventario", [
            ("Productos activos", str(s.total_products)),
            ("Categorías", str(s.total_categories)),
            ("Valor de inventario", currency(s.total_inventory_value)),
            ("Valor al costo", currency(s.total_cost_value)),
            ("Ingresos 30 días", currency(s.total_revenue_30_days)),
            ("Margen promedio", format_percent(s.average_margin)),
            ("Rotación anualizada", format_number(s.inventory_turnover)),
            ("Sin stock", str(s.out_of_stock_count)),
            ("Stock bajo", str(s.low_stock_count)),
            ("Reordenar pronto", str(s.reorder_soon_count)),
        ]),
        Section("Productos", ["Producto", "Categoría", "Stock", "Precio", "Valor", "Margen %", "Estado"], [
            [p.name, p.category, str(p.stock), currency(p.price), currency(p.value),
             format_number(p.margin, 1), STATUS_LABELS[p.status]]
            for p in report.products
        ], max_lengths=[30, 18, 7, 16, 18, 8, 12]),
        Section("Categorías", ["Categoría", "Cant", "Valor", "Ingresos", "Margen %"], [
            [c.name, str(c.product_count), currency(c.total_value), currency(c.total_revenue_30_days),
             format_number(c.average_margin, 1)]
            for c in report.categories
        ]),
        _summary("Alertas", [
            ("Sin stock", str(report.alerts.critical_stock)),
            ("Stock bajo", str(report.alerts.low_stock)),
            ("Reorden necesario", str(report.alerts.reorder_needed)),
            ("Alto valor sin movimiento", str(report.alerts.high_value_slow_moving)),
            ("Margen negativo", str(report.alerts.negative_margin)),
        ]),
    ]


def _customers(report: CustomersReport) -> List[Section]:
    s = report.summary
    insights = report.insights
    return [
        _summary("Resumen de clientes", [
            ("Total de clientes", str(s.total_customers)),
            ("Activos", str(s.active_customers)),
            ("Inactivos", str(s.inactive_customers)),
            ("Empresas", str(s.business_customers)),
            ("Individuales", str(s.individual_customers)),
            ("Con RNC", str(s.customers_with_rnc)),
            ("Con cédula", str(s.customers_with_cedula)),
            ("Ingresos", currency(s.total_revenue)),
            ("Valor promedio por orden", currency(s.average_order_value)),
            ("Valor promedio por cliente", currency(s.average_customer_value)),
        ]),
        Section("Segmentación", ["Tipo", "Cant", "Activos", "Ingresos", "%"], [
            [seg.label, str(seg.count), str(seg.active_count), currency(seg.revenue), format_percent(seg.percentage)]
            for seg in report.segmentation.by_type
        ]),
        Section("Métodos de pago", ["Método", "Clientes", "Cant", "Monto", "%"], [
            [p.label, str(p.customers), str(p.transactions), currency(p.amount), format_percent(p.percentage)]
            for p in report.segmentation.payment_methods
        ]),
        Section("Clientes", ["#", "Cliente", "Tipo", "RNC/Cédula", "Compras", "Total", "Lealtad"], [
            [str(i), c.name, c.document_type, c.document_number, str(c.total_sales),
             currency(c.total_amount), str(c.loyalty_score)]
            for i, c in enumerate(report.top_customers, 1)
        ], max_lengths=[4, 30, 7, 15, 8, 18, 7]),
        _summary("Indicadores", [
            ("Tasa de retención", format_percent(insights.retention_rate)),
            ("Retención", insights.retention_recommendation),
            ("Crecimiento", insights.growth_opportunity),
            ("Gasto promedio", insights.average_spending),
            ("Cobertura RNC", insights.rnc_coverage),
            ("Documentación empresarial", insights.business_documentation),
            ("Documentación", insights.documentation_recommendation),
        ]),
    ]


def _audit(report: AuditReport) -> List[Section]:
    s = report.summary
    security = report.security_analysis
    sections = [
        _summary("Resumen de auditoría", [
            ("Transacciones", str(s.total_transactions)),
            ("Ingresos", currency(s.total_revenue)),
            ("ITBIS", currency(s.total_tax)),
            ("Artículos", str(s.total_items)),
            ("Días", str(s.days)),
            ("Transacción promedio", currency(s.average_transaction)),
            ("Estado de cumplimiento", report.insights.compliance_status),
            ("Puntaje de riesgo", str(report.risk_analysis.risk_score)),
        ]),
        Section("Transacciones", ["Fecha", "Número", "NCF", "Cliente", "Cajero", "Método", "Total"], [
            [format_datetime(t.created_at), t.sale_number, t.ncf or "", t.customer_name, t.cashier_name,
             t.payment_method, currency(t.total)]
            for t in report.transactions
        ], max_lengths=[16, 12, 11, 22, 16, 8, 16]),
        Section("Actividad de cajeros", ["Nombre", "Cant", "Ingresos", "Promedio"], [
            [u.name, str(u.transactions), currency(u.revenue), currency(u.avg_transaction_value)]
            for u in report.user_activity.user_performance
        ]),
        Section("Métodos de pago", ["Método", "Cant", "Monto", "%"], [
            [m.label, str(m.count), currency(m.amount), format_percent(m.percentage)]
            for m in report.payment_analysis.methods
        ]),
        _summary("Controles de seguridad", [
            ("NCF válido", format_percent(security.checks.ncf_compliance)),
            ("Cajero identificado", format_percent(security.checks.user_tracking)),
            ("Cliente documentado", format_percent(security.checks.customer_documentation)),
            ("Pago válido", format_percent(security.checks.payment_validation)),
            ("Puntaje", format_percent(security.compliance_score)),
        ]),
        Section("Transacciones de alto valor", ["Fecha", "Cliente", "Cajero", "Monto"], [
            [format_datetime(h.created_at), h.customer, h.cashier, currency(h.amount)]
            for h in report.risk_analysis.high_value_transactions
        ]),
        _list_section("Hallazgos", report.insights.key_findings),
        _list_section("Recomendaciones", report.insights.recommendations),
    ]
    return [section for section in sections if section]


def _dgii(report: DGIIReport) -> List[Section]:
    status = report.compliance_status
    s = report.summary
    return [
        _summary("Cumplimiento DGII", [
            ("Ventas con NCF", format_percent(status.ncf_compliance)),
            ("Ventas a empresas con RNC válido", format_percent(status.rnc_validation)),
            ("Recaudación de ITBIS", yes_no(status.itbis_collection)),
            ("Control secuencial", yes_no(status.sequential_control)),
            ("Puntaje general", str(s.compliance_score)),
        ]),
        _summary("Resumen", [
            ("Total de ventas", str(s.total_sales)),
            ("Ventas con NCF", str(s.sales_with_ncf)),
            ("Ventas con RNC válido", str(s.sales_with_valid_rnc)),
            ("Ventas con cédula válida", str(s.sales_with_valid_cedula)),
            ("Base imponible", currency(s.taxable_base)),
            ("ITBIS", currency(s.total_itbis)),
            ("ITBIS esperado", currency(report.tax_variance.expected_tax)),
            ("Variación", format_percent(report.tax_variance.variance_percentage)),
        ]),
    ]


BUILDERS: Dict[str, Callable] = {
    "daily": _daily,
    "itbis": _itbis,
    "ncf": _ncf,
    "inventory": _inventory,
    "customers": _customers,
    "audit": _audit,
    "dgii": _dgii,
}


def build_document(result) -> ReportDocument:
    builder = BUILDERS.get(getattr(result, "report_type", None))
    if builder is None:
        raise UnsupportedReportTypeError(report_type=getattr(result, "report_type", None))

    return ReportDocument(
        report_type=result.report_type,
        title=REPORT_TITLES[result.report_type],
        date_from=result.date_from,
        date_to=result.date_to,
        generated_at=result.generated_at,
        sections=builder(result),
    )
