"""
Pydantic schemas for Reports module

Each report type has one result model carrying a `report_type` literal;
ReportResult is the closed union of all of them, discriminated on that
field. Money is exposed as float rounded to two decimals; the services
keep Decimal internally until the result is built.
"""

from datetime import date, datetime
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ===== BASE =====

class ReportBase(BaseModel):
    """Campos comunes a todos los reportes"""
    date_from: Optional[date] = Field(None, description="Inicio del período")
    date_to: Optional[date] = Field(None, description="Fin del período")
    generated_at: datetime = Field(..., description="Fecha de generación")


class NCFTypeUsage(BaseModel):
    ncf_type: str
    count: int = 0
    revenue: float = 0.0
    percentage: float = 0.0


class StockAlerts(BaseModel):
    """Conteos de alertas de inventario"""
    critical_stock: int = Field(0, description="Productos sin stock")
    low_stock: int = Field(0, description="Productos en o bajo el mínimo")
    reorder_needed: int = Field(0, description="Menos de 7 días de stock")
    high_value_slow_moving: int = Field(0, description="Valor > RD$ 1,000 sin ventas en 30 días")


class TaxVariance(BaseModel):
    """Comparación del ITBIS cobrado contra el 18% de la base imponible"""
    expected_tax: float
    actual_tax: float
    variance: float
    variance_percentage: float
    compliant: bool


# ===== DAILY SALES =====

class DailySalesSummary(BaseModel):
    total_sales: int = 0
    subtotal: float = 0.0
    total_amount: float = 0.0
    total_tax: float = 0.0
    average_ticket: float = 0.0
    total_cash: float = 0.0
    total_card: float = 0.0
    total_transfer: float = 0.0
    units_sold: int = 0


class PaymentMethodTotal(BaseModel):
    method: str
    label: str
    transactions: int = 0
    amount: float = 0.0
    percentage: float = 0.0


class NCFTypeTotal(BaseModel):
    ncf_type: str
    count: int = 0
    amount: float = 0.0


class TopProduct(BaseModel):
    id: UUID
    name: str
    category: str
    quantity: int = 0
    revenue: float = 0.0


class TopCustomer(BaseModel):
    id: UUID
    name: str
    document: str
    total_purchases: int = 0
    total_amount: float = 0.0


class CashierPerformance(BaseModel):
    cashier_id: Optional[UUID] = None
    cashier: str
    sales: int = 0
    amount: float = 0.0


class HourlySales(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    transactions: int = 0
    amount: float = 0.0


class DailySalesReport(ReportBase):
    report_type: Literal["daily"] = "daily"
    sales_summary: DailySalesSummary
    payment_breakdown: List[PaymentMethodTotal] = []
    ncf_breakdown: List[NCFTypeTotal] = []
    top_products: List[TopProduct] = []
    top_customers: List[TopCustomer] = []
    cashier_performance: List[CashierPerformance] = []
    sales_by_hour: List[HourlySales] = []
    alerts: StockAlerts


# ===== ITBIS =====

class TaxBreakdown(BaseModel):
    key: str
    label: str
    tax: float = 0.0
    base: float = 0.0
    total: float = 0.0
    transactions: int = 0
    percentage: float = 0.0


class DailyTaxTrend(BaseModel):
    day: date
    itbis: float = 0.0
    subtotal: float = 0.0
    total: float = 0.0
    transactions: int = 0


class TaxComplianceMetrics(BaseModel):
    standard_rate: float = 18.0
    compliance_percentage: float = 0.0
    exempt_transactions: int = 0
    regular_transactions: int = 0


class ITBISInsights(BaseModel):
    peak_tax_day: Optional[DailyTaxTrend] = None
    dominant_ncf_type: Optional[str] = None
    preferred_payment_method: Optional[str] = None
    tax_collection_trend: Literal["increasing", "decreasing", "stable"] = "stable"


class ITBISReport(ReportBase):
    report_type: Literal["itbis"] = "itbis"
    total_itbis: float = 0.0
    taxable_base: float = 0.0
    total_with_tax: float = 0.0
    transaction_count: int = 0
    avg_itbis_per_transaction: float = 0.0
    effective_rate: float = 0.0
    tax_by_ncf: List[TaxBreakdown] = []
    tax_by_payment_method: List[TaxBreakdown] = []
    daily_trends: List[DailyTaxTrend] = []
    compliance_metrics: TaxComplianceMetrics
    tax_variance: TaxVariance
    insights: ITBISInsights


# ===== NCF =====

class NCFSequenceStatus(BaseModel):
    type: str
    description: str
    current: int
    from_number: int = 1
    to_number: int
    used: int = 0
    remaining: int
    percentage: float = 0.0
    status: Literal["low", "warning", "ok"]
    sales_in_period: int = 0
    revenue_in_period: float = 0.0
    itbis_in_period: float = 0.0
    average_ticket: float = 0.0
    last_used: Optional[datetime] = None


class NCFSummary(BaseModel):
    total_sequences: int = 0
    total_used_in_period: int = 0
    total_sales_amount: float = 0.0
    total_itbis: float = 0.0
    last_ncf_issued: Optional[str] = None
    alert_sequences: int = 0
    average_ticket: float = 0.0
    period_days: int = 0
    avg_daily_consumption: float = 0.0


class NCFUsagePatterns(BaseModel):
    by_type: List[NCFTypeUsage] = []
    by_hour: Dict[int, int] = {}
    by_weekday: Dict[int, int] = Field(default_factory=dict, description="0 = lunes")


class DailyNCFUsage(BaseModel):
    day: date
    total_ncf: int = 0
    revenue: float = 0.0
    itbis: float = 0.0
    by_type: Dict[str, int] = {}


class NCFSegment(BaseModel):
    key: str
    count: int = 0
    revenue: float = 0.0
    itbis: float = 0.0
    average_ticket: float = 0.0
    ncf_types: Dict[str, int] = {}


class NCFCompliance(BaseModel):
    sequential_compliance: bool = True
    duplicate_count: int = 0
    invalid_format_count: int = 0
    compliance_score: float = 100.0
    issues: List[str] = []


class NCFInsights(BaseModel):
    most_used_ncf_type: Optional[str] = None
    peak_usage_day: Optional[date] = None
    average_daily_consumption: float = 0.0
    estimated_days_remaining: int = 0
    recommendations: List[str] = []
    urgent_actions: List[str] = []


class NCFReport(ReportBase):
    report_type: Literal["ncf"] = "ncf"
    sequences: List[NCFSequenceStatus] = []
    summary: NCFSummary
    usage_patterns: NCFUsagePatterns
    daily_usage: List[DailyNCFUsage] = []
    by_customer_type: List[NCFSegment] = []
    by_payment_method: List[NCFSegment] = []
    compliance: NCFCompliance
    insights: NCFInsights


# ===== INVENTORY =====

class InventoryProduct(BaseModel):
    id: UUID
    name: str
    code: str
    category: str
    category_id: Optional[UUID] = None
    stock: int
    min_stock: int
    price: float
    cost: float
    value: float
    cost_value: float
    margin: float
    total_sold_30_days: int = 0
    revenue_30_days: float = 0.0
    average_weekly_sales: float = 0.0
    stock_days: int
    turnover_rate: float = 0.0
    status: Literal["out_of_stock", "low_stock", "reorder_soon", "in_stock"]
    last_sold: Optional[datetime] = None


class CategoryRollup(BaseModel):
    id: UUID
    name: str
    product_count: int = 0
    total_value: float = 0.0
    total_cost_value: float = 0.0
    total_revenue_30_days: float = 0.0
    average_margin: float = 0.0
    low_stock_count: int = 0
    out_of_stock_count: int = 0


class InventorySummary(BaseModel):
    total_products: int = 0
    total_categories: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    reorder_soon_count: int = 0
    total_inventory_value: float = 0.0
    total_cost_value: float = 0.0
    total_revenue_30_days: float = 0.0
    average_margin: float = 0.0
    inventory_turnover: float = 0.0


class InventoryInsights(BaseModel):
    top_selling: List[InventoryProduct] = []
    top_revenue: List[InventoryProduct] = []
    top_margin: List[InventoryProduct] = []
    slow_moving: List[InventoryProduct] = []
    low_stock: List[InventoryProduct] = []
    out_of_stock: List[InventoryProduct] = []
    reorder_soon: List[InventoryProduct] = []


class InventoryAlerts(StockAlerts):
    negative_margin: int = 0


class InventoryReport(ReportBase):
    report_type: Literal["inventory"] = "inventory"
    summary: InventorySummary
    products: List[InventoryProduct] = []
    categories: List[CategoryRollup] = []
    insights: InventoryInsights
    alerts: InventoryAlerts


# ===== CUSTOMERS =====

class CustomerSummary(BaseModel):
    total_customers: int = 0
    active_customers: int = 0
    inactive_customers: int = 0
    business_customers: int = 0
    individual_customers: int = 0
    customers_with_rnc: int = 0
    customers_with_cedula: int = 0
    total_revenue: float = 0.0
    total_sales: int = 0
    average_order_value: float = 0.0
    average_customer_value: float = 0.0


class CustomerSegment(BaseModel):
    customer_type: str
    label: str
    count: int = 0
    active_count: int = 0
    revenue: float = 0.0
    percentage: float = 0.0


class PaymentPreference(BaseModel):
    method: str
    label: str
    customers: int = 0
    amount: float = 0.0
    transactions: int = 0
    percentage: float = 0.0


class CategoryPreference(BaseModel):
    category: str
    revenue: float = 0.0
    quantity: int = 0
    customer_count: int = 0


class CustomerSegmentation(BaseModel):
    by_type: List[CustomerSegment] = []
    payment_methods: List[PaymentPreference] = []
    category_preferences: Dict[str, List[CategoryPreference]] = {}


class CustomerRanking(BaseModel):
    id: UUID
    name: str
    customer_type: str
    document_type: str
    document_number: str
    email: str
    phone: str
    total_sales: int = 0
    total_amount: float = 0.0
    total_tax: float = 0.0
    average_order_value: float = 0.0
    first_purchase: Optional[datetime] = None
    last_purchase: Optional[datetime] = None
    payment_methods: Dict[str, int] = {}
    loyalty_score: int = Field(0, ge=0, le=100)


class CustomerInsights(BaseModel):
    retention_rate: float = 0.0
    retention_recommendation: str
    growth_opportunity: str
    average_spending: str
    growth_recommendation: str
    rnc_coverage: str
    business_documentation: str
    documentation_recommendation: str


class CustomersReport(ReportBase):
    report_type: Literal["customers"] = "customers"
    summary: CustomerSummary
    segmentation: CustomerSegmentation
    top_customers: List[CustomerRanking] = []
    insights: CustomerInsights


# ===== AUDIT =====

class AuditSummary(BaseModel):
    total_transactions: int = 0
    total_revenue: float = 0.0
    total_tax: float = 0.0
    total_items: int = 0
    days: int = 0
    average_transaction: float = 0.0
    average_items_per_sale: float = 0.0


class AuditItem(BaseModel):
    product_id: UUID
    product_name: str
    product_code: Optional[str] = None
    category: str
    quantity: int
    unit_price: float
    total: float


class AuditTransaction(BaseModel):
    id: UUID
    sale_number: str
    ncf: Optional[str] = None
    ncf_type: Optional[str] = None
    total: float
    subtotal: float
    tax: float
    payment_method: str
    status: str
    cashier_id: Optional[UUID] = None
    cashier_name: str
    cashier_role: str
    customer_id: Optional[UUID] = None
    customer_name: str
    customer_document: str
    customer_type: str
    items: List[AuditItem] = []
    item_count: int = 0
    created_at: datetime


class CashierActivity(BaseModel):
    user_id: UUID
    name: str
    role: str
    transactions: int = 0
    revenue: float = 0.0
    items: int = 0
    avg_transaction_value: float = 0.0
    first_sale: Optional[datetime] = None
    last_sale: Optional[datetime] = None


class UserActivity(BaseModel):
    user_performance: List[CashierActivity] = []
    active_users: int = 0
    total_users: int = 0
    top_performer: Optional[CashierActivity] = None


class AuditNCFUsage(BaseModel):
    total_with_ncf: int = 0
    total_without_ncf: int = 0
    by_type: List[NCFTypeUsage] = []
    compliance_rate: float = 0.0


class PaymentMethodStat(BaseModel):
    method: str
    label: str
    count: int = 0
    amount: float = 0.0
    percentage: float = 0.0
    average_ticket: float = 0.0


class PaymentAnalysis(BaseModel):
    methods: List[PaymentMethodStat] = []
    total_cash: float = 0.0
    total_card: float = 0.0
    total_transfer: float = 0.0
    high_cash_volume: bool = False
    unusual_patterns: List[str] = []


class FrequentCustomer(BaseModel):
    customer_id: UUID
    name: str
    document: str
    transactions: int = 0
    total_spent: float = 0.0
    average_order: float = 0.0


class CustomerBehavior(BaseModel):
    total_customers: int = 0
    business_customers: int = Field(0, description="Ventas a empresas")
    individual_customers: int = Field(0, description="Ventas a personas físicas")
    guest_sales: int = 0
    frequent_customers: List[FrequentCustomer] = []


class HourBucket(BaseModel):
    hour: int
    count: int = 0
    revenue: float = 0.0


class DayBucket(BaseModel):
    day: date
    count: int = 0
    revenue: float = 0.0


class TimingAnalysis(BaseModel):
    by_hour: List[HourBucket] = []
    by_day: List[DayBucket] = []
    peak_hours: List[HourBucket] = []
    busy_days: List[DayBucket] = []


class SecurityChecks(BaseModel):
    ncf_compliance: float = 0.0
    user_tracking: float = 0.0
    customer_documentation: float = 0.0
    payment_validation: float = 0.0


class SecurityAnalysis(BaseModel):
    compliance_score: float = 0.0
    checks: SecurityChecks
    issues: List[str] = []
    recommendations: List[str] = []


class HighValueTransaction(BaseModel):
    id: UUID
    amount: float
    cashier: str
    customer: str
    created_at: datetime


class RiskAnalysis(BaseModel):
    high_value_threshold: float = 0.0
    high_value_transactions: List[HighValueTransaction] = []
    unusual_patterns: List[str] = []
    risk_score: int = Field(0, ge=0, le=100)


class AuditInsights(BaseModel):
    summary: str
    key_findings: List[str] = []
    recommendations: List[str] = []
    compliance_status: Literal["EXCELLENT", "GOOD", "NEEDS_ATTENTION"]
    next_actions: List[str] = []


class AuditReport(ReportBase):
    report_type: Literal["audit"] = "audit"
    summary: AuditSummary
    transactions: List[AuditTransaction] = []
    user_activity: UserActivity
    ncf_usage: AuditNCFUsage
    payment_analysis: PaymentAnalysis
    customer_analysis: CustomerBehavior
    time_analysis: TimingAnalysis
    security_analysis: SecurityAnalysis
    risk_analysis: RiskAnalysis
    insights: AuditInsights


# ===== DGII =====

class DGIIComplianceStatus(BaseModel):
    ncf_compliance: float = Field(..., description="% de ventas con NCF")
    rnc_validation: float = Field(..., description="% de ventas a empresas con RNC válido")
    itbis_collection: bool
    sequential_control: bool


class DGIISummary(BaseModel):
    total_sales: int = 0
    sales_with_ncf: int = 0
    sales_with_valid_rnc: int = 0
    sales_with_valid_cedula: int = 0
    total_itbis: float = 0.0
    taxable_base: float = 0.0
    ncf_compliance_score: float = 100.0
    itbis_compliance_percentage: float = 0.0
    compliance_score: int = Field(0, ge=0, le=100)


class DGIIReport(ReportBase):
    report_type: Literal["dgii"] = "dgii"
    compliance_status: DGIIComplianceStatus
    summary: DGIISummary
    tax_variance: TaxVariance


ReportResult = Annotated[
    Union[
        DailySalesReport,
        ITBISReport,
        NCFReport,
        InventoryReport,
        CustomersReport,
        AuditReport,
        DGIIReport,
    ],
    Field(discriminator="report_type"),
]


class ReportResponse(BaseModel):
    """Envoltura de respuesta de GET /reports"""
    success: bool = True
    data: ReportResult


# ===== EXPORT REQUEST =====

class ExportDateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: Optional[date] = Field(None, alias="from")
    date_to: Optional[date] = Field(None, alias="to")


class ExportRequest(BaseModel):
    """Cuerpo de POST /reports/export"""
    model_config = ConfigDict(populate_by_name=True)

    report_type: str = Field(..., alias="reportType", description="Tipo de reporte")
    format: str = Field("pdf", description="pdf o csv")
    date_range: ExportDateRange = Field(default_factory=ExportDateRange, alias="dateRange")

    @field_validator("format")
    @classmethod
    def normalize_format(cls, v):
        return v.lower().strip()
