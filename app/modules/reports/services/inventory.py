"""
Inventory Reports Service

Stock status, rotation and margin per product over the last 30 days of
sales, with category rollups and restocking alerts. The requested date
range does not apply to this report.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from .base import (
    BaseReportService,
    ProductRecord,
    ProductSales,
    WEEKS_PER_MONTH,
    money,
    safe_average,
)
from .intelligence import round_half_up
from ..schemas import (
    CategoryRollup,
    InventoryAlerts,
    InventoryInsights,
    InventoryProduct,
    InventoryReport,
    InventorySummary,
    StockAlerts,
)


NO_SALES_STOCK_DAYS = 999
REORDER_DAYS = 7
HIGH_VALUE_THRESHOLD = 1000
INSIGHT_LIMIT = 10


def average_weekly_sales(units_sold: int) -> float:
    return units_sold / WEEKS_PER_MONTH


def stock_days(stock: int, weekly_sales: float) -> float:
    """Días de stock al ritmo de venta actual; 999 si no hubo ventas"""
    if weekly_sales <= 0:
        return NO_SALES_STOCK_DAYS
    return stock / weekly_sales * 7


def stock_status(stock: int, min_stock: int, days: float) -> str:
    if stock == 0:
        return "out_of_stock"
    if stock <= min_stock:
        return "low_stock"
    if days < REORDER_DAYS:
        return "reorder_soon"
    return "in_stock"


def count_stock_alerts(products: Iterable[ProductRecord], sold: Dict[UUID, ProductSales]) -> StockAlerts:
    """Conteo rápido de alertas usado en el reporte diario"""
    alerts = StockAlerts()
    for product in products:
        units = sold[product.id].quantity if product.id in sold else 0
        days = stock_days(product.stock, average_weekly_sales(units))

        if product.stock == 0:
            alerts.critical_stock += 1
        elif product.stock <= product.min_stock:
            alerts.low_stock += 1

        if days < REORDER_DAYS and product.stock > product.min_stock:
            alerts.reorder_needed += 1

        if units == 0 and product.value > HIGH_VALUE_THRESHOLD:
            alerts.high_value_slow_moving += 1
    return alerts


def build_product_row(product: ProductRecord, sales: Optional[ProductSales]) -> InventoryProduct:
    units = sales.quantity if sales else 0
    revenue = sales.revenue if sales else 0
    weekly = average_weekly_sales(units)
    days = stock_days(product.stock, weekly)
    if days != NO_SALES_STOCK_DAYS:
        days = round_half_up(days)

    price = float(product.price)
    cost = float(product.cost)
    margin = round((price - cost) / price * 100, 1) if price > 0 else 0.0
    turnover = round(units / ((product.stock + units) or 1), 2) if units > 0 else 0.0

    return InventoryProduct(
        id=product.id,
        name=product.name,
        code=product.code or "N/A",
        category=product.category_name,
        category_id=product.category_id,
        stock=product.stock,
        min_stock=product.min_stock,
        price=money(product.price),
        cost=money(product.cost),
        value=money(product.value),
        cost_value=money(product.cost_value),
        margin=margin,
        total_sold_30_days=units,
        revenue_30_days=money(revenue),
        average_weekly_sales=round(weekly, 1),
        stock_days=int(days),
        turnover_rate=turnover,
        status=stock_status(product.stock, product.min_stock, days),
        last_sold=sales.last_sold if sales else None,
    )


class InventoryReportService(BaseReportService):
    """Service for the inventory report"""

    def generate(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> InventoryReport:
        sold = self._units_sold_since(self._trailing_window_start())
        products = [build_product_row(p, sold.get(p.id)) for p in self._active_products()]
        categories = self._categories()

        rollups = []
        for category in categories:
            members = [p for p in products if p.category_id == category.id]
            rollups.append(CategoryRollup(
                id=category.id,
                name=category.name,
                product_count=len(members),
                total_value=round(sum(p.value for p in members), 2),
                total_cost_value=round(sum(p.cost_value for p in members), 2),
                total_revenue_30_days=round(sum(p.revenue_30_days for p in members), 2),
                average_margin=round(safe_average(sum(p.margin for p in members), len(members)), 1),
                low_stock_count=sum(1 for p in members if p.status == "low_stock"),
                out_of_stock_count=sum(1 for p in members if p.status == "out_of_stock"),
            ))

        low = [p for p in products if p.status == "low_stock"]
        out = [p for p in products if p.status == "out_of_stock"]
        reorder = [p for p in products if p.status == "reorder_soon"]
        slow_moving = sorted(
            (p for p in products if p.total_sold_30_days == 0 and p.stock > 0),
            key=lambda p: p.value,
            reverse=True,
        )

        total_value = sum(p.value for p in products)
        total_cost_value = sum(p.cost_value for p in products)
        total_revenue = sum(p.revenue_30_days for p in products)
        turnover = round(total_revenue / total_cost_value * 12, 2) if total_cost_value > 0 else 0.0

        summary = InventorySummary(
            total_products=len(products),
            total_categories=len(categories),
            low_stock_count=len(low),
            out_of_stock_count=len(out),
            reorder_soon_count=len(reorder),
            total_inventory_value=round(total_value, 2),
            total_cost_value=round(total_cost_value, 2),
            total_revenue_30_days=round(total_revenue, 2),
            average_margin=round(safe_average(sum(p.margin for p in products), len(products)), 1),
            inventory_turnover=turnover,
        )

        insights = InventoryInsights(
            top_selling=_top(products, lambda p: p.total_sold_30_days),
            top_revenue=_top(products, lambda p: p.revenue_30_days),
            top_margin=_top([p for p in products if p.margin > 0], lambda p: p.margin),
            slow_moving=slow_moving[:INSIGHT_LIMIT],
            low_stock=low[:INSIGHT_LIMIT],
            out_of_stock=out[:INSIGHT_LIMIT],
            reorder_soon=reorder[:INSIGHT_LIMIT],
        )

        alerts = InventoryAlerts(
            critical_stock=len(out),
            low_stock=len(low),
            reorder_needed=len(reorder),
            high_value_slow_moving=sum(1 for p in slow_moving if p.value > HIGH_VALUE_THRESHOLD),
            negative_margin=sum(1 for p in products if p.margin < 0),
        )

        return InventoryReport(
            date_from=start.date() if start else None,
            date_to=end.date() if end else None,
            generated_at=self.now,
            summary=summary,
            products=products,
            categories=rollups,
            insights=insights,
            alerts=alerts,
        )


def _top(products: List[InventoryProduct], key) -> List[InventoryProduct]:
    return sorted(products, key=key, reverse=True)[:INSIGHT_LIMIT]
