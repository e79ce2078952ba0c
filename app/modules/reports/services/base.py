"""
Base service class for Reports module

Store facade shared by every report service: grouped aggregate queries
over sales plus batched lookups of products, customers and cashiers.
ORM rows are converted into immutable snapshots here, so defaults for
missing values are applied once instead of at every use site.
"""

import enum
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.modules.sales.models import Sale, SaleItem
from app.modules.products.models import Product
from app.modules.categories.models import Category
from app.modules.customers.models import Customer
from app.modules.users.models import User
from app.modules.ncf.models import NCFSequence, get_ncf_type_description


ZERO = Decimal("0")
TRAILING_WINDOW_DAYS = 30
WEEKS_PER_MONTH = 4.3

DELETED_PRODUCT = "Producto eliminado"
DELETED_CUSTOMER = "Cliente eliminado"
DELETED_USER = "Usuario eliminado"
NO_CATEGORY = "Sin categoría"
GUEST_CUSTOMER = "Cliente General"

PAYMENT_METHOD_LABELS = {
    "CASH": "Efectivo",
    "CARD": "Tarjeta",
    "TRANSFER": "Transferencia",
    "CHECK": "Cheque",
    "CREDIT": "Crédito",
}


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> float:
    """Monto para el resultado: float redondeado a dos decimales"""
    return round(float(value or 0), 2)


def percentage(part, whole) -> float:
    whole = float(whole or 0)
    if whole == 0:
        return 0.0
    return float(part or 0) / whole * 100


def safe_average(total, count) -> float:
    return float(total) / count if count else 0.0


def days_between(start: datetime, end: datetime) -> int:
    """Días calendario cubiertos por el rango, redondeando hacia arriba"""
    return math.ceil((end - start).total_seconds() / 86400)


def payment_label(method: str) -> str:
    return PAYMENT_METHOD_LABELS.get(method, method)


def _enum_name(value, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, enum.Enum):
        return value.name
    return str(value).upper()


# ===== SNAPSHOTS =====

@dataclass(frozen=True)
class SaleRecord:
    id: UUID
    sale_number: str
    created_at: datetime
    subtotal: Decimal
    itbis: Decimal
    total: Decimal
    ncf: Optional[str]
    ncf_type: Optional[str]
    payment_method: str
    status: str
    cashier_id: Optional[UUID]
    customer_id: Optional[UUID]

    @classmethod
    def from_model(cls, sale: Sale) -> "SaleRecord":
        return cls(
            id=sale.id,
            sale_number=sale.sale_number or "",
            created_at=sale.created_at,
            subtotal=to_decimal(sale.subtotal),
            itbis=to_decimal(sale.itbis),
            total=to_decimal(sale.total),
            ncf=sale.ncf or None,
            ncf_type=sale.ncf_type or None,
            payment_method=_enum_name(sale.payment_method, "CASH"),
            status=_enum_name(sale.status, "COMPLETED"),
            cashier_id=sale.cashier_id,
            customer_id=sale.customer_id,
        )


@dataclass(frozen=True)
class SaleItemRecord:
    sale_id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal
    total: Decimal

    @classmethod
    def from_model(cls, item: SaleItem) -> "SaleItemRecord":
        return cls(
            sale_id=item.sale_id,
            product_id=item.product_id,
            quantity=item.quantity or 0,
            unit_price=to_decimal(item.unit_price),
            total=to_decimal(item.total),
        )


@dataclass(frozen=True)
class ProductRecord:
    id: UUID
    name: str
    code: Optional[str]
    category_id: Optional[UUID]
    category_name: str
    price: Decimal
    cost: Decimal
    stock: int
    min_stock: int
    is_active: bool

    @property
    def value(self) -> Decimal:
        return self.price * self.stock

    @property
    def cost_value(self) -> Decimal:
        return self.cost * self.stock

    @classmethod
    def from_model(cls, product: Product, category_name: Optional[str]) -> "ProductRecord":
        return cls(
            id=product.id,
            name=product.name,
            code=product.code or None,
            category_id=product.category_id,
            category_name=category_name or NO_CATEGORY,
            price=to_decimal(product.price),
            cost=to_decimal(product.cost),
            stock=product.stock or 0,
            min_stock=product.min_stock or 0,
            is_active=bool(product.is_active),
        )

    @classmethod
    def missing(cls, product_id: UUID) -> "ProductRecord":
        return cls(product_id, DELETED_PRODUCT, None, None, NO_CATEGORY, ZERO, ZERO, 0, 0, False)


@dataclass(frozen=True)
class CustomerRecord:
    id: UUID
    name: str
    customer_type: str
    rnc: Optional[str]
    cedula: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    is_active: bool

    @property
    def document(self) -> Optional[str]:
        return self.rnc or self.cedula

    @property
    def is_business(self) -> bool:
        return self.customer_type == "BUSINESS"

    @classmethod
    def from_model(cls, customer: Customer) -> "CustomerRecord":
        return cls(
            id=customer.id,
            name=customer.name,
            customer_type=_enum_name(customer.customer_type, "INDIVIDUAL"),
            rnc=customer.rnc or None,
            cedula=customer.cedula or None,
            email=customer.email or None,
            phone=customer.phone or None,
            is_active=bool(customer.is_active),
        )

    @classmethod
    def missing(cls, customer_id: UUID) -> "CustomerRecord":
        return cls(customer_id, DELETED_CUSTOMER, "INDIVIDUAL", None, None, None, None, False)


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    name: str
    role: str

    @classmethod
    def from_model(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            name=f"{user.first_name} {user.last_name}".strip(),
            role=_enum_name(user.role, "CASHIER"),
        )

    @classmethod
    def missing(cls, user_id: UUID) -> "UserRecord":
        return cls(user_id, DELETED_USER, "N/A")


@dataclass(frozen=True)
class SequenceRecord:
    type: str
    description: str
    current_number: int
    max_number: int

    @property
    def remaining(self) -> int:
        return self.max_number - self.current_number

    @classmethod
    def from_model(cls, sequence: NCFSequence) -> "SequenceRecord":
        return cls(
            type=sequence.type,
            description=sequence.description or get_ncf_type_description(sequence.type),
            current_number=sequence.current_number or 0,
            max_number=sequence.max_number or 0,
        )


@dataclass(frozen=True)
class GroupTotals:
    """Fila de una consulta agrupada de ventas"""
    key: Optional[object]
    count: int
    subtotal: Decimal
    itbis: Decimal
    total: Decimal


@dataclass(frozen=True)
class ProductSales:
    """Unidades e ingresos agregados de un producto"""
    product_id: UUID
    quantity: int
    revenue: Decimal
    last_sold: Optional[datetime]


# ===== SERVICE =====

class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.now = now or datetime.utcnow()

    def _apply_date_filter(self, query, start: datetime, end: datetime):
        """Apply date range filter to a sales query"""
        return query.filter(Sale.created_at >= start, Sale.created_at <= end)

    def _trailing_window_start(self) -> datetime:
        return self.now - timedelta(days=TRAILING_WINDOW_DAYS)

    # --- Aggregates ---

    def _aggregate_sales(self, start: datetime, end: datetime, *criteria) -> GroupTotals:
        """Count and sums over the sales in range"""
        query = self.db.query(
            func.count(Sale.id).label("count"),
            func.sum(Sale.subtotal).label("subtotal"),
            func.sum(Sale.itbis).label("itbis"),
            func.sum(Sale.total).label("total"),
        )
        row = self._apply_date_filter(query, start, end).filter(*criteria).one()
        return GroupTotals(None, row.count or 0, to_decimal(row.subtotal),
                           to_decimal(row.itbis), to_decimal(row.total))

    def _group_sales(self, start: datetime, end: datetime, column, *criteria) -> List[GroupTotals]:
        """
        Group sales in range by `column` with count/sum reducers.

        Rows come ordered by total descending; ties keep key order so the
        result is deterministic.
        """
        query = self.db.query(
            column.label("key"),
            func.count(Sale.id).label("count"),
            func.sum(Sale.subtotal).label("subtotal"),
            func.sum(Sale.itbis).label("itbis"),
            func.sum(Sale.total).label("total"),
        )
        query = self._apply_date_filter(query, start, end).filter(*criteria)
        rows = query.group_by(column).order_by(column).all()

        groups = [
            GroupTotals(
                key=row.key.name if isinstance(row.key, enum.Enum) else row.key,
                count=row.count or 0,
                subtotal=to_decimal(row.subtotal),
                itbis=to_decimal(row.itbis),
                total=to_decimal(row.total),
            )
            for row in rows
        ]
        return sorted(groups, key=lambda g: g.total, reverse=True)

    def _group_items_by_product(self, start: datetime, end: Optional[datetime] = None) -> List[ProductSales]:
        """Units, revenue and last sale per product for sales since `start`"""
        query = self.db.query(
            SaleItem.product_id.label("product_id"),
            func.sum(SaleItem.quantity).label("quantity"),
            func.sum(SaleItem.total).label("revenue"),
            func.max(Sale.created_at).label("last_sold"),
        ).join(Sale, SaleItem.sale_id == Sale.id).filter(Sale.created_at >= start)

        if end is not None:
            query = query.filter(Sale.created_at <= end)

        rows = query.group_by(SaleItem.product_id).order_by(desc("revenue"), SaleItem.product_id).all()
        return [
            ProductSales(row.product_id, int(row.quantity or 0), to_decimal(row.revenue), row.last_sold)
            for row in rows
        ]

    def _units_sold_since(self, start: datetime) -> Dict[UUID, ProductSales]:
        return {row.product_id: row for row in self._group_items_by_product(start)}

    # --- Record fetches ---

    def _fetch_sales(self, start: datetime, end: datetime, *criteria,
                     newest_first: bool = False) -> List[SaleRecord]:
        query = self._apply_date_filter(self.db.query(Sale), start, end).filter(*criteria)
        if newest_first:
            query = query.order_by(Sale.created_at.desc(), Sale.sale_number.desc())
        else:
            query = query.order_by(Sale.created_at, Sale.sale_number)
        return [SaleRecord.from_model(sale) for sale in query.all()]

    def _fetch_items(self, start: datetime, end: datetime) -> Dict[UUID, List[SaleItemRecord]]:
        """Sale items of the range grouped by sale id, in one query"""
        query = self.db.query(SaleItem).join(Sale, SaleItem.sale_id == Sale.id)
        items = self._apply_date_filter(query, start, end).order_by(SaleItem.sale_id).all()

        grouped: Dict[UUID, List[SaleItemRecord]] = {}
        for item in items:
            grouped.setdefault(item.sale_id, []).append(SaleItemRecord.from_model(item))
        return grouped

    # --- Batched lookups ---

    def _products_by_ids(self, product_ids: Iterable[UUID]) -> Dict[UUID, ProductRecord]:
        """One IN query for every distinct product id; misses get a fallback record"""
        ids = {pid for pid in product_ids if pid is not None}
        if not ids:
            return {}

        rows = self.db.query(Product, Category.name).outerjoin(
            Category, Product.category_id == Category.id
        ).filter(Product.id.in_(ids)).all()

        found = {product.id: ProductRecord.from_model(product, category_name) for product, category_name in rows}
        for pid in ids - found.keys():
            found[pid] = ProductRecord.missing(pid)
        return found

    def _customers_by_ids(self, customer_ids: Iterable[UUID]) -> Dict[UUID, CustomerRecord]:
        ids = {cid for cid in customer_ids if cid is not None}
        if not ids:
            return {}

        rows = self.db.query(Customer).filter(Customer.id.in_(ids)).all()
        found = {customer.id: CustomerRecord.from_model(customer) for customer in rows}
        for cid in ids - found.keys():
            found[cid] = CustomerRecord.missing(cid)
        return found

    def _users_by_ids(self, user_ids: Iterable[UUID]) -> Dict[UUID, UserRecord]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}

        rows = self.db.query(User).filter(User.id.in_(ids)).all()
        found = {user.id: UserRecord.from_model(user) for user in rows}
        for uid in ids - found.keys():
            found[uid] = UserRecord.missing(uid)
        return found

    # --- Catalogs ---

    def _active_products(self) -> List[ProductRecord]:
        rows = self.db.query(Product, Category.name).outerjoin(
            Category, Product.category_id == Category.id
        ).filter(Product.is_active.is_(True)).order_by(Product.name).all()
        return [ProductRecord.from_model(product, category_name) for product, category_name in rows]

    def _categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.name).all()

    def _all_customers(self) -> List[CustomerRecord]:
        rows = self.db.query(Customer).order_by(Customer.name).all()
        return [CustomerRecord.from_model(customer) for customer in rows]

    def _count_users(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    def _active_sequences(self) -> List[SequenceRecord]:
        rows = self.db.query(NCFSequence).filter(
            NCFSequence.is_active.is_(True)
        ).order_by(NCFSequence.type).all()
        return [SequenceRecord.from_model(sequence) for sequence in rows]

    @staticmethod
    def _calendar_days(start: datetime, end: datetime) -> List[date]:
        """Every calendar day from start to end, inclusive"""
        days = []
        current = start.date()
        while current <= end.date():
            days.append(current)
            current += timedelta(days=1)
        return days
