"""
Modelos SQLAlchemy para ventas POS

- Sale: Venta con sus montos, comprobante fiscal (NCF) y método de pago
- SaleItem: Líneas de producto de cada venta

Invariante: total == subtotal + itbis (con tolerancia de redondeo).
Los NCF deben ser únicos; el reporte de control NCF detecta violaciones
en datos importados en lugar de impedirlas a nivel de esquema.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric, Enum, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from uuid import uuid4
import enum


# ===== ENUMS =====

class PaymentMethod(enum.Enum):
    """Métodos de pago aceptados en caja"""
    CASH = "cash"           # Efectivo
    CARD = "card"           # Tarjeta de crédito/débito
    TRANSFER = "transfer"   # Transferencia bancaria
    CHECK = "check"         # Cheque
    CREDIT = "credit"       # Crédito de la tienda


class SaleStatus(enum.Enum):
    """Estados de una venta"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# ===== MODELOS =====

class Sale(Base):
    __tablename__ = "sales"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    sale_number = Column(String(30), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Montos
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)  # Base imponible
    itbis = Column(Numeric(15, 2), nullable=False, default=0)     # ITBIS 18%
    total = Column(Numeric(15, 2), nullable=False, default=0)

    # Comprobante fiscal
    ncf = Column(String(19), nullable=True, index=True)
    ncf_type = Column(String(3), nullable=True, index=True)

    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH, index=True)
    status = Column(Enum(SaleStatus), nullable=False, default=SaleStatus.COMPLETED)

    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True, index=True)

    # Relationships
    cashier = relationship("User", back_populates="sales")
    customer = relationship("Customer", back_populates="sales")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    sale_id = Column(Uuid(as_uuid=True), ForeignKey("sales.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)

    # Relationships
    sale = relationship("Sale", back_populates="items")
    product = relationship("Product", back_populates="sale_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_item_quantity_positive"),
    )
