from app.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from app.common.mixins import BaseMixin


class Product(Base, BaseMixin):
    __tablename__ = "products"

    name = Column(String(100), nullable=False)
    code = Column(String(50), nullable=True, index=True)  # Código interno / de barras
    price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de venta
    cost = Column(Numeric(15, 2), nullable=True)  # Costo de adquisición
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)  # Umbral de stock mínimo

    category_id = Column(Uuid(as_uuid=True), ForeignKey("categories.id"), nullable=True, index=True)

    # Relationships
    category = relationship("Category", back_populates="products")
    sale_items = relationship("SaleItem", back_populates="product")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )
