"""
Modelos SQLAlchemy para clientes

Los clientes empresariales se identifican con RNC y los individuales
con cédula. La clase del cliente determina el tipo de NCF que se emite
(B01 crédito fiscal para empresas, B02 consumidor final).
"""

from app.database.database import Base
from sqlalchemy import Column, String, Enum, Text
from sqlalchemy.orm import relationship
from app.common.mixins import BaseMixin
import enum


class CustomerType(enum.Enum):
    """Clase de cliente"""
    BUSINESS = "business"      # Empresa con RNC
    INDIVIDUAL = "individual"  # Persona física con cédula


class Customer(Base, BaseMixin):
    __tablename__ = "customers"

    name = Column(String(200), nullable=False, index=True)
    customer_type = Column(Enum(CustomerType), nullable=False, default=CustomerType.INDIVIDUAL, index=True)
    rnc = Column(String(20), nullable=True, index=True)
    cedula = Column(String(20), nullable=True, index=True)
    email = Column(String(150), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)

    # Relationships
    sales = relationship("Sale", back_populates="customer")

    @property
    def document_number(self):
        """RNC para empresas, cédula para individuos"""
        return self.rnc or self.cedula
