"""
Secuencias de Números de Comprobante Fiscal (NCF)

Cada tipo de NCF autorizado por la DGII tiene un rango numérico.
current_number avanza con cada comprobante emitido y nunca retrocede.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, CheckConstraint
from app.common.mixins import BaseMixin
import enum


class NCFType(str, enum.Enum):
    """Tipos de comprobante fiscal de la DGII"""
    B01 = "B01"  # Crédito Fiscal
    B02 = "B02"  # Consumidor Final
    B03 = "B03"  # Nota de Débito
    B04 = "B04"  # Nota de Crédito
    B11 = "B11"  # Proveedores Informales
    B12 = "B12"  # Registro Único de Ingresos
    B13 = "B13"  # Gastos Menores
    B14 = "B14"  # Regímenes Especiales
    B15 = "B15"  # Gubernamental
    B16 = "B16"  # Exportaciones


NCF_TYPE_DESCRIPTIONS = {
    "B01": "Crédito Fiscal - Ventas gravadas con ITBIS",
    "B02": "Consumidor Final - Ventas al consumidor final",
    "B03": "Nota de Débito - Aumentos en facturas",
    "B04": "Nota de Crédito - Devoluciones y descuentos",
    "B11": "Proveedores Informales - Compras sin NCF",
    "B12": "Registro Único - Compras especiales",
    "B13": "Gastos Menores - Gastos sin NCF",
    "B14": "Régimen Especial - Contribuyentes especiales",
    "B15": "Gubernamental - Ventas al sector público",
    "B16": "Exportaciones - Ventas al exterior",
}


def get_ncf_type_description(ncf_type: str) -> str:
    return NCF_TYPE_DESCRIPTIONS.get(ncf_type, f"Tipo NCF: {ncf_type}")


class NCFSequence(Base, BaseMixin):
    __tablename__ = "ncf_sequences"

    type = Column(String(3), nullable=False, unique=True, index=True)
    description = Column(String(255), nullable=True)
    current_number = Column(Integer, nullable=False, default=0)
    max_number = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("current_number >= 0", name="ck_ncf_current_non_negative"),
        CheckConstraint("current_number <= max_number", name="ck_ncf_current_within_max"),
    )

    @property
    def remaining(self) -> int:
        return self.max_number - self.current_number
