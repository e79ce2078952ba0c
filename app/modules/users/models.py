from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship
from app.database.database import Base
from app.common.mixins import BaseMixin
import enum


class UserRole(enum.Enum):
    """Roles del sistema POS"""
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    REPORTER = "reporter"


class User(Base, BaseMixin):
    __tablename__ = "users"

    email = Column(String(150), unique=True, nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CASHIER)

    # Relationships
    sales = relationship("Sale", back_populates="cashier")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"
