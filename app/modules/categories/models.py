from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from app.database.database import Base
from app.common.mixins import BaseMixin

class Category(Base, BaseMixin):
    __tablename__ = "categories"

    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255), nullable=True)

    # Relationships
    products = relationship("Product", back_populates="category")
