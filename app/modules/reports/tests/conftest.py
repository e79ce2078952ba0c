"""
Fixtures compartidos para los tests del módulo de reportes

Base de datos SQLite en memoria (StaticPool para que el TestClient vea
la misma conexión) y helpers para sembrar ventas, clientes y secuencias.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.database import Base, get_db
from app.main import app
from app.modules.categories.models import Category
from app.modules.customers.models import Customer, CustomerType
from app.modules.ncf.models import NCFSequence
from app.modules.products.models import Product
from app.modules.sales.models import PaymentMethod, Sale, SaleItem
from app.modules.users.models import User, UserRole


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ===== FACTORIES =====

class Seeder:
    """Crea filas mínimas válidas; cada método hace flush y devuelve el modelo"""

    def __init__(self, db):
        self.db = db
        self._sale_counter = 0

    def category(self, name="General"):
        category = Category(name=name)
        self.db.add(category)
        self.db.flush()
        return category

    def product(self, name="Producto", price="100.00", cost="60.00", stock=50, min_stock=5,
                category=None, code=None):
        product = Product(
            name=name,
            code=code,
            price=Decimal(price),
            cost=Decimal(cost),
            stock=stock,
            min_stock=min_stock,
            category_id=category.id if category else None,
        )
        self.db.add(product)
        self.db.flush()
        return product

    def user(self, first_name="Ana", last_name="Pérez", role=UserRole.CASHIER):
        user = User(first_name=first_name, last_name=last_name, role=role, email=f"{uuid4().hex}@pos.do")
        self.db.add(user)
        self.db.flush()
        return user

    def customer(self, name="Cliente", customer_type=CustomerType.INDIVIDUAL, rnc=None, cedula=None, **extra):
        customer = Customer(name=name, customer_type=customer_type, rnc=rnc, cedula=cedula, **extra)
        self.db.add(customer)
        self.db.flush()
        return customer

    def sequence(self, type="B01", current=0, maximum=10000, description=None):
        sequence = NCFSequence(type=type, current_number=current, max_number=maximum, description=description)
        self.db.add(sequence)
        self.db.flush()
        return sequence

    def sale(self, created_at, total="1000.00", itbis="180.00", subtotal=None,
             payment_method=PaymentMethod.CASH, ncf=None, ncf_type=None,
             cashier=None, customer=None, items=()):
        """items: secuencia de (producto, cantidad)"""
        self._sale_counter += 1
        total = Decimal(total)
        itbis = Decimal(itbis)
        sale = Sale(
            sale_number=f"V-{self._sale_counter:06d}",
            created_at=created_at,
            subtotal=Decimal(subtotal) if subtotal is not None else total - itbis,
            itbis=itbis,
            total=total,
            ncf=ncf,
            ncf_type=ncf_type,
            payment_method=payment_method,
            cashier_id=cashier.id if cashier else None,
            customer_id=customer.id if customer else None,
        )
        for product, quantity in items:
            sale.items.append(SaleItem(
                product_id=product.id,
                quantity=quantity,
                unit_price=product.price,
                total=product.price * quantity,
            ))
        self.db.add(sale)
        self.db.flush()
        return sale


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def three_cash_sales(db, seed):
    """Tres ventas de RD$1000 con RD$180 de ITBIS, todas en efectivo"""
    cashier = seed.user()
    for day in (5, 10, 15):
        seed.sale(datetime(2024, 1, day, 10, 30), cashier=cashier)
    db.commit()
    return cashier
