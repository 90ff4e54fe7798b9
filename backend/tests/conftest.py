"""
Pytest fixtures for the storefront backend tests.

Provides the test application (in-memory SQLite), per-test table wipes,
HTTP and CLI clients, and small factories for accounts, catalog products
and checkout payloads.
"""

from decimal import Decimal

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.extensions import db
from storefront.models import User, Product, StaffRecord
from storefront.models.accounts import ROLE_ADMIN, ROLE_CUSTOMER


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    """Create CLI runner."""
    return app.test_cli_runner()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Empty every table before each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Admin storefront account (no staff record yet)."""
    user = User(email="admin@shop.local", name="Shop Admin", role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def customer_user(db_session):
    """Non-admin storefront account."""
    user = User(email="buyer@example.com", name="Buyer", role=ROLE_CUSTOMER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def legacy_admin_staff(db_session):
    """Pre-existing Admin row in the legacy staff directory."""
    staff = StaffRecord(id=1, email="owner@shop.local", full_name="Shop Owner", roles={"role": "Admin"})
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def product(db_session):
    """Catalog product line items can reference."""
    item = Product(product_name="Classic Tee", category="Shirts", base_price=Decimal("500.00"))
    db_session.add(item)
    db_session.commit()
    return item


def customer_info(**overrides) -> dict:
    info = {
        "name": "Maria Santos",
        "email": "maria@example.com",
        "phone": "09171234567",
        "address": "123 Rizal St, Quezon City",
    }
    info.update(overrides)
    return info


def order_items(product_id=None, quantity=2, unit_price=500) -> list:
    return [{
        "productId": product_id,
        "productName": "Classic Tee",
        "quantity": quantity,
        "unitPrice": unit_price,
        "subtotal": unit_price * quantity,
        "size": "M",
        "color": "Black",
    }]


def payment_payload(order_ref="ORD-10000001", amount=1000, payment_type="full", total=1000, product_id=None, **overrides) -> dict:
    """Checkout body for POST /api/payments on a new order."""
    payload = {
        "orderId": order_ref,
        "amount": amount,
        "paymentType": payment_type,
        "referenceNumber": "GC-7781234",
        "total": total,
        "customerInfo": customer_info(),
        "orderItems": order_items(product_id=product_id),
    }
    payload.update(overrides)
    return payload
