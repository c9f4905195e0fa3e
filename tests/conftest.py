"""
Pytest configuration and fixtures for tests.

The database URL must be set before anything under ``evarae`` is imported,
because the engine is created at import time. Tests run against a sqlite
file in a temporary directory; tables are created and dropped per test.
"""

import os
import tempfile
import uuid
from datetime import datetime, timedelta

import pytest

_db_dir = tempfile.mkdtemp(prefix="evarae-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_EMAILS"] = "ops@evarae.test"
os.environ["RETURN_WINDOW_DAYS"] = "7"

CUSTOMER_AUTH = ("jane@example.com", "secret")
OTHER_AUTH = ("omar@example.com", "hunter2")
ADMIN_AUTH = ("admin@example.com", "admin-pass")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db():
    """Fresh tables and a session for one test."""
    from evarae.models.user import Base, SessionLocal, engine
    import evarae.models.order  # noqa: F401
    import evarae.models.return_request  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from evarae.main import app

    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Data Fixtures
# ============================================================================

def _add_user(db, email, password, role="USER"):
    from evarae.models.user import User

    user = User(name=email.split("@")[0].title(), email=email, password=password, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return _add_user(db, *CUSTOMER_AUTH)


@pytest.fixture
def other_customer(db):
    return _add_user(db, *OTHER_AUTH)


@pytest.fixture
def admin(db):
    return _add_user(db, *ADMIN_AUTH, role="ADMIN")


@pytest.fixture
def make_order(db, customer):
    """Factory for orders; ``paid_days_ago=None`` leaves the order unpaid."""
    from evarae.models.order import Order, OrderItem

    def _make(status="delivered", paid_days_ago=1.0, user=None, skus=("RING-ROSE-01", "EAR-JHUMKA-02")):
        paid_at = None
        if paid_days_ago is not None:
            paid_at = datetime.utcnow() - timedelta(days=paid_days_ago)
        order = Order(
            order_number=f"EV-{uuid.uuid4().hex[:8].upper()}",
            user_id=(user or customer).id,
            total_amount=2450.0 * len(skus),
            order_status=status,
            payment_status="paid" if paid_at else "pending",
            paid_at=paid_at,
        )
        order.items = [
            OrderItem(sku=sku, name=f"Item {sku}", quantity=1, price=2450.0) for sku in skus
        ]
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def add_return(db):
    """Factory for return requests attached to an existing order."""
    from evarae.models.return_request import ReturnRequest

    def _add(order, sku=None, status="pending", created_at=None):
        req = ReturnRequest(
            order_id=order.id,
            user_id=order.user_id,
            item_sku=sku or order.items[0].sku,
            item_name="Returned item",
            item_price=2450.0,
            item_quantity=1,
            return_reason="damaged",
            note="",
            images=["https://cdn.evarae.test/r/1.jpg", "https://cdn.evarae.test/r/2.jpg"],
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(req)
        db.commit()
        db.refresh(req)
        return req

    return _add
