"""
Pytest fixtures for the pharmacy POS backend tests.

Provides an in-memory application, a clean database per test, a test
client and small factories for products and batches.
"""

from datetime import date, timedelta

import pytest

from pharmacy_pos import create_app
from pharmacy_pos.config import TestConfig
from pharmacy_pos.extensions import db
from pharmacy_pos.models import InventoryBatch, Product
from pharmacy_pos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def today() -> date:
    return utcnow().date()


@pytest.fixture
def make_product(db_session):
    """Factory: insert and commit a product."""
    def _make(name_mm="Paracetamol", sale_price=1000, *, name_en=None, barcode=None, reorder_level=10):
        product = Product(
            name_mm=name_mm,
            name_en=name_en,
            barcode=barcode,
            sale_price=sale_price,
            reorder_level=reorder_level,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_batch(db_session):
    """
    Factory: insert and commit a batch directly.

    Bypasses the receipt rules so tests can create batches that have
    already expired.
    """
    def _make(
        product,
        qty,
        *,
        cost_price=700,
        expiry_date=None,
        expires_in_days=365,
        batch_no=None,
        received_at=None,
    ):
        if expiry_date is None:
            expiry_date = utcnow().date() + timedelta(days=expires_in_days)
        batch = InventoryBatch(
            product_id=product.id,
            batch_no=batch_no or f"LOT-{product.id}-{expiry_date.isoformat()}",
            expiry_date=expiry_date,
            cost_price=cost_price,
            received_qty=qty,
            qty_on_hand=qty,
            received_at=received_at or utcnow(),
        )
        db_session.add(batch)
        db_session.commit()
        return batch
    return _make
