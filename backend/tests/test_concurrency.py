"""
Two terminals checking out the last units of the same product.

Runs against a file-backed SQLite database so each thread gets its own
connection and the BEGIN IMMEDIATE write lock is actually contended.
"""

import threading
from datetime import timedelta

import pytest

from pharmacy_pos import create_app
from pharmacy_pos.config import TestConfig
from pharmacy_pos.errors import InsufficientStock
from pharmacy_pos.extensions import db
from pharmacy_pos.models import InventoryBatch, Product, Sale
from pharmacy_pos.services.checkout_service import CheckoutEngine
from pharmacy_pos.time_utils import utcnow
from pharmacy_pos.validation import CartLine, PaymentRequest


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'pos.sqlite3'}"

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def test_concurrent_checkouts_never_oversell(file_app):
    with file_app.app_context():
        product = Product(name_mm="Parasafe", sale_price=5300, reorder_level=10)
        db.session.add(product)
        db.session.flush()
        db.session.add(
            InventoryBatch(
                product_id=product.id,
                batch_no="LAST",
                expiry_date=utcnow().date() + timedelta(days=90),
                cost_price=3700,
                received_qty=10,
                qty_on_hand=10,
                received_at=utcnow(),
            )
        )
        db.session.commit()
        product_id = product.id

    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def terminal():
        with file_app.app_context():
            barrier.wait()
            try:
                result = CheckoutEngine(db.session).checkout(
                    [CartLine(product_id, 6)],
                    PaymentRequest(method="CASH", amount=6 * 5300),
                )
                outcome = result.invoice_no
            except InsufficientStock as exc:
                outcome = exc
            finally:
                db.session.remove()
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=terminal) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    successes = [o for o in outcomes if isinstance(o, str)]
    failures = [o for o in outcomes if isinstance(o, InsufficientStock)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert failures[0].available == 4

    with file_app.app_context():
        assert db.session.query(InventoryBatch).one().qty_on_hand == 4
        assert db.session.query(Sale).count() == 1
