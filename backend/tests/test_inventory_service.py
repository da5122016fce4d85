from datetime import datetime, timedelta

import pytest

from pharmacy_pos.errors import InsufficientStock, InvalidExpiry, ProductNotFound
from pharmacy_pos.models import InventoryBatch
from pharmacy_pos.services.inventory_service import InventoryLedger
from pharmacy_pos.services.products_service import ProductCatalogue


def test_available_batches_are_fefo_and_include_expired(db_session, make_product, make_batch, today):
    product = make_product()
    late = make_batch(product, 5, expires_in_days=300)
    expired = make_batch(product, 5, expiry_date=today - timedelta(days=3))
    early = make_batch(product, 5, expires_in_days=10)
    depleted = make_batch(product, 1, expires_in_days=20)
    depleted.qty_on_hand = 0
    db_session.commit()

    batches = InventoryLedger(db_session).list_available_batches(product.id)

    assert [b.id for b in batches] == [expired.id, early.id, late.id]


def test_allocatable_batches_exclude_expired(db_session, make_product, make_batch, today):
    product = make_product()
    make_batch(product, 5, expiry_date=today)
    fresh = make_batch(product, 5, expires_in_days=1)

    ledger = InventoryLedger(db_session)

    assert [b.id for b in ledger.list_allocatable_batches(product.id)] == [fresh.id]
    assert len(ledger.list_allocatable_batches(product.id, include_expired=True)) == 2


def test_allocatable_batches_respect_as_of(db_session, make_product, make_batch, today):
    product = make_product()
    batch = make_batch(product, 5, expires_in_days=10)
    ledger = InventoryLedger(db_session)

    later = datetime.combine(today + timedelta(days=10), datetime.min.time())

    assert ledger.list_allocatable_batches(product.id, as_of=later) == []
    assert [b.id for b in ledger.list_available_batches(product.id, as_of=later)] == [batch.id]


def test_receive_stock_creates_batch(db_session, make_product, today):
    product = make_product()

    batch = InventoryLedger(db_session).receive_stock(
        product_id=product.id,
        batch_no="B-2027-01",
        expiry_date=today + timedelta(days=1),
        cost_price=650,
        qty=24,
    )

    stored = db_session.get(InventoryBatch, batch.id)
    assert stored.qty_on_hand == 24
    assert stored.received_qty == 24
    assert stored.cost_price == 650
    assert stored.received_at is not None


@pytest.mark.parametrize("days_from_today", [0, -1, -400])
def test_receive_stock_rejects_non_future_expiry(db_session, make_product, today, days_from_today):
    product = make_product()

    with pytest.raises(InvalidExpiry):
        InventoryLedger(db_session).receive_stock(
            product_id=product.id,
            batch_no="OLD",
            expiry_date=today + timedelta(days=days_from_today),
            cost_price=100,
            qty=5,
        )

    assert db_session.query(InventoryBatch).count() == 0


def test_receive_stock_unknown_product(db_session, today):
    with pytest.raises(ProductNotFound):
        InventoryLedger(db_session).receive_stock(
            product_id=4242,
            batch_no="X",
            expiry_date=today + timedelta(days=30),
            cost_price=100,
            qty=5,
        )
    assert db_session.query(InventoryBatch).count() == 0


def test_decrement_guards_against_negative(db_session, make_product, make_batch):
    product = make_product()
    batch = make_batch(product, 2)
    ledger = InventoryLedger(db_session)

    with pytest.raises(InsufficientStock):
        ledger.decrement(batch, 3)
    assert batch.qty_on_hand == 2

    ledger.decrement(batch, 2)
    assert batch.qty_on_hand == 0


def test_product_stock_derived_quantities(db_session, make_product, make_batch, today):
    product = make_product()
    make_batch(product, 4, expiry_date=today - timedelta(days=1))
    make_batch(product, 6, expires_in_days=30)
    make_batch(product, 10, expires_in_days=200)
    untouched = make_product("No stock")

    stock = InventoryLedger(db_session, expiry_warning_days=60).product_stock()

    assert stock[product.id].total_qty == 20
    assert stock[product.id].usable_qty == 16
    assert stock[product.id].has_expiring_batch is True
    assert untouched.id not in stock


def test_expiring_flag_ignores_expired_and_distant_batches(db_session, make_product, make_batch, today):
    product = make_product()
    make_batch(product, 4, expiry_date=today - timedelta(days=1))
    make_batch(product, 10, expires_in_days=61)

    stock = InventoryLedger(db_session, expiry_warning_days=60).product_stock()

    assert stock[product.id].has_expiring_batch is False


def test_expiring_batches_lists_days_left(db_session, make_product, make_batch):
    product = make_product("Amoxicillin", name_en="Amoxicillin 500mg")
    soon = make_batch(product, 3, expires_in_days=5, batch_no="SOON")
    make_batch(product, 3, expires_in_days=90, batch_no="LATER")

    rows = InventoryLedger(db_session).expiring_batches(within_days=30)

    assert [(r.batch_id, r.days_left, r.batch_no) for r in rows] == [(soon.id, 5, "SOON")]
    assert rows[0].to_dict()["name_en"] == "Amoxicillin 500mg"


def test_catalogue_lists_products_with_stock(db_session, make_product, make_batch, today):
    stocked = make_product("Biogesic", 10000, reorder_level=5)
    make_batch(stocked, 12, expires_in_days=400)
    empty = make_product("Tiffy", 5500)

    items = {item["id"]: item for item in ProductCatalogue(db_session).list_products()}

    assert items[stocked.id]["total_qty"] == 12
    assert items[stocked.id]["usable_qty"] == 12
    assert items[stocked.id]["has_expiring_batch"] is False
    assert items[stocked.id]["needs_reorder"] is False
    assert items[empty.id]["total_qty"] == 0
    assert items[empty.id]["usable_qty"] == 0
    assert items[empty.id]["needs_reorder"] is True


def test_catalogue_create_product_defaults_reorder_level(db_session):
    product = ProductCatalogue(db_session).create_product({"name_mm": "Silo 1000", "sale_price": 1000})

    assert product.id is not None
    assert product.reorder_level == 10
