from datetime import date

from sqlalchemy import inspect

from pharmacy_pos import create_app
from pharmacy_pos.cli import DEMO_PRODUCTS
from pharmacy_pos.config import TestConfig
from pharmacy_pos.extensions import db
from pharmacy_pos.models import InventoryBatch, Product


def test_seed_inserts_demo_catalogue(app, db_session):
    result = app.test_cli_runner().invoke(args=["data", "seed", "--random-seed", "7"])

    assert result.exit_code == 0, result.output
    assert "PASS Seeding completed." in result.output
    assert db_session.query(Product).count() == len(DEMO_PRODUCTS)
    for product in db_session.query(Product).all():
        assert 2 <= len(product.batches) <= 3
        for batch in product.batches:
            assert batch.cost_price == int(product.sale_price * 0.7)
            assert 20 <= batch.qty_on_hand <= 70
            assert batch.received_qty == batch.qty_on_hand


def test_wipe_requires_confirmation(app, db_session, make_product):
    make_product()
    runner = app.test_cli_runner()

    refused = runner.invoke(args=["system", "wipe"])
    assert refused.exit_code == 1
    assert db_session.query(Product).count() == 1

    wiped = runner.invoke(args=["system", "wipe", "--yes"])
    assert wiped.exit_code == 0
    assert "PASS Database cleaned" in wiped.output
    assert db_session.query(Product).count() == 0


def test_reset_db_requires_confirmation(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])

    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_init_db_is_idempotent(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init-db"])

    assert result.exit_code == 0
    assert "PASS" in result.output


def test_fix_expiry_updates_matching_batches(app, db_session, make_product, make_batch):
    product = make_product()
    make_batch(product, 5, batch_no="INIT")
    make_batch(product, 5, batch_no="INIT")
    make_batch(product, 5, batch_no="OTHER", expiry_date=date(2031, 5, 5))

    result = app.test_cli_runner().invoke(
        args=["data", "fix-expiry", "--batch-no", "INIT", "--expiry", "2030-12-31"]
    )

    assert result.exit_code == 0, result.output
    assert "Updated 2 batches" in result.output
    db_session.expire_all()
    expiries = {b.batch_no: b.expiry_date for b in db_session.query(InventoryBatch).all()}
    assert expiries == {"INIT": date(2030, 12, 31), "OTHER": date(2031, 5, 5)}


def test_stock_expiring_lists_batches_in_horizon(app, db_session, make_product, make_batch):
    product = make_product("Amoxicillin")
    make_batch(product, 8, expires_in_days=5, batch_no="SOON")
    make_batch(product, 8, expires_in_days=200, batch_no="LATER")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["stock", "expiring", "--days", "30"])

    assert result.exit_code == 0
    assert "SOON" in result.output
    assert "LATER" not in result.output
    assert "Amoxicillin" in result.output

    empty = runner.invoke(args=["stock", "expiring", "--days", "1"])
    assert "No batches expiring" in empty.output


def test_init_db_builds_schema_on_fresh_database(tmp_path):
    class FreshConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'fresh.sqlite3'}"

    fresh = create_app(FreshConfig)

    with fresh.app_context():
        result = fresh.test_cli_runner().invoke(args=["system", "init-db"])

        assert result.exit_code == 0, result.output
        inspector = inspect(db.engine)
        assert set(inspector.get_table_names()) >= {
            "products", "inventory_batches", "sales", "sale_items",
            "payments", "expenses", "invoice_sequences",
        }
        index_names = {ix["name"] for ix in inspector.get_indexes("inventory_batches")}
        assert {"ix_inventory_batches_product_id", "ix_batches_product_expiry"} <= index_names
        db.session.remove()
        db.engine.dispose()
