# Overview: Flask CLI command groups for database bootstrap, demo data and stock checks.

# backend/pharmacy_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system wipe --yes
#   Delete every row but keep the schema.
#
# Demo data:
# - python -m flask data seed [--random-seed 7]
#   Insert the demo catalogue with 2-3 batches per product.
# - python -m flask data fix-expiry --batch-no INIT --expiry 2027-01-01
#   Move the expiry date of every batch with the given batch number.
#
# Stock checks:
# - python -m flask stock expiring [--days 60]
#   List batches with stock that expire within the horizon.

import random
from datetime import date

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import update

from .extensions import db
from .models import Expense, InventoryBatch, InvoiceSequence, Payment, Product, Sale, SaleItem
from .services.inventory_service import InventoryLedger
from .time_utils import utcnow

# Child tables first so foreign keys never dangle mid-wipe
WIPE_ORDER = (SaleItem, Payment, Sale, InventoryBatch, Product, Expense, InvoiceSequence)

DEMO_PRODUCTS = (
    {"name_en": "Biogesic 250mg", "name_mm": "Biogesic", "sale_price": 10000},
    {"name_en": "Tiffy Big", "name_mm": "Tiffy ကြီး", "sale_price": 5500},
    {"name_en": "Ameprolol Xl 25", "name_mm": "Ameprolol", "sale_price": 30000},
    {"name_en": "Enervon C", "name_mm": "Enervon C", "sale_price": 9500},
    {"name_en": "Silo 1000", "name_mm": "Silo 1000", "sale_price": 1000},
    {"name_en": "Parasafe 250", "name_mm": "Parasafe", "sale_price": 5300},
    {"name_en": "Solmux", "name_mm": "Solmux", "sale_price": 1000},
)


def wipe_all_rows() -> int:
    deleted = 0
    for model in WIPE_ORDER:
        deleted += db.session.query(model).delete()
    db.session.commit()
    return deleted


def seed_demo_data(rng: random.Random) -> list[Product]:
    """
    Insert the demo catalogue in one transaction.

    Each product gets 2-3 batches costed at 70% of the sale price, 20-70
    units each, expiring on a random day next year.
    """
    now = utcnow()
    expiry_year = now.year + 1
    created = []

    for index, spec in enumerate(DEMO_PRODUCTS):
        product = Product(
            name_mm=spec["name_mm"],
            name_en=spec["name_en"],
            barcode=f"885{index + 1:05d}",
            sale_price=spec["sale_price"],
            reorder_level=10,
        )
        db.session.add(product)
        db.session.flush()

        for i in range(rng.randint(2, 3)):
            qty = rng.randint(20, 70)
            db.session.add(
                InventoryBatch(
                    product_id=product.id,
                    batch_no=f"B{now:%H%M%S}-{product.id}-{i}",
                    expiry_date=date(expiry_year, rng.randint(1, 12), rng.randint(1, 28)),
                    cost_price=int(spec["sale_price"] * 0.7),
                    received_qty=qty,
                    qty_on_hand=qty,
                    received_at=now,
                )
            )
        created.append(product)

    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset.")


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Confirm deletion of all rows')
@with_appcontext
def wipe(yes):
    """Delete all rows from every table (schema is kept)."""
    if not yes:
        click.echo("FAIL Refusing to wipe without --yes")
        raise SystemExit(1)
    deleted = wipe_all_rows()
    current_app.logger.warning("Database wiped: %s rows deleted", deleted)
    click.echo(f"PASS Database cleaned ({deleted} rows deleted).")


@click.group('data')
def data_group():
    """Demo data and data repair commands."""


@data_group.command('seed')
@click.option('--random-seed', type=int, default=None, help='Seed for reproducible demo data')
@with_appcontext
def seed(random_seed):
    """Insert the demo pharmacy catalogue with stock."""
    click.echo("START Seeding demo data...")
    products = seed_demo_data(random.Random(random_seed))
    for product in products:
        click.echo(f"PASS {product.name_en} (ID: {product.id}) with {len(product.batches)} batches")
    click.echo("PASS Seeding completed.")


@data_group.command('fix-expiry')
@click.option('--batch-no', required=True, help='Batch number to update')
@click.option('--expiry', 'expiry', required=True, type=click.DateTime(formats=["%Y-%m-%d"]), help='New expiry date (YYYY-MM-DD)')
@with_appcontext
def fix_expiry(batch_no, expiry):
    """Set the expiry date of every batch carrying BATCH_NO."""
    result = db.session.execute(
        update(InventoryBatch)
        .where(InventoryBatch.batch_no == batch_no)
        .values(expiry_date=expiry.date())
    )
    db.session.commit()
    click.echo(f"PASS Updated {result.rowcount} batches to expire on {expiry.date().isoformat()}.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('expiring')
@click.option('--days', type=int, default=None, help='Horizon in days (defaults to EXPIRY_WARNING_DAYS)')
@with_appcontext
def expiring(days):
    """List batches with stock that expire within the horizon."""
    ledger = InventoryLedger(db.session, expiry_warning_days=current_app.config["EXPIRY_WARNING_DAYS"])
    rows = ledger.expiring_batches(within_days=days)
    if not rows:
        click.echo("No batches expiring in the horizon.")
        return
    for row in rows:
        click.echo(
            f"{row.expiry_date.isoformat()}  {row.days_left:>4}d  "
            f"{row.batch_no:<20} qty={row.qty_on_hand:<6} {row.name_mm}"
        )


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(data_group)
    app.cli.add_command(stock_group)
