# Overview: Inventory ledger over expiry-dated batches; FEFO queries, receipts and decrements.

from __future__ import annotations

"""
Inventory invariants (authoritative)

- Stock is held in batches (inventory_batches); each batch is one product,
  one expiry date, one cost basis.
- qty_on_hand >= 0 always (check constraint backs the application guard).
- A batch is created by a receipt with qty > 0 and an expiry date strictly
  after today; afterwards qty_on_hand only decreases, through checkout.
- FEFO order is expiry_date ascending, ties broken by batch id (oldest
  receipt first).
- "Usable" means qty_on_hand > 0 and expiry_date > today. Expiry is a
  calendar date: a batch expiring today is no longer usable.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import and_, case, func

from ..errors import InsufficientStock, InvalidExpiry, ProductNotFound
from ..models import InventoryBatch, Product
from ..time_utils import utcnow, to_iso_date
from .concurrency import lock_for_update, run_with_retry

DEFAULT_EXPIRY_WARNING_DAYS = 60


@dataclass(frozen=True)
class ProductStock:
    """Derived stock figures for one product."""
    product_id: int
    total_qty: int
    usable_qty: int
    has_expiring_batch: bool

    def to_dict(self) -> dict:
        return {
            "total_qty": self.total_qty,
            "usable_qty": self.usable_qty,
            "has_expiring_batch": self.has_expiring_batch,
        }


EMPTY_STOCK = ProductStock(product_id=0, total_qty=0, usable_qty=0, has_expiring_batch=False)


@dataclass(frozen=True)
class ExpiringBatch:
    batch_id: int
    product_id: int
    name_mm: str
    name_en: str | None
    batch_no: str
    expiry_date: date
    qty_on_hand: int
    days_left: int

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "product_id": self.product_id,
            "name_mm": self.name_mm,
            "name_en": self.name_en,
            "batch_no": self.batch_no,
            "expiry_date": to_iso_date(self.expiry_date),
            "qty_on_hand": self.qty_on_hand,
            "days_left": self.days_left,
        }


class InventoryLedger:
    """
    Query and mutation surface over inventory_batches.

    Owns no session of its own: the caller passes the session whose
    transaction the reads and writes belong to.
    """

    def __init__(self, session, *, clock=utcnow, expiry_warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS):
        self.session = session
        self.clock = clock
        self.expiry_warning_days = expiry_warning_days

    def _today(self, as_of: datetime | None) -> date:
        return (as_of or self.clock()).date()

    def get_product(self, product_id: int, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter_by(id=product_id)
        if lock:
            query = lock_for_update(query)
        product = query.first()
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def list_available_batches(self, product_id: int, as_of: datetime | None = None) -> list[InventoryBatch]:
        """
        Batches with stock left, soonest expiry first.

        Expired batches are included; callers that sell must use
        list_allocatable_batches. as_of does not change the result and is
        accepted so both listings share a signature.
        """
        return (
            self.session.query(InventoryBatch)
            .filter(
                InventoryBatch.product_id == product_id,
                InventoryBatch.qty_on_hand > 0,
            )
            .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
            .all()
        )

    def list_allocatable_batches(
        self,
        product_id: int,
        as_of: datetime | None = None,
        *,
        include_expired: bool = False,
        lock: bool = False,
    ) -> list[InventoryBatch]:
        """Batches checkout may draw from, in FEFO order."""
        query = self.session.query(InventoryBatch).filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.qty_on_hand > 0,
        )
        if not include_expired:
            query = query.filter(InventoryBatch.expiry_date > self._today(as_of))
        query = query.order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
        if lock:
            query = lock_for_update(query)
        return query.all()

    def decrement(self, batch: InventoryBatch, qty: int) -> None:
        if qty <= 0:
            raise ValueError("decrement quantity must be > 0")
        if batch.qty_on_hand < qty:
            raise InsufficientStock(batch.product_id, requested=qty, available=batch.qty_on_hand)
        batch.qty_on_hand = batch.qty_on_hand - qty

    def receive_stock(
        self,
        *,
        product_id: int,
        batch_no: str,
        expiry_date: date,
        cost_price: int,
        qty: int,
    ) -> InventoryBatch:
        """
        Record a new batch and commit it.

        Raises InvalidExpiry when expiry_date is today or earlier and
        ProductNotFound for an unknown product; nothing is written in
        either case.
        """
        if qty <= 0:
            raise ValueError("qty must be > 0")
        if cost_price < 0:
            raise ValueError("cost_price must be >= 0")

        now = self.clock()
        if expiry_date <= now.date():
            raise InvalidExpiry(
                "Expiry date must be in the future",
                details={"expiry_date": to_iso_date(expiry_date), "today": to_iso_date(now.date())},
            )

        def _op() -> InventoryBatch:
            self.get_product(product_id)
            batch = InventoryBatch(
                product_id=product_id,
                batch_no=batch_no,
                expiry_date=expiry_date,
                cost_price=cost_price,
                received_qty=qty,
                qty_on_hand=qty,
                received_at=now,
            )
            self.session.add(batch)
            self.session.commit()
            return batch

        return run_with_retry(self.session, _op)

    def product_stock(self, as_of: datetime | None = None) -> dict[int, ProductStock]:
        """Per-product total/usable quantities and the near-expiry flag."""
        today = self._today(as_of)
        horizon = today + timedelta(days=self.expiry_warning_days)

        unexpired = InventoryBatch.expiry_date > today
        usable_qty = case((unexpired, InventoryBatch.qty_on_hand), else_=0)
        expiring = case(
            (
                and_(
                    unexpired,
                    InventoryBatch.expiry_date <= horizon,
                    InventoryBatch.qty_on_hand > 0,
                ),
                1,
            ),
            else_=0,
        )

        rows = (
            self.session.query(
                InventoryBatch.product_id.label("product_id"),
                func.coalesce(func.sum(InventoryBatch.qty_on_hand), 0).label("total_qty"),
                func.coalesce(func.sum(usable_qty), 0).label("usable_qty"),
                func.coalesce(func.max(expiring), 0).label("has_expiring"),
            )
            .group_by(InventoryBatch.product_id)
            .all()
        )

        return {
            row.product_id: ProductStock(
                product_id=row.product_id,
                total_qty=int(row.total_qty or 0),
                usable_qty=int(row.usable_qty or 0),
                has_expiring_batch=bool(row.has_expiring),
            )
            for row in rows
        }

    def expiring_batches(self, within_days: int | None = None, as_of: datetime | None = None) -> list[ExpiringBatch]:
        """Usable batches that expire inside the warning horizon, soonest first."""
        today = self._today(as_of)
        days = self.expiry_warning_days if within_days is None else within_days
        horizon = today + timedelta(days=days)

        rows = (
            self.session.query(InventoryBatch, Product)
            .join(Product, InventoryBatch.product_id == Product.id)
            .filter(
                InventoryBatch.qty_on_hand > 0,
                InventoryBatch.expiry_date > today,
                InventoryBatch.expiry_date <= horizon,
            )
            .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
            .all()
        )

        return [
            ExpiringBatch(
                batch_id=batch.id,
                product_id=product.id,
                name_mm=product.name_mm,
                name_en=product.name_en,
                batch_no=batch.batch_no,
                expiry_date=batch.expiry_date,
                qty_on_hand=batch.qty_on_hand,
                days_left=(batch.expiry_date - today).days,
            )
            for batch, product in rows
        ]
