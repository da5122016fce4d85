"""
Checkout Engine - turns a cart into a committed sale or nothing at all.

The whole checkout is one database transaction:

1. take the write lock
2. insert the sale header (total 0) under the next invoice number
3. per cart line, draw stock from batches in FEFO order, writing one
   sale_items row per batch touched with the batch cost as cost_at_sale
4. record the payment and backfill the sale totals
5. commit

Any failure rolls everything back: no sale, no sale items, no payment and
no batch decrement survives a rejected checkout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from ..errors import InsufficientStock, PaymentShortfall, StorageError
from ..models import Payment, Sale, SaleItem
from ..time_utils import utcnow
from ..validation import CartLine, PaymentRequest
from .concurrency import begin_write_transaction, run_with_retry
from .inventory_service import InventoryLedger
from .invoice_service import next_invoice_number


@dataclass(frozen=True)
class BatchAllocation:
    """Quantity drawn from one batch for one cart line."""
    batch_id: int
    product_id: int
    qty: int
    unit_price: int
    cost_at_sale: int

    @property
    def line_total(self) -> int:
        return self.qty * self.unit_price

    def to_dict(self) -> dict:
        return {
            "batchId": self.batch_id,
            "productId": self.product_id,
            "qty": self.qty,
            "unitPrice": self.unit_price,
            "costAtSale": self.cost_at_sale,
            "lineTotal": self.line_total,
        }


@dataclass(frozen=True)
class CheckoutResult:
    sale_id: int
    invoice_no: str
    total: int
    change_due: int
    allocations: list[BatchAllocation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "saleId": self.sale_id,
            "invoiceNo": self.invoice_no,
            "total": self.total,
            "change": self.change_due,
            "allocations": [a.to_dict() for a in self.allocations],
        }


class CheckoutEngine:
    """
    Sale checkout against the inventory ledger.

    allow_expired=True restores the legacy behaviour of selling from
    batches past their expiry date; by default only unexpired batches are
    allocated, matching the usable_qty shown in product listings.
    """

    def __init__(
        self,
        session,
        *,
        ledger: InventoryLedger | None = None,
        allow_expired: bool = False,
        invoice_prefix: str = "INV",
        clock=utcnow,
    ):
        self.session = session
        self.clock = clock
        self.ledger = ledger or InventoryLedger(session, clock=clock)
        self.allow_expired = allow_expired
        self.invoice_prefix = invoice_prefix

    def checkout(self, lines: Iterable[CartLine], payment: PaymentRequest) -> CheckoutResult:
        """
        Run the checkout transaction.

        Raises ProductNotFound, InsufficientStock or PaymentShortfall for
        domain rejections and StorageError when the database fails for any
        other reason. Lock timeouts are retried before giving up.
        """
        cart = [line for line in lines if line.qty > 0]
        if not cart:
            raise ValueError("cart must contain at least one line with qty > 0")

        def _op() -> CheckoutResult:
            try:
                result = self._checkout_locked(cart, payment)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            return result

        try:
            return run_with_retry(self.session, _op)
        except SQLAlchemyError as exc:
            raise StorageError("Sale could not be recorded") from exc

    def _checkout_locked(self, cart: list[CartLine], payment: PaymentRequest) -> CheckoutResult:
        begin_write_transaction(self.session)
        now = self.clock()

        sale = Sale(
            invoice_no=next_invoice_number(self.session, self.invoice_prefix),
            sold_at=now,
            subtotal=0,
            discount=0,
            total=0,
        )
        self.session.add(sale)
        self.session.flush()

        subtotal = 0
        allocations: list[BatchAllocation] = []

        for line in cart:
            line_allocations = self._allocate_line(sale, line, now)
            allocations.extend(line_allocations)
            subtotal += sum(a.line_total for a in line_allocations)

        if payment.amount < subtotal:
            raise PaymentShortfall(total=subtotal, tendered=payment.amount)

        change_due = payment.amount - subtotal
        self.session.add(
            Payment(
                sale_id=sale.id,
                method=payment.method,
                amount=subtotal,
                tendered=payment.amount,
                change_due=change_due,
                created_at=now,
            )
        )

        sale.subtotal = subtotal
        sale.total = subtotal - sale.discount
        self.session.flush()

        return CheckoutResult(
            sale_id=sale.id,
            invoice_no=sale.invoice_no,
            total=sale.total,
            change_due=change_due,
            allocations=allocations,
        )

    def _allocate_line(self, sale: Sale, line: CartLine, now) -> list[BatchAllocation]:
        product = self.ledger.get_product(line.product_id, lock=True)
        unit_price = product.sale_price

        batches = self.ledger.list_allocatable_batches(
            product.id,
            as_of=now,
            include_expired=self.allow_expired,
            lock=True,
        )

        remaining = line.qty
        allocations: list[BatchAllocation] = []

        for batch in batches:
            if remaining <= 0:
                break

            take = min(batch.qty_on_hand, remaining)
            self.ledger.decrement(batch, take)

            self.session.add(
                SaleItem(
                    sale_id=sale.id,
                    product_id=product.id,
                    batch_id=batch.id,
                    qty=take,
                    unit_price=unit_price,
                    line_total=take * unit_price,
                    cost_at_sale=batch.cost_price,
                )
            )
            allocations.append(
                BatchAllocation(
                    batch_id=batch.id,
                    product_id=product.id,
                    qty=take,
                    unit_price=unit_price,
                    cost_at_sale=batch.cost_price,
                )
            )
            remaining -= take

        if remaining > 0:
            raise InsufficientStock(product.id, requested=line.qty, available=line.qty - remaining)

        self.session.flush()
        return allocations
