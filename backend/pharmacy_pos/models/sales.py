from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PAYMENT_METHODS = ("CASH", "KPAY", "WAVE")


class Sale(db.Model):
    """
    Sale header. Created and totalled inside the checkout transaction;
    never edited afterwards.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_no", name="uq_sales_invoice_no"),
        db.Index("ix_sales_sold_at", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_no = db.Column(db.String(64), nullable=False)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    subtotal = db.Column(db.Integer, nullable=False, default=0)
    discount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)

    items = db.relationship("SaleItem", back_populates="sale", lazy=True, order_by="SaleItem.id")
    payment = db.relationship("Payment", back_populates="sale", uselist=False, lazy=True)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice_no={self.invoice_no!r} total={self.total}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "sold_at": to_utc_z(self.sold_at),
            "subtotal": self.subtotal,
            "discount": self.discount,
            "total": self.total,
        }


class SaleItem(db.Model):
    """
    One allocation of a cart line against one batch.

    A cart line that spans two batches produces two rows for the same
    (sale_id, product_id). cost_at_sale is the batch cost snapshot used by
    profit reporting.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_sale_items_qty_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("inventory_batches.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Integer, nullable=False)
    cost_at_sale = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")
    batch = db.relationship("InventoryBatch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "qty": self.qty,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "cost_at_sale": self.cost_at_sale,
        }


class Payment(db.Model):
    """
    Payment for a sale (exactly one per sale).

    amount is what the sale was settled for and always equals the sale total.
    tendered is what the cashier submitted; change_due is the difference.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_payments_sale"),
        db.CheckConstraint(
            "method IN ('CASH', 'KPAY', 'WAVE')",
            name="ck_payments_method",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)

    method = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    tendered = db.Column(db.Integer, nullable=False)
    change_due = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="payment")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount": self.amount,
            "tendered": self.tendered,
            "change_due": self.change_due,
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceSequence(db.Model):
    """
    Atomic invoice counters, one row per prefix.

    WHY: Clock-derived invoice numbers collide when two terminals check out
    in the same millisecond.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("prefix", name="uq_invoice_sequences_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prefix": self.prefix,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
