from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class Product(db.Model):
    """
    Product master data.

    Names are bilingual: name_mm (Myanmar) is the shelf name and is required,
    name_en is optional. sale_price is the current unit price; historical
    prices live on sale_items.unit_price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_barcode", "barcode"),
        db.CheckConstraint("sale_price >= 0", name="ck_products_sale_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name_mm = db.Column(db.String(255), nullable=False)
    name_en = db.Column(db.String(255), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    sale_price = db.Column(db.Integer, nullable=False)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    batches = db.relationship(
        "InventoryBatch",
        back_populates="product",
        lazy=True,
        order_by="InventoryBatch.expiry_date",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name_mm={self.name_mm!r} sale_price={self.sale_price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name_mm": self.name_mm,
            "name_en": self.name_en,
            "barcode": self.barcode,
            "sale_price": self.sale_price,
            "reorder_level": self.reorder_level,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryBatch(db.Model):
    """
    One received lot of a product: a single expiry date and cost basis.

    qty_on_hand only ever goes down after receipt (checkout decrements it);
    received_qty is kept so the allocation history can be audited against
    sale_items.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = (
        # FEFO lookups: product, then soonest expiry
        db.Index("ix_batches_product_expiry", "product_id", "expiry_date"),
        db.CheckConstraint("qty_on_hand >= 0", name="ck_batches_qty_nonneg"),
        db.CheckConstraint("received_qty > 0", name="ck_batches_received_pos"),
        db.CheckConstraint("cost_price >= 0", name="ck_batches_cost_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    batch_no = db.Column(db.String(64), nullable=False)
    expiry_date = db.Column(db.Date, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False)

    received_qty = db.Column(db.Integer, nullable=False)
    qty_on_hand = db.Column(db.Integer, nullable=False)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="batches")

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch id={self.id} product_id={self.product_id} "
            f"batch_no={self.batch_no!r} expiry={self.expiry_date} qty={self.qty_on_hand}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "batch_no": self.batch_no,
            "expiry_date": to_iso_date(self.expiry_date),
            "cost_price": self.cost_price,
            "received_qty": self.received_qty,
            "qty_on_hand": self.qty_on_hand,
            "received_at": to_utc_z(self.received_at),
        }
