# backend/pharmacy_pos/services/products_service.py
"""
Product catalogue.

Listings carry the derived stock figures from the inventory ledger so the
cashier screen can grey out products with no usable stock and flag batches
close to expiry.
"""
from __future__ import annotations

from ..models import Product
from .inventory_service import EMPTY_STOCK, InventoryLedger

PRODUCT_MUTABLE_FIELDS = {"name_mm", "name_en", "barcode", "sale_price", "reorder_level"}
DEFAULT_REORDER_LEVEL = 10


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


class ProductCatalogue:
    def __init__(self, session, *, ledger: InventoryLedger | None = None):
        self.session = session
        self.ledger = ledger or InventoryLedger(session)

    def list_products(self) -> list[dict]:
        stock = self.ledger.product_stock()
        products = (
            self.session.query(Product)
            .order_by(Product.name_mm.asc(), Product.id.asc())
            .all()
        )

        items = []
        for p in products:
            figures = stock.get(p.id, EMPTY_STOCK)
            item = p.to_dict()
            item.update(figures.to_dict())
            item["needs_reorder"] = figures.usable_qty <= p.reorder_level
            items.append(item)
        return items

    def create_product(self, patch: dict) -> Product:
        """Create a product from a validated patch dict and commit it."""
        p = Product()
        apply_product_patch(p, patch)
        if p.reorder_level is None:
            p.reorder_level = DEFAULT_REORDER_LEVEL

        self.session.add(p)
        self.session.commit()
        return p
