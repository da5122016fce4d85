# Overview: Read-side sale lookups (receipts).

from __future__ import annotations

from ..models import Payment, Product, Sale, SaleItem


def load_receipt(session, sale_id: int) -> dict | None:
    """
    Sale header, its items with product names, and its payment.

    Read-only: calling it twice returns the same data.
    """
    sale = session.get(Sale, sale_id)
    if sale is None:
        return None

    rows = (
        session.query(SaleItem, Product.name_en, Product.name_mm)
        .join(Product, SaleItem.product_id == Product.id)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.id.asc())
        .all()
    )

    items = []
    for item, name_en, name_mm in rows:
        entry = item.to_dict()
        entry["name_en"] = name_en
        entry["name_mm"] = name_mm
        items.append(entry)

    payment = session.query(Payment).filter_by(sale_id=sale_id).first()

    return {
        "sale": sale.to_dict(),
        "items": items,
        "payment": payment.to_dict() if payment else None,
    }
