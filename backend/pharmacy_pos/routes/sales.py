# Overview: Flask API routes for checkout and receipts; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import PharmacyError, StorageError
from ..extensions import db
from ..services.checkout_service import CheckoutEngine
from ..services.sales_service import load_receipt
from ..validation import ValidationError, parse_checkout_payload

sales_bp = Blueprint("sales", __name__)


def _engine() -> CheckoutEngine:
    return CheckoutEngine(
        db.session,
        allow_expired=current_app.config["CHECKOUT_ALLOW_EXPIRED_BATCHES"],
        invoice_prefix=current_app.config["INVOICE_PREFIX"],
    )


@sales_bp.post("/sale")
def create_sale_route():
    """
    Checkout: allocate the cart FEFO across batches and record the sale.

    Body: {"items": [{"productId": 1, "qty": 2}], "payment": {"method": "CASH", "amount": 5000}}
    """
    try:
        lines, payment = parse_checkout_payload(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = _engine().checkout(lines, payment)
    except StorageError:
        current_app.logger.exception("Sale transaction failed")
        return jsonify({"error": "Internal server error"}), 500
    except PharmacyError as e:
        current_app.logger.warning("Sale rejected: %s", e)
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Sale transaction failed")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info(
        "Sale %s committed: sale_id=%s total=%s lines=%s",
        result.invoice_no, result.sale_id, result.total, len(result.allocations),
    )
    body = {"success": True}
    body.update(result.to_dict())
    return jsonify(body), 200


@sales_bp.get("/api/sales/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Receipt lookup: sale header, items with product names, payment."""
    try:
        receipt = load_receipt(db.session, sale_id)
    except Exception:
        current_app.logger.exception("Failed to fetch sale details")
        return jsonify({"error": "Failed to fetch sale details"}), 500

    if receipt is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(receipt), 200
