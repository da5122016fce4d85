# Overview: Flask API routes for stock receipt and stock history; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import InvalidExpiry, ProductNotFound
from ..extensions import db
from ..models import InventoryBatch
from ..services.inventory_service import InventoryLedger
from ..services.reporting_service import ReportingAggregator
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_stock_receive,
    validate_payload,
)

# Receipt payload uses the column names except qty, which maps onto
# received_qty/qty_on_hand.
RECEIVE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "batch_no", "expiry_date", "cost_price", "qty"},
    required_on_create={"product_id", "batch_no", "expiry_date", "cost_price", "qty"},
)

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _ledger() -> InventoryLedger:
    return InventoryLedger(
        db.session,
        expiry_warning_days=current_app.config["EXPIRY_WARNING_DAYS"],
    )


def _validate_receive(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    body = dict(payload)
    qty = body.pop("qty", None)
    missing = sorted(
        f for f in RECEIVE_POLICY.required_on_create
        if (qty if f == "qty" else body.get(f)) in (None, "")
    )
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    body["qty_on_hand"] = qty
    policy = ModelValidationPolicy(
        writable_fields=(RECEIVE_POLICY.writable_fields - {"qty"}) | {"qty_on_hand"},
    )
    patch = validate_payload(model=InventoryBatch, payload=body, policy=policy, partial=True)
    patch["qty"] = patch.pop("qty_on_hand")
    enforce_rules_stock_receive(patch)
    return patch


@stock_bp.post("/receive")
def receive_stock_route():
    """
    Receive a new batch.

    Body: {"product_id", "batch_no", "expiry_date": "YYYY-MM-DD", "cost_price", "qty"}
    Rejected with 400 when the expiry date is today or earlier.
    """
    try:
        patch = _validate_receive(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        batch = _ledger().receive_stock(**patch)
    except InvalidExpiry as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ProductNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Failed to receive stock"}), 500

    current_app.logger.info(
        "Received batch id=%s product_id=%s batch_no=%r qty=%s expiry=%s",
        batch.id, batch.product_id, batch.batch_no, batch.received_qty, batch.expiry_date,
    )
    return jsonify({"success": True, "id": batch.id}), 201


@stock_bp.get("/history")
def stock_history_route():
    try:
        return jsonify(ReportingAggregator(db.session).compute_stock_valuation()), 200
    except Exception:
        current_app.logger.exception("Failed to fetch stock history")
        return jsonify({"error": "Failed to fetch stock history"}), 500


@stock_bp.get("/batches/<int:product_id>")
def list_batches_route(product_id: int):
    """
    Batches with stock left for a product, soonest expiry first.

    Query params:
    - usable: "true" to only list batches checkout may draw from
    """
    usable = request.args.get("usable", "false").lower() == "true"
    ledger = _ledger()

    try:
        ledger.get_product(product_id)
    except ProductNotFound as e:
        return jsonify({"error": str(e)}), 404

    if usable:
        batches = ledger.list_allocatable_batches(
            product_id,
            include_expired=current_app.config["CHECKOUT_ALLOW_EXPIRED_BATCHES"],
        )
    else:
        batches = ledger.list_available_batches(product_id)

    return jsonify({
        "product_id": product_id,
        "items": [b.to_dict() for b in batches],
        "count": len(batches),
    }), 200
