# Overview: Flask API routes for the product catalogue; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..models import Product
from ..services.inventory_service import InventoryLedger
from ..services.products_service import ProductCatalogue
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name_mm", "name_en", "barcode", "sale_price", "reorder_level"},
    required_on_create={"name_mm", "sale_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


def _catalogue() -> ProductCatalogue:
    ledger = InventoryLedger(
        db.session,
        expiry_warning_days=current_app.config["EXPIRY_WARNING_DAYS"],
    )
    return ProductCatalogue(db.session, ledger=ledger)


@products_bp.get("")
def list_products():
    """
    List all products with derived stock quantities.

    Each item carries total_qty, usable_qty (unexpired stock),
    has_expiring_batch and needs_reorder.
    """
    try:
        return jsonify(_catalogue().list_products()), 200
    except Exception:
        current_app.logger.exception("Failed to fetch products")
        return jsonify({"error": "Failed to fetch products"}), 500


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = _catalogue().create_product(patch)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500

    current_app.logger.info("Created product id=%s name_mm=%r", product.id, product.name_mm)
    return jsonify({"id": product.id, "success": True}), 201
