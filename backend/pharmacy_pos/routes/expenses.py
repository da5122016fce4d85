# Overview: Flask API routes for till expenses; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..models import Expense
from ..services.expense_service import ExpenseBook
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_date,
    enforce_rules_expense,
    validate_payload,
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"particulars", "amount", "method", "notes", "spent_at"},
    required_on_create={"particulars", "amount"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("")
def record_expense_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        expense = ExpenseBook(db.session).record_expense(**patch)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Failed to record expense"}), 500

    current_app.logger.info("Recorded expense id=%s amount=%s", expense.id, expense.amount)
    return jsonify({"success": True, "id": expense.id}), 201


@expenses_bp.get("")
def list_expenses_route():
    """
    Query params:
    - date: YYYY-MM-DD (optional) - only expenses on that UTC date
    """
    raw = request.args.get("date")
    try:
        day = coerce_date("date", raw) if raw else None
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    expenses = ExpenseBook(db.session).list_expenses(day)
    return jsonify({
        "items": [e.to_dict() for e in expenses],
        "count": len(expenses),
    }), 200
