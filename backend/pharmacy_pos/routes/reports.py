from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import reporting_service
from ..services.reporting_service import ReportingAggregator
from ..validation import ValidationError, coerce_date


reports_bp = Blueprint("reports", __name__)


def _date_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    return coerce_date(name, raw)


@reports_bp.get("/report/profit")
def profit_report():
    try:
        start = _date_arg("startDate")
        end = _date_arg("endDate")
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        summary = ReportingAggregator(db.session).compute_profit(start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Error calculating profit")
        return jsonify({"error": "Failed to calculate profit"}), 500

    return jsonify({
        "totalProfit": summary.net_profit,
        "totalRevenue": summary.total_revenue,
        "totalCost": summary.total_cost,
    }), 200


@reports_bp.get("/report/detailed-profit")
def detailed_profit_report():
    try:
        start = _date_arg("startDate")
        end = _date_arg("endDate")
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        report = ReportingAggregator(db.session).detailed_profit(start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Error calculating detailed profit")
        return jsonify({"error": "Failed to calculate profit"}), 500

    return jsonify(report), 200


@reports_bp.get("/api/ledger")
def ledger_report():
    try:
        day = _date_arg("date")
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    if day is None:
        return jsonify({"error": "Date parameter is required (YYYY-MM-DD)"}), 400

    try:
        report = ReportingAggregator(db.session).compute_ledger(day)
    except Exception:
        current_app.logger.exception("Error fetching ledger")
        return jsonify({"error": "Failed to fetch ledger"}), 500

    return jsonify(report), 200
