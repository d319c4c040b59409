# Overview: Flask API routes for financial reporting; parses query params and returns JSON reports.

# backend/gamestock/routes/financials.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import reporting_service

financials_bp = Blueprint("financials", __name__, url_prefix="/api/financials")


@financials_bp.get("/")
def financial_report_route():
    """
    Costs, revenue and profit over completed acquisitions and delivered sales.

    Query params:
        filter_type: all | monthly | bi-annual | annual | custom
        start_date, end_date: required for custom
        period: all | day | week | month | bi-annual | annual
    """
    try:
        report = reporting_service.financial_report(
            filter_type=request.args.get("filter_type") or reporting_service.FILTER_ALL,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
            period=request.args.get("period") or reporting_service.PERIOD_ALL,
        )
        return jsonify(report), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build financial report")
        return jsonify({"error": "Internal server error"}), 500
