# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/gamestock/routes/sales.py
"""Sales (customer order) API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import sales_service
from ..validation import parse_pagination


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
def create_sale_route():
    """
    Place an order.

    Line prices and cost basis are snapshotted from the catalog; stock is
    only deducted when the order is delivered.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(data)
        return jsonify({"sale": sale.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    """
    List sales.

    Query params: status, search, page, limit
    """
    try:
        page, limit = parse_pagination(request.args)
        sales, total = sales_service.list_sales(
            status=request.args.get("status") or None,
            search=request.args.get("search") or None,
            page=page,
            limit=limit,
        )
        return jsonify({
            "sales": [s.to_dict() for s in sales],
            "pagination": {"page": page, "limit": limit, "total": total},
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.patch("/<int:sale_id>/status")
def update_sale_status_route(sale_id: int):
    """
    Move a sale to a new status.

    Body: {status, notes?, cancellation_reason?, line_item_overrides?}
    Delivering deducts stock; cancelling a delivered sale returns it.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.transition_sale(
            sale_id,
            data.get("status"),
            notes=data.get("notes"),
            line_item_overrides=data.get("line_item_overrides"),
            cancellation_reason=data.get("cancellation_reason"),
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500
