# Overview: Flask API routes for trade operations; parses input and returns JSON responses.

# backend/gamestock/routes/trades.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import trade_service
from ..validation import parse_pagination


trades_bp = Blueprint("trades", __name__, url_prefix="/api/trades")


@trades_bp.post("/")
def create_trade_route():
    """
    Submit a trade.

    Body: customer details, games_given[], games_received[]
    """
    try:
        data = request.get_json(silent=True) or {}
        trade = trade_service.create_trade(data)
        return jsonify({"trade": trade.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create trade")
        return jsonify({"error": "Internal server error"}), 500


@trades_bp.get("/<int:trade_id>")
def get_trade_route(trade_id: int):
    try:
        trade = trade_service.get_trade(trade_id)
        return jsonify({"trade": trade.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get trade")
        return jsonify({"error": "Internal server error"}), 500


@trades_bp.get("/")
def list_trades_route():
    try:
        page, limit = parse_pagination(request.args)
        trades, total = trade_service.list_trades(
            status=request.args.get("status") or None,
            search=request.args.get("search") or None,
            page=page,
            limit=limit,
        )
        return jsonify({
            "trades": [t.to_dict() for t in trades],
            "pagination": {"page": page, "limit": limit, "total": total},
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list trades")
        return jsonify({"error": "Internal server error"}), 500


@trades_bp.patch("/<int:trade_id>/status")
def update_trade_status_route(trade_id: int):
    """
    Move a trade to a new status.

    Completing swaps the stock; cancelling a completed trade undoes it.
    """
    try:
        data = request.get_json(silent=True) or {}
        trade = trade_service.transition_trade(
            trade_id,
            data.get("status"),
            notes=data.get("notes"),
            line_item_overrides=data.get("line_item_overrides"),
        )
        return jsonify({"trade": trade.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update trade status")
        return jsonify({"error": "Internal server error"}), 500
