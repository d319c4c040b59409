# Overview: Flask API routes for the game catalog; parses input and returns JSON responses.

# backend/gamestock/routes/catalog.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import catalog_service
from ..validation import coerce_bool, parse_pagination


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/games")


@catalog_bp.get("/")
def list_games_route():
    """
    List games.

    Query params: search, platform, in_stock, page, limit
    """
    try:
        page, limit = parse_pagination(request.args)
        games, total = catalog_service.list_games(
            search=request.args.get("search") or None,
            platform=request.args.get("platform") or None,
            in_stock_only=coerce_bool(request.args.get("in_stock")),
            page=page,
            limit=limit,
        )
        return jsonify({
            "games": [g.to_dict() for g in games],
            "pagination": {"page": page, "limit": limit, "total": total},
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list games")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/<barcode>")
def get_game_route(barcode: str):
    try:
        game = catalog_service.get_by_barcode(barcode)
        return jsonify({"game": game.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get game")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/")
def create_game_route():
    """
    Create a game. Fails with 409 if the barcode already exists.
    """
    try:
        data = request.get_json(silent=True) or {}
        game = catalog_service.create_game(data)
        return jsonify({"game": game.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create game")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/<barcode>")
def upsert_game_route(barcode: str):
    """
    Update a game's catalog attributes, creating it if absent.

    Stock and cost basis are not editable here; they only move through
    acquisitions, sales and trades.
    """
    try:
        data = request.get_json(silent=True) or {}
        game, created = catalog_service.upsert(barcode, data)
        return jsonify({"game": game.to_dict(), "created": created}), 201 if created else 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update game")
        return jsonify({"error": "Internal server error"}), 500
