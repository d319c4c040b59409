# Overview: Flask API routes for acquisition (supplier buying) operations; parses input and returns JSON responses.

# backend/gamestock/routes/acquisitions.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import acquisition_service
from ..validation import parse_pagination


acquisitions_bp = Blueprint("acquisitions", __name__, url_prefix="/api/acquisitions")


@acquisitions_bp.post("/")
def create_acquisition_route():
    """
    Record a supplier purchase.

    Stock is received (and cost basis blended) when it is marked completed.
    """
    try:
        data = request.get_json(silent=True) or {}
        acquisition = acquisition_service.create_acquisition(data)
        return jsonify({"acquisition": acquisition.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create acquisition")
        return jsonify({"error": "Internal server error"}), 500


@acquisitions_bp.get("/<int:acquisition_id>")
def get_acquisition_route(acquisition_id: int):
    try:
        acquisition = acquisition_service.get_acquisition(acquisition_id)
        return jsonify({"acquisition": acquisition.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get acquisition")
        return jsonify({"error": "Internal server error"}), 500


@acquisitions_bp.get("/")
def list_acquisitions_route():
    try:
        page, limit = parse_pagination(request.args)
        acquisitions, total = acquisition_service.list_acquisitions(
            status=request.args.get("status") or None,
            search=request.args.get("search") or None,
            page=page,
            limit=limit,
        )
        return jsonify({
            "acquisitions": [a.to_dict() for a in acquisitions],
            "pagination": {"page": page, "limit": limit, "total": total},
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list acquisitions")
        return jsonify({"error": "Internal server error"}), 500


@acquisitions_bp.patch("/<int:acquisition_id>/status")
def update_acquisition_status_route(acquisition_id: int):
    try:
        data = request.get_json(silent=True) or {}
        acquisition = acquisition_service.transition_acquisition(
            acquisition_id,
            data.get("status"),
            notes=data.get("notes"),
            line_item_overrides=data.get("line_item_overrides"),
        )
        return jsonify({"acquisition": acquisition.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update acquisition status")
        return jsonify({"error": "Internal server error"}), 500
