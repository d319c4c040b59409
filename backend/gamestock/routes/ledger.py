# backend/gamestock/routes/ledger.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import ledger_service
from ..validation import coerce_int, parse_pagination

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/events")
def list_events_route():
    """
    Audit trail, newest first.

    Query params: category, entity_type, entity_id, barcode, page, limit
    """
    try:
        page, limit = parse_pagination(request.args)
        entity_id = request.args.get("entity_id")
        events, total = ledger_service.list_events(
            event_category=request.args.get("category") or None,
            entity_type=request.args.get("entity_type") or None,
            entity_id=coerce_int(entity_id, "entity_id") if entity_id else None,
            barcode=request.args.get("barcode") or None,
            page=page,
            limit=limit,
        )
        return jsonify({
            "events": [e.to_dict() for e in events],
            "pagination": {"page": page, "limit": limit, "total": total},
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list ledger events")
        return jsonify({"error": "Internal server error"}), 500
