# backend/gamestock/routes/system.py
"""
System health endpoint.

Reports database connectivity and the state of the inventory ledger so
operators can tell a running process from a working one.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Acquisition, Game, LedgerEvent, Sale, Trade
from gamestock.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

# Statuses with no catalog effect applied yet
OPEN_STATUSES = {
    Acquisition: ("pending",),
    Sale: ("pending", "confirmed", "preparing", "shipped"),
    Trade: ("pending", "confirmed"),
}


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """Round-trip the catalog table."""
    start_time = time.time()
    try:
        game_count = db.session.query(Game).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"games": game_count},
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Database error",
        }


def check_ledger_health() -> dict:
    """
    Open documents awaiting fulfillment and the most recent audit event.

    Degraded (still 200) when the stock reversal policy is misconfigured.
    """
    start_time = time.time()
    try:
        open_documents = {
            model.__tablename__: db.session.query(model).filter(model.status.in_(statuses)).count()
            for model, statuses in OPEN_STATUSES.items()
        }
        last_event = db.session.query(db.func.max(LedgerEvent.occurred_at)).scalar()
        details = {
            "open_documents": open_documents,
            "last_event_at": to_utc_z(last_event),
            "reversal_policy": current_app.config.get("STOCK_REVERSAL_POLICY"),
        }
    except Exception:
        current_app.logger.exception("Ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Ledger error",
        }

    if details["reversal_policy"] not in ("clamp", "strict"):
        return {
            "status": "degraded",
            "latency_ms": _elapsed_ms(start_time),
            "warning": "Unknown STOCK_REVERSAL_POLICY, falling back to clamp",
            "details": details,
        }
    return {"status": "healthy", "latency_ms": _elapsed_ms(start_time), "details": details}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database or ledger unreachable
    """
    start_time = time.time()
    checks = {
        "database": check_database_health(),
        "ledger": check_ledger_health(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status
