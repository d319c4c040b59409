# Overview: Service-layer operations for the audit ledger; append-only event log.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import LedgerEvent
"""
Audit Ledger Invariants (authoritative)

- Rows are only ever inserted; nothing here updates or deletes them.
- Stock movements, clamps, catalog edits and status changes all land here.
- An event commits or rolls back with the change it records.
- occurred_at defaults to the database clock when the caller passes None.
"""


def append_ledger_event(
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    barcode: str | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> LedgerEvent:
    """
    Record one stock, catalog or document event in the caller's transaction.

    Flushed, not committed: the caller's commit or rollback decides its fate.
    """
    ev = LedgerEvent(
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        barcode=barcode,
        occurred_at=occurred_at,  # if None, db default applies
        note=note,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_events(
    *,
    event_category: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    barcode: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[LedgerEvent], int]:
    """Newest-first audit trail with optional filters."""
    query = db.session.query(LedgerEvent)
    if event_category:
        query = query.filter(LedgerEvent.event_category == event_category)
    if entity_type:
        query = query.filter(LedgerEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(LedgerEvent.entity_id == entity_id)
    if barcode:
        query = query.filter(LedgerEvent.barcode == barcode)

    total = query.count()
    events = (
        query.order_by(LedgerEvent.occurred_at.desc(), LedgerEvent.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return events, total
