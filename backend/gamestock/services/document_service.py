# Overview: Service-layer operations for document numbering; allocates per-day reference codes.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from gamestock.time_utils import period_key


ACQUISITION = "acquisition"
SALE = "sale"
TRADE = "trade"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_number(document_type: str, period: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period=period)
        .scalar()
    )
    return current - 1


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    period: str,
    pad: int = 3,
    separator: str = "-",
) -> str:
    """
    Atomically allocate the next document number for a type/period.

    Runs inside the caller's unit of work: the UPDATE takes the row lock and
    the number is only consumed if the caller commits.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not period:
        raise DocumentSequenceError("period is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        next_num = _current_number(document_type, period)
    else:
        seq = DocumentSequence(document_type=document_type, period=period, next_number=2)
        try:
            # Savepoint so a lost insert race does not discard the caller's work
            with db.session.begin_nested():
                db.session.add(seq)
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            db.session.flush()
            next_num = _current_number(document_type, period)
        else:
            next_num = 1

    return f"{prefix}{separator}{period}{separator}{next_num:0{pad}d}"


def next_acquisition_reference(now=None) -> str:
    """BUY-YYYYMMDD-NNN"""
    return next_document_number(
        document_type=ACQUISITION, prefix="BUY", period=period_key(now), pad=3,
    )


def next_trade_reference(now=None) -> str:
    """TRADE-YYYYMMDD-NNNN"""
    return next_document_number(
        document_type=TRADE, prefix="TRADE", period=period_key(now), pad=4,
    )


def next_order_number(now=None) -> str:
    """SBYYMMDDNNN"""
    return next_document_number(
        document_type=SALE, prefix="SB", period=period_key(now, short_year=True), pad=3, separator="",
    )
