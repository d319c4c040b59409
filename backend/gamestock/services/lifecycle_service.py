# Overview: Service-layer operations for transaction lifecycles; one state machine shared by every kind.

"""
GameStock Transaction Lifecycle Controller

================================================================================
PURPOSE: Drive acquisitions, sales and trades through their status tables and
apply their catalog effects exactly when they cross the fulfilled boundary.
================================================================================

Each transaction kind is described by a TransactionKind value:
    - its status transition table
    - its fulfilled status (completed / delivered)
    - how its line items map to StockMovements

TRANSITION NATURE:
    FULFILLING: current != fulfilled, requested == fulfilled
                -> lock SKUs, batch-check decrements, apply every movement
    REVERSING:  current == fulfilled, requested != fulfilled
                -> apply the inverse of every movement (floor-at-zero)
    NEUTRAL:    anything else -> status and timestamps only

RULES (NON-NEGOTIABLE):
1. requested == current is a no-op (safe to retry)
2. A transition either fully applies or leaves catalog and document untouched
3. Stock effects, status, timestamps and audit events commit together
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ValidationError, NotFoundError, InvalidTransitionError
from gamestock.time_utils import utcnow
from . import catalog_service, stock_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_ledger_event
from .stock_service import StockMovement, INCREASE, DECREASE


FULFILLING = "fulfilling"
REVERSING = "reversing"
NEUTRAL = "neutral"

CANCELLED = "cancelled"


@dataclass(frozen=True)
class TransactionKind:
    """Everything the controller needs to know about one transaction kind."""
    name: str
    label: str
    model: Any
    transitions: dict[str, frozenset[str]]
    fulfilled_status: str
    timestamps: dict[str, str]
    movements: Callable[[Any], list[StockMovement]]
    event_category: str
    reference_attr: str

    @property
    def statuses(self) -> frozenset[str]:
        return frozenset(self.transitions)

    def allowed_from(self, status: str) -> frozenset[str]:
        return self.transitions.get(status, frozenset())

    def is_terminal(self, status: str) -> bool:
        return not self.allowed_from(status)


def classify(kind: TransactionKind, current: str, requested: str) -> str:
    if requested == kind.fulfilled_status and current != kind.fulfilled_status:
        return FULFILLING
    if current == kind.fulfilled_status and requested != kind.fulfilled_status:
        return REVERSING
    return NEUTRAL


def validate_status(kind: TransactionKind, status) -> str:
    if not isinstance(status, str) or status not in kind.statuses:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(kind.statuses))}",
            details={"field": "status"},
        )
    return status


def parse_overrides(raw) -> list[dict]:
    """[{line_id, variant}] -> normalized list (shape only)."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("line_item_overrides must be a list", details={"field": "line_item_overrides"})
    overrides = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or item.get("line_id") is None:
            raise ValidationError(
                f"line_item_overrides[{i}] must have a line_id", details={"field": "line_item_overrides"}
            )
        line_id = item.get("line_id")
        if isinstance(line_id, bool) or not isinstance(line_id, int):
            raise ValidationError(
                f"line_item_overrides[{i}].line_id must be an integer", details={"field": "line_item_overrides"}
            )
        overrides.append({
            "line_id": line_id,
            "variant": stock_service.parse_variant(item.get("variant"), f"line_item_overrides[{i}].variant"),
        })
    return overrides


def _apply_overrides(kind: TransactionKind, tx, overrides: list[dict]) -> None:
    if tx.status == kind.fulfilled_status or tx.status == CANCELLED:
        raise ValidationError(
            f"Line items cannot be changed once a {kind.label.lower()} is {tx.status}",
            details={"field": "line_item_overrides", "current_status": tx.status},
        )
    lines_by_id = {line.id: line for line in tx.lines}
    for override in overrides:
        line = lines_by_id.get(override["line_id"])
        if line is None:
            raise ValidationError(
                f"Line {override['line_id']} does not belong to this {kind.label.lower()}",
                details={"field": "line_item_overrides", "line_id": override["line_id"]},
            )
        line.variant = override["variant"]


def _lock_games(barcodes) -> dict:
    """Row-lock every referenced SKU in barcode order (stable lock ordering)."""
    games = {}
    for barcode in sorted(set(barcodes)):
        game = catalog_service.get_for_update(barcode)
        if game is not None:
            games[barcode] = game
    return games


def _record_movement(kind: TransactionKind, tx, movement: StockMovement, game, nature: str) -> None:
    append_ledger_event(
        event_type="inventory.increased" if movement.direction == INCREASE else "inventory.decreased",
        event_category="inventory",
        entity_type=kind.name,
        entity_id=tx.id,
        barcode=game.barcode,
        payload={
            "variant": movement.variant,
            "quantity": movement.quantity,
            "effect": nature,
            "stock_after": game.stock_for(movement.variant),
            "cost_basis_cents": game.cost_basis_cents,
        },
    )


def _adjust_sold(game, movement: StockMovement) -> None:
    if not movement.counts_as_sold:
        return
    # Stock leaving counts as sold; stock coming back un-counts it
    game.number_of_sold = max(0, (game.number_of_sold or 0) - movement.delta)


def _fulfill(kind: TransactionKind, tx) -> None:
    movements = kind.movements(tx)
    games = _lock_games(m.barcode for m in movements)

    for m in movements:
        if m.barcode not in games and not (m.direction == INCREASE and m.new_sku_details):
            raise NotFoundError("Game", m.barcode)

    stock_service.ensure_available(
        [(m.barcode, m.variant, m.quantity) for m in movements if m.checked and m.direction == DECREASE],
        games,
    )

    for m in movements:
        game = games.get(m.barcode)
        if m.direction == INCREASE:
            if game is None:
                # New SKU: starts empty so the blend below adopts the line's unit cost
                details = dict(m.new_sku_details)
                details["barcode"] = m.barcode
                details.setdefault("title", m.title)
                game = catalog_service.create_from_details(details)
                games[m.barcode] = game
            stock_service.receive(
                game,
                m.variant,
                m.quantity,
                m.unit_cost_cents,
                blend_scope=m.blend_scope,
                source_type=kind.name,
                source_id=tx.id,
            )
        else:
            stock_service.adjust(
                game, m.variant, m.delta, checked=m.checked, source_type=kind.name, source_id=tx.id,
            )
        _adjust_sold(game, m)
        _record_movement(kind, tx, m, game, FULFILLING)


def _reverse(kind: TransactionKind, tx) -> None:
    movements = [m.inverted() for m in kind.movements(tx)]
    games = _lock_games(m.barcode for m in movements)

    for m in movements:
        game = games.get(m.barcode)
        if game is None:
            current_app.logger.warning(
                "Skipping reversal of %s %s line: game %s no longer exists",
                kind.name, getattr(tx, kind.reference_attr), m.barcode,
            )
            continue
        if m.direction == INCREASE:
            # Returning stock that already left; never capped
            game.set_stock(m.variant, game.stock_for(m.variant) + m.quantity)
        else:
            stock_service.adjust(game, m.variant, m.delta, source_type=kind.name, source_id=tx.id)
        _adjust_sold(game, m)
        _record_movement(kind, tx, m, game, REVERSING)


def transition(
    kind: TransactionKind,
    transaction_id: int,
    requested,
    *,
    notes: str | None = None,
    line_item_overrides=None,
    annotate: Callable[[Any, str], None] | None = None,
):
    """
    Move a transaction to `requested`, applying catalog effects on the
    fulfilled boundary. Runs as one retried unit of work.

    annotate(tx, requested) may set kind-specific fields (e.g. a
    cancellation reason) before the commit.
    """
    requested = validate_status(kind, requested)
    overrides = parse_overrides(line_item_overrides)

    def _op():
        begin_write()
        tx = lock_for_update(db.session.query(kind.model).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFoundError(kind.label, transaction_id)

        current = tx.status
        if requested == current:
            # Status and stock stay put; variant overrides still apply
            if overrides:
                _apply_overrides(kind, tx, overrides)
            db.session.commit()
            return tx

        allowed = kind.allowed_from(current)
        if requested not in allowed:
            raise InvalidTransitionError(current, requested, allowed)

        if overrides:
            _apply_overrides(kind, tx, overrides)

        nature = classify(kind, current, requested)
        if nature == FULFILLING:
            _fulfill(kind, tx)
        elif nature == REVERSING:
            _reverse(kind, tx)
            fulfilled_col = kind.timestamps.get(kind.fulfilled_status)
            if fulfilled_col and not kind.is_terminal(requested):
                setattr(tx, fulfilled_col, None)

        tx.status = requested
        stamp_col = kind.timestamps.get(requested)
        if stamp_col:
            setattr(tx, stamp_col, utcnow())
        if notes:
            tx.admin_notes = notes
        if annotate:
            annotate(tx, requested)

        append_ledger_event(
            event_type=f"{kind.name}.{requested}",
            event_category=kind.event_category,
            entity_type=kind.name,
            entity_id=tx.id,
            note=f"{kind.label} {getattr(tx, kind.reference_attr)} {current} -> {requested}",
            payload={"from": current, "to": requested, "effect": nature},
        )

        db.session.commit()
        current_app.logger.info(
            "%s %s moved %s -> %s (%s)",
            kind.label, getattr(tx, kind.reference_attr), current, requested, nature,
        )
        return tx

    # IntegrityError: lost a new-SKU insert race; the retry takes the blend path
    return run_with_retry(_op, retry_on=(IntegrityError,))
