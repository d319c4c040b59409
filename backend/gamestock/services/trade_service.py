# Overview: Service-layer operations for trades (barter of games between customer and store).

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Trade, TradeLine, ROLE_GIVEN, ROLE_RECEIVED
from ..errors import NotFoundError, DuplicateBarcodeError
from ..validation import (
    coerce_bool,
    coerce_cents,
    coerce_int,
    optional_str,
    parse_customer,
    require_list,
    validate_barcode,
)
from gamestock.time_utils import utcnow
from . import catalog_service, document_service, lifecycle_service, metrics_service, stock_service
from .concurrency import begin_write, run_with_retry
from .ledger_service import append_ledger_event
from .lifecycle_service import TransactionKind
from .stock_service import StockMovement, INCREASE, DECREASE, BLEND_VARIANT


PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"

TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, COMPLETED, CANCELLED}),
    CONFIRMED: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset({CANCELLED}),
    CANCELLED: frozenset(),
}


def trade_movements(trade: Trade) -> list[StockMovement]:
    """
    Games the customer gives come in (costed at their trade-in value against
    the stock of the same variant); games the customer receives go out.
    """
    movements = []
    for line in trade.lines:
        if line.role == ROLE_GIVEN:
            movements.append(StockMovement(
                barcode=line.barcode,
                title=line.title,
                variant=line.variant,
                quantity=line.quantity,
                direction=INCREASE,
                unit_cost_cents=line.unit_value_cents,
                blend_scope=BLEND_VARIANT,
                new_sku_details=line.new_sku_details if line.is_new_sku else None,
                line_id=line.id,
            ))
        else:
            movements.append(StockMovement(
                barcode=line.barcode,
                title=line.title,
                variant=line.variant,
                quantity=line.quantity,
                direction=DECREASE,
                checked=True,
                line_id=line.id,
            ))
    return movements


TRADE_KIND = TransactionKind(
    name="trade",
    label="Trade",
    model=Trade,
    transitions=TRANSITIONS,
    fulfilled_status=COMPLETED,
    timestamps={
        CONFIRMED: "confirmed_at",
        COMPLETED: "completed_at",
        CANCELLED: "cancelled_at",
    },
    movements=trade_movements,
    event_category="trades",
    reference_attr="trade_reference",
)


def _parse_given(raw: dict, index: int) -> dict:
    field = f"games_given[{index}]"
    return {
        "role": ROLE_GIVEN,
        "barcode": validate_barcode(raw.get("barcode"), f"{field}.barcode"),
        "title": optional_str(raw, "title", max_length=200),
        "quantity": coerce_int(raw.get("quantity"), f"{field}.quantity", minimum=1),
        "unit_value_cents": coerce_cents(raw.get("unit_value_cents"), f"{field}.unit_value_cents"),
        "variant": stock_service.parse_variant(raw.get("variant"), f"{field}.variant"),
        "is_new_sku": coerce_bool(raw.get("is_new_sku")),
        "new_sku_details": raw.get("new_sku_details"),
    }


def _parse_received(raw: dict, index: int) -> dict:
    field = f"games_received[{index}]"
    return {
        "role": ROLE_RECEIVED,
        "barcode": validate_barcode(raw.get("barcode"), f"{field}.barcode"),
        "quantity": coerce_int(raw.get("quantity"), f"{field}.quantity", minimum=1),
        "variant": stock_service.parse_variant(raw.get("variant"), f"{field}.variant"),
    }


def _resolve_given(line: dict) -> dict:
    if line["is_new_sku"]:
        if catalog_service.find_by_barcode(line["barcode"]):
            raise DuplicateBarcodeError(line["barcode"])
        details = dict(line["new_sku_details"] or {})
        details.setdefault("title", line["title"])
        attrs = catalog_service.validate_new_sku_details(details, barcode=line["barcode"])
        return {**line, "title": attrs["title"], "new_sku_details": attrs}

    game = catalog_service.find_by_barcode(line["barcode"])
    if not game:
        raise NotFoundError("Game", line["barcode"])
    return {**line, "title": line["title"] or game.title, "new_sku_details": None}


def create_trade(payload: dict) -> Trade:
    header = parse_customer(payload)
    header.update({
        "trade_location": optional_str(payload, "trade_location", max_length=500),
        "notes": optional_str(payload, "notes", max_length=1000),
        "admin_notes": optional_str(payload, "admin_notes", max_length=1000),
    })
    given = [
        _parse_given(raw, i)
        for i, raw in enumerate(require_list(payload, "games_given", label="game given"))
    ]
    received = [
        _parse_received(raw, i)
        for i, raw in enumerate(require_list(payload, "games_received", label="game received"))
    ]
    fee = current_app.config.get("TRADE_FEE_CENTS", 20000)

    def _op():
        begin_write()
        given_lines = [_resolve_given(line) for line in given]

        games = {}
        for item in received:
            game = catalog_service.find_by_barcode(item["barcode"])
            if not game:
                raise NotFoundError("Game", item["barcode"])
            games[item["barcode"]] = game

        # Early availability check; completion re-checks under lock
        stock_service.ensure_available(
            [(item["barcode"], item["variant"], item["quantity"]) for item in received],
            games,
        )

        received_lines = []
        for item in received:
            game = games[item["barcode"]]
            received_lines.append({
                **item,
                "title": game.title,
                "unit_value_cents": catalog_service.effective_price_cents(game),
            })

        total_given = metrics_service.lines_value(given_lines, price_key="unit_value_cents")
        total_received = metrics_service.lines_value(received_lines, price_key="unit_value_cents")
        cash = metrics_service.trade_cash_difference(total_given, total_received, fee)

        now = utcnow()
        trade = Trade(
            trade_reference=document_service.next_trade_reference(now),
            status=PENDING,
            submitted_at=now,
            total_value_given_cents=total_given,
            total_value_received_cents=total_received,
            **header,
            **cash,
        )
        for position, line in enumerate(given_lines + received_lines, start=1):
            trade.lines.append(TradeLine(position=position, **line))
        db.session.add(trade)
        db.session.flush()

        append_ledger_event(
            event_type="trade.created",
            event_category="trades",
            entity_type="trade",
            entity_id=trade.id,
            occurred_at=now,
            note=f"Trade {trade.trade_reference} created",
            payload={
                "trade_type": trade.trade_type,
                "cash_difference_cents": trade.cash_difference_cents,
            },
        )
        db.session.commit()
        return trade

    return run_with_retry(_op)


def get_trade(trade_id: int) -> Trade:
    trade = db.session.get(Trade, trade_id)
    if not trade:
        raise NotFoundError("Trade", trade_id)
    return trade


def list_trades(
    *,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Trade], int]:
    query = db.session.query(Trade)
    if status:
        lifecycle_service.validate_status(TRADE_KIND, status)
        query = query.filter(Trade.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Trade.trade_reference.ilike(like),
            Trade.customer_name.ilike(like),
        ))

    total = query.count()
    items = (
        query.order_by(Trade.submitted_at.desc(), Trade.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def transition_trade(trade_id: int, status, *, notes=None, line_item_overrides=None) -> Trade:
    return lifecycle_service.transition(
        TRADE_KIND,
        trade_id,
        status,
        notes=notes,
        line_item_overrides=line_item_overrides,
    )
