# Overview: Service-layer operations for sales (customer orders); encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Sale, SaleLine
from ..errors import ValidationError, NotFoundError
from ..validation import (
    coerce_cents,
    coerce_decimal,
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
from .stock_service import StockMovement, DECREASE


PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
SHIPPED = "shipped"
DELIVERED = "delivered"
CANCELLED = "cancelled"

# shipped orders can only be delivered; a delivered order may be cancelled
# once, which returns its stock
TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, PREPARING, SHIPPED, DELIVERED, CANCELLED}),
    CONFIRMED: frozenset({PREPARING, SHIPPED, DELIVERED, CANCELLED}),
    PREPARING: frozenset({SHIPPED, DELIVERED, CANCELLED}),
    SHIPPED: frozenset({DELIVERED}),
    DELIVERED: frozenset({CANCELLED}),
    CANCELLED: frozenset(),
}

PAYMENT_METHODS = ("cod", "bank_transfer", "gcash")
ORDER_SOURCE_WEBSITE = "website"
ORDER_SOURCE_MANUAL = "manual"
ORDER_SOURCES = (ORDER_SOURCE_WEBSITE, ORDER_SOURCE_MANUAL)


def sale_movements(sale: Sale) -> list[StockMovement]:
    return [
        StockMovement(
            barcode=line.barcode,
            title=line.title,
            variant=line.variant,
            quantity=line.quantity,
            direction=DECREASE,
            counts_as_sold=True,
            checked=True,
            line_id=line.id,
        )
        for line in sale.lines
    ]


SALE_KIND = TransactionKind(
    name="sale",
    label="Sale",
    model=Sale,
    transitions=TRANSITIONS,
    fulfilled_status=DELIVERED,
    timestamps={
        CONFIRMED: "confirmed_at",
        SHIPPED: "shipped_at",
        DELIVERED: "delivered_at",
        CANCELLED: "cancelled_at",
    },
    movements=sale_movements,
    event_category="sales",
    reference_attr="order_number",
)


def _parse_line(raw: dict, index: int) -> dict:
    field = f"lines[{index}]"
    return {
        "barcode": validate_barcode(raw.get("barcode"), f"{field}.barcode"),
        "quantity": coerce_int(raw.get("quantity"), f"{field}.quantity", minimum=1),
        "variant": stock_service.parse_variant(raw.get("variant"), f"{field}.variant"),
    }


def _parse_discount(payload: dict) -> tuple[str | None, object]:
    discount_type = optional_str(payload, "discount_type")
    if discount_type is None:
        return None, None
    if discount_type not in metrics_service.DISCOUNT_TYPES:
        raise ValidationError(
            f"discount_type must be one of: {', '.join(metrics_service.DISCOUNT_TYPES)}",
            details={"field": "discount_type"},
        )
    if discount_type == metrics_service.DISCOUNT_PERCENTAGE:
        value = coerce_decimal(payload.get("discount_value"), "discount_value")
        if value < 0 or value > 100:
            raise ValidationError("Percentage discount must be between 0 and 100", details={"field": "discount_value"})
        return discount_type, value
    return discount_type, coerce_cents(payload.get("discount_value"), "discount_value")


def _parse_header(payload: dict) -> dict:
    payment_method = optional_str(payload, "payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"field": "payment_method"},
        )
    order_source = optional_str(payload, "order_source") or ORDER_SOURCE_WEBSITE
    if order_source not in ORDER_SOURCES:
        raise ValidationError(
            f"order_source must be one of: {', '.join(ORDER_SOURCES)}",
            details={"field": "order_source"},
        )

    header = parse_customer(payload)
    header.update({
        "delivery_address": optional_str(payload, "delivery_address", max_length=500),
        "delivery_city": optional_str(payload, "delivery_city", max_length=100),
        "delivery_landmark": optional_str(payload, "delivery_landmark", max_length=200),
        "delivery_notes": optional_str(payload, "delivery_notes", max_length=500),
        "payment_method": payment_method,
        "order_source": order_source,
        "created_by": optional_str(payload, "created_by", max_length=100),
        "admin_notes": optional_str(payload, "admin_notes", max_length=1000),
    })
    return header


def create_sale(payload: dict) -> Sale:
    """
    Place an order. Line prices and unit costs are snapshotted from the
    catalog now; manual orders skip straight to 'confirmed'.
    """
    header = _parse_header(payload)
    raw_lines = require_list(payload, "lines", label="game")
    requested = [_parse_line(raw, i) for i, raw in enumerate(raw_lines)]
    discount_type, discount_value = _parse_discount(payload)
    delivery_fee = coerce_cents(payload.get("delivery_fee_cents", 0), "delivery_fee_cents")

    def _op():
        begin_write()
        games = {}
        for item in requested:
            game = catalog_service.find_by_barcode(item["barcode"])
            if not game:
                raise NotFoundError("Game", item["barcode"])
            games[item["barcode"]] = game

        # Early availability check; delivery re-checks under lock
        stock_service.ensure_available(
            [(item["barcode"], item["variant"], item["quantity"]) for item in requested],
            games,
        )

        lines = []
        for item in requested:
            game = games[item["barcode"]]
            lines.append({
                "barcode": game.barcode,
                "title": game.title,
                "quantity": item["quantity"],
                "variant": item["variant"],
                "unit_price_cents": catalog_service.effective_price_cents(game),
                "unit_cost_cents": game.cost_basis_cents or 0,
            })

        totals = metrics_service.sale_totals(
            lines,
            discount_type=discount_type,
            discount_value=discount_value,
            delivery_fee_cents=delivery_fee,
        )

        manual = header["order_source"] == ORDER_SOURCE_MANUAL
        now = utcnow()
        sale = Sale(
            order_number=document_service.next_order_number(now),
            status=CONFIRMED if manual else PENDING,
            submitted_at=now,
            confirmed_at=now if manual else None,
            discount_type=discount_type,
            discount_value=discount_value,
            **header,
            **totals,
        )
        for position, line in enumerate(lines, start=1):
            sale.lines.append(SaleLine(position=position, **line))
        db.session.add(sale)
        db.session.flush()

        append_ledger_event(
            event_type="sale.created",
            event_category="sales",
            entity_type="sale",
            entity_id=sale.id,
            occurred_at=now,
            note=f"Sale {sale.order_number} created",
            payload={"status": sale.status, "total_amount_cents": sale.total_amount_cents},
        )
        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    *,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Sale], int]:
    query = db.session.query(Sale)
    if status:
        lifecycle_service.validate_status(SALE_KIND, status)
        query = query.filter(Sale.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Sale.order_number.ilike(like),
            Sale.customer_name.ilike(like),
            Sale.customer_email.ilike(like),
        ))

    total = query.count()
    items = (
        query.order_by(Sale.submitted_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def transition_sale(
    sale_id: int,
    status,
    *,
    notes=None,
    line_item_overrides=None,
    cancellation_reason: str | None = None,
) -> Sale:
    def _annotate(sale: Sale, requested: str) -> None:
        # An order being prepared was confirmed, even if it skipped that step
        if requested == PREPARING and sale.confirmed_at is None:
            sale.confirmed_at = utcnow()
        if requested == CANCELLED and cancellation_reason:
            sale.cancellation_reason = cancellation_reason[:500]

    return lifecycle_service.transition(
        SALE_KIND,
        sale_id,
        status,
        notes=notes,
        line_item_overrides=line_item_overrides,
        annotate=_annotate,
    )
