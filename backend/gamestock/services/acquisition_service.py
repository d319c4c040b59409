# Overview: Service-layer operations for acquisitions (buying stock from suppliers).

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Acquisition, AcquisitionLine
from ..errors import ValidationError, NotFoundError, DuplicateBarcodeError
from ..validation import (
    coerce_bool,
    coerce_cents,
    coerce_int,
    optional_str,
    require_list,
    validate_barcode,
)
from . import catalog_service, document_service, lifecycle_service, metrics_service, stock_service
from .concurrency import begin_write, run_with_retry
from .ledger_service import append_ledger_event
from .lifecycle_service import TransactionKind
from .stock_service import StockMovement, INCREASE, BLEND_SKU


PENDING = "pending"
COMPLETED = "completed"
CANCELLED = "cancelled"

TRANSITIONS = {
    PENDING: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset({PENDING, CANCELLED}),
    CANCELLED: frozenset(),
}


def acquisition_movements(acquisition: Acquisition) -> list[StockMovement]:
    # Supplier stock is costed against the whole SKU, not per variant
    return [
        StockMovement(
            barcode=line.barcode,
            title=line.title,
            variant=line.variant,
            quantity=line.quantity,
            direction=INCREASE,
            unit_cost_cents=line.unit_cost_cents,
            blend_scope=BLEND_SKU,
            new_sku_details=line.new_sku_details if line.is_new_sku else None,
            line_id=line.id,
        )
        for line in acquisition.lines
    ]


ACQUISITION_KIND = TransactionKind(
    name="acquisition",
    label="Acquisition",
    model=Acquisition,
    transitions=TRANSITIONS,
    fulfilled_status=COMPLETED,
    timestamps={COMPLETED: "completed_at", CANCELLED: "cancelled_at"},
    movements=acquisition_movements,
    event_category="acquisitions",
    reference_attr="reference_code",
)


def _parse_line(raw: dict, index: int) -> dict:
    field = f"lines[{index}]"
    barcode = validate_barcode(raw.get("barcode"), f"{field}.barcode")
    quantity = coerce_int(raw.get("quantity"), f"{field}.quantity", minimum=1)
    unit_selling_price = coerce_cents(raw.get("unit_selling_price_cents"), f"{field}.unit_selling_price_cents")
    unit_cost = raw.get("unit_cost_cents")
    return {
        "barcode": barcode,
        "title": optional_str(raw, "title", max_length=200),
        "quantity": quantity,
        "unit_selling_price_cents": unit_selling_price,
        "unit_cost_cents": None if unit_cost is None else coerce_cents(unit_cost, f"{field}.unit_cost_cents"),
        "variant": stock_service.parse_variant(raw.get("variant"), f"{field}.variant"),
        "is_new_sku": coerce_bool(raw.get("is_new_sku")),
        "new_sku_details": raw.get("new_sku_details"),
    }


def _resolve_line(line: dict) -> None:
    """Check the line against the catalog and fill in catalog-derived fields."""
    if line["is_new_sku"]:
        if catalog_service.find_by_barcode(line["barcode"]):
            raise DuplicateBarcodeError(line["barcode"])
        details = dict(line["new_sku_details"] or {})
        details.setdefault("title", line["title"])
        details.setdefault("price_cents", line["unit_selling_price_cents"])
        attrs = catalog_service.validate_new_sku_details(details, barcode=line["barcode"])
        line["title"] = attrs["title"]
        line["new_sku_details"] = attrs
        return

    game = catalog_service.find_by_barcode(line["barcode"])
    if not game:
        raise NotFoundError("Game", line["barcode"])
    line["title"] = line["title"] or game.title
    line["new_sku_details"] = None


def _apply_unit_costs(lines: list[dict], total_cost_cents) -> int:
    """
    Explicit per-line unit costs win; whatever the purchase total leaves
    after them is spread evenly over the units of the remaining lines.
    Returns the header total cost.
    """
    costed = [line for line in lines if line["unit_cost_cents"] is not None]
    uncosted = [line for line in lines if line["unit_cost_cents"] is None]
    explicit_total = metrics_service.lines_value(costed, price_key="unit_cost_cents")

    if not uncosted:
        return explicit_total if total_cost_cents is None else total_cost_cents

    if total_cost_cents is None:
        raise ValidationError(
            "total_cost_cents is required when lines have no unit cost",
            details={"field": "total_cost_cents"},
        )
    remainder = total_cost_cents - explicit_total
    if remainder < 0:
        raise ValidationError(
            "Line unit costs exceed total_cost_cents",
            details={"field": "total_cost_cents", "explicit_total_cents": explicit_total},
        )
    remaining_quantity = sum(line["quantity"] for line in uncosted)
    unit_cost = metrics_service.allocate_unit_cost(remainder, remaining_quantity)
    for line in uncosted:
        line["unit_cost_cents"] = unit_cost
    return total_cost_cents


def create_acquisition(payload: dict) -> Acquisition:
    raw_lines = require_list(payload, "lines", label="game")
    lines = [_parse_line(raw, i) for i, raw in enumerate(raw_lines)]

    raw_total = payload.get("total_cost_cents")
    total_cost = None if raw_total is None else coerce_cents(raw_total, "total_cost_cents")
    total_cost = _apply_unit_costs(lines, total_cost)

    header = {
        "supplier_name": optional_str(payload, "supplier_name", max_length=100),
        "supplier_contact": optional_str(payload, "supplier_contact", max_length=100),
        "supplier_notes": optional_str(payload, "supplier_notes", max_length=500),
        "admin_notes": optional_str(payload, "admin_notes", max_length=1000),
    }

    def _op():
        begin_write()
        for line in lines:
            _resolve_line(line)

        metrics = metrics_service.purchase_metrics(lines, total_cost)
        acquisition = Acquisition(
            reference_code=document_service.next_acquisition_reference(),
            status=PENDING,
            total_cost_cents=total_cost,
            **header,
            **metrics,
        )
        for position, line in enumerate(lines, start=1):
            acquisition.lines.append(AcquisitionLine(position=position, **line))
        db.session.add(acquisition)
        db.session.flush()

        append_ledger_event(
            event_type="acquisition.created",
            event_category="acquisitions",
            entity_type="acquisition",
            entity_id=acquisition.id,
            note=f"Acquisition {acquisition.reference_code} created",
            payload={"lines": len(lines), "total_cost_cents": total_cost},
        )
        db.session.commit()
        return acquisition

    return run_with_retry(_op)


def get_acquisition(acquisition_id: int) -> Acquisition:
    acquisition = db.session.get(Acquisition, acquisition_id)
    if not acquisition:
        raise NotFoundError("Acquisition", acquisition_id)
    return acquisition


def list_acquisitions(
    *,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Acquisition], int]:
    query = db.session.query(Acquisition)
    if status:
        lifecycle_service.validate_status(ACQUISITION_KIND, status)
        query = query.filter(Acquisition.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Acquisition.reference_code.ilike(like),
            Acquisition.supplier_name.ilike(like),
        ))

    total = query.count()
    items = (
        query.order_by(Acquisition.purchased_at.desc(), Acquisition.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def transition_acquisition(acquisition_id: int, status, *, notes=None, line_item_overrides=None) -> Acquisition:
    return lifecycle_service.transition(
        ACQUISITION_KIND,
        acquisition_id,
        status,
        notes=notes,
        line_item_overrides=line_item_overrides,
    )
