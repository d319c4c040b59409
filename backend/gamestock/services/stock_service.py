# Overview: Service-layer operations for stock; bounded per-variant increments and decrements.

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, replace

from flask import current_app

from ..models import Game, VARIANTS, DEFAULT_VARIANT
from ..errors import ValidationError, InsufficientStockError
from .cost_basis import next_cost_basis
from .ledger_service import append_ledger_event


"""
Stock Invariants (authoritative)

- Variant counters never go below zero.
- Checked decrements (sales, trade payouts) are validated as one batch before
  anything is mutated.
- Unchecked decrements (reversals) floor at zero under the "clamp" policy;
  each clamp is logged and audited. The "strict" policy refuses instead.
- Cost basis only moves on increases and is never un-averaged.
"""

INCREASE = 1
DECREASE = -1

BLEND_SKU = "sku"          # average against total stock of the SKU
BLEND_VARIANT = "variant"  # average against the line's variant only

POLICY_CLAMP = "clamp"
POLICY_STRICT = "strict"


@dataclass(frozen=True)
class StockMovement:
    """One line item expressed as a signed catalog effect."""
    barcode: str
    title: str
    variant: str
    quantity: int
    direction: int
    unit_cost_cents: int = 0
    blend_scope: str = BLEND_SKU
    new_sku_details: dict | None = None
    counts_as_sold: bool = False
    checked: bool = False
    line_id: int | None = None

    @property
    def delta(self) -> int:
        return self.quantity * self.direction

    def inverted(self) -> "StockMovement":
        """Compensating movement: no SKU creation, no availability check."""
        return replace(
            self,
            direction=-self.direction,
            new_sku_details=None,
            checked=False,
        )


def parse_variant(value, field: str = "variant") -> str:
    if value is None or value == "":
        return DEFAULT_VARIANT
    if value not in VARIANTS:
        raise ValidationError(
            f"{field} must be one of: {', '.join(VARIANTS)}", details={"field": field}
        )
    return value


def _reversal_policy() -> str:
    policy = current_app.config.get("STOCK_REVERSAL_POLICY", POLICY_CLAMP)
    return policy if policy in (POLICY_CLAMP, POLICY_STRICT) else POLICY_CLAMP


def adjust(
    game: Game,
    variant: str,
    delta: int,
    *,
    checked: bool = False,
    source_type: str | None = None,
    source_id: int | None = None,
) -> Game:
    """
    Move one variant counter by delta.

    Increases are bounded by STOCK_CEILING. Decreases below zero fail when
    checked (or under the strict policy) and otherwise clamp at zero.
    """
    variant = parse_variant(variant)
    current = game.stock_for(variant)
    requested = current + delta

    if delta > 0:
        ceiling = current_app.config.get("STOCK_CEILING", 9999)
        if requested > ceiling:
            raise ValidationError(
                f"Stock for {game.title} ({variant}) cannot exceed {ceiling}",
                details={"barcode": game.barcode, "variant": variant, "ceiling": ceiling, "requested": requested},
            )
        game.set_stock(variant, requested)
        return game

    if requested >= 0:
        game.set_stock(variant, requested)
        return game

    if checked or _reversal_policy() == POLICY_STRICT:
        raise InsufficientStockError(game.barcode, variant, current, -delta, title=game.title)

    current_app.logger.warning(
        "Clamped stock for %s (%s) at zero: had %d, asked to remove %d",
        game.barcode, variant, current, -delta,
    )
    append_ledger_event(
        event_type="inventory.clamped",
        event_category="inventory",
        entity_type=source_type or "game",
        entity_id=source_id if source_id is not None else game.id,
        barcode=game.barcode,
        note=f"Stock for {game.barcode} ({variant}) floored at zero",
        payload={"variant": variant, "available": current, "requested": -delta, "shortfall": -requested},
    )
    game.set_stock(variant, 0)
    return game


def receive(
    game: Game,
    variant: str,
    quantity: int,
    unit_cost_cents: int,
    *,
    blend_scope: str = BLEND_SKU,
    source_type: str | None = None,
    source_id: int | None = None,
) -> Game:
    """Blend the incoming batch into the cost basis, then add it to stock."""
    variant = parse_variant(variant)
    if blend_scope == BLEND_VARIANT:
        existing = game.stock_for(variant)
    else:
        existing = game.total_available_stock
    game.cost_basis_cents = next_cost_basis(existing, game.cost_basis_cents or 0, quantity, unit_cost_cents)
    return adjust(game, variant, quantity, source_type=source_type, source_id=source_id)


def ensure_available(requests, games: dict[str, Game]) -> None:
    """
    Batch availability check before any mutation.

    requests: iterable of (barcode, variant, quantity). Quantities for the same
    barcode/variant are summed. Every shortfall is reported in details.items;
    the first one heads the error.
    """
    totals: "OrderedDict[tuple[str, str], int]" = OrderedDict()
    for barcode, variant, quantity in requests:
        key = (barcode, parse_variant(variant))
        totals[key] = totals.get(key, 0) + quantity

    shortfalls = []
    for (barcode, variant), requested in totals.items():
        game = games.get(barcode)
        available = game.stock_for(variant) if game else 0
        if available < requested:
            shortfalls.append({
                "barcode": barcode,
                "title": game.title if game else None,
                "variant": variant,
                "available": available,
                "requested": requested,
            })

    if shortfalls:
        first = shortfalls[0]
        raise InsufficientStockError(
            first["barcode"],
            first["variant"],
            first["available"],
            first["requested"],
            title=first["title"],
            items=shortfalls,
        )
