# Overview: Moving-average cost basis calculation (pure, integer cents).

from __future__ import annotations


def next_cost_basis(
    existing_stock: int,
    existing_cost_basis: int,
    incoming_quantity: int,
    incoming_unit_cost: int,
) -> int:
    """
    Blend an incoming batch into the per-unit moving average.

    An empty or zero-cost position adopts the incoming unit cost as-is.
    Otherwise the weighted average is rounded to the nearest cent, half up.

    Example:
        10 units @ 1000 + 5 units @ 1600 -> 18000 / 15 = 1200
    """
    if existing_stock <= 0 or existing_cost_basis <= 0:
        return incoming_unit_cost

    total_units = existing_stock + incoming_quantity
    if total_units <= 0:
        return existing_cost_basis

    total_cost = existing_cost_basis * existing_stock + incoming_unit_cost * incoming_quantity
    return (total_cost + total_units // 2) // total_units
