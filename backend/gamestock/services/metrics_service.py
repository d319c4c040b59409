# Overview: Pure financial calculations for acquisitions, sales and trades (integer cents).

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..errors import ValidationError


DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)

TRADE_UP = "up"
TRADE_DOWN = "down"
TRADE_EVEN = "even"


def _half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounded half up (non-negative denominators only)."""
    if denominator <= 0:
        return 0
    if numerator >= 0:
        return (numerator + denominator // 2) // denominator
    return -((-numerator + denominator // 2) // denominator)


def margin_bps(profit_cents: int, revenue_cents: int) -> int:
    """profit / revenue in basis points; 0 when there is no revenue."""
    if revenue_cents <= 0:
        return 0
    return _half_up_div(profit_cents * 10_000, revenue_cents)


def lines_value(lines, *, price_key: str) -> int:
    """Sum of unit price x quantity across line dicts."""
    return sum(int(line[price_key]) * int(line["quantity"]) for line in lines)


def allocate_unit_cost(total_cost_cents: int, total_quantity: int) -> int:
    """Spread a purchase total evenly across every unit bought."""
    if total_quantity <= 0:
        return 0
    return _half_up_div(total_cost_cents, total_quantity)


def purchase_metrics(lines, total_cost_cents: int) -> dict:
    """
    Expected outcome of an acquisition if every unit sells at its listed price.

    Lines are dicts with unit_selling_price_cents and quantity.
    """
    revenue = lines_value(lines, price_key="unit_selling_price_cents")
    profit = revenue - total_cost_cents
    return {
        "total_expected_revenue_cents": revenue,
        "total_expected_profit_cents": profit,
        "profit_margin_bps": margin_bps(profit, revenue),
    }


def trade_cash_difference(total_given_cents: int, total_received_cents: int, fee_cents: int) -> dict:
    """
    Classify a trade and compute what the customer pays on top.

    up:   customer receives more value than they give; pays the gap plus fee
    down: customer gives more value; no fee and nothing owed
    even: equal value; fee only
    """
    if total_received_cents > total_given_cents:
        trade_type = TRADE_UP
    elif total_given_cents > total_received_cents:
        trade_type = TRADE_DOWN
    else:
        trade_type = TRADE_EVEN

    trade_fee = 0 if trade_type == TRADE_DOWN else fee_cents
    cash_difference = max(0, total_received_cents - total_given_cents) + trade_fee
    return {
        "cash_difference_cents": cash_difference,
        "trade_fee_cents": trade_fee,
        "trade_type": trade_type,
    }


def discount_amount(subtotal_cents: int, discount_type: str | None, discount_value) -> int:
    if not discount_type or discount_value is None:
        return 0
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(
            f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}",
            details={"field": "discount_type"},
        )

    value = Decimal(str(discount_value))
    if value < 0:
        raise ValidationError("Discount cannot be negative", details={"field": "discount_value"})

    if discount_type == DISCOUNT_PERCENTAGE:
        if value > 100:
            raise ValidationError("Percentage discount cannot exceed 100", details={"field": "discount_value"})
        amount = (Decimal(subtotal_cents) * value / Decimal(100)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return int(amount)

    return min(int(value.to_integral_value(rounding=ROUND_HALF_UP)), subtotal_cents)


def sale_totals(lines, *, discount_type: str | None = None, discount_value=None, delivery_fee_cents: int = 0) -> dict:
    """
    Order totals from snapshotted line prices and costs.

    Lines are dicts with unit_price_cents, unit_cost_cents and quantity.
    The delivery fee is passed through to the customer and does not count
    toward profit.
    """
    subtotal = lines_value(lines, price_key="unit_price_cents")
    total_cost = lines_value(lines, price_key="unit_cost_cents")
    discount = discount_amount(subtotal, discount_type, discount_value)

    net_revenue = subtotal - discount
    profit = net_revenue - total_cost
    return {
        "subtotal_cents": subtotal,
        "discount_amount_cents": discount,
        "delivery_fee_cents": delivery_fee_cents,
        "total_amount_cents": net_revenue + delivery_fee_cents,
        "total_cost_cents": total_cost,
        "total_profit_cents": profit,
        "profit_margin_bps": margin_bps(profit, net_revenue),
    }
