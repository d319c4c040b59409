# Overview: Service-layer operations for financial reporting over fulfilled transactions.

"""
Financial reporting.

Costs are the totals of completed acquisitions (by completed_at); revenue is
the charged total of delivered sales (by delivered_at). Pending, reopened and
cancelled documents never count, so a reversal drops a document out of every
report on the next read.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Acquisition, Game, Sale, SaleLine
from gamestock.time_utils import parse_iso_datetime, utcnow, to_utc_z
from . import catalog_service, metrics_service


FILTER_ALL = "all"
FILTER_MONTHLY = "monthly"
FILTER_BIANNUAL = "bi-annual"
FILTER_ANNUAL = "annual"
FILTER_CUSTOM = "custom"
FILTER_TYPES = (FILTER_ALL, FILTER_MONTHLY, FILTER_BIANNUAL, FILTER_ANNUAL, FILTER_CUSTOM)

PERIOD_ALL = "all"
PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_BIANNUAL = "bi-annual"
PERIOD_ANNUAL = "annual"
PERIODS = (PERIOD_ALL, PERIOD_DAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_BIANNUAL, PERIOD_ANNUAL)

STATUS_PROFIT = "profit"
STATUS_LOSS = "loss"
STATUS_BREAK_EVEN = "break-even"

TOP_GAMES_LIMIT = 10

ACQUISITION_FULFILLED = "completed"
SALE_FULFILLED = "delivered"


def _months_back(dt: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the target month's length."""
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    next_month = datetime(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def _parse_bound(value: str | None, field: str, *, end_of_day: bool = False) -> datetime | None:
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime", details={"field": field})
    # A bare date as the upper bound covers that whole day
    if dt is not None and end_of_day and len(value.strip()) == 10:
        dt = dt + timedelta(days=1) - timedelta(microseconds=1)
    return dt


def resolve_range(
    filter_type: str = FILTER_ALL,
    start: str | None = None,
    end: str | None = None,
    *,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    monthly:   first of the current month .. now
    bi-annual: six months back .. now
    annual:    twelve months back .. now
    custom:    start .. end (both required)
    all:       unbounded
    """
    if filter_type not in FILTER_TYPES:
        raise ValidationError(
            f"filter_type must be one of: {', '.join(FILTER_TYPES)}", details={"field": "filter_type"},
        )
    now = now or utcnow()

    if filter_type == FILTER_MONTHLY:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0), now
    if filter_type == FILTER_BIANNUAL:
        return _months_back(now, 6), now
    if filter_type == FILTER_ANNUAL:
        return _months_back(now, 12), now
    if filter_type == FILTER_CUSTOM:
        start_dt = _parse_bound(start, "start_date")
        end_dt = _parse_bound(end, "end_date", end_of_day=True)
        if start_dt is None or end_dt is None:
            raise ValidationError(
                "start_date and end_date are required for a custom range",
                details={"field": "start_date" if start_dt is None else "end_date"},
            )
        if start_dt > end_dt:
            raise ValidationError("start_date must not be after end_date", details={"field": "start_date"})
        return start_dt, end_dt
    return None, None


def bucket_key(dt: datetime, period: str) -> str:
    """Time-series bucket label; weeks start on Sunday."""
    if period == PERIOD_DAY:
        return dt.strftime("%Y-%m-%d")
    if period == PERIOD_WEEK:
        week_start = dt - timedelta(days=(dt.weekday() + 1) % 7)
        return week_start.strftime("%Y-%m-%d")
    if period == PERIOD_MONTH:
        return dt.strftime("%Y-%m")
    if period == PERIOD_BIANNUAL:
        return f"{dt.year}-H{1 if dt.month <= 6 else 2}"
    if period == PERIOD_ANNUAL:
        return str(dt.year)
    return PERIOD_ALL


def profit_status(gross_profit_cents: int) -> str:
    if gross_profit_cents > 0:
        return STATUS_PROFIT
    if gross_profit_cents < 0:
        return STATUS_LOSS
    return STATUS_BREAK_EVEN


def _within(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


def _completed_acquisitions(start_dt, end_dt):
    query = db.session.query(Acquisition).filter(Acquisition.status == ACQUISITION_FULFILLED)
    return _within(query, Acquisition.completed_at, start_dt, end_dt)


def _delivered_sales(start_dt, end_dt):
    query = db.session.query(Sale).filter(Sale.status == SALE_FULFILLED)
    return _within(query, Sale.delivered_at, start_dt, end_dt)


def _time_series(acquisitions, sales, period: str) -> list[dict]:
    buckets: dict[str, dict] = {}

    def _bucket(dt):
        key = bucket_key(dt, period)
        if key not in buckets:
            buckets[key] = {"date": key, "revenue_cents": 0, "costs_cents": 0, "profit_cents": 0, "order_count": 0}
        return buckets[key]

    for sale in sales:
        if sale.delivered_at is None:
            continue
        entry = _bucket(sale.delivered_at)
        entry["revenue_cents"] += sale.total_amount_cents
        entry["order_count"] += 1

    for acquisition in acquisitions:
        if acquisition.completed_at is None:
            continue
        _bucket(acquisition.completed_at)["costs_cents"] += acquisition.total_cost_cents

    for entry in buckets.values():
        entry["profit_cents"] = entry["revenue_cents"] - entry["costs_cents"]
    return [buckets[key] for key in sorted(buckets)]


def _revenue_breakdown(sales) -> dict:
    by_payment_method: dict[str, int] = {}
    by_source: dict[str, int] = {}
    total_discounts = 0
    for sale in sales:
        by_payment_method[sale.payment_method] = by_payment_method.get(sale.payment_method, 0) + sale.total_amount_cents
        by_source[sale.order_source] = by_source.get(sale.order_source, 0) + sale.total_amount_cents
        total_discounts += sale.discount_amount_cents or 0
    return {
        "by_payment_method": by_payment_method,
        "by_source": by_source,
        "total_discounts_cents": total_discounts,
    }


def _cost_by_supplier(acquisitions) -> list[dict]:
    totals: dict[str, int] = {}
    for acquisition in acquisitions:
        supplier = acquisition.supplier_name or "Unknown Supplier"
        totals[supplier] = totals.get(supplier, 0) + acquisition.total_cost_cents
    rows = [{"supplier": supplier, "amount_cents": amount} for supplier, amount in totals.items()]
    return sorted(rows, key=lambda r: (-r["amount_cents"], r["supplier"]))


def _top_games(start_dt, end_dt) -> list[dict]:
    # Line snapshots, so later cost-basis drift does not rewrite history
    revenue = func.sum(SaleLine.unit_price_cents * SaleLine.quantity)
    query = db.session.query(
        SaleLine.barcode,
        func.max(SaleLine.title).label("title"),
        func.coalesce(func.sum(SaleLine.quantity), 0).label("quantity_sold"),
        func.coalesce(revenue, 0).label("revenue_cents"),
        func.coalesce(func.sum(SaleLine.unit_cost_cents * SaleLine.quantity), 0).label("cost_cents"),
    ).join(Sale, SaleLine.sale_id == Sale.id).filter(Sale.status == SALE_FULFILLED)
    query = _within(query, Sale.delivered_at, start_dt, end_dt)

    rows = (
        query.group_by(SaleLine.barcode)
        .order_by(revenue.desc(), SaleLine.barcode.asc())
        .limit(TOP_GAMES_LIMIT)
        .all()
    )
    return [
        {
            "barcode": row.barcode,
            "title": row.title,
            "quantity_sold": int(row.quantity_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
            "cost_cents": int(row.cost_cents or 0),
            "profit_cents": int(row.revenue_cents or 0) - int(row.cost_cents or 0),
        }
        for row in rows
    ]


def inventory_value() -> dict:
    """Current shelf stock valued at cost basis and at the price it would sell for."""
    total_value = 0
    potential_revenue = 0
    for game in db.session.query(Game).filter(Game.total_available_stock > 0):
        stock = game.total_available_stock
        total_value += stock * (game.cost_basis_cents or 0)
        potential_revenue += stock * catalog_service.effective_price_cents(game)
    return {
        "total_value_cents": total_value,
        "potential_revenue_cents": potential_revenue,
        "potential_profit_cents": potential_revenue - total_value,
    }


def financial_report(
    *,
    filter_type: str = FILTER_ALL,
    start: str | None = None,
    end: str | None = None,
    period: str = PERIOD_ALL,
    now: datetime | None = None,
) -> dict:
    if period not in PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(PERIODS)}", details={"field": "period"})
    start_dt, end_dt = resolve_range(filter_type, start, end, now=now)

    acquisitions = _completed_acquisitions(start_dt, end_dt).all()
    sales = _delivered_sales(start_dt, end_dt).all()

    total_costs = sum(a.total_cost_cents for a in acquisitions)
    total_revenue = sum(s.total_amount_cents for s in sales)
    gross_profit = total_revenue - total_costs

    return {
        "filter_type": filter_type,
        "period": period,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "summary": {
            "total_costs_cents": total_costs,
            "total_revenue_cents": total_revenue,
            "gross_profit_cents": gross_profit,
            "profit_margin_bps": metrics_service.margin_bps(gross_profit, total_revenue),
            "status": profit_status(gross_profit),
            "completed_acquisitions": len(acquisitions),
            "delivered_sales": len(sales),
        },
        "time_series": _time_series(acquisitions, sales, period),
        "revenue_breakdown": _revenue_breakdown(sales),
        "cost_breakdown": {
            "total_cents": total_costs,
            "by_supplier": _cost_by_supplier(acquisitions),
        },
        "top_games": _top_games(start_dt, end_dt),
        "inventory": inventory_value(),
    }
