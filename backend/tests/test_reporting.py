# Overview: Pytest coverage for financial reporting: totals, date ranges and time-series buckets.

from datetime import datetime

import pytest

from gamestock.errors import ValidationError
from gamestock.models import Acquisition, Game, Sale
from gamestock.services import acquisition_service, reporting_service, sales_service

from conftest import sale_payload


JAN_10 = datetime(2026, 1, 10, 9, 0)
JUL_4 = datetime(2026, 7, 4, 15, 30)


@pytest.fixture
def books(db_session, zelda):
    """One completed purchase in January and one delivered order in July."""
    sale = sales_service.create_sale(sale_payload(
        {"barcode": zelda.barcode, "quantity": 1, "variant": "withCase"},
        payment_method="gcash",
    ))
    acquisition = acquisition_service.create_acquisition({
        "supplier_name": "Greenhills Supplier",
        "lines": [{
            "barcode": zelda.barcode,
            "quantity": 2,
            "unit_cost_cents": 100000,
            "unit_selling_price_cents": 300000,
        }],
    })
    acquisition_service.transition_acquisition(acquisition.id, "completed")
    sales_service.transition_sale(sale.id, "delivered")

    db_session.get(Acquisition, acquisition.id).completed_at = JAN_10
    db_session.get(Sale, sale.id).delivered_at = JUL_4
    db_session.commit()
    return acquisition, sale


class TestFinancialReport:
    def test_summary(self, db_session, books):
        report = reporting_service.financial_report()
        summary = report["summary"]
        assert summary["total_costs_cents"] == 200000
        assert summary["total_revenue_cents"] == 300000
        assert summary["gross_profit_cents"] == 100000
        assert summary["profit_margin_bps"] == 3333
        assert summary["status"] == "profit"
        assert report["start"] is None and report["end"] is None

    def test_empty_books_break_even(self, db_session):
        summary = reporting_service.financial_report()["summary"]
        assert summary["gross_profit_cents"] == 0
        assert summary["profit_margin_bps"] == 0
        assert summary["status"] == "break-even"

    def test_costs_without_revenue_is_a_loss(self, db_session, books):
        report = reporting_service.financial_report(filter_type="custom", start="2026-01-01", end="2026-01-31")
        assert report["summary"]["total_revenue_cents"] == 0
        assert report["summary"]["gross_profit_cents"] == -200000
        assert report["summary"]["status"] == "loss"

    def test_only_fulfilled_documents_count(self, db_session, books, mario):
        sales_service.create_sale(sale_payload({"barcode": mario.barcode, "quantity": 1}))
        _, sale = books
        sales_service.transition_sale(sale.id, "cancelled")

        summary = reporting_service.financial_report()["summary"]
        assert summary["total_revenue_cents"] == 0
        assert summary["delivered_sales"] == 0
        assert summary["completed_acquisitions"] == 1

    def test_custom_end_date_covers_the_whole_day(self, db_session, books):
        report = reporting_service.financial_report(filter_type="custom", start="2026-07-01", end="2026-07-04")
        assert report["summary"]["total_revenue_cents"] == 300000
        assert report["summary"]["total_costs_cents"] == 0

    def test_monthly_window(self, db_session, books):
        report = reporting_service.financial_report(filter_type="monthly", now=datetime(2026, 7, 20))
        assert report["start"] == "2026-07-01T00:00:00Z"
        assert report["summary"]["total_revenue_cents"] == 300000
        assert report["summary"]["total_costs_cents"] == 0

    def test_annual_window_reaches_back_twelve_months(self, db_session, books):
        report = reporting_service.financial_report(filter_type="annual", now=datetime(2027, 1, 20))
        assert report["summary"]["total_costs_cents"] == 0
        assert report["summary"]["total_revenue_cents"] == 300000

    def test_half_year_time_series(self, db_session, books):
        report = reporting_service.financial_report(period="bi-annual")
        assert report["time_series"] == [
            {"date": "2026-H1", "revenue_cents": 0, "costs_cents": 200000, "profit_cents": -200000, "order_count": 0},
            {"date": "2026-H2", "revenue_cents": 300000, "costs_cents": 0, "profit_cents": 300000, "order_count": 1},
        ]

    def test_breakdowns(self, db_session, books, zelda):
        report = reporting_service.financial_report()
        assert report["revenue_breakdown"]["by_payment_method"] == {"gcash": 300000}
        assert report["revenue_breakdown"]["by_source"] == {"website": 300000}
        assert report["cost_breakdown"]["by_supplier"] == [
            {"supplier": "Greenhills Supplier", "amount_cents": 200000},
        ]
        # Cost comes from the order's snapshot, not the blended basis
        assert report["top_games"] == [{
            "barcode": zelda.barcode,
            "title": zelda.title,
            "quantity_sold": 1,
            "revenue_cents": 300000,
            "cost_cents": 180000,
            "profit_cents": 120000,
        }]

    def test_inventory_value(self, db_session, books, zelda):
        game = db_session.get(Game, zelda.id)
        inventory = reporting_service.financial_report()["inventory"]
        assert inventory["total_value_cents"] == game.total_available_stock * game.cost_basis_cents
        assert inventory["potential_revenue_cents"] == game.total_available_stock * 300000

    def test_bad_arguments(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.financial_report(filter_type="weekly")
        with pytest.raises(ValidationError):
            reporting_service.financial_report(period="fortnight")
        with pytest.raises(ValidationError):
            reporting_service.financial_report(filter_type="custom", start="2026-01-01")
        with pytest.raises(ValidationError):
            reporting_service.financial_report(filter_type="custom", start="2026-02-01", end="2026-01-01")
        with pytest.raises(ValidationError):
            reporting_service.financial_report(filter_type="custom", start="yesterday", end="2026-01-01")


class TestBuckets:
    def test_weeks_start_on_sunday(self):
        assert reporting_service.bucket_key(datetime(2026, 10, 21), "week") == "2026-10-18"
        assert reporting_service.bucket_key(datetime(2026, 10, 18), "week") == "2026-10-18"

    def test_labels(self):
        dt = datetime(2026, 6, 30, 23, 59)
        assert reporting_service.bucket_key(dt, "day") == "2026-06-30"
        assert reporting_service.bucket_key(dt, "month") == "2026-06"
        assert reporting_service.bucket_key(dt, "bi-annual") == "2026-H1"
        assert reporting_service.bucket_key(dt, "annual") == "2026"
        assert reporting_service.bucket_key(dt, "all") == "all"

    def test_six_months_back_clamps_day(self):
        start, end = reporting_service.resolve_range("bi-annual", now=datetime(2026, 8, 31))
        assert start == datetime(2026, 2, 28)
        assert end == datetime(2026, 8, 31)
