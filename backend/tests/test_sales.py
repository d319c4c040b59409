# Overview: Pytest coverage for customer orders: pricing snapshots, delivery deductions and reversals.

import pytest
from decimal import Decimal

from gamestock.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from gamestock.models import Game, LedgerEvent, Sale
from gamestock.services import sales_service

from conftest import sale_payload


def _line(game, quantity=3, variant="withCase"):
    return {"barcode": game.barcode, "quantity": quantity, "variant": variant}


class TestCreateSale:
    def test_snapshots_price_and_cost(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 2)))

        assert sale.status == "pending"
        assert sale.confirmed_at is None
        line = sale.lines[0]
        assert line.title == zelda.title
        assert line.unit_price_cents == 300000
        assert line.unit_cost_cents == 180000

        # Later catalog changes do not rewrite the order
        zelda.price_cents = 350000
        zelda.cost_basis_cents = 200000
        db_session.commit()
        sale = db_session.get(Sale, sale.id)
        assert sale.lines[0].unit_price_cents == 300000
        assert sale.lines[0].unit_cost_cents == 180000

        # Nothing leaves the shelf until delivery
        assert db_session.get(Game, zelda.id).stock_with_case == 10

    def test_active_sale_price_is_charged(self, db_session, make_game):
        game = make_game(price_cents=300000, sale_active=True, sale_price_cents=250000, stock_with_case=2)
        sale = sales_service.create_sale(sale_payload(_line(game, 1)))
        assert sale.lines[0].unit_price_cents == 250000

    def test_order_number_format(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        assert sale.order_number.startswith("SB")
        assert len(sale.order_number) == 11
        assert sale.order_number.endswith("001")

    def test_totals(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(
            _line(zelda, 2),
            discount_type="percentage",
            discount_value="10",
            delivery_fee_cents=15000,
        ))
        assert sale.subtotal_cents == 600000
        assert sale.discount_amount_cents == 60000
        assert sale.delivery_fee_cents == 15000
        assert sale.total_amount_cents == 555000
        assert sale.total_cost_cents == 360000
        assert sale.total_profit_cents == 180000
        assert sale.discount_value == Decimal("10")

    def test_manual_orders_start_confirmed(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1), order_source="manual"))
        assert sale.status == "confirmed"
        assert sale.confirmed_at is not None

    def test_more_than_on_hand_is_rejected_up_front(self, db_session, zelda):
        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.create_sale(sale_payload(_line(zelda, 11)))
        assert exc_info.value.details["available"] == 10
        assert db_session.query(Sale).count() == 0

    def test_unknown_game_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(sale_payload({"barcode": "0000000000000", "quantity": 1}))

    def test_customer_and_payment_are_validated(self, db_session, zelda):
        with pytest.raises(ValidationError):
            sales_service.create_sale(sale_payload(_line(zelda, 1), customer_name="J"))
        with pytest.raises(ValidationError):
            sales_service.create_sale(sale_payload(_line(zelda, 1), payment_method="cheque"))
        with pytest.raises(ValidationError):
            sales_service.create_sale(sale_payload(_line(zelda, 1), customer_email="not-an-email"))
        with pytest.raises(ValidationError):
            sales_service.create_sale(sale_payload())


class TestSaleDelivery:
    def test_delivery_deducts_and_cancellation_restores(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 3)))

        sale = sales_service.transition_sale(sale.id, "delivered")
        assert sale.delivered_at is not None
        game = db_session.get(Game, zelda.id)
        assert game.stock_with_case == 7
        assert game.number_of_sold == 3

        sale = sales_service.transition_sale(sale.id, "cancelled", cancellation_reason="Returned unopened")
        assert sale.status == "cancelled"
        assert sale.cancellation_reason == "Returned unopened"
        game = db_session.get(Game, zelda.id)
        assert game.stock_with_case == 10
        assert game.number_of_sold == 0
        assert game.cost_basis_cents == 180000

    def test_stock_gone_before_delivery_blocks_it(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 3)))

        game = db_session.get(Game, zelda.id)
        game.stock_with_case = 2
        db_session.commit()

        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.transition_sale(sale.id, "delivered")
        assert exc_info.value.details["available"] == 2
        assert exc_info.value.details["requested"] == 3

        assert db_session.get(Game, zelda.id).stock_with_case == 2
        assert db_session.get(Sale, sale.id).status == "pending"

    def test_delivery_is_all_or_nothing(self, db_session, zelda, mario):
        sale = sales_service.create_sale(sale_payload(
            _line(zelda, 3),
            _line(mario, 2, variant="cartridgeOnly"),
        ))

        game = db_session.get(Game, mario.id)
        game.stock_cartridge_only = 1
        db_session.commit()

        with pytest.raises(InsufficientStockError):
            sales_service.transition_sale(sale.id, "delivered")

        assert db_session.get(Game, zelda.id).stock_with_case == 10
        assert db_session.get(Game, mario.id).stock_cartridge_only == 1
        assert db_session.query(LedgerEvent).filter_by(event_type="inventory.decreased").count() == 0

    def test_repeating_a_status_is_a_no_op(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 3)))
        sales_service.transition_sale(sale.id, "delivered")
        sales_service.transition_sale(sale.id, "delivered")

        assert db_session.get(Game, zelda.id).stock_with_case == 7
        assert db_session.query(LedgerEvent).filter_by(event_type="sale.delivered").count() == 1

    def test_shipped_can_only_be_delivered(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        sales_service.transition_sale(sale.id, "shipped")

        with pytest.raises(InvalidTransitionError) as exc_info:
            sales_service.transition_sale(sale.id, "confirmed")
        assert exc_info.value.details["current_status"] == "shipped"
        assert exc_info.value.details["available_transitions"] == ["delivered"]

    def test_shipped_sale_cannot_be_cancelled(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        sales_service.transition_sale(sale.id, "confirmed")
        sales_service.transition_sale(sale.id, "shipped")

        with pytest.raises(InvalidTransitionError):
            sales_service.transition_sale(sale.id, "cancelled")
        assert db_session.get(Sale, sale.id).status == "shipped"

    def test_preparing_stamps_confirmation_when_missing(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        sale = sales_service.transition_sale(sale.id, "preparing")
        assert sale.status == "preparing"
        assert sale.confirmed_at is not None

    def test_preparing_keeps_existing_confirmation(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        confirmed_at = sales_service.transition_sale(sale.id, "confirmed").confirmed_at

        sale = sales_service.transition_sale(sale.id, "preparing")
        assert sale.confirmed_at == confirmed_at

    def test_cancelling_before_delivery_touches_no_stock(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 3)))
        sale = sales_service.transition_sale(sale.id, "cancelled")
        assert sale.cancelled_at is not None
        assert db_session.get(Game, zelda.id).stock_with_case == 10

    def test_cancelled_sale_is_terminal(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        sales_service.transition_sale(sale.id, "cancelled")
        with pytest.raises(InvalidTransitionError):
            sales_service.transition_sale(sale.id, "pending")

    def test_unknown_status(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        with pytest.raises(ValidationError):
            sales_service.transition_sale(sale.id, "lost")


class TestLineItemOverrides:
    def test_override_changes_variant_deducted(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 2)))
        line_id = sale.lines[0].id

        sales_service.transition_sale(
            sale.id,
            "delivered",
            line_item_overrides=[{"line_id": line_id, "variant": "cartridgeOnly"}],
        )

        game = db_session.get(Game, zelda.id)
        assert game.stock_cartridge_only == 2
        assert game.stock_with_case == 10

    def test_override_with_unchanged_status_is_applied(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 2)))
        line_id = sale.lines[0].id

        sale = sales_service.transition_sale(
            sale.id,
            "pending",
            line_item_overrides=[{"line_id": line_id, "variant": "cartridgeOnly"}],
        )

        assert sale.status == "pending"
        assert db_session.get(Sale, sale.id).lines[0].variant == "cartridgeOnly"
        assert db_session.get(Game, zelda.id).stock_cartridge_only == 4

        sales_service.transition_sale(sale.id, "delivered")
        assert db_session.get(Game, zelda.id).stock_cartridge_only == 2

    def test_override_on_delivered_sale_is_rejected_even_without_status_change(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 2)))
        line_id = sale.lines[0].id
        sales_service.transition_sale(sale.id, "delivered")

        with pytest.raises(ValidationError):
            sales_service.transition_sale(
                sale.id,
                "delivered",
                line_item_overrides=[{"line_id": line_id, "variant": "cartridgeOnly"}],
            )
        assert db_session.get(Sale, sale.id).lines[0].variant == "withCase"

    def test_overrides_rejected_once_delivered(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 2)))
        line_id = sale.lines[0].id
        sales_service.transition_sale(sale.id, "delivered")

        with pytest.raises(ValidationError):
            sales_service.transition_sale(
                sale.id,
                "cancelled",
                line_item_overrides=[{"line_id": line_id, "variant": "cartridgeOnly"}],
            )
        assert db_session.get(Game, zelda.id).stock_with_case == 8

    def test_override_for_foreign_line_is_rejected(self, db_session, zelda):
        sale = sales_service.create_sale(sale_payload(_line(zelda, 1)))
        with pytest.raises(ValidationError):
            sales_service.transition_sale(
                sale.id, "confirmed", line_item_overrides=[{"line_id": 9999, "variant": "withCase"}],
            )
