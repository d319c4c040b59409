# Overview: Pytest coverage for trades: cash difference, trade-in costing and reversals.

import pytest

from gamestock.errors import (
    DuplicateBarcodeError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from gamestock.models import Game, LedgerEvent, Trade
from gamestock.services import catalog_service, trade_service


TRADED_IN = "0045496420123"
HANDED_OUT = "0045496420789"
NEW_BARCODE = "0711719541028"


@pytest.fixture
def traded_in(make_game):
    """A title customers bring in: one copy on the shelf at 1000.00."""
    return make_game(TRADED_IN, title="Pokemon Violet", price_cents=180000, stock_with_case=1, cost_basis_cents=100000)


@pytest.fixture
def handed_out(make_game):
    """A title the store hands over in trades."""
    return make_game(HANDED_OUT, title="Splatoon 3", price_cents=150000, stock_with_case=3, cost_basis_cents=90000)


def _payload(given, received, **overrides):
    payload = {
        "customer_name": "Maria Santos",
        "customer_phone": "09181234567",
        "trade_location": "SM North EDSA",
        "games_given": given,
        "games_received": received,
    }
    payload.update(overrides)
    return payload


def _given(barcode=TRADED_IN, value=120000, quantity=1, **extra):
    line = {"barcode": barcode, "quantity": quantity, "unit_value_cents": value, "variant": "withCase"}
    line.update(extra)
    return line


def _received(barcode=HANDED_OUT, quantity=1):
    return {"barcode": barcode, "quantity": quantity, "variant": "withCase"}


class TestCreateTrade:
    def test_trade_up_owes_difference_plus_fee(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given()], [_received()]))

        assert trade.status == "pending"
        assert trade.trade_reference.startswith("TRADE-")
        assert trade.trade_reference.endswith("-0001")
        assert trade.total_value_given_cents == 120000
        assert trade.total_value_received_cents == 150000
        assert trade.trade_type == "up"
        assert trade.trade_fee_cents == 20000
        assert trade.cash_difference_cents == 50000
        assert [line.title for line in trade.games_given] == ["Pokemon Violet"]
        assert [line.unit_value_cents for line in trade.games_received] == [150000]

    def test_trade_down_is_free(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given(value=200000)], [_received()]))
        assert trade.trade_type == "down"
        assert trade.trade_fee_cents == 0
        assert trade.cash_difference_cents == 0

    def test_both_sides_are_required(self, db_session, traded_in, handed_out):
        with pytest.raises(ValidationError):
            trade_service.create_trade(_payload([_given()], []))
        with pytest.raises(ValidationError):
            trade_service.create_trade(_payload([], [_received()]))

    def test_unknown_games_are_not_found(self, db_session, traded_in, handed_out):
        with pytest.raises(NotFoundError):
            trade_service.create_trade(_payload([_given(barcode="1111111111")], [_received()]))
        with pytest.raises(NotFoundError):
            trade_service.create_trade(_payload([_given()], [_received(barcode="1111111111")]))

    def test_new_sku_cannot_reuse_a_barcode(self, db_session, traded_in, handed_out):
        with pytest.raises(DuplicateBarcodeError):
            trade_service.create_trade(_payload(
                [_given(is_new_sku=True, new_sku_details={"title": "Pokemon Violet", "price_cents": 180000})],
                [_received()],
            ))

    def test_received_stock_is_checked_up_front(self, db_session, traded_in, handed_out):
        with pytest.raises(InsufficientStockError):
            trade_service.create_trade(_payload([_given()], [_received(quantity=4)]))
        assert db_session.query(Trade).count() == 0


class TestTradeLifecycle:
    def test_completion_moves_both_sides(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given()], [_received()]))

        trade = trade_service.transition_trade(trade.id, "completed")

        assert trade.completed_at is not None
        given = db_session.get(Game, traded_in.id)
        assert given.stock_with_case == 2
        # (100000*1 + 120000*1) / 2
        assert given.cost_basis_cents == 110000
        received = db_session.get(Game, handed_out.id)
        assert received.stock_with_case == 2
        assert received.cost_basis_cents == 90000
        assert received.number_of_sold == 0

    def test_trade_in_blends_against_the_same_variant_only(self, db_session, make_game, handed_out):
        game = make_game(
            TRADED_IN,
            stock_with_case=1,
            stock_cartridge_only=9,
            cost_basis_cents=100000,
        )
        trade = trade_service.create_trade(_payload([_given()], [_received()]))
        trade_service.transition_trade(trade.id, "completed")

        assert db_session.get(Game, game.id).cost_basis_cents == 110000

    def test_cancelling_completed_trade_reverses_stock_only(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given()], [_received()]))
        trade_service.transition_trade(trade.id, "completed")

        trade = trade_service.transition_trade(trade.id, "cancelled")

        assert trade.status == "cancelled"
        given = db_session.get(Game, traded_in.id)
        assert given.stock_with_case == 1
        assert given.cost_basis_cents == 110000
        assert db_session.get(Game, handed_out.id).stock_with_case == 3

    def test_new_sku_given_is_created_at_trade_in_value(self, db_session, handed_out):
        trade = trade_service.create_trade(_payload(
            [_given(
                barcode=NEW_BARCODE,
                value=90000,
                variant="cartridgeOnly",
                is_new_sku=True,
                new_sku_details={"title": "Kirby Forgotten Land", "price_cents": 160000},
            )],
            [_received()],
        ))
        assert trade.games_given[0].title == "Kirby Forgotten Land"

        trade_service.transition_trade(trade.id, "completed")

        game = catalog_service.get_by_barcode(NEW_BARCODE)
        assert game.stock_cartridge_only == 1
        assert game.cost_basis_cents == 90000
        assert game.price_cents == 160000

    def test_completion_rechecks_received_stock(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given()], [_received(quantity=2)]))

        game = db_session.get(Game, handed_out.id)
        game.stock_with_case = 1
        db_session.commit()

        with pytest.raises(InsufficientStockError):
            trade_service.transition_trade(trade.id, "completed")
        assert db_session.get(Game, traded_in.id).stock_with_case == 1
        assert db_session.get(Trade, trade.id).status == "pending"

    def test_confirmed_then_completed_is_audited(self, db_session, traded_in, handed_out):
        trade = trade_service.create_trade(_payload([_given()], [_received()]))
        trade_service.transition_trade(trade.id, "confirmed")
        trade_service.transition_trade(trade.id, "completed", notes="Checked cartridge")

        trade = db_session.get(Trade, trade.id)
        assert trade.confirmed_at is not None
        assert trade.admin_notes == "Checked cartridge"
        events = [
            e.event_type
            for e in db_session.query(LedgerEvent)
            .filter_by(entity_type="trade", entity_id=trade.id)
            .order_by(LedgerEvent.id)
        ]
        assert events[0] == "trade.created"
        assert "trade.confirmed" in events
        assert events[-1] == "trade.completed"
        assert events.count("inventory.increased") == 1
        assert events.count("inventory.decreased") == 1
