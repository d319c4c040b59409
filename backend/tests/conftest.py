"""
Pytest fixtures for GameStock backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

import pytest
from gamestock import create_app
from gamestock.extensions import db
from gamestock.models import Game


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RETRY_BACKOFF_BASE': 0,
        'STOCK_REVERSAL_POLICY': 'clamp',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        db.session.rollback()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def strict_reversals(app):
    """Switch the stock reversal policy to strict for one test."""
    app.config['STOCK_REVERSAL_POLICY'] = 'strict'
    yield
    app.config['STOCK_REVERSAL_POLICY'] = 'clamp'


@pytest.fixture(scope='function')
def make_game(db_session):
    """Factory for catalog entries."""
    def _make(barcode="0045496590420", **overrides):
        values = {
            "title": f"Game {barcode}",
            "platforms": ["Nintendo Switch"],
            "price_cents": 200000,
            "stock_with_case": 0,
            "stock_cartridge_only": 0,
            "cost_basis_cents": 0,
        }
        values.update(overrides)
        game = Game(barcode=barcode, **values)
        db_session.add(game)
        db_session.commit()
        return game
    return _make


@pytest.fixture(scope='function')
def zelda(make_game):
    """Create a well-stocked Switch title."""
    return make_game(
        "0045496590420",
        title="The Legend of Zelda: Tears of the Kingdom",
        price_cents=300000,
        stock_with_case=10,
        stock_cartridge_only=4,
        cost_basis_cents=180000,
    )


@pytest.fixture(scope='function')
def mario(make_game):
    """Create a second title with a little stock."""
    return make_game(
        "0045496596583",
        title="Super Mario Bros. Wonder",
        price_cents=250000,
        stock_with_case=5,
        stock_cartridge_only=2,
        cost_basis_cents=100000,
    )


def sale_payload(*lines, **overrides) -> dict:
    """Build a minimal valid order body."""
    payload = {
        "customer_name": "Juan Dela Cruz",
        "customer_phone": "09171234567",
        "customer_email": "juan@example.com",
        "delivery_address": "123 Rizal St",
        "delivery_city": "Makati",
        "payment_method": "cod",
        "lines": list(lines),
    }
    payload.update(overrides)
    return payload
