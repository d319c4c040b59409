# backend/gamestock/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Applied before init_app: Flask-SQLAlchemy builds engines at init time
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.catalog import catalog_bp
    from .routes.acquisitions import acquisitions_bp
    from .routes.sales import sales_bp
    from .routes.trades import trades_bp
    from .routes.ledger import ledger_bp
    from .routes.financials import financials_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(acquisitions_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(trades_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(financials_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
