from __future__ import annotations

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from gamestock.time_utils import to_utc_z


VARIANT_WITH_CASE = "withCase"
VARIANT_CARTRIDGE_ONLY = "cartridgeOnly"
VARIANTS = (VARIANT_WITH_CASE, VARIANT_CARTRIDGE_ONLY)
DEFAULT_VARIANT = VARIANT_WITH_CASE


class Game(db.Model):
    """
    Catalog entry (SKU), identified by barcode.

    STOCK DESIGN:
    Stock is tracked per physical variant (with case / cartridge only).
    total_available_stock is a derived projection of the two counters and is
    never stored on its own.

    COST BASIS:
    cost_basis_cents is a moving average per unit, blended only on stock
    increases (acquisitions, trade-ins). Reversals never un-average it.

    CONCURRENCY:
    version_id is the optimistic-locking column: a flush against a stale row
    raises StaleDataError and the surrounding unit of work is retried.
    """
    __tablename__ = "games"
    __table_args__ = (
        db.CheckConstraint("stock_with_case >= 0", name="ck_games_stock_with_case_nonneg"),
        db.CheckConstraint("stock_cartridge_only >= 0", name="ck_games_stock_cartridge_only_nonneg"),
        db.CheckConstraint("cost_basis_cents >= 0", name="ck_games_cost_basis_nonneg"),
        db.Index("ix_games_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    barcode = db.Column(db.String(13), nullable=False, unique=True, index=True)
    title = db.Column(db.String(200), nullable=False)
    platforms = db.Column(db.JSON, nullable=False, default=list)
    rating = db.Column(db.String(8), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(64), nullable=True)
    release_date = db.Column(db.String(10), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)
    sale_active = db.Column(db.Boolean, nullable=False, default=False)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    stock_with_case = db.Column(db.Integer, nullable=False, default=0)
    stock_cartridge_only = db.Column(db.Integer, nullable=False, default=0)
    cost_basis_cents = db.Column(db.Integer, nullable=False, default=0)
    number_of_sold = db.Column(db.Integer, nullable=False, default=0)

    tradable = db.Column(db.Boolean, nullable=False, default=True)
    rental_available = db.Column(db.Boolean, nullable=False, default=False)
    rental_weekly_rate_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @hybrid_property
    def total_available_stock(self) -> int:
        return (self.stock_with_case or 0) + (self.stock_cartridge_only or 0)

    @total_available_stock.expression
    def total_available_stock(cls):
        return cls.stock_with_case + cls.stock_cartridge_only

    def stock_for(self, variant: str) -> int:
        if variant == VARIANT_CARTRIDGE_ONLY:
            return self.stock_cartridge_only or 0
        return self.stock_with_case or 0

    def set_stock(self, variant: str, value: int) -> None:
        if variant == VARIANT_CARTRIDGE_ONLY:
            self.stock_cartridge_only = value
        else:
            self.stock_with_case = value

    def __repr__(self) -> str:
        return f"<Game id={self.id} barcode={self.barcode!r} title={self.title!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "title": self.title,
            "platforms": self.platforms or [],
            "rating": self.rating,
            "description": self.description,
            "image_url": self.image_url,
            "category": self.category,
            "release_date": self.release_date,
            "price_cents": self.price_cents,
            "sale_active": self.sale_active,
            "sale_price_cents": self.sale_price_cents,
            "stock_with_case": self.stock_with_case,
            "stock_cartridge_only": self.stock_cartridge_only,
            "total_available_stock": self.total_available_stock,
            "cost_basis_cents": self.cost_basis_cents,
            "number_of_sold": self.number_of_sold,
            "tradable": self.tradable,
            "rental_available": self.rental_available,
            "rental_weekly_rate_cents": self.rental_weekly_rate_cents,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
