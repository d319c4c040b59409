from __future__ import annotations

from ..extensions import db
from gamestock.time_utils import to_utc_z
from .catalog import DEFAULT_VARIANT


ROLE_GIVEN = "given"        # customer -> store
ROLE_RECEIVED = "received"  # store -> customer


class Trade(db.Model):
    """
    Barter document: removes stock (games received by the customer) and adds
    stock (games given by the customer) in the same transition.
    """
    __tablename__ = "trades"
    __table_args__ = (
        db.Index("ix_trades_status_submitted", "status", "submitted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "TRADE-20250122-0001"
    trade_reference = db.Column(db.String(32), nullable=False, unique=True, index=True)

    customer_name = db.Column(db.String(100), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=True)
    customer_email = db.Column(db.String(100), nullable=True)
    customer_facebook_url = db.Column(db.String(200), nullable=True)

    trade_location = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.String(1000), nullable=True)

    # Money (all amounts in cents)
    total_value_given_cents = db.Column(db.Integer, nullable=False)
    total_value_received_cents = db.Column(db.Integer, nullable=False)
    cash_difference_cents = db.Column(db.Integer, nullable=False)
    trade_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    trade_type = db.Column(db.String(8), nullable=False)  # up, down, even

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    admin_notes = db.Column(db.String(1000), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "TradeLine",
        backref="trade",
        order_by="TradeLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def games_given(self) -> list["TradeLine"]:
        return [line for line in self.lines if line.role == ROLE_GIVEN]

    @property
    def games_received(self) -> list["TradeLine"]:
        return [line for line in self.lines if line.role == ROLE_RECEIVED]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trade_reference": self.trade_reference,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "customer_facebook_url": self.customer_facebook_url,
            "games_given": [line.to_dict() for line in self.games_given],
            "games_received": [line.to_dict() for line in self.games_received],
            "trade_location": self.trade_location,
            "notes": self.notes,
            "total_value_given_cents": self.total_value_given_cents,
            "total_value_received_cents": self.total_value_received_cents,
            "cash_difference_cents": self.cash_difference_cents,
            "trade_fee_cents": self.trade_fee_cents,
            "trade_type": self.trade_type,
            "status": self.status,
            "submitted_at": to_utc_z(self.submitted_at),
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "admin_notes": self.admin_notes,
            "version_id": self.version_id,
        }


class TradeLine(db.Model):
    """A game changing hands in a trade; role says which direction."""
    __tablename__ = "trade_lines"
    __table_args__ = (
        db.CheckConstraint("role IN ('given', 'received')", name="ck_trade_lines_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    trade_id = db.Column(db.Integer, db.ForeignKey("trades.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    role = db.Column(db.String(8), nullable=False)

    barcode = db.Column(db.String(13), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_value_cents = db.Column(db.Integer, nullable=False)
    variant = db.Column(db.String(16), nullable=False, default=DEFAULT_VARIANT)

    # Only meaningful for given lines
    is_new_sku = db.Column(db.Boolean, nullable=False, default=False)
    new_sku_details = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "barcode": self.barcode,
            "title": self.title,
            "quantity": self.quantity,
            "unit_value_cents": self.unit_value_cents,
            "variant": self.variant,
        }
        if self.role == ROLE_GIVEN:
            data["is_new_sku"] = self.is_new_sku
            data["new_sku_details"] = self.new_sku_details
        return data
