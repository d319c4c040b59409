from __future__ import annotations

from ..extensions import db
from gamestock.time_utils import to_utc_z
from .catalog import DEFAULT_VARIANT


class Sale(db.Model):
    """
    Customer order document.

    Prices and cost basis are snapshotted onto the lines at creation time;
    totals are never recomputed from the live catalog.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_submitted", "status", "submitted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "SB250115001"
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    # Customer details
    customer_name = db.Column(db.String(100), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=True)
    customer_email = db.Column(db.String(100), nullable=True, index=True)
    customer_facebook_url = db.Column(db.String(200), nullable=True)

    # Delivery details
    delivery_address = db.Column(db.String(500), nullable=True)
    delivery_city = db.Column(db.String(100), nullable=True)
    delivery_landmark = db.Column(db.String(200), nullable=True)
    delivery_notes = db.Column(db.String(500), nullable=True)

    payment_method = db.Column(db.String(16), nullable=False)  # cod, bank_transfer, gcash
    order_source = db.Column(db.String(16), nullable=False, default="website", index=True)

    # Money (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_type = db.Column(db.String(16), nullable=True)  # percentage, fixed
    # percent (0-100) for "percentage", cents for "fixed"
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_profit_cents = db.Column(db.Integer, nullable=False, default=0)
    profit_margin_bps = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(100), nullable=True)
    admin_notes = db.Column(db.String(1000), nullable=True)
    cancellation_reason = db.Column(db.String(500), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "customer_facebook_url": self.customer_facebook_url,
            "delivery_address": self.delivery_address,
            "delivery_city": self.delivery_city,
            "delivery_landmark": self.delivery_landmark,
            "delivery_notes": self.delivery_notes,
            "payment_method": self.payment_method,
            "order_source": self.order_source,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": str(self.discount_value) if self.discount_value is not None else None,
            "discount_amount_cents": self.discount_amount_cents,
            "delivery_fee_cents": self.delivery_fee_cents,
            "total_amount_cents": self.total_amount_cents,
            "total_cost_cents": self.total_cost_cents,
            "total_profit_cents": self.total_profit_cents,
            "profit_margin_bps": self.profit_margin_bps,
            "status": self.status,
            "submitted_at": to_utc_z(self.submitted_at),
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "shipped_at": to_utc_z(self.shipped_at) if self.shipped_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "created_by": self.created_by,
            "admin_notes": self.admin_notes,
            "cancellation_reason": self.cancellation_reason,
            "version_id": self.version_id,
        }


class SaleLine(db.Model):
    """Individual line items on a sale document."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    barcode = db.Column(db.String(13), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Cost basis at the time the order was placed
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    variant = db.Column(db.String(16), nullable=False, default=DEFAULT_VARIANT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "title": self.title,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.unit_price_cents * self.quantity,
            "variant": self.variant,
        }
