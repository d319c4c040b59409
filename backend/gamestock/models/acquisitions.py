from __future__ import annotations

from ..extensions import db
from gamestock.time_utils import to_utc_z
from .catalog import DEFAULT_VARIANT


class Acquisition(db.Model):
    """
    Supplier purchase document (stock coming in).

    Lines only touch the catalog when the document crosses into 'completed';
    leaving 'completed' reverses the stock effect (cost basis stays blended).
    """
    __tablename__ = "acquisitions"
    __table_args__ = (
        db.Index("ix_acquisitions_status_purchased", "status", "purchased_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "BUY-20250115-001"
    reference_code = db.Column(db.String(32), nullable=False, unique=True, index=True)

    supplier_name = db.Column(db.String(100), nullable=True, index=True)
    supplier_contact = db.Column(db.String(100), nullable=True)
    supplier_notes = db.Column(db.String(500), nullable=True)

    # Financial summary (all amounts in cents)
    total_cost_cents = db.Column(db.Integer, nullable=False)
    total_expected_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    total_expected_profit_cents = db.Column(db.Integer, nullable=False, default=0)
    profit_margin_bps = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    admin_notes = db.Column(db.String(1000), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "AcquisitionLine",
        backref="acquisition",
        order_by="AcquisitionLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference_code": self.reference_code,
            "supplier_name": self.supplier_name,
            "supplier_contact": self.supplier_contact,
            "supplier_notes": self.supplier_notes,
            "lines": [line.to_dict() for line in self.lines],
            "total_cost_cents": self.total_cost_cents,
            "total_expected_revenue_cents": self.total_expected_revenue_cents,
            "total_expected_profit_cents": self.total_expected_profit_cents,
            "profit_margin_bps": self.profit_margin_bps,
            "status": self.status,
            "purchased_at": to_utc_z(self.purchased_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "admin_notes": self.admin_notes,
            "version_id": self.version_id,
        }


class AcquisitionLine(db.Model):
    """One purchased title on an acquisition document."""
    __tablename__ = "acquisition_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    acquisition_id = db.Column(db.Integer, db.ForeignKey("acquisitions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    barcode = db.Column(db.String(13), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_selling_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    variant = db.Column(db.String(16), nullable=False, default=DEFAULT_VARIANT)

    is_new_sku = db.Column(db.Boolean, nullable=False, default=False)
    new_sku_details = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "title": self.title,
            "quantity": self.quantity,
            "unit_selling_price_cents": self.unit_selling_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "variant": self.variant,
            "is_new_sku": self.is_new_sku,
            "new_sku_details": self.new_sku_details,
        }
