"""Initial schema: catalog, acquisitions, sales, trades, audit ledger

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(13), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("platforms", sa.JSON(), nullable=False),
        sa.Column("rating", sa.String(8), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("release_date", sa.String(10), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("sale_active", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("sale_price_cents", sa.Integer(), nullable=True),
        sa.Column("stock_with_case", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock_cartridge_only", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_basis_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("number_of_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tradable", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("rental_available", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("rental_weekly_rate_cents", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("stock_with_case >= 0", name="ck_games_stock_with_case_nonneg"),
        sa.CheckConstraint("stock_cartridge_only >= 0", name="ck_games_stock_cartridge_only_nonneg"),
        sa.CheckConstraint("cost_basis_cents >= 0", name="ck_games_cost_basis_nonneg"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("games", schema=None) as batch_op:
        batch_op.create_index("ix_games_barcode", ["barcode"], unique=True)
        batch_op.create_index("ix_games_category", ["category"], unique=False)

    op.create_table(
        "acquisitions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reference_code", sa.String(32), nullable=False),
        sa.Column("supplier_name", sa.String(100), nullable=True),
        sa.Column("supplier_contact", sa.String(100), nullable=True),
        sa.Column("supplier_notes", sa.String(500), nullable=True),
        sa.Column("total_cost_cents", sa.Integer(), nullable=False),
        sa.Column("total_expected_revenue_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_expected_profit_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("profit_margin_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("purchased_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.String(1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("acquisitions", schema=None) as batch_op:
        batch_op.create_index("ix_acquisitions_reference_code", ["reference_code"], unique=True)
        batch_op.create_index("ix_acquisitions_supplier_name", ["supplier_name"], unique=False)
        batch_op.create_index("ix_acquisitions_status", ["status"], unique=False)
        batch_op.create_index("ix_acquisitions_status_purchased", ["status", "purchased_at"], unique=False)

    op.create_table(
        "acquisition_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("acquisition_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(13), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_selling_price_cents", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False),
        sa.Column("variant", sa.String(16), nullable=False, server_default="withCase"),
        sa.Column("is_new_sku", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("new_sku_details", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["acquisition_id"], ["acquisitions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("acquisition_lines", schema=None) as batch_op:
        batch_op.create_index("ix_acquisition_lines_acquisition_id", ["acquisition_id"], unique=False)
        batch_op.create_index("ix_acquisition_lines_barcode", ["barcode"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("customer_name", sa.String(100), nullable=False),
        sa.Column("customer_phone", sa.String(20), nullable=True),
        sa.Column("customer_email", sa.String(100), nullable=True),
        sa.Column("customer_facebook_url", sa.String(200), nullable=True),
        sa.Column("delivery_address", sa.String(500), nullable=True),
        sa.Column("delivery_city", sa.String(100), nullable=True),
        sa.Column("delivery_landmark", sa.String(200), nullable=True),
        sa.Column("delivery_notes", sa.String(500), nullable=True),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("order_source", sa.String(16), nullable=False, server_default="website"),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_type", sa.String(16), nullable=True),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("discount_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("delivery_fee_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_profit_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("profit_margin_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("admin_notes", sa.String(1000), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_order_number", ["order_number"], unique=True)
        batch_op.create_index("ix_sales_customer_email", ["customer_email"], unique=False)
        batch_op.create_index("ix_sales_order_source", ["order_source"], unique=False)
        batch_op.create_index("ix_sales_status", ["status"], unique=False)
        batch_op.create_index("ix_sales_status_submitted", ["status", "submitted_at"], unique=False)

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(13), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("variant", sa.String(16), nullable=False, server_default="withCase"),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("sale_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sale_lines_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_lines_barcode", ["barcode"], unique=False)

    op.create_table(
        "trades",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trade_reference", sa.String(32), nullable=False),
        sa.Column("customer_name", sa.String(100), nullable=False),
        sa.Column("customer_phone", sa.String(20), nullable=True),
        sa.Column("customer_email", sa.String(100), nullable=True),
        sa.Column("customer_facebook_url", sa.String(200), nullable=True),
        sa.Column("trade_location", sa.String(500), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("total_value_given_cents", sa.Integer(), nullable=False),
        sa.Column("total_value_received_cents", sa.Integer(), nullable=False),
        sa.Column("cash_difference_cents", sa.Integer(), nullable=False),
        sa.Column("trade_fee_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("trade_type", sa.String(8), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.String(1000), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("trades", schema=None) as batch_op:
        batch_op.create_index("ix_trades_trade_reference", ["trade_reference"], unique=True)
        batch_op.create_index("ix_trades_status", ["status"], unique=False)
        batch_op.create_index("ix_trades_status_submitted", ["status", "submitted_at"], unique=False)

    op.create_table(
        "trade_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trade_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(8), nullable=False),
        sa.Column("barcode", sa.String(13), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_value_cents", sa.Integer(), nullable=False),
        sa.Column("variant", sa.String(16), nullable=False, server_default="withCase"),
        sa.Column("is_new_sku", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("new_sku_details", sa.JSON(), nullable=True),
        sa.CheckConstraint("role IN ('given', 'received')", name="ck_trade_lines_role"),
        sa.ForeignKeyConstraint(["trade_id"], ["trades.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("trade_lines", schema=None) as batch_op:
        batch_op.create_index("ix_trade_lines_trade_id", ["trade_id"], unique=False)
        batch_op.create_index("ix_trade_lines_barcode", ["barcode"], unique=False)

    op.create_table(
        "ledger_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("event_category", sa.String(32), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(13), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("ledger_events", schema=None) as batch_op:
        batch_op.create_index("ix_ledger_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_ledger_events_event_category", ["event_category"], unique=False)
        batch_op.create_index("ix_ledger_events_barcode", ["barcode"], unique=False)
        batch_op.create_index("ix_ledger_events_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_ledger_events_entity", ["entity_type", "entity_id"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("period", sa.String(8), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("document_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_document_sequences_document_type", ["document_type"], unique=False)


def downgrade():
    op.drop_table("document_sequences")
    op.drop_table("ledger_events")
    op.drop_table("trade_lines")
    op.drop_table("trades")
    op.drop_table("sale_lines")
    op.drop_table("sales")
    op.drop_table("acquisition_lines")
    op.drop_table("acquisitions")
    op.drop_table("games")
