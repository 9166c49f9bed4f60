"""Create invoices, payments, numbering policy and payment audit tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


INVOICE_STATUSES = ("draft", "sent", "partially_paid", "paid", "overdue", "cancelled")
PAYMENT_METHODS = (
    "cash",
    "credit_card",
    "debit_card",
    "bank_transfer",
    "check",
    "digital_wallet",
)
AUDIT_ACTIONS = ("created", "voided")


def _dialect_settings():
    bind = op.get_bind()
    dialect = bind.dialect.name if bind else "sqlite"

    uuid_type = sa.CHAR(length=36)
    json_type = sa.JSON()

    if dialect == "postgresql":
        uuid_type = postgresql.UUID(as_uuid=True)
        json_type = postgresql.JSONB(astext_type=sa.Text())

    return uuid_type, json_type


def _string_enum(values, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    uuid_type, json_type = _dialect_settings()

    op.create_table(
        "numbering_policies",
        sa.Column("policy_id", sa.Integer(), primary_key=True),
        sa.Column("prefix", sa.String(length=20), nullable=False, server_default="INV"),
        sa.Column("next_sequence", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("period_format", sa.String(length=20), nullable=False, server_default="%Y%m"),
        sa.Column("due_in_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("next_sequence >= 1", name="ck_numbering_next_sequence_positive"),
        sa.CheckConstraint("due_in_days >= 0", name="ck_numbering_due_in_days_non_negative"),
    )

    op.create_table(
        "invoices",
        sa.Column("invoice_id", uuid_type, primary_key=True),
        sa.Column("invoice_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("discount_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("subtotal_minor", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("tax_minor", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("discount_minor", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_minor", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("paid_minor", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            _string_enum(INVOICE_STATUSES, "invoice_status_enum"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("due_date >= issue_date", name="ck_invoices_due_after_issue"),
        sa.CheckConstraint("subtotal_minor >= 0", name="ck_invoices_subtotal_non_negative"),
        sa.CheckConstraint("total_minor >= 0", name="ck_invoices_total_non_negative"),
        sa.CheckConstraint("paid_minor >= 0", name="ck_invoices_paid_non_negative"),
        sa.CheckConstraint("paid_minor <= total_minor", name="ck_invoices_paid_within_total"),
        sa.CheckConstraint(
            "tax_rate >= 0 AND tax_rate <= 100", name="ck_invoices_tax_rate_range"
        ),
        sa.CheckConstraint(
            "discount_rate >= 0 AND discount_rate <= 100",
            name="ck_invoices_discount_rate_range",
        ),
    )
    op.create_index("invoices_client_idx", "invoices", ["client_id"])
    op.create_index("invoices_status_idx", "invoices", ["status"])
    op.create_index("invoices_due_date_idx", "invoices", ["due_date"])

    op.create_table(
        "invoice_lines",
        sa.Column("invoice_line_id", uuid_type, primary_key=True),
        sa.Column(
            "invoice_id",
            uuid_type,
            sa.ForeignKey("invoices.invoice_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("line_item_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_price_minor", sa.BigInteger(), nullable=False),
        sa.CheckConstraint("unit_price_minor >= 0", name="ck_invoice_lines_price_non_negative"),
        sa.CheckConstraint("position >= 0", name="ck_invoice_lines_position_non_negative"),
    )
    op.create_index(
        "invoice_lines_invoice_idx", "invoice_lines", ["invoice_id", "position"]
    )

    op.create_table(
        "payments",
        sa.Column("payment_id", uuid_type, primary_key=True),
        sa.Column(
            "invoice_id",
            uuid_type,
            sa.ForeignKey("invoices.invoice_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "method",
            _string_enum(PAYMENT_METHODS, "payment_method_enum"),
            nullable=False,
        ),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(length=120), nullable=True),
        sa.Column("voided", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("amount_minor > 0", name="ck_payments_amount_positive"),
    )
    op.create_index("payments_invoice_idx", "payments", ["invoice_id"])
    op.create_index("payments_client_idx", "payments", ["client_id"])
    op.create_index("payments_payment_date_idx", "payments", ["payment_date"])

    op.create_table(
        "payment_audit_log",
        sa.Column("id", uuid_type, primary_key=True),
        sa.Column(
            "payment_id",
            uuid_type,
            sa.ForeignKey("payments.payment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("invoice_id", uuid_type, nullable=False),
        sa.Column(
            "action",
            _string_enum(AUDIT_ACTIONS, "payment_audit_action_enum"),
            nullable=False,
        ),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("performed_by", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("snapshot", json_type, nullable=True),
    )
    op.create_index(
        "ix_payment_audit_log_payment_id", "payment_audit_log", ["payment_id"]
    )
    op.create_index(
        "ix_payment_audit_log_invoice_id", "payment_audit_log", ["invoice_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_payment_audit_log_invoice_id", table_name="payment_audit_log")
    op.drop_index("ix_payment_audit_log_payment_id", table_name="payment_audit_log")
    op.drop_table("payment_audit_log")

    op.drop_index("payments_payment_date_idx", table_name="payments")
    op.drop_index("payments_client_idx", table_name="payments")
    op.drop_index("payments_invoice_idx", table_name="payments")
    op.drop_table("payments")

    op.drop_index("invoice_lines_invoice_idx", table_name="invoice_lines")
    op.drop_table("invoice_lines")

    op.drop_index("invoices_due_date_idx", table_name="invoices")
    op.drop_index("invoices_status_idx", table_name="invoices")
    op.drop_index("invoices_client_idx", table_name="invoices")
    op.drop_table("invoices")

    op.drop_table("numbering_policies")
