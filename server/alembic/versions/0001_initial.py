"""initial cash book

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "godowns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("account_type", sa.Enum("cash", "bank", name="account_type"), nullable=False),
        sa.Column("account_name", sa.String(length=200), nullable=False),
        sa.Column("balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "godown_id", "account_type", name="uq_account_unit_type"),
    )
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id")),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("kind", sa.Enum("feriwala", "kabadiwala", name="vendor_kind"), nullable=False),
        sa.Column("phone", sa.String(length=50)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "labourers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("worker_type", sa.String(length=50), nullable=False, server_default="Labour"),
        sa.Column("daily_wage", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column(
            "payment_status",
            sa.Enum("pending", "partial", "paid", name="purchase_payment_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("note", sa.Text()),
        sa.Column("created_by", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchases_vendor_date", "purchases", ["vendor_id", "purchase_date"])
    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id"), nullable=False),
        sa.Column("material", sa.String(length=100), nullable=False),
        sa.Column("weight", sa.Numeric(14, 3), nullable=False),
        sa.Column("rate", sa.Numeric(14, 2), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
    )
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column(
            "event_kind",
            sa.Enum("expense", "purchase_payment", "withdrawal", name="event_kind"),
            nullable=False,
            server_default="expense",
        ),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_mode", sa.String(length=30), nullable=False, server_default="cash"),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("paid_to_type", sa.String(length=30)),
        sa.Column("paid_to_id", sa.Integer()),
        sa.Column("paid_to_name", sa.String(length=200)),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id")),
        sa.Column("idempotency_key", sa.String(length=100), unique=True),
        sa.Column("created_by", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("related_account_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("entry_type", sa.Enum("credit", "debit", name="journal_entry_type"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("reference", sa.String(length=255)),
        sa.Column("internal_ref", sa.String(length=150), nullable=False, unique=True),
        sa.Column("correlation_id", sa.String(length=36)),
        sa.Column("source_type", sa.String(length=50)),
        sa.Column("source_id", sa.Integer()),
        sa.Column("entry_metadata", sa.Text()),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_journal_entry_amount_positive"),
    )
    op.create_index("ix_journal_entries_correlation_id", "journal_entries", ["correlation_id"])
    op.create_index("ix_journal_entries_account_created", "journal_entries", ["account_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_journal_entries_account_created", table_name="journal_entries")
    op.drop_index("ix_journal_entries_correlation_id", table_name="journal_entries")
    op.drop_table("journal_entries")
    op.drop_table("events")
    op.drop_table("purchase_lines")
    op.drop_index("ix_purchases_vendor_date", table_name="purchases")
    op.drop_table("purchases")
    op.drop_table("labourers")
    op.drop_table("vendors")
    op.drop_table("accounts")
    op.drop_table("godowns")
    op.drop_table("companies")
    sa.Enum(name="event_kind").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="journal_entry_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="purchase_payment_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="vendor_kind").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="account_type").drop(op.get_bind(), checkfirst=True)
