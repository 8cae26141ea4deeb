"""vendor and labour sub-ledgers

Revision ID: 0002_vendor_labour_ledgers
Revises: 0001_initial
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_vendor_labour_ledgers"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def _vendor_payment_columns():
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id")),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("mode", sa.String(length=30), nullable=False, server_default="cash"),
        sa.Column("note", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table("feriwala_payments", *_vendor_payment_columns())
    op.create_index("ix_feriwala_payments_vendor_date", "feriwala_payments", ["vendor_id", "payment_date"])
    op.create_table("kabadiwala_payments", *_vendor_payment_columns())
    op.create_index("ix_kabadiwala_payments_vendor_date", "kabadiwala_payments", ["vendor_id", "payment_date"])
    op.create_table(
        "vendor_daily_balances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("balance_date", sa.Date(), nullable=False),
        sa.Column("previous_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("purchase_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("paid_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("current_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "godown_id", "vendor_id", "balance_date", name="uq_vendor_daily_balance"),
    )
    op.create_table(
        "labour_withdrawals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("labourer_id", sa.Integer(), sa.ForeignKey("labourers.id"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("withdrawal_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("mode", sa.String(length=30), nullable=False, server_default="cash"),
        sa.Column("withdrawal_type", sa.String(length=30), nullable=False, server_default="salary"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("labourer_id", sa.Integer(), sa.ForeignKey("labourers.id"), nullable=False),
        sa.Column("attendance_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Present"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("labourer_id", "attendance_date", name="uq_attendance_labourer_date"),
    )
    op.create_table(
        "labour_salaries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("godown_id", sa.Integer(), sa.ForeignKey("godowns.id"), nullable=False),
        sa.Column("labourer_id", sa.Integer(), sa.ForeignKey("labourers.id"), nullable=False),
        sa.Column("salary_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("labourer_id", "salary_date", name="uq_labour_salary_labourer_date"),
    )


def downgrade() -> None:
    op.drop_table("labour_salaries")
    op.drop_table("attendance")
    op.drop_table("labour_withdrawals")
    op.drop_table("vendor_daily_balances")
    op.drop_index("ix_kabadiwala_payments_vendor_date", table_name="kabadiwala_payments")
    op.drop_table("kabadiwala_payments")
    op.drop_index("ix_feriwala_payments_vendor_date", table_name="feriwala_payments")
    op.drop_table("feriwala_payments")
