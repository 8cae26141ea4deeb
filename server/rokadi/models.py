from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declared_attr, relationship

from .db import Base

ACCOUNT_TYPES = ("cash", "bank")
ENTRY_TYPES = ("credit", "debit")
VENDOR_KINDS = ("feriwala", "kabadiwala")
EVENT_KINDS = ("expense", "purchase_payment", "withdrawal")


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    godowns = relationship("Godown", back_populates="company")


class Godown(Base):
    __tablename__ = "godowns"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    company = relationship("Company", back_populates="godowns")


class Account(Base):
    """A cash or bank bucket for one company/godown. ``balance`` is a projection of the journal."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    account_type = Column(Enum(*ACCOUNT_TYPES, name="account_type"), nullable=False)
    account_name = Column(String(200), nullable=False)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "godown_id", "account_type", name="uq_account_unit_type"),
    )


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    related_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    entry_type = Column(Enum(*ENTRY_TYPES, name="journal_entry_type"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    category = Column(String(100), nullable=False, default="")
    reference = Column(String(255), nullable=True)
    internal_ref = Column(String(150), nullable=False, unique=True)
    correlation_id = Column(String(36), nullable=True, index=True)
    # Events are deleted on reversal; history keeps the id without a foreign key.
    source_type = Column(String(50), nullable=True)
    source_id = Column(Integer, nullable=True)
    entry_metadata = Column(Text, nullable=True)
    entry_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_entry_amount_positive"),
        Index("ix_journal_entries_account_created", "account_id", "created_at"),
    )

    account = relationship("Account", foreign_keys=[account_id])
    related_account = relationship("Account", foreign_keys=[related_account_id])

    @property
    def signed_amount(self) -> Decimal:
        amount = Decimal(self.amount or 0)
        return amount if self.entry_type == "credit" else -amount


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    name = Column(String(200), nullable=False)
    kind = Column(Enum(*VENDOR_KINDS, name="vendor_kind"), nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Labourer(Base):
    __tablename__ = "labourers"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    name = Column(String(200), nullable=False)
    worker_type = Column(String(50), nullable=False, default="Labour")
    daily_wage = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="Active")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    purchase_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    payment_status = Column(
        Enum("pending", "partial", "paid", name="purchase_payment_status"),
        nullable=False,
        default="pending",
    )
    note = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Deleted purchases must not hand their id to the next purchase.
    __table_args__ = (
        Index("ix_purchases_vendor_date", "vendor_id", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    vendor = relationship("Vendor")
    lines = relationship("PurchaseLine", back_populates="purchase", cascade="all, delete-orphan")


class PurchaseLine(Base):
    __tablename__ = "purchase_lines"

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=False)
    material = Column(String(100), nullable=False)
    weight = Column(Numeric(14, 3), nullable=False)
    rate = Column(Numeric(14, 2), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)

    purchase = relationship("Purchase", back_populates="lines")


class Event(Base):
    """A business occurrence that moved money out of a cash or bank account."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    event_kind = Column(Enum(*EVENT_KINDS, name="event_kind"), nullable=False, default="expense")
    event_date = Column(Date, nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_mode = Column(String(30), nullable=False, default="cash")
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    paid_to_type = Column(String(30), nullable=True)
    paid_to_id = Column(Integer, nullable=True)
    paid_to_name = Column(String(200), nullable=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=True)
    idempotency_key = Column(String(100), nullable=True, unique=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Journal refs are built from the id; reversed events are deleted, so ids must never be reused.
    __table_args__ = {"sqlite_autoincrement": True}

    account = relationship("Account")


class LabourWithdrawal(Base):
    __tablename__ = "labour_withdrawals"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    labourer_id = Column(Integer, ForeignKey("labourers.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    withdrawal_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    mode = Column(String(30), nullable=False, default="cash")
    withdrawal_type = Column(String(30), nullable=False, default="salary")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VendorPaymentMixin:
    id = Column(Integer, primary_key=True)
    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    mode = Column(String(30), nullable=False, default="cash")
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @declared_attr.directive
    def __table_args__(cls):
        return (Index(f"ix_{cls.__tablename__}_vendor_date", "vendor_id", "payment_date"),)

    @declared_attr
    def company_id(cls):
        return Column(Integer, ForeignKey("companies.id"), nullable=False)

    @declared_attr
    def godown_id(cls):
        return Column(Integer, ForeignKey("godowns.id"), nullable=False)

    @declared_attr
    def vendor_id(cls):
        return Column(Integer, ForeignKey("vendors.id"), nullable=False)

    @declared_attr
    def event_id(cls):
        return Column(Integer, ForeignKey("events.id"), nullable=False)

    @declared_attr
    def purchase_id(cls):
        return Column(Integer, ForeignKey("purchases.id"), nullable=True)


class FeriwalaPayment(VendorPaymentMixin, Base):
    """Payment handed to an itinerant seller."""

    __tablename__ = "feriwala_payments"


class KabadiwalaPayment(VendorPaymentMixin, Base):
    """Payment handed to a scrap-dealer vendor."""

    __tablename__ = "kabadiwala_payments"


class VendorDailyBalance(Base):
    __tablename__ = "vendor_daily_balances"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    balance_date = Column(Date, nullable=False)
    previous_balance = Column(Numeric(14, 2), nullable=False, default=0)
    purchase_amount = Column(Numeric(14, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    current_balance = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "godown_id", "vendor_id", "balance_date", name="uq_vendor_daily_balance"),
    )


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    labourer_id = Column(Integer, ForeignKey("labourers.id"), nullable=False)
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="Present")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("labourer_id", "attendance_date", name="uq_attendance_labourer_date"),
    )


class LabourSalary(Base):
    __tablename__ = "labour_salaries"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    godown_id = Column(Integer, ForeignKey("godowns.id"), nullable=False)
    labourer_id = Column(Integer, ForeignKey("labourers.id"), nullable=False)
    salary_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("labourer_id", "salary_date", name="uq_labour_salary_labourer_date"),
    )
