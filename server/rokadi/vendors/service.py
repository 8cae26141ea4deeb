"""Per-vendor sub-ledgers for feriwala (itinerant seller) and kabadiwala (scrap dealer) vendors.

Balances are always rebuilt from the purchase and payment history; the
``vendor_daily_balances`` table is a cache of those recomputations and can be
dropped and rebuilt at any time.

Sign conventions, one per vendor kind:

* feriwala: balance = payments - purchases. A negative balance is what we owe
  the seller, a positive balance is an advance the seller holds.
* kabadiwala: balance = purchases - payments. A positive balance is what we
  owe the dealer, a negative balance is an advance recoverable from the dealer.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from rokadi.errors import ValidationError, VendorNotFoundError
from rokadi.models import (
    FeriwalaPayment,
    KabadiwalaPayment,
    Purchase,
    Vendor,
    VendorDailyBalance,
)
from rokadi.utils import ZERO, money_or_zero

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorConvention:
    kind: str
    payment_model: type
    purchase_sign: int

    def balance(self, purchases: Decimal, payments: Decimal) -> Decimal:
        if self.purchase_sign > 0:
            return purchases - payments
        return payments - purchases


CONVENTIONS = {
    "feriwala": VendorConvention(kind="feriwala", payment_model=FeriwalaPayment, purchase_sign=-1),
    "kabadiwala": VendorConvention(kind="kabadiwala", payment_model=KabadiwalaPayment, purchase_sign=1),
}


@dataclass(frozen=True)
class VendorSnapshot:
    vendor_id: int
    balance_date: date
    previous_balance: Decimal
    purchase_amount: Decimal
    paid_amount: Decimal
    current_balance: Decimal


@dataclass(frozen=True)
class StatementLine:
    entry_date: date
    entry_type: str
    description: str
    amount: Decimal
    balance: Decimal
    source_id: int


@dataclass
class VendorStatement:
    vendor_id: int
    vendor_name: str
    kind: str
    lines: list[StatementLine] = field(default_factory=list)
    outstanding: Decimal = ZERO


@dataclass(frozen=True)
class VendorBalance:
    vendor_id: int
    vendor_name: str
    balance: Decimal


@dataclass(frozen=True)
class SnapshotDrift:
    balance_date: date
    stored: Optional[VendorSnapshot]
    expected: Optional[VendorSnapshot]


def convention_for(kind: str) -> VendorConvention:
    convention = CONVENTIONS.get(kind)
    if not convention:
        raise ValidationError(f"Unknown vendor kind '{kind}'.")
    return convention


def get_vendor(
    db: Session,
    vendor_id: Optional[int],
    kind: Optional[str] = None,
    company_id: Optional[int] = None,
) -> Vendor:
    """Vendors with no company are shared by every company."""
    if vendor_id is None:
        raise ValidationError("Vendor id is required.")
    query = db.query(Vendor).filter(Vendor.id == vendor_id)
    if company_id is not None:
        query = query.filter(or_(Vendor.company_id == company_id, Vendor.company_id.is_(None)))
    vendor = query.first()
    if not vendor:
        raise VendorNotFoundError(f"Vendor {vendor_id} not found.", vendor_id=vendor_id)
    if kind and vendor.kind != kind:
        raise ValidationError(f"Vendor {vendor_id} is a {vendor.kind}, not a {kind}.")
    return vendor


def _purchase_total(db: Session, company_id: int, godown_id: int, vendor_id: int, *criteria) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Purchase.total_amount), 0))
        .filter(
            Purchase.company_id == company_id,
            Purchase.godown_id == godown_id,
            Purchase.vendor_id == vendor_id,
            *criteria,
        )
        .scalar()
    )
    return money_or_zero(total)


def _payment_total(db: Session, model, company_id: int, godown_id: int, vendor_id: int, *criteria) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(model.amount), 0))
        .filter(
            model.company_id == company_id,
            model.godown_id == godown_id,
            model.vendor_id == vendor_id,
            *criteria,
        )
        .scalar()
    )
    return money_or_zero(total)


def _has_activity(db: Session, model, company_id: int, godown_id: int, vendor_id: int, on_date: date) -> bool:
    purchase = (
        db.query(Purchase.id)
        .filter(
            Purchase.company_id == company_id,
            Purchase.godown_id == godown_id,
            Purchase.vendor_id == vendor_id,
            Purchase.purchase_date == on_date,
        )
        .first()
    )
    if purchase is not None:
        return True
    payment = (
        db.query(model.id)
        .filter(
            model.company_id == company_id,
            model.godown_id == godown_id,
            model.vendor_id == vendor_id,
            model.payment_date == on_date,
        )
        .first()
    )
    return payment is not None


def compute_vendor_snapshot(db: Session, company_id: int, godown_id: int, vendor: Vendor, on_date: date) -> VendorSnapshot:
    convention = convention_for(vendor.kind)
    payment_model = convention.payment_model

    prior_purchases = _purchase_total(db, company_id, godown_id, vendor.id, Purchase.purchase_date < on_date)
    prior_payments = _payment_total(db, payment_model, company_id, godown_id, vendor.id, payment_model.payment_date < on_date)
    today_purchases = _purchase_total(db, company_id, godown_id, vendor.id, Purchase.purchase_date == on_date)
    today_payments = _payment_total(db, payment_model, company_id, godown_id, vendor.id, payment_model.payment_date == on_date)

    previous_balance = convention.balance(prior_purchases, prior_payments)
    current_balance = previous_balance + convention.balance(today_purchases, today_payments)
    return VendorSnapshot(
        vendor_id=vendor.id,
        balance_date=on_date,
        previous_balance=previous_balance,
        purchase_amount=today_purchases,
        paid_amount=today_payments,
        current_balance=current_balance,
    )


def _snapshot_row(db: Session, company_id: int, godown_id: int, vendor_id: int, on_date: date) -> Optional[VendorDailyBalance]:
    return (
        db.query(VendorDailyBalance)
        .filter(
            VendorDailyBalance.company_id == company_id,
            VendorDailyBalance.godown_id == godown_id,
            VendorDailyBalance.vendor_id == vendor_id,
            VendorDailyBalance.balance_date == on_date,
        )
        .first()
    )


def _store_snapshot(db: Session, company_id: int, godown_id: int, vendor: Vendor, on_date: date) -> VendorSnapshot:
    snapshot = compute_vendor_snapshot(db, company_id, godown_id, vendor, on_date)
    payment_model = convention_for(vendor.kind).payment_model
    row = _snapshot_row(db, company_id, godown_id, vendor.id, on_date)

    if not _has_activity(db, payment_model, company_id, godown_id, vendor.id, on_date):
        if row:
            db.delete(row)
        return snapshot

    if not row:
        row = VendorDailyBalance(
            company_id=company_id,
            godown_id=godown_id,
            vendor_id=vendor.id,
            balance_date=on_date,
        )
        db.add(row)
    row.previous_balance = snapshot.previous_balance
    row.purchase_amount = snapshot.purchase_amount
    row.paid_amount = snapshot.paid_amount
    row.current_balance = snapshot.current_balance
    row.updated_at = datetime.utcnow()
    return snapshot


def reconcile_vendor_day(db: Session, company_id: int, godown_id: int, vendor: Vendor, on_date: date) -> VendorSnapshot:
    """Recompute and persist the vendor's snapshot for ``on_date`` from full history.

    Stored snapshots on later dates carry this day in their previous balance and
    are recomputed as well. Re-running yields identical rows.
    """
    db.flush()
    snapshot = _store_snapshot(db, company_id, godown_id, vendor, on_date)
    later_dates = [
        balance_date
        for (balance_date,) in db.query(VendorDailyBalance.balance_date)
        .filter(
            VendorDailyBalance.company_id == company_id,
            VendorDailyBalance.godown_id == godown_id,
            VendorDailyBalance.vendor_id == vendor.id,
            VendorDailyBalance.balance_date > on_date,
        )
        .order_by(VendorDailyBalance.balance_date.asc())
        .all()
    ]
    for later_date in later_dates:
        _store_snapshot(db, company_id, godown_id, vendor, later_date)
    db.flush()
    logger.debug(
        "Reconciled vendor_id=%s on %s: previous=%s purchase=%s paid=%s current=%s (refreshed %s later days)",
        vendor.id,
        on_date,
        snapshot.previous_balance,
        snapshot.purchase_amount,
        snapshot.paid_amount,
        snapshot.current_balance,
        len(later_dates),
    )
    return snapshot


def get_snapshot(db: Session, company_id: int, godown_id: int, vendor_id: int, on_date: date) -> Optional[VendorSnapshot]:
    row = _snapshot_row(db, company_id, godown_id, vendor_id, on_date)
    if not row:
        return None
    return _row_to_snapshot(row)


def _row_to_snapshot(row: VendorDailyBalance) -> VendorSnapshot:
    return VendorSnapshot(
        vendor_id=row.vendor_id,
        balance_date=row.balance_date,
        previous_balance=money_or_zero(row.previous_balance),
        purchase_amount=money_or_zero(row.purchase_amount),
        paid_amount=money_or_zero(row.paid_amount),
        current_balance=money_or_zero(row.current_balance),
    )


def snapshots_for_date(db: Session, company_id: int, godown_id: int, kind: str, on_date: date) -> list[tuple[Vendor, VendorSnapshot]]:
    convention_for(kind)
    rows = (
        db.query(VendorDailyBalance, Vendor)
        .join(Vendor, Vendor.id == VendorDailyBalance.vendor_id)
        .filter(
            VendorDailyBalance.company_id == company_id,
            VendorDailyBalance.godown_id == godown_id,
            VendorDailyBalance.balance_date == on_date,
            Vendor.kind == kind,
        )
        .order_by(Vendor.name.asc())
        .all()
    )
    return [(vendor, _row_to_snapshot(row)) for row, vendor in rows]


def _activity_dates(db: Session, company_id: int, godown_id: int, vendor: Vendor) -> set[date]:
    payment_model = convention_for(vendor.kind).payment_model
    purchase_dates = (
        db.query(Purchase.purchase_date)
        .filter(
            Purchase.company_id == company_id,
            Purchase.godown_id == godown_id,
            Purchase.vendor_id == vendor.id,
        )
        .distinct()
    )
    payment_dates = (
        db.query(payment_model.payment_date)
        .filter(
            payment_model.company_id == company_id,
            payment_model.godown_id == godown_id,
            payment_model.vendor_id == vendor.id,
        )
        .distinct()
    )
    return {value for (value,) in purchase_dates} | {value for (value,) in payment_dates}


def audit_vendor_snapshots(
    db: Session,
    company_id: int,
    godown_id: int,
    vendor_id: int,
    repair: bool = False,
) -> list[SnapshotDrift]:
    """Compare stored snapshots with a fresh recomputation.

    Covers every stored day and every day with purchase or payment activity,
    so a missing row and a row left on an inactive day are both reported.
    """
    vendor = get_vendor(db, vendor_id, company_id=company_id)
    stored_rows = {
        row.balance_date: row
        for row in db.query(VendorDailyBalance).filter(
            VendorDailyBalance.company_id == company_id,
            VendorDailyBalance.godown_id == godown_id,
            VendorDailyBalance.vendor_id == vendor_id,
        )
    }
    active_dates = _activity_dates(db, company_id, godown_id, vendor)

    drifts: list[SnapshotDrift] = []
    for balance_date in sorted(set(stored_rows) | active_dates):
        row = stored_rows.get(balance_date)
        stored = _row_to_snapshot(row) if row else None
        expected = (
            compute_vendor_snapshot(db, company_id, godown_id, vendor, balance_date)
            if balance_date in active_dates
            else None
        )
        if stored != expected:
            drifts.append(SnapshotDrift(balance_date=balance_date, stored=stored, expected=expected))

    if drifts:
        logger.warning("Vendor snapshot drift for vendor_id=%s on %s days (repair=%s)", vendor_id, len(drifts), repair)
    if drifts and repair:
        for drift in drifts:
            reconcile_vendor_day(db, company_id, godown_id, vendor, drift.balance_date)
    return drifts


def vendor_balance(
    db: Session,
    company_id: int,
    godown_id: int,
    vendor_id: int,
    as_of: Optional[date] = None,
) -> Decimal:
    vendor = get_vendor(db, vendor_id, company_id=company_id)
    convention = convention_for(vendor.kind)
    payment_model = convention.payment_model
    purchase_criteria = [Purchase.purchase_date <= as_of] if as_of else []
    payment_criteria = [payment_model.payment_date <= as_of] if as_of else []
    purchases = _purchase_total(db, company_id, godown_id, vendor.id, *purchase_criteria)
    payments = _payment_total(db, payment_model, company_id, godown_id, vendor.id, *payment_criteria)
    return convention.balance(purchases, payments)


def vendor_balances(
    db: Session,
    company_id: int,
    godown_id: int,
    kind: str,
    as_of: Optional[date] = None,
) -> list[VendorBalance]:
    convention_for(kind)
    vendors = (
        db.query(Vendor)
        .filter(Vendor.kind == kind, or_(Vendor.company_id == company_id, Vendor.company_id.is_(None)))
        .order_by(Vendor.name.asc())
        .all()
    )
    return [
        VendorBalance(
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            balance=vendor_balance(db, company_id, godown_id, vendor.id, as_of),
        )
        for vendor in vendors
    ]


def _describe_purchase(purchase: Purchase) -> str:
    parts = [f"{line.material} ({line.weight}kg × ₹{line.rate})" for line in purchase.lines]
    return "\n".join(parts) or (purchase.note or "Purchase")


def vendor_statement(db: Session, company_id: int, godown_id: int, vendor_id: int) -> VendorStatement:
    """Purchases and payments across all dates, oldest first, with a running balance."""
    vendor = get_vendor(db, vendor_id, company_id=company_id)
    convention = convention_for(vendor.kind)
    payment_model = convention.payment_model

    purchases = (
        db.query(Purchase)
        .options(selectinload(Purchase.lines))
        .filter(
            Purchase.company_id == company_id,
            Purchase.godown_id == godown_id,
            Purchase.vendor_id == vendor.id,
        )
        .all()
    )
    payments = (
        db.query(payment_model)
        .filter(
            payment_model.company_id == company_id,
            payment_model.godown_id == godown_id,
            payment_model.vendor_id == vendor.id,
        )
        .all()
    )

    rows = [
        (purchase.purchase_date, 0, purchase.created_at, purchase.id, "purchase", _describe_purchase(purchase), purchase.total_amount)
        for purchase in purchases
    ] + [
        (payment.payment_date, 1, payment.created_at, payment.id, "payment", payment.note or "Payment", payment.amount)
        for payment in payments
    ]
    rows.sort(key=lambda row: row[:4])

    statement = VendorStatement(vendor_id=vendor.id, vendor_name=vendor.name, kind=vendor.kind)
    running = ZERO
    for entry_date, _, _, source_id, entry_type, description, amount in rows:
        amount = money_or_zero(amount)
        if entry_type == "purchase":
            running += convention.balance(amount, ZERO)
        else:
            running += convention.balance(ZERO, amount)
        statement.lines.append(
            StatementLine(
                entry_date=entry_date,
                entry_type=entry_type,
                description=description,
                amount=amount,
                balance=running,
                source_id=source_id,
            )
        )
    statement.outstanding = running
    return statement


def payment_status_for(total: Decimal, paid: Decimal) -> str:
    if paid <= 0:
        return "pending"
    if paid < total:
        return "partial"
    return "paid"


def refresh_purchase_status(db: Session, purchase_id: int) -> Optional[Purchase]:
    """Re-derive a purchase's payment status from the payments linked to it."""
    purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
    if not purchase:
        return None
    payment_model = convention_for(purchase.vendor.kind).payment_model
    db.flush()
    paid = money_or_zero(
        db.query(func.coalesce(func.sum(payment_model.amount), 0))
        .filter(payment_model.purchase_id == purchase.id)
        .scalar()
    )
    purchase.payment_status = payment_status_for(money_or_zero(purchase.total_amount), paid)
    db.flush()
    return purchase
