"""Unified posting: one business event fans out into an Event row, its
side-entry and a journal debit, all inside one atomic scope."""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from rokadi.accounting.service import (
    account_type_for_mode,
    get_account,
    get_account_by_id,
    post_credit,
    post_debit,
    post_transfer,
    require_amount,
)
from rokadi.db import atomic
from rokadi.errors import (
    AccountNotFoundError,
    EventNotFoundError,
    InvalidAmountError,
    PurchaseNotFoundError,
    ValidationError,
)
from rokadi.models import EVENT_KINDS, Event, JournalEntry, Purchase, PurchaseLine
from rokadi.posting.steps import Counterparty, SideEntryRegistry, get_default_registry
from rokadi.utils import ZERO, money_or_zero, quantize_money
from rokadi.vendors.service import VendorSnapshot, get_vendor, payment_status_for, reconcile_vendor_day

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_MODE = "cash"


@dataclass(frozen=True)
class PurchaseLineInput:
    material: str
    weight: Any
    rate: Any


@dataclass(frozen=True)
class PurchaseResult:
    purchase_id: int
    total_amount: Decimal
    payment_amount: Decimal
    payment_status: str
    event_id: Optional[int]
    snapshot: VendorSnapshot


@dataclass(frozen=True)
class ExpenseSummary:
    total_expenses: int
    total_amount: Decimal


def _require_unit(company_id: Optional[int], godown_id: Optional[int]) -> None:
    if not company_id or not godown_id:
        raise ValidationError("company_id and godown_id are required.")


def _event_metadata(event: Event, counterparty: Optional[Counterparty]) -> dict:
    metadata = {"source": event.event_kind, "event_id": event.id, "note": event.description or None}
    if counterparty:
        metadata["paid_to"] = {"type": counterparty.type, "id": counterparty.id, "name": counterparty.name}
    if event.purchase_id:
        metadata["purchase_id"] = event.purchase_id
    return metadata


def _post_event(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    event_date: Optional[date],
    category: str,
    amount: Any,
    payment_mode: Optional[str],
    counterparty: Optional[Counterparty],
    description: str,
    event_kind: str,
    created_by: Optional[str],
    idempotency_key: Optional[str],
    purchase_id: Optional[int],
    registry: SideEntryRegistry,
) -> Event:
    value = require_amount(amount)
    _require_unit(company_id, godown_id)
    category = (category or "").strip()
    if not category:
        raise ValidationError("Category is required.")
    if event_kind not in EVENT_KINDS:
        raise ValidationError(f"Unknown event kind '{event_kind}'.")
    mode = (payment_mode or DEFAULT_PAYMENT_MODE).strip() or DEFAULT_PAYMENT_MODE

    account = get_account(db, company_id, godown_id, account_type_for_mode(mode))

    step = registry.get_step(counterparty.type) if counterparty else None
    if step:
        counterparty = step.resolve(db, counterparty, company_id, godown_id)

    event = Event(
        company_id=company_id,
        godown_id=godown_id,
        event_kind=event_kind,
        event_date=event_date or date.today(),
        category=category,
        description=description or "",
        amount=value,
        payment_mode=mode,
        account_id=account.id,
        paid_to_type=counterparty.type if counterparty else None,
        paid_to_id=counterparty.id if counterparty else None,
        paid_to_name=counterparty.name if counterparty else None,
        purchase_id=purchase_id,
        idempotency_key=idempotency_key,
        created_by=created_by,
    )
    db.add(event)
    db.flush()

    if step:
        step.record(db, event)

    reference = counterparty.label() if counterparty else (description or category)
    post_debit(
        db,
        account,
        value,
        category,
        reference,
        internal_ref=f"event:{event.id}",
        metadata=_event_metadata(event, counterparty),
        source_type=event_kind,
        source_id=event.id,
        entry_date=event.event_date,
    )
    logger.info(
        "Recorded %s event_id=%s amount=%s mode=%s paid_to=%s",
        event_kind,
        event.id,
        value,
        mode,
        reference,
    )
    return event


def _existing_event_id(db: Session, idempotency_key: str) -> Optional[int]:
    row = db.query(Event.id).filter(Event.idempotency_key == idempotency_key).first()
    return row[0] if row is not None else None


def record_event(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    category: str,
    amount: Any,
    payment_mode: Optional[str] = DEFAULT_PAYMENT_MODE,
    event_date: Optional[date] = None,
    counterparty: Optional[Counterparty] = None,
    description: str = "",
    event_kind: str = "expense",
    created_by: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    purchase_id: Optional[int] = None,
    registry: Optional[SideEntryRegistry] = None,
) -> int:
    """Record an expense, payment or withdrawal and return the event id.

    A repeated ``idempotency_key`` returns the id of the event it first created.
    """
    with atomic(db):
        if idempotency_key:
            existing_id = _existing_event_id(db, idempotency_key)
            if existing_id is not None:
                logger.info("Idempotency key %s already recorded as event_id=%s", idempotency_key, existing_id)
                return existing_id
        event = _post_event(
            db,
            company_id=company_id,
            godown_id=godown_id,
            event_date=event_date,
            category=category,
            amount=amount,
            payment_mode=payment_mode,
            counterparty=counterparty,
            description=description,
            event_kind=event_kind,
            created_by=created_by,
            idempotency_key=idempotency_key,
            purchase_id=purchase_id,
            registry=registry or get_default_registry(),
        )
        event_id = event.id
    return event_id


def _line_amount(line: PurchaseLineInput) -> tuple[str, Decimal, Decimal, Decimal]:
    material = (line.material or "").strip()
    if not material:
        raise ValidationError("Each purchase line needs a material.")
    try:
        weight = Decimal(str(line.weight)).quantize(Decimal("0.001"))
        rate = quantize_money(line.rate)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f"Invalid weight or rate for {material}.") from None
    if rate is None or weight <= 0 or rate <= 0:
        raise InvalidAmountError(f"Weight and rate for {material} must be greater than zero.")
    return material, weight, rate, quantize_money(weight * rate)


def record_purchase(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    vendor_id: int,
    lines: Iterable[PurchaseLineInput],
    purchase_date: Optional[date] = None,
    payment_amount: Any = 0,
    payment_mode: Optional[str] = DEFAULT_PAYMENT_MODE,
    note: str = "",
    created_by: Optional[str] = None,
) -> PurchaseResult:
    """Store a purchase with its lines and chain any paid-now portion into an event."""
    with atomic(db):
        _require_unit(company_id, godown_id)
        vendor = get_vendor(db, vendor_id, company_id=company_id)
        priced = [_line_amount(line) for line in lines]
        if not priced:
            raise ValidationError("A purchase needs at least one line.")
        try:
            paid = quantize_money(payment_amount or 0)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmountError(f"Payment amount {payment_amount!r} is not a number.") from None
        if paid < 0:
            raise InvalidAmountError("Payment amount cannot be negative.")

        total = sum((amount for _, _, _, amount in priced), ZERO)
        purchase_date = purchase_date or date.today()
        purchase = Purchase(
            company_id=company_id,
            godown_id=godown_id,
            vendor_id=vendor.id,
            purchase_date=purchase_date,
            total_amount=total,
            payment_status=payment_status_for(total, paid),
            note=note or None,
            created_by=created_by,
        )
        purchase.lines = [
            PurchaseLine(material=material, weight=weight, rate=rate, amount=amount)
            for material, weight, rate, amount in priced
        ]
        db.add(purchase)
        db.flush()

        event_id = None
        if paid > 0:
            event = _post_event(
                db,
                company_id=company_id,
                godown_id=godown_id,
                event_date=purchase_date,
                category="purchase",
                amount=paid,
                payment_mode=payment_mode,
                counterparty=Counterparty(type=vendor.kind, id=vendor.id),
                description=note or f"Payment for purchase #{purchase.id}",
                event_kind="purchase_payment",
                created_by=created_by,
                idempotency_key=None,
                purchase_id=purchase.id,
                registry=get_default_registry(),
            )
            event_id = event.id

        snapshot = reconcile_vendor_day(db, company_id, godown_id, vendor, purchase_date)
        result = PurchaseResult(
            purchase_id=purchase.id,
            total_amount=total,
            payment_amount=paid,
            payment_status=purchase.payment_status,
            event_id=event_id,
            snapshot=snapshot,
        )
    logger.info(
        "Recorded purchase_id=%s vendor_id=%s total=%s paid=%s status=%s",
        result.purchase_id,
        vendor_id,
        result.total_amount,
        result.payment_amount,
        result.payment_status,
    )
    return result


def record_vendor_payment(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    vendor_id: int,
    amount: Any,
    payment_mode: Optional[str] = DEFAULT_PAYMENT_MODE,
    payment_date: Optional[date] = None,
    note: str = "",
    purchase_id: Optional[int] = None,
    created_by: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> int:
    vendor = get_vendor(db, vendor_id, company_id=company_id)
    if purchase_id is not None:
        purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
        if not purchase or (purchase.vendor_id, purchase.company_id, purchase.godown_id) != (vendor.id, company_id, godown_id):
            raise PurchaseNotFoundError(
                f"Purchase {purchase_id} not found for vendor {vendor_id}.", purchase_id=purchase_id
            )
    return record_event(
        db,
        company_id=company_id,
        godown_id=godown_id,
        event_date=payment_date,
        category=f"{vendor.kind}_payment",
        amount=amount,
        payment_mode=payment_mode,
        counterparty=Counterparty(type=vendor.kind, id=vendor.id),
        description=note,
        event_kind="purchase_payment",
        created_by=created_by,
        idempotency_key=idempotency_key,
        purchase_id=purchase_id,
    )


def record_labour_withdrawal(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    labourer_id: int,
    amount: Any,
    payment_mode: Optional[str] = DEFAULT_PAYMENT_MODE,
    withdrawal_date: Optional[date] = None,
    created_by: Optional[str] = None,
) -> int:
    return record_event(
        db,
        company_id=company_id,
        godown_id=godown_id,
        event_date=withdrawal_date,
        category="labour_salary",
        amount=amount,
        payment_mode=payment_mode,
        counterparty=Counterparty(type="labour", id=labourer_id),
        description="Salary withdrawal",
        event_kind="withdrawal",
        created_by=created_by,
    )


def record_transfer(
    db: Session,
    *,
    from_account_id: int,
    to_account_id: int,
    amount: Any,
    category: str = "transfer",
    reference: str = "",
    entry_date: Optional[date] = None,
) -> tuple[JournalEntry, JournalEntry]:
    with atomic(db):
        source = get_account_by_id(db, from_account_id)
        destination = get_account_by_id(db, to_account_id)
        debit, credit = post_transfer(
            db,
            source,
            destination,
            amount,
            category or "transfer",
            reference or None,
            entry_date=entry_date,
        )
    return debit, credit


def record_manual_entry(
    db: Session,
    *,
    account_id: int,
    entry_type: str,
    amount: Any,
    category: str = "",
    reference: str = "",
    entry_date: Optional[date] = None,
    company_id: Optional[int] = None,
    godown_id: Optional[int] = None,
    created_by: Optional[str] = None,
) -> JournalEntry:
    """Manual cash-book or bank credit/debit with the note kept in metadata."""
    if entry_type not in ("credit", "debit"):
        raise ValidationError(f"Unknown entry type '{entry_type}'.")
    with atomic(db):
        account = get_account_by_id(db, account_id)
        if (company_id is not None and account.company_id != company_id) or (
            godown_id is not None and account.godown_id != godown_id
        ):
            raise AccountNotFoundError(
                f"Account {account_id} does not belong to company {company_id} / godown {godown_id}.",
                account_id=account_id,
            )
        note = (reference or "").strip() or None
        category = (category or "").strip() or f"{account.account_type}_{entry_type}"
        post = post_credit if entry_type == "credit" else post_debit
        entry = post(
            db,
            account,
            amount,
            category,
            note,
            metadata={"source": "manual", "note": note, "created_by": created_by},
            source_type="manual",
            entry_date=entry_date,
        )
    return entry


def get_event(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise EventNotFoundError(f"Event {event_id} not found.", event_id=event_id)
    return event


def update_event_details(
    db: Session,
    event_id: int,
    *,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> Event:
    """Edit the non-financial fields of an event. Amounts and counterparties are fixed once posted."""
    with atomic(db):
        event = get_event(db, event_id)
        if description is not None:
            event.description = description
        if category is not None:
            category = category.strip()
            if not category:
                raise ValidationError("Category cannot be blank.")
            event.category = category
        db.flush()
    return event


def list_events(
    db: Session,
    company_id: int,
    godown_id: int,
    on_date: Optional[date] = None,
    event_kind: Optional[str] = None,
) -> list[Event]:
    query = db.query(Event).filter(Event.company_id == company_id, Event.godown_id == godown_id)
    if on_date:
        query = query.filter(Event.event_date == on_date)
    if event_kind:
        query = query.filter(Event.event_kind == event_kind)
    return query.order_by(Event.created_at.desc(), Event.id.desc()).all()


def expense_summary(
    db: Session,
    company_id: int,
    godown_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ExpenseSummary:
    query = db.query(func.count(Event.id), func.coalesce(func.sum(Event.amount), 0)).filter(
        Event.company_id == company_id,
        Event.godown_id == godown_id,
    )
    if start_date:
        query = query.filter(Event.event_date >= start_date)
    if end_date:
        query = query.filter(Event.event_date <= end_date)
    count, total = query.one()
    return ExpenseSummary(total_expenses=count or 0, total_amount=money_or_zero(total))
