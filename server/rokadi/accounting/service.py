import json
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from rokadi.config import get_settings
from rokadi.errors import (
    AccountNotFoundError,
    ConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    SameAccountError,
    ValidationError,
)
from rokadi.models import ACCOUNT_TYPES, Account, JournalEntry
from rokadi.utils import ZERO, money_or_zero, quantize_money

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAMES = {"cash": "Cash in Hand", "bank": "Bank Account"}

AccountRef = Union[Account, int]


@dataclass(frozen=True)
class BalanceAudit:
    account_id: int
    cached_balance: Decimal
    journal_balance: Decimal
    repaired: bool = False

    @property
    def drift(self) -> Decimal:
        return self.cached_balance - self.journal_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == ZERO


def account_type_for_mode(payment_mode: Optional[str]) -> str:
    """Cash payments hit the cash account; upi, cheque, bank transfer and the rest hit the bank account."""
    mode = (payment_mode or "cash").strip().lower() or "cash"
    return "cash" if mode == "cash" else "bank"


def require_amount(amount: Any) -> Decimal:
    if amount is None or amount == "":
        raise InvalidAmountError("Amount is required.")
    try:
        value = quantize_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f"Amount {amount!r} is not a number.") from None
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError("Amount must be greater than zero.", amount=str(amount))
    return value


def get_account(db: Session, company_id: int, godown_id: int, account_type: str) -> Account:
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(f"Unknown account type '{account_type}'.")
    account = (
        db.query(Account)
        .filter(
            Account.company_id == company_id,
            Account.godown_id == godown_id,
            Account.account_type == account_type,
        )
        .first()
    )
    if not account:
        raise AccountNotFoundError(
            f"No {account_type} account for company {company_id} / godown {godown_id}.",
            company_id=company_id,
            godown_id=godown_id,
            account_type=account_type,
        )
    return account


def get_account_by_id(db: Session, account_id: int) -> Account:
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account:
        raise AccountNotFoundError(f"Account {account_id} not found.", account_id=account_id)
    return account


def list_accounts(db: Session, company_id: int, godown_id: int, account_type: Optional[str] = None) -> list[Account]:
    query = db.query(Account).filter(Account.company_id == company_id, Account.godown_id == godown_id)
    if account_type:
        query = query.filter(Account.account_type == account_type)
    return query.order_by(Account.created_at.asc(), Account.id.asc()).all()


def open_accounts(db: Session, company_id: int, godown_id: int) -> tuple[Account, Account]:
    """Setup-time creation of the cash and bank accounts for a unit. Safe to call again."""
    accounts = {}
    for account_type in ACCOUNT_TYPES:
        account = (
            db.query(Account)
            .filter(
                Account.company_id == company_id,
                Account.godown_id == godown_id,
                Account.account_type == account_type,
            )
            .first()
        )
        if not account:
            account = Account(
                company_id=company_id,
                godown_id=godown_id,
                account_type=account_type,
                account_name=DEFAULT_ACCOUNT_NAMES[account_type],
                balance=ZERO,
            )
            db.add(account)
            logger.info(
                "Opened %s account for company_id=%s godown_id=%s", account_type, company_id, godown_id
            )
        accounts[account_type] = account
    db.flush()
    return accounts["cash"], accounts["bank"]


def _lock_account(db: Session, account: AccountRef) -> Account:
    account_id = account.id if isinstance(account, Account) else account
    locked = (
        db.query(Account)
        .filter(Account.id == account_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not locked:
        raise AccountNotFoundError(f"Account {account_id} not found.", account_id=account_id)
    return locked


def adjust_balance(db: Session, account: AccountRef, delta: Decimal) -> Account:
    """Apply a signed delta to the cached balance. Only the journal calls this, inside its own write."""
    locked = _lock_account(db, account)
    locked.balance = quantize_money(Decimal(locked.balance or 0) + delta)
    return locked


def _post(
    db: Session,
    account: AccountRef,
    entry_type: str,
    amount: Any,
    category: str,
    reference: Optional[str],
    *,
    internal_ref: Optional[str] = None,
    metadata: Optional[dict] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
    entry_date: Optional[date] = None,
    related_account_id: Optional[int] = None,
    correlation_id: Optional[str] = None,
    allow_overdraft: Optional[bool] = None,
) -> JournalEntry:
    value = require_amount(amount)
    locked = _lock_account(db, account)
    internal_ref = internal_ref or f"{category or entry_type}:{uuid.uuid4()}"
    if db.query(JournalEntry.id).filter(JournalEntry.internal_ref == internal_ref).first() is not None:
        raise ConflictError(f"Journal entry '{internal_ref}' was already posted.", internal_ref=internal_ref)

    delta = value if entry_type == "credit" else -value
    if allow_overdraft is None:
        allow_overdraft = get_settings().allow_overdraft
    current = Decimal(locked.balance or 0)
    if entry_type == "debit" and not allow_overdraft and current + delta < 0:
        raise InsufficientFundsError(
            f"Insufficient balance in {locked.account_name}: available {current}, requested {value}.",
            account_id=locked.id,
        )

    entry = JournalEntry(
        company_id=locked.company_id,
        godown_id=locked.godown_id,
        account_id=locked.id,
        related_account_id=related_account_id,
        entry_type=entry_type,
        amount=value,
        category=category or "",
        reference=reference,
        internal_ref=internal_ref,
        correlation_id=correlation_id,
        source_type=source_type,
        source_id=source_id,
        entry_metadata=json.dumps(metadata, default=str) if metadata else None,
        entry_date=entry_date or date.today(),
    )
    db.add(entry)
    adjust_balance(db, locked, delta)
    db.flush()
    logger.info(
        "Posted %s of %s on account_id=%s category=%s ref=%s balance=%s",
        entry_type,
        value,
        locked.id,
        entry.category,
        internal_ref,
        locked.balance,
    )
    return entry


def post_credit(db: Session, account: AccountRef, amount: Any, category: str, reference: Optional[str] = None, **kwargs) -> JournalEntry:
    return _post(db, account, "credit", amount, category, reference, **kwargs)


def post_debit(db: Session, account: AccountRef, amount: Any, category: str, reference: Optional[str] = None, **kwargs) -> JournalEntry:
    return _post(db, account, "debit", amount, category, reference, **kwargs)


def post_transfer(
    db: Session,
    from_account: AccountRef,
    to_account: AccountRef,
    amount: Any,
    category: str = "transfer",
    reference: Optional[str] = None,
    *,
    entry_date: Optional[date] = None,
    allow_overdraft: Optional[bool] = None,
) -> tuple[JournalEntry, JournalEntry]:
    value = require_amount(amount)
    from_id = from_account.id if isinstance(from_account, Account) else from_account
    to_id = to_account.id if isinstance(to_account, Account) else to_account
    if from_id == to_id:
        raise SameAccountError("Source and destination accounts must be different.", account_id=from_id)

    # Lock in id order so two opposite transfers cannot deadlock.
    for account_id in sorted((from_id, to_id)):
        _lock_account(db, account_id)

    correlation_id = str(uuid.uuid4())
    metadata = {"source": "transfer", "correlation_id": correlation_id, "note": reference}
    debit = _post(
        db,
        from_id,
        "debit",
        value,
        category,
        reference,
        internal_ref=f"transfer:{correlation_id}:out",
        metadata=metadata,
        source_type="transfer",
        entry_date=entry_date,
        related_account_id=to_id,
        correlation_id=correlation_id,
        allow_overdraft=allow_overdraft,
    )
    credit = _post(
        db,
        to_id,
        "credit",
        value,
        category,
        reference,
        internal_ref=f"transfer:{correlation_id}:in",
        metadata=metadata,
        source_type="transfer",
        entry_date=entry_date,
        related_account_id=from_id,
        correlation_id=correlation_id,
    )
    return debit, credit


def list_entries(
    db: Session,
    account_id: int,
    *,
    on_date: Optional[date] = None,
    newest_first: bool = True,
) -> list[JournalEntry]:
    get_account_by_id(db, account_id)
    query = db.query(JournalEntry).filter(JournalEntry.account_id == account_id)
    if on_date:
        query = query.filter(JournalEntry.entry_date == on_date)
    if newest_first:
        query = query.order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
    else:
        query = query.order_by(JournalEntry.created_at.asc(), JournalEntry.id.asc())
    return query.all()


def list_unit_entries(
    db: Session,
    company_id: int,
    godown_id: int,
    account_type: Optional[str] = None,
    account_id: Optional[int] = None,
) -> list[JournalEntry]:
    """Chronological entries across a unit's accounts, as a statement reads them."""
    query = (
        db.query(JournalEntry)
        .join(Account, Account.id == JournalEntry.account_id)
        .filter(JournalEntry.company_id == company_id, JournalEntry.godown_id == godown_id)
    )
    if account_type:
        query = query.filter(Account.account_type == account_type)
    if account_id:
        query = query.filter(JournalEntry.account_id == account_id)
    return query.order_by(JournalEntry.created_at.asc(), JournalEntry.id.asc()).all()


def entry_metadata(entry: JournalEntry) -> dict:
    if not entry.entry_metadata:
        return {}
    return json.loads(entry.entry_metadata)


def display_reference(entry: JournalEntry) -> Optional[str]:
    return entry_metadata(entry).get("note") or entry.reference


def journal_balance(db: Session, account_id: int) -> Decimal:
    rows = (
        db.query(JournalEntry.entry_type, func.coalesce(func.sum(JournalEntry.amount), 0))
        .filter(JournalEntry.account_id == account_id)
        .group_by(JournalEntry.entry_type)
        .all()
    )
    totals = {entry_type: money_or_zero(total) for entry_type, total in rows}
    return totals.get("credit", ZERO) - totals.get("debit", ZERO)


def recompute_balance(db: Session, account_id: int, repair: bool = False) -> BalanceAudit:
    """Sum the journal independently of the cached balance; optionally overwrite the cache on drift."""
    account = _lock_account(db, account_id) if repair else get_account_by_id(db, account_id)
    journal = journal_balance(db, account_id)
    cached = money_or_zero(account.balance)
    if cached == journal:
        return BalanceAudit(account_id=account_id, cached_balance=cached, journal_balance=journal)

    logger.warning(
        "Balance drift on account_id=%s: cached=%s journal=%s repair=%s", account_id, cached, journal, repair
    )
    if not repair:
        return BalanceAudit(account_id=account_id, cached_balance=cached, journal_balance=journal)
    account.balance = journal
    db.flush()
    return BalanceAudit(account_id=account_id, cached_balance=cached, journal_balance=journal, repaired=True)
