from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rokadi.accounting.service import (
    account_type_for_mode,
    entry_metadata,
    get_account,
    journal_balance,
    list_entries,
    open_accounts,
    post_credit,
    post_debit,
    recompute_balance,
)
from rokadi.db import Base
from rokadi.errors import (
    AccountNotFoundError,
    ConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    SameAccountError,
)
from rokadi.models import Account, Company, Godown, JournalEntry
from rokadi.posting.service import record_manual_entry, record_transfer


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def create_unit(db):
    company = Company(name="Shree Scrap")
    db.add(company)
    db.flush()
    godown = Godown(company_id=company.id, name="Main")
    db.add(godown)
    db.flush()
    cash, bank = open_accounts(db, company.id, godown.id)
    db.commit()
    return company, godown, cash, bank


def test_manual_cash_credit_updates_balance_and_journal():
    db = create_session()
    company, godown, cash, _ = create_unit(db)

    entry = record_manual_entry(
        db,
        account_id=cash.id,
        entry_type="credit",
        amount=Decimal("5000"),
        category="opening",
        reference="Owner deposit",
        company_id=company.id,
        godown_id=godown.id,
    )

    db.refresh(cash)
    assert cash.balance == Decimal("5000.00")
    entries = list_entries(db, cash.id)
    assert [e.id for e in entries] == [entry.id]
    assert entries[0].entry_type == "credit"
    assert entries[0].amount == Decimal("5000.00")
    assert entries[0].category == "opening"
    assert entries[0].internal_ref.startswith("opening:")
    assert entry_metadata(entries[0])["note"] == "Owner deposit"


def test_balance_equals_credits_minus_debits():
    db = create_session()
    _, _, cash, _ = create_unit(db)

    post_credit(db, cash, Decimal("1200.50"), "sale")
    post_debit(db, cash, Decimal("200.25"), "tea")
    post_credit(db, cash, "99.75", "sale")
    post_debit(db, cash, 100, "diesel")
    db.commit()

    db.refresh(cash)
    assert cash.balance == Decimal("1000.00")
    assert journal_balance(db, cash.id) == Decimal("1000.00")
    assert recompute_balance(db, cash.id).is_consistent


def test_overdraft_allowed_by_default():
    db = create_session()
    _, _, cash, _ = create_unit(db)

    record_manual_entry(db, account_id=cash.id, entry_type="debit", amount=Decimal("100"), category="advance")

    db.refresh(cash)
    assert cash.balance == Decimal("-100.00")


def test_overdraft_rejected_when_disallowed_and_nothing_written(monkeypatch):
    from rokadi.config import get_settings

    monkeypatch.setenv("LEDGER_ALLOW_OVERDRAFT", "false")
    get_settings.cache_clear()
    db = create_session()
    _, _, cash, _ = create_unit(db)

    with pytest.raises(InsufficientFundsError):
        record_manual_entry(db, account_id=cash.id, entry_type="debit", amount=Decimal("100"), category="advance")

    db.refresh(cash)
    assert cash.balance == Decimal("0.00")
    assert db.query(JournalEntry).count() == 0


def test_transfer_posts_correlated_pair_and_preserves_total():
    db = create_session()
    _, _, cash, bank = create_unit(db)
    post_credit(db, cash, Decimal("1000"), "opening")
    db.commit()

    debit, credit = record_transfer(db, from_account_id=cash.id, to_account_id=bank.id, amount=Decimal("300"))

    db.refresh(cash)
    db.refresh(bank)
    assert cash.balance == Decimal("700.00")
    assert bank.balance == Decimal("300.00")
    assert cash.balance + bank.balance == Decimal("1000.00")
    assert debit.entry_type == "debit" and debit.account_id == cash.id
    assert credit.entry_type == "credit" and credit.account_id == bank.id
    assert debit.correlation_id == credit.correlation_id is not None
    assert debit.related_account_id == bank.id
    assert credit.related_account_id == cash.id


def test_transfer_to_same_account_is_rejected():
    db = create_session()
    _, _, cash, _ = create_unit(db)

    with pytest.raises(SameAccountError):
        record_transfer(db, from_account_id=cash.id, to_account_id=cash.id, amount=Decimal("10"))
    assert db.query(JournalEntry).count() == 0


@pytest.mark.parametrize("amount", [0, Decimal("-5"), None, "abc", ""])
def test_invalid_amounts_are_rejected(amount):
    db = create_session()
    _, _, cash, _ = create_unit(db)

    with pytest.raises(InvalidAmountError):
        post_credit(db, cash, amount, "sale")


def test_duplicate_internal_ref_is_a_conflict():
    db = create_session()
    _, _, cash, _ = create_unit(db)

    post_credit(db, cash, Decimal("10"), "sale", internal_ref="sale:1")
    with pytest.raises(ConflictError):
        post_credit(db, cash, Decimal("10"), "sale", internal_ref="sale:1")


def test_list_entries_newest_first_and_chronological():
    db = create_session()
    _, _, cash, _ = create_unit(db)
    first = post_credit(db, cash, Decimal("10"), "a")
    second = post_credit(db, cash, Decimal("20"), "b")
    db.commit()

    assert [e.id for e in list_entries(db, cash.id)] == [second.id, first.id]
    assert [e.id for e in list_entries(db, cash.id, newest_first=False)] == [first.id, second.id]


def test_recompute_balance_reports_and_repairs_drift():
    db = create_session()
    _, _, cash, _ = create_unit(db)
    post_credit(db, cash, Decimal("250"), "sale")
    db.commit()

    db.query(Account).filter(Account.id == cash.id).update({Account.balance: Decimal("999")})
    db.commit()

    audit = recompute_balance(db, cash.id)
    assert audit.drift == Decimal("749.00")
    assert audit.repaired is False

    repaired = recompute_balance(db, cash.id, repair=True)
    db.commit()
    db.refresh(cash)
    assert repaired.repaired is True
    assert cash.balance == Decimal("250.00")


def test_get_account_never_auto_creates():
    db = create_session()
    company = Company(name="Empty")
    db.add(company)
    db.flush()
    godown = Godown(company_id=company.id, name="Yard")
    db.add(godown)
    db.flush()

    with pytest.raises(AccountNotFoundError) as excinfo:
        get_account(db, company.id, godown.id, "cash")
    assert isinstance(excinfo.value, LookupError)
    assert db.query(Account).count() == 0


def test_open_accounts_is_idempotent():
    db = create_session()
    company, godown, cash, bank = create_unit(db)

    again_cash, again_bank = open_accounts(db, company.id, godown.id)

    assert (again_cash.id, again_bank.id) == (cash.id, bank.id)
    assert db.query(Account).count() == 2


@pytest.mark.parametrize(
    "mode, expected",
    [("cash", "cash"), (" Cash ", "cash"), ("upi", "bank"), ("cheque", "bank"), ("bank-transfer", "bank"), (None, "cash"), ("", "cash")],
)
def test_payment_mode_maps_to_account_type(mode, expected):
    assert account_type_for_mode(mode) == expected
