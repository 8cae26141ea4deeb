from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rokadi.accounting.service import entry_metadata, open_accounts, post_credit, recompute_balance
from rokadi.db import Base
from rokadi.errors import EventNotFoundError, PurchaseNotFoundError
from rokadi.models import (
    Account,
    Company,
    Event,
    FeriwalaPayment,
    Godown,
    JournalEntry,
    Labourer,
    LabourWithdrawal,
    Purchase,
    PurchaseLine,
    Vendor,
    VendorDailyBalance,
)
from rokadi.posting.reversal import delete_purchase, reverse_event
from rokadi.posting.service import PurchaseLineInput, record_event, record_purchase, record_vendor_payment
from rokadi.posting.steps import Counterparty
from rokadi.vendors.service import get_snapshot, vendor_balance

DAY = date(2026, 5, 1)


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
    cash, _ = open_accounts(db, company.id, godown.id)
    post_credit(db, cash, Decimal("1000"), "opening")
    vendor = Vendor(company_id=company.id, name="Ramesh", kind="feriwala")
    labourer = Labourer(company_id=company.id, godown_id=godown.id, name="Mohan", daily_wage=Decimal("500"))
    db.add_all([vendor, labourer])
    db.commit()
    return company, godown, cash, vendor, labourer


def test_reversing_labour_expense_restores_balance_and_removes_side_entry():
    db = create_session()
    company, godown, cash, _, labourer = create_unit(db)
    event_id = record_event(
        db,
        company_id=company.id,
        godown_id=godown.id,
        event_date=DAY,
        category="salary",
        amount=Decimal("200"),
        counterparty=Counterparty(type="labour", id=labourer.id),
    )

    result = reverse_event(db, event_id)

    db.refresh(cash)
    assert cash.balance == Decimal("1000.00")
    assert db.get(Event, event_id) is None
    assert db.query(LabourWithdrawal).count() == 0
    reversal = db.get(JournalEntry, result.reversal_entry_id)
    assert reversal.entry_type == "credit"
    assert reversal.amount == Decimal("200.00")
    assert reversal.category == "salary-reversal"
    assert reversal.internal_ref == f"event:{event_id}:reversal"
    original = db.query(JournalEntry).filter(JournalEntry.internal_ref == f"event:{event_id}").one()
    assert entry_metadata(reversal)["original_entry_id"] == original.id
    assert recompute_balance(db, cash.id).is_consistent


def test_reversing_unknown_or_already_reversed_event_fails():
    db = create_session()
    company, godown, _, _, _ = create_unit(db)
    event_id = record_event(db, company_id=company.id, godown_id=godown.id, category="tea", amount=Decimal("10"))
    reverse_event(db, event_id)

    with pytest.raises(EventNotFoundError):
        reverse_event(db, event_id)
    with pytest.raises(EventNotFoundError):
        reverse_event(db, 12345)
    assert db.query(JournalEntry).filter(JournalEntry.source_type == "reversal").count() == 1


def test_reversing_only_payment_of_the_day_restores_never_posted_snapshot():
    db = create_session()
    company, godown, _, vendor, _ = create_unit(db)
    event_id = record_vendor_payment(
        db, company_id=company.id, godown_id=godown.id, vendor_id=vendor.id, amount=Decimal("300"), payment_date=DAY
    )
    assert get_snapshot(db, company.id, godown.id, vendor.id, DAY).paid_amount == Decimal("300.00")

    reverse_event(db, event_id)

    assert get_snapshot(db, company.id, godown.id, vendor.id, DAY) is None
    assert db.query(VendorDailyBalance).count() == 0
    assert db.query(FeriwalaPayment).count() == 0
    assert vendor_balance(db, company.id, godown.id, vendor.id) == Decimal("0.00")


def test_reversing_payment_keeps_snapshot_for_remaining_purchase():
    db = create_session()
    company, godown, _, vendor, _ = create_unit(db)
    record_purchase(
        db,
        company_id=company.id,
        godown_id=godown.id,
        vendor_id=vendor.id,
        purchase_date=DAY,
        lines=[PurchaseLineInput(material="Iron", weight=Decimal("50"), rate=Decimal("20"))],
    )
    event_id = record_vendor_payment(
        db, company_id=company.id, godown_id=godown.id, vendor_id=vendor.id, amount=Decimal("400"), payment_date=DAY
    )
    assert get_snapshot(db, company.id, godown.id, vendor.id, DAY).current_balance == Decimal("-600.00")

    reverse_event(db, event_id)

    snapshot = get_snapshot(db, company.id, godown.id, vendor.id, DAY)
    assert snapshot.paid_amount == Decimal("0.00")
    assert snapshot.current_balance == Decimal("-1000.00")


def test_delete_purchase_reverses_linked_payment():
    db = create_session()
    company, godown, cash, vendor, _ = create_unit(db)
    result = record_purchase(
        db,
        company_id=company.id,
        godown_id=godown.id,
        vendor_id=vendor.id,
        purchase_date=DAY,
        lines=[PurchaseLineInput(material="Iron", weight=Decimal("50"), rate=Decimal("20"))],
        payment_amount=Decimal("400"),
    )
    db.refresh(cash)
    assert cash.balance == Decimal("600.00")

    reversals = delete_purchase(db, result.purchase_id)

    db.refresh(cash)
    assert [r.event_id for r in reversals] == [result.event_id]
    assert cash.balance == Decimal("1000.00")
    assert db.query(Purchase).count() == 0
    assert db.query(PurchaseLine).count() == 0
    assert db.query(FeriwalaPayment).count() == 0
    assert db.query(Event).count() == 0
    assert get_snapshot(db, company.id, godown.id, vendor.id, DAY) is None


def test_delete_unknown_purchase_fails():
    db = create_session()
    create_unit(db)

    with pytest.raises(PurchaseNotFoundError):
        delete_purchase(db, 77)


def test_reverse_then_recompute_equals_never_posted():
    db = create_session()
    company, godown, cash, _, labourer = create_unit(db)
    before = {a.id: a.balance for a in db.query(Account).all()}

    ids = [
        record_event(db, company_id=company.id, godown_id=godown.id, category="tea", amount=Decimal("15.50")),
        record_event(db, company_id=company.id, godown_id=godown.id, category="rent", amount=Decimal("900"), payment_mode="cheque"),
        record_event(
            db,
            company_id=company.id,
            godown_id=godown.id,
            category="salary",
            amount=Decimal("120"),
            counterparty=Counterparty(type="labour", id=labourer.id),
        ),
    ]
    for event_id in reversed(ids):
        reverse_event(db, event_id)

    after = {a.id: a.balance for a in db.query(Account).all()}
    assert after == before
    for account_id in after:
        assert recompute_balance(db, account_id).is_consistent


def test_linked_payment_and_its_reversal_update_purchase_status():
    db = create_session()
    company, godown, _, vendor, _ = create_unit(db)
    result = record_purchase(
        db,
        company_id=company.id,
        godown_id=godown.id,
        vendor_id=vendor.id,
        purchase_date=DAY,
        lines=[PurchaseLineInput(material="Iron", weight=Decimal("20"), rate=Decimal("25"))],
        payment_amount=Decimal("200"),
    )
    assert result.payment_status == "partial"

    event_id = record_vendor_payment(
        db,
        company_id=company.id,
        godown_id=godown.id,
        vendor_id=vendor.id,
        amount=Decimal("300"),
        payment_date=DAY,
        purchase_id=result.purchase_id,
    )
    assert db.get(Purchase, result.purchase_id).payment_status == "paid"

    reverse_event(db, event_id)

    assert db.get(Purchase, result.purchase_id).payment_status == "partial"
    assert vendor_balance(db, company.id, godown.id, vendor.id) == Decimal("-300.00")


def test_posting_after_a_reversal_gets_a_fresh_event_id():
    db = create_session()
    company, godown, cash, _, labourer = create_unit(db)
    kwargs = dict(
        company_id=company.id,
        godown_id=godown.id,
        event_date=DAY,
        category="salary",
        amount=Decimal("200"),
        counterparty=Counterparty(type="labour", id=labourer.id),
    )
    first_id = record_event(db, **kwargs)
    reverse_event(db, first_id)

    second_id = record_event(db, **kwargs)

    assert second_id != first_id
    db.refresh(cash)
    assert cash.balance == Decimal("800.00")
    assert db.query(LabourWithdrawal).one().event_id == second_id
    assert db.query(JournalEntry).filter(JournalEntry.internal_ref == f"event:{second_id}").count() == 1

    reverse_event(db, second_id)
    db.refresh(cash)
    assert cash.balance == Decimal("1000.00")
    assert recompute_balance(db, cash.id).is_consistent


def test_purchase_ids_are_not_reused_after_delete():
    db = create_session()
    company, godown, _, vendor, _ = create_unit(db)
    line = [PurchaseLineInput(material="Iron", weight=Decimal("2"), rate=Decimal("50"))]
    first = record_purchase(
        db, company_id=company.id, godown_id=godown.id, vendor_id=vendor.id, purchase_date=DAY, lines=line
    )
    delete_purchase(db, first.purchase_id)

    second = record_purchase(
        db, company_id=company.id, godown_id=godown.id, vendor_id=vendor.id, purchase_date=DAY, lines=line
    )

    assert second.purchase_id != first.purchase_id
