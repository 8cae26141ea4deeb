from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rokadi.accounting import schemas
from rokadi.accounting.service import (
    display_reference,
    get_account_by_id,
    list_accounts,
    list_entries,
    recompute_balance,
)
from rokadi.db import atomic, get_db
from rokadi.errors import AccountNotFoundError
from rokadi.models import JournalEntry
from rokadi.posting.service import record_manual_entry, record_transfer

router = APIRouter(prefix="/api/rokadi", tags=["rokadi"])


def _to_response(entry: JournalEntry) -> schemas.JournalEntryResponse:
    return schemas.JournalEntryResponse(
        id=entry.id,
        account_id=entry.account_id,
        related_account_id=entry.related_account_id,
        entry_type=entry.entry_type,
        amount=entry.amount,
        category=entry.category,
        reference=display_reference(entry),
        correlation_id=entry.correlation_id,
        source_type=entry.source_type,
        source_id=entry.source_id,
        date=entry.entry_date,
        created_at=entry.created_at,
    )


@router.get("/accounts", response_model=list[schemas.AccountResponse])
def get_accounts(company_id: int, godown_id: int, db: Session = Depends(get_db)):
    return list_accounts(db, company_id, godown_id)


@router.get("/transactions", response_model=list[schemas.JournalEntryResponse])
def get_transactions(
    company_id: int,
    godown_id: int,
    account_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    account = get_account_by_id(db, account_id)
    if account.company_id != company_id or account.godown_id != godown_id:
        raise AccountNotFoundError(f"Account {account_id} not found for this unit.", account_id=account_id)
    return [_to_response(entry) for entry in list_entries(db, account_id, on_date=on_date)]


@router.post("/add", response_model=schemas.PostingResponse)
def add_rokadi_entry(payload: schemas.ManualEntryCreate, db: Session = Depends(get_db)):
    if payload.type == "transfer":
        debit, credit = record_transfer(
            db,
            from_account_id=payload.account_id,
            to_account_id=payload.related_account_id,
            amount=payload.amount,
            category=payload.category or "transfer",
            reference=payload.reference,
            entry_date=payload.entry_date,
        )
        return schemas.PostingResponse(message="Transfer recorded successfully", entry_ids=[debit.id, credit.id])

    entry = record_manual_entry(
        db,
        account_id=payload.account_id,
        entry_type=payload.type,
        amount=payload.amount,
        category=payload.category,
        reference=payload.reference,
        entry_date=payload.entry_date,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        created_by=payload.created_by,
    )
    return schemas.PostingResponse(message="Rokadi updated successfully", entry_ids=[entry.id])


@router.get("/accounts/{account_id}/audit", response_model=schemas.BalanceAuditResponse)
def audit_account(account_id: int, repair: bool = False, db: Session = Depends(get_db)):
    with atomic(db):
        audit = recompute_balance(db, account_id, repair=repair)
    return schemas.BalanceAuditResponse(
        account_id=audit.account_id,
        cached_balance=audit.cached_balance,
        journal_balance=audit.journal_balance,
        drift=audit.drift,
        repaired=audit.repaired,
    )
