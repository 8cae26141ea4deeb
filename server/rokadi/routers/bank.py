from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rokadi.accounting import schemas
from rokadi.accounting.service import display_reference, list_accounts, list_unit_entries
from rokadi.db import get_db
from rokadi.posting.service import record_manual_entry

router = APIRouter(prefix="/api/bank", tags=["bank"])


@router.get("/accounts", response_model=list[schemas.AccountResponse])
def get_bank_accounts(company_id: int, godown_id: int, db: Session = Depends(get_db)):
    return list_accounts(db, company_id, godown_id, account_type="bank")


@router.get("/statement", response_model=list[schemas.BankStatementRow])
def bank_statement(
    company_id: int,
    godown_id: int,
    account_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    entries = list_unit_entries(db, company_id, godown_id, account_type="bank", account_id=account_id)
    return [
        schemas.BankStatementRow(
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
            account_name=entry.account.account_name,
        )
        for entry in entries
    ]


def _post_bank_entry(db: Session, payload: schemas.BankEntryCreate, entry_type: str) -> schemas.PostingResponse:
    entry = record_manual_entry(
        db,
        account_id=payload.account_id,
        entry_type=entry_type,
        amount=payload.amount,
        category=payload.category or f"bank_{entry_type}",
        reference=payload.reference,
        entry_date=payload.entry_date,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
    )
    verb = "credited" if entry_type == "credit" else "debited"
    return schemas.PostingResponse(message=f"Bank {verb} successfully", entry_ids=[entry.id])


@router.post("/credit", response_model=schemas.PostingResponse)
def bank_credit(payload: schemas.BankEntryCreate, db: Session = Depends(get_db)):
    return _post_bank_entry(db, payload, "credit")


@router.post("/debit", response_model=schemas.PostingResponse)
def bank_debit(payload: schemas.BankEntryCreate, db: Session = Depends(get_db)):
    return _post_bank_entry(db, payload, "debit")
