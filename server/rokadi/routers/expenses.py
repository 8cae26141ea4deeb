from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rokadi.db import get_db
from rokadi.posting import schemas
from rokadi.posting.reversal import reverse_event
from rokadi.posting.service import expense_summary, list_events, record_event, update_event_details
from rokadi.posting.steps import Counterparty

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.post("", response_model=schemas.EventCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_expense(payload: schemas.ExpenseCreate, db: Session = Depends(get_db)):
    counterparty = None
    if payload.paid_to:
        counterparty = Counterparty(type=payload.paid_to.type, id=payload.paid_to.id, name=payload.paid_to.name)
    event_id = record_event(
        db,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        event_date=payload.entry_date,
        category=payload.category,
        amount=payload.amount,
        payment_mode=payload.payment_mode,
        counterparty=counterparty,
        description=payload.description,
        created_by=payload.created_by,
        idempotency_key=payload.idempotency_key,
    )
    return schemas.EventCreatedResponse(event_id=event_id, message="Expense recorded successfully")


@router.get("/list", response_model=list[schemas.EventResponse])
def list_expenses(
    company_id: int,
    godown_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    return list_events(db, company_id, godown_id, on_date=on_date)


@router.get("/summary", response_model=schemas.ExpenseSummaryResponse)
def get_expense_summary(
    company_id: int,
    godown_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    summary = expense_summary(db, company_id, godown_id, start_date, end_date)
    return schemas.ExpenseSummaryResponse(total_expenses=summary.total_expenses, total_amount=summary.total_amount)


@router.patch("/{event_id}", response_model=schemas.EventResponse)
def update_expense(event_id: int, payload: schemas.ExpenseUpdate, db: Session = Depends(get_db)):
    event = update_event_details(db, event_id, description=payload.description, category=payload.category)
    db.refresh(event)
    return event


@router.delete("/{event_id}", response_model=schemas.ReversalResponse)
def delete_expense(event_id: int, db: Session = Depends(get_db)):
    result = reverse_event(db, event_id)
    return schemas.ReversalResponse(
        event_id=result.event_id,
        reversal_entry_id=result.reversal_entry_id,
        account_id=result.account_id,
        amount=result.amount,
    )
