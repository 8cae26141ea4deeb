from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rokadi.db import get_db
from rokadi.labour import schemas
from rokadi.labour.service import attendance_for_date, labour_statement, mark_attendance, salary_summary
from rokadi.posting import schemas as posting_schemas
from rokadi.posting.service import record_labour_withdrawal

router = APIRouter(prefix="/api/labour", tags=["labour"])


@router.post("/attendance", response_model=schemas.AttendanceResponse)
def post_attendance(payload: schemas.AttendanceMark, db: Session = Depends(get_db)):
    mark_attendance(
        db,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        labourer_id=payload.labourer_id,
        on_date=payload.date,
        status=payload.status,
    )
    return schemas.AttendanceResponse(message=f"Attendance marked: {payload.status}")


@router.get("/attendance", response_model=list[schemas.AttendanceRecordResponse])
def get_attendance(
    company_id: int,
    godown_id: int,
    on_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    return attendance_for_date(db, company_id, godown_id, on_date)


@router.post("/withdraw", response_model=posting_schemas.EventCreatedResponse, status_code=status.HTTP_201_CREATED)
def withdraw(payload: schemas.WithdrawalCreate, db: Session = Depends(get_db)):
    event_id = record_labour_withdrawal(
        db,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        labourer_id=payload.labourer_id,
        amount=payload.amount,
        payment_mode=payload.mode,
        withdrawal_date=payload.entry_date,
        created_by=payload.created_by,
    )
    return posting_schemas.EventCreatedResponse(event_id=event_id, message="Withdrawal recorded successfully")


@router.get("/salary/summary", response_model=list[schemas.SalarySummaryResponse])
def get_salary_summary(company_id: int, godown_id: int, db: Session = Depends(get_db)):
    return [
        schemas.SalarySummaryResponse(
            labourer_id=row.labourer_id,
            labourer_name=row.labourer_name,
            daily_wage=row.daily_wage,
            present_days=row.present_days,
            total_earned=row.total_earned,
            total_paid=row.total_paid,
            net_balance=row.net_balance,
        )
        for row in salary_summary(db, company_id, godown_id)
    ]


@router.get("/{labourer_id}/history", response_model=schemas.LabourStatementResponse)
def get_history(labourer_id: int, company_id: int, godown_id: int, db: Session = Depends(get_db)):
    statement = labour_statement(db, company_id, godown_id, labourer_id)
    return schemas.LabourStatementResponse(
        labourer_id=statement.labourer_id,
        labourer_name=statement.labourer_name,
        entries=[
            schemas.LabourStatementLineResponse(
                date=line.entry_date,
                source=line.source,
                label=line.label,
                type=line.entry_type,
                amount=line.amount,
                mode=line.mode,
                running_balance=line.running_balance,
            )
            for line in statement.lines
        ],
        totals=schemas.LabourTotals(
            total_earned=statement.total_earned,
            total_paid=statement.total_paid,
            remaining=statement.remaining,
        ),
    )
