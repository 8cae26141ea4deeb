import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from rokadi.db import atomic
from rokadi.errors import ConflictError, LabourerNotFoundError, ValidationError
from rokadi.models import Attendance, LabourSalary, LabourWithdrawal, Labourer
from rokadi.utils import ZERO, money_or_zero

logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = ("present", "absent")


@dataclass(frozen=True)
class LabourStatementLine:
    entry_date: date
    source: str
    label: str
    entry_type: str
    amount: Decimal
    mode: str
    running_balance: Decimal


@dataclass
class LabourStatement:
    labourer_id: int
    labourer_name: str
    lines: list[LabourStatementLine] = field(default_factory=list)
    total_earned: Decimal = ZERO
    total_paid: Decimal = ZERO

    @property
    def remaining(self) -> Decimal:
        return self.total_earned - self.total_paid


@dataclass(frozen=True)
class SalarySummary:
    labourer_id: int
    labourer_name: str
    daily_wage: Decimal
    present_days: int
    total_earned: Decimal
    total_paid: Decimal

    @property
    def net_balance(self) -> Decimal:
        return self.total_earned - self.total_paid


def get_labourer(
    db: Session,
    labourer_id: int,
    company_id: Optional[int] = None,
    godown_id: Optional[int] = None,
) -> Labourer:
    query = db.query(Labourer).filter(Labourer.id == labourer_id)
    if company_id is not None:
        query = query.filter(Labourer.company_id == company_id)
    if godown_id is not None:
        query = query.filter(Labourer.godown_id == godown_id)
    labourer = query.first()
    if not labourer:
        raise LabourerNotFoundError(f"Labourer {labourer_id} not found.", labourer_id=labourer_id)
    return labourer


def mark_attendance(
    db: Session,
    *,
    company_id: int,
    godown_id: int,
    labourer_id: int,
    on_date: date,
    status: str,
) -> Optional[Attendance]:
    """Present marks accrue one day's wage; absent marks are not stored."""
    normalized = (status or "").strip().lower()
    if normalized not in ATTENDANCE_STATUSES:
        raise ValidationError(f"Unknown attendance status '{status}'.")

    with atomic(db):
        labourer = get_labourer(db, labourer_id, company_id, godown_id)
        if normalized == "absent":
            return None

        existing = (
            db.query(Attendance.id)
            .filter(Attendance.labourer_id == labourer.id, Attendance.attendance_date == on_date)
            .first()
        )
        if existing is not None:
            raise ConflictError(
                f"Attendance already marked for {labourer.name} on {on_date}.",
                labourer_id=labourer.id,
                date=str(on_date),
            )

        attendance = Attendance(
            company_id=company_id,
            godown_id=godown_id,
            labourer_id=labourer.id,
            attendance_date=on_date,
            status="Present",
        )
        db.add(attendance)

        accrued = (
            db.query(LabourSalary.id)
            .filter(LabourSalary.labourer_id == labourer.id, LabourSalary.salary_date == on_date)
            .first()
        )
        if accrued is None:
            db.add(
                LabourSalary(
                    company_id=company_id,
                    godown_id=godown_id,
                    labourer_id=labourer.id,
                    salary_date=on_date,
                    amount=money_or_zero(labourer.daily_wage),
                )
            )
        db.flush()

    logger.info("Marked labourer_id=%s present on %s", labourer_id, on_date)
    return attendance


def attendance_for_date(db: Session, company_id: int, godown_id: int, on_date: date) -> list[Attendance]:
    return (
        db.query(Attendance)
        .filter(
            Attendance.company_id == company_id,
            Attendance.godown_id == godown_id,
            Attendance.attendance_date == on_date,
        )
        .order_by(Attendance.labourer_id.asc())
        .all()
    )


def labour_statement(db: Session, company_id: int, godown_id: int, labourer_id: int) -> LabourStatement:
    """Salary accruals and withdrawals with a running balance, newest first."""
    labourer = get_labourer(db, labourer_id, company_id, godown_id)

    salaries = (
        db.query(LabourSalary)
        .filter(
            LabourSalary.labourer_id == labourer.id,
            LabourSalary.company_id == company_id,
            LabourSalary.godown_id == godown_id,
        )
        .all()
    )
    withdrawals = (
        db.query(LabourWithdrawal)
        .filter(
            LabourWithdrawal.labourer_id == labourer.id,
            LabourWithdrawal.company_id == company_id,
            LabourWithdrawal.godown_id == godown_id,
        )
        .all()
    )

    rows = [(s.salary_date, s.created_at, s.id, "salary", s.amount, "N/A") for s in salaries] + [
        (w.withdrawal_date, w.created_at, w.id, "withdrawal", w.amount, w.mode or "cash") for w in withdrawals
    ]
    rows.sort(key=lambda row: row[:3])

    statement = LabourStatement(labourer_id=labourer.id, labourer_name=labourer.name)
    running = ZERO
    lines = []
    for entry_date, _, _, source, amount, mode in rows:
        amount = money_or_zero(amount)
        if source == "salary":
            statement.total_earned += amount
            running += amount
            label, entry_type = "Salary Credited", "credit"
        else:
            statement.total_paid += amount
            running -= amount
            label, entry_type = "Withdrawal", "debit"
        lines.append(
            LabourStatementLine(
                entry_date=entry_date,
                source=source,
                label=label,
                entry_type=entry_type,
                amount=amount,
                mode=mode,
                running_balance=running,
            )
        )
    statement.lines = list(reversed(lines))
    return statement


def salary_summary(db: Session, company_id: int, godown_id: int) -> list[SalarySummary]:
    labourers = (
        db.query(Labourer)
        .filter(Labourer.company_id == company_id, Labourer.godown_id == godown_id)
        .order_by(Labourer.name.asc())
        .all()
    )
    summaries = []
    for labourer in labourers:
        present_days = db.query(func.count(Attendance.id)).filter(Attendance.labourer_id == labourer.id).scalar()
        earned = (
            db.query(func.coalesce(func.sum(LabourSalary.amount), 0))
            .filter(LabourSalary.labourer_id == labourer.id)
            .scalar()
        )
        paid = (
            db.query(func.coalesce(func.sum(LabourWithdrawal.amount), 0))
            .filter(LabourWithdrawal.labourer_id == labourer.id)
            .scalar()
        )
        summaries.append(
            SalarySummary(
                labourer_id=labourer.id,
                labourer_name=labourer.name,
                daily_wage=money_or_zero(labourer.daily_wage),
                present_days=present_days or 0,
                total_earned=money_or_zero(earned),
                total_paid=money_or_zero(paid),
            )
        )
    return summaries
