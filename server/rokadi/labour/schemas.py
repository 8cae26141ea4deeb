from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttendanceMark(BaseModel):
    company_id: int
    godown_id: int
    labourer_id: int
    date: date
    status: str = "present"

    @field_validator("status")
    @classmethod
    def normalize_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"present", "absent"}:
            raise ValueError("status must be present or absent")
        return normalized


class AttendanceResponse(BaseModel):
    success: bool = True
    message: str


class AttendanceRecordResponse(BaseModel):
    labourer_id: int
    attendance_date: date
    status: str

    model_config = ConfigDict(from_attributes=True)


class WithdrawalCreate(BaseModel):
    company_id: int
    godown_id: int
    labourer_id: int
    amount: Decimal = Field(..., gt=Decimal("0"))
    mode: str = "cash"
    created_by: Optional[str] = None
    entry_date: Optional[date] = Field(None, alias="date")


class LabourStatementLineResponse(BaseModel):
    date: date
    source: Literal["salary", "withdrawal"]
    label: str
    type: Literal["credit", "debit"]
    amount: Decimal
    mode: str
    running_balance: Decimal


class LabourTotals(BaseModel):
    total_earned: Decimal
    total_paid: Decimal
    remaining: Decimal


class LabourStatementResponse(BaseModel):
    labourer_id: int
    labourer_name: str
    entries: list[LabourStatementLineResponse]
    totals: LabourTotals


class SalarySummaryResponse(BaseModel):
    labourer_id: int
    labourer_name: str
    daily_wage: Decimal
    present_days: int
    total_earned: Decimal
    total_paid: Decimal
    net_balance: Decimal
