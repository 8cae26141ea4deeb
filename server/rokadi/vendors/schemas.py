from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


VendorKind = Literal["feriwala", "kabadiwala"]


class VendorCreate(BaseModel):
    company_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=200)
    kind: VendorKind
    phone: Optional[str] = None


class VendorResponse(BaseModel):
    id: int
    company_id: Optional[int] = None
    name: str
    kind: VendorKind
    phone: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VendorSnapshotResponse(BaseModel):
    vendor_id: int
    vendor_name: Optional[str] = None
    balance_date: date
    previous_balance: Decimal
    purchase_amount: Decimal
    paid_amount: Decimal
    current_balance: Decimal


class VendorBalanceResponse(BaseModel):
    vendor_id: int
    vendor_name: str
    balance: Decimal


class StatementLineResponse(BaseModel):
    date: date
    type: Literal["purchase", "payment"]
    description: str
    amount: Decimal
    balance: Decimal
    source_id: int


class VendorStatementResponse(BaseModel):
    vendor_id: int
    vendor_name: str
    kind: VendorKind
    lines: list[StatementLineResponse]
    outstanding: Decimal


class SnapshotDriftResponse(BaseModel):
    balance_date: date
    stored_balance: Optional[Decimal] = None
    expected_balance: Optional[Decimal] = None


class SnapshotAuditResponse(BaseModel):
    vendor_id: int
    repaired: bool
    drifts: list[SnapshotDriftResponse]
