from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rokadi.utils import quantize_money


class PaidTo(BaseModel):
    type: str = Field(..., min_length=1)
    id: Optional[int] = None
    name: Optional[str] = None


class ExpenseCreate(BaseModel):
    company_id: int
    godown_id: int
    category: str = "General"
    description: str = ""
    amount: Decimal = Field(..., gt=Decimal("0"))
    payment_mode: str = "cash"
    paid_to: Optional[PaidTo] = None
    created_by: Optional[str] = None
    idempotency_key: Optional[str] = Field(None, max_length=100)
    entry_date: Optional[date] = Field(None, alias="date")


class ExpenseUpdate(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None


class EventResponse(BaseModel):
    id: int
    company_id: int
    godown_id: int
    event_kind: str
    event_date: date
    category: str
    description: Optional[str] = None
    amount: Decimal
    payment_mode: str
    account_id: int
    paid_to_type: Optional[str] = None
    paid_to_id: Optional[int] = None
    paid_to_name: Optional[str] = None
    purchase_id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EventCreatedResponse(BaseModel):
    success: bool = True
    event_id: int
    message: str


class ExpenseSummaryResponse(BaseModel):
    total_expenses: int
    total_amount: Decimal


class ReversalResponse(BaseModel):
    success: bool = True
    event_id: int
    reversal_entry_id: int
    account_id: int
    amount: Decimal


class PurchaseLineCreate(BaseModel):
    material: str = Field(..., min_length=1, max_length=100)
    weight: Decimal = Field(..., gt=Decimal("0"))
    rate: Decimal = Field(..., gt=Decimal("0"))

    @field_validator("rate")
    @classmethod
    def round_rate(cls, value: Decimal) -> Decimal:
        return quantize_money(value)


class PurchaseCreate(BaseModel):
    company_id: int
    godown_id: int
    vendor_id: int
    lines: list[PurchaseLineCreate] = Field(..., min_length=1)
    payment_amount: Decimal = Field(Decimal("0"), ge=Decimal("0"))
    payment_mode: str = "cash"
    note: str = ""
    created_by: Optional[str] = None
    entry_date: Optional[date] = Field(None, alias="date")


class PurchaseResultResponse(BaseModel):
    success: bool = True
    purchase_id: int
    total_amount: Decimal
    payment_amount: Decimal
    payment_status: str
    event_id: Optional[int] = None
    current_balance: Decimal


class VendorPaymentCreate(BaseModel):
    company_id: int
    godown_id: int
    amount: Decimal = Field(..., gt=Decimal("0"))
    payment_mode: str = "cash"
    note: str = ""
    purchase_id: Optional[int] = None
    created_by: Optional[str] = None
    idempotency_key: Optional[str] = Field(None, max_length=100)
    entry_date: Optional[date] = Field(None, alias="date")
