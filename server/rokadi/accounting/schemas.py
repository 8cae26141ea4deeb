from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


AccountType = Literal["cash", "bank"]
ManualEntryType = Literal["credit", "debit", "transfer"]


class AccountResponse(BaseModel):
    id: int
    account_name: str
    account_type: AccountType
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class JournalEntryResponse(BaseModel):
    id: int
    account_id: int
    related_account_id: Optional[int] = None
    entry_type: Literal["credit", "debit"]
    amount: Decimal
    category: str
    reference: Optional[str] = None
    correlation_id: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    date: date
    created_at: datetime


class BankStatementRow(JournalEntryResponse):
    account_name: str


class ManualEntryCreate(BaseModel):
    company_id: int
    godown_id: int
    account_id: int
    related_account_id: Optional[int] = None
    type: ManualEntryType
    amount: Decimal = Field(..., gt=Decimal("0"))
    category: str = ""
    reference: str = ""
    created_by: Optional[str] = None
    entry_date: Optional[date] = Field(None, alias="date")

    @model_validator(mode="after")
    def validate_transfer_target(self) -> "ManualEntryCreate":
        if self.type == "transfer" and self.related_account_id is None:
            raise ValueError("Transfers require related_account_id.")
        return self


class BankEntryCreate(BaseModel):
    company_id: int
    godown_id: int
    account_id: int
    amount: Decimal = Field(..., gt=Decimal("0"))
    category: Optional[str] = None
    reference: str = ""
    entry_date: Optional[date] = Field(None, alias="date")


class PostingResponse(BaseModel):
    success: bool = True
    message: str
    entry_ids: list[int]


class BalanceAuditResponse(BaseModel):
    account_id: int
    cached_balance: Decimal
    journal_balance: Decimal
    drift: Decimal
    repaired: bool
