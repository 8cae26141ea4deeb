from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from rokadi.db import atomic, get_db
from rokadi.models import Vendor
from rokadi.posting import schemas as posting_schemas
from rokadi.posting.reversal import delete_purchase
from rokadi.posting.service import PurchaseLineInput, record_purchase, record_vendor_payment
from rokadi.vendors import schemas
from rokadi.vendors.service import (
    audit_vendor_snapshots,
    get_vendor,
    snapshots_for_date,
    vendor_balance,
    vendor_balances,
    vendor_statement,
)

router = APIRouter(prefix="/api/vendors", tags=["vendors"])


@router.get("", response_model=list[schemas.VendorResponse])
def list_vendors(
    kind: Optional[schemas.VendorKind] = None,
    company_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Vendor)
    if kind:
        query = query.filter(Vendor.kind == kind)
    if company_id is not None:
        query = query.filter(or_(Vendor.company_id == company_id, Vendor.company_id.is_(None)))
    return query.order_by(Vendor.name).all()


@router.get("/balances", response_model=list[schemas.VendorBalanceResponse])
def get_vendor_balances(
    company_id: int,
    godown_id: int,
    kind: schemas.VendorKind,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return [
        schemas.VendorBalanceResponse(vendor_id=row.vendor_id, vendor_name=row.vendor_name, balance=row.balance)
        for row in vendor_balances(db, company_id, godown_id, kind, as_of)
    ]


@router.get("/snapshots", response_model=list[schemas.VendorSnapshotResponse])
def get_daily_snapshots(
    company_id: int,
    godown_id: int,
    kind: schemas.VendorKind,
    on_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    return [
        schemas.VendorSnapshotResponse(
            vendor_id=snapshot.vendor_id,
            vendor_name=vendor.name,
            balance_date=snapshot.balance_date,
            previous_balance=snapshot.previous_balance,
            purchase_amount=snapshot.purchase_amount,
            paid_amount=snapshot.paid_amount,
            current_balance=snapshot.current_balance,
        )
        for vendor, snapshot in snapshots_for_date(db, company_id, godown_id, kind, on_date)
    ]


@router.post("/purchases", response_model=posting_schemas.PurchaseResultResponse, status_code=status.HTTP_201_CREATED)
def create_purchase(payload: posting_schemas.PurchaseCreate, db: Session = Depends(get_db)):
    result = record_purchase(
        db,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        vendor_id=payload.vendor_id,
        purchase_date=payload.entry_date,
        lines=[PurchaseLineInput(material=line.material, weight=line.weight, rate=line.rate) for line in payload.lines],
        payment_amount=payload.payment_amount,
        payment_mode=payload.payment_mode,
        note=payload.note,
        created_by=payload.created_by,
    )
    return posting_schemas.PurchaseResultResponse(
        purchase_id=result.purchase_id,
        total_amount=result.total_amount,
        payment_amount=result.payment_amount,
        payment_status=result.payment_status,
        event_id=result.event_id,
        current_balance=result.snapshot.current_balance,
    )


@router.delete("/purchases/{purchase_id}", response_model=list[posting_schemas.ReversalResponse])
def remove_purchase(purchase_id: int, db: Session = Depends(get_db)):
    return [
        posting_schemas.ReversalResponse(
            event_id=result.event_id,
            reversal_entry_id=result.reversal_entry_id,
            account_id=result.account_id,
            amount=result.amount,
        )
        for result in delete_purchase(db, purchase_id)
    ]


@router.post(
    "/{vendor_id}/payments",
    response_model=posting_schemas.EventCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_vendor_payment(vendor_id: int, payload: posting_schemas.VendorPaymentCreate, db: Session = Depends(get_db)):
    event_id = record_vendor_payment(
        db,
        company_id=payload.company_id,
        godown_id=payload.godown_id,
        vendor_id=vendor_id,
        amount=payload.amount,
        payment_mode=payload.payment_mode,
        payment_date=payload.entry_date,
        note=payload.note,
        purchase_id=payload.purchase_id,
        created_by=payload.created_by,
        idempotency_key=payload.idempotency_key,
    )
    return posting_schemas.EventCreatedResponse(event_id=event_id, message="Payment recorded successfully")


@router.get("/{vendor_id}/ledger", response_model=schemas.VendorStatementResponse)
def get_vendor_ledger(vendor_id: int, company_id: int, godown_id: int, db: Session = Depends(get_db)):
    statement = vendor_statement(db, company_id, godown_id, vendor_id)
    return schemas.VendorStatementResponse(
        vendor_id=statement.vendor_id,
        vendor_name=statement.vendor_name,
        kind=statement.kind,
        lines=[
            schemas.StatementLineResponse(
                date=line.entry_date,
                type=line.entry_type,
                description=line.description,
                amount=line.amount,
                balance=line.balance,
                source_id=line.source_id,
            )
            for line in statement.lines
        ],
        outstanding=statement.outstanding,
    )


@router.get("/{vendor_id}/balance", response_model=schemas.VendorBalanceResponse)
def get_vendor_balance(
    vendor_id: int,
    company_id: int,
    godown_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    vendor = get_vendor(db, vendor_id, company_id=company_id)
    balance = vendor_balance(db, company_id, godown_id, vendor.id, as_of)
    return schemas.VendorBalanceResponse(vendor_id=vendor.id, vendor_name=vendor.name, balance=balance)


@router.get("/{vendor_id}/audit", response_model=schemas.SnapshotAuditResponse)
def audit_vendor(vendor_id: int, company_id: int, godown_id: int, repair: bool = False, db: Session = Depends(get_db)):
    with atomic(db):
        drifts = audit_vendor_snapshots(db, company_id, godown_id, vendor_id, repair=repair)
    return schemas.SnapshotAuditResponse(
        vendor_id=vendor_id,
        repaired=bool(drifts) and repair,
        drifts=[
            schemas.SnapshotDriftResponse(
                balance_date=drift.balance_date,
                stored_balance=drift.stored.current_balance if drift.stored else None,
                expected_balance=drift.expected.current_balance if drift.expected else None,
            )
            for drift in drifts
        ],
    )
