"""Symmetric undo of postings.

The journal is append-only, so a reversal adds the opposite entry instead of
deleting the original; side-entry rows and the event itself are removed and
the affected vendor day is reconciled again.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from rokadi.accounting.service import post_credit, post_debit
from rokadi.db import atomic
from rokadi.errors import PurchaseNotFoundError
from rokadi.models import Event, JournalEntry, Purchase
from rokadi.posting.service import get_event
from rokadi.posting.steps import SideEntryRegistry, get_default_registry
from rokadi.vendors.service import get_vendor, reconcile_vendor_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReversalResult:
    event_id: int
    reversal_entry_id: int
    account_id: int
    amount: Decimal


def _original_entry(db: Session, event: Event) -> Optional[JournalEntry]:
    return db.query(JournalEntry).filter(JournalEntry.internal_ref == f"event:{event.id}").first()


def _reverse(db: Session, event: Event, registry: SideEntryRegistry) -> ReversalResult:
    original = _original_entry(db, event)
    entry_type = original.entry_type if original else "debit"
    category = original.category if original else event.category
    post = post_credit if entry_type == "debit" else post_debit
    reversal = post(
        db,
        event.account_id,
        event.amount,
        f"{category}-reversal",
        f"Reversal of event #{event.id}",
        internal_ref=f"event:{event.id}:reversal",
        metadata={
            "source": "reversal",
            "event_id": event.id,
            "original_entry_id": original.id if original else None,
            "note": event.description or None,
        },
        source_type="reversal",
        source_id=event.id,
        entry_date=date.today(),
        allow_overdraft=True,
    )

    step = registry.get_step(event.paid_to_type)
    if step:
        step.undo(db, event)

    result = ReversalResult(
        event_id=event.id,
        reversal_entry_id=reversal.id,
        account_id=event.account_id,
        amount=reversal.amount,
    )
    db.delete(event)
    db.flush()
    logger.info(
        "Reversed event_id=%s with entry_id=%s on account_id=%s amount=%s",
        result.event_id,
        result.reversal_entry_id,
        result.account_id,
        result.amount,
    )
    return result


def reverse_event(db: Session, event_id: int, registry: Optional[SideEntryRegistry] = None) -> ReversalResult:
    with atomic(db):
        event = get_event(db, event_id)
        result = _reverse(db, event, registry or get_default_registry())
    return result


def delete_purchase(db: Session, purchase_id: int) -> list[ReversalResult]:
    """Reverse every payment event linked to the purchase, then drop the purchase itself."""
    with atomic(db):
        purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
        if not purchase:
            raise PurchaseNotFoundError(f"Purchase {purchase_id} not found.", purchase_id=purchase_id)

        registry = get_default_registry()
        events = (
            db.query(Event)
            .filter(Event.purchase_id == purchase.id)
            .order_by(Event.id.asc())
            .all()
        )
        results = [_reverse(db, event, registry) for event in events]

        vendor = get_vendor(db, purchase.vendor_id)
        company_id, godown_id, purchase_date = purchase.company_id, purchase.godown_id, purchase.purchase_date
        db.delete(purchase)
        db.flush()
        reconcile_vendor_day(db, company_id, godown_id, vendor, purchase_date)
    logger.info("Deleted purchase_id=%s and reversed %s payment event(s)", purchase_id, len(results))
    return results
