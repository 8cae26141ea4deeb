"""Side-entry steps run by the posting composer.

A step owns the sub-ledger row an event leaves behind for one counterparty
type (labour withdrawal, feriwala payment, kabadiwala payment). Steps are
registered by counterparty type; counterparties without a step only appear
in the event and the journal reference.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from rokadi.errors import ValidationError
from rokadi.labour.service import get_labourer
from rokadi.models import Event, LabourWithdrawal
from rokadi.vendors.service import convention_for, get_vendor, reconcile_vendor_day, refresh_purchase_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Counterparty:
    type: str
    id: Optional[int] = None
    name: Optional[str] = None

    def label(self) -> str:
        return f"{self.type}: {self.name or ''}".rstrip()


class SideEntryStep(ABC):
    counterparty_type: str

    @abstractmethod
    def resolve(self, db: Session, counterparty: Counterparty, company_id: int, godown_id: int) -> Counterparty:
        """Look the counterparty up within the unit and return it with its stored display name."""

    @abstractmethod
    def record(self, db: Session, event: Event) -> None:
        pass

    @abstractmethod
    def undo(self, db: Session, event: Event) -> None:
        pass


class LabourWithdrawalStep(SideEntryStep):
    counterparty_type = "labour"

    def resolve(self, db: Session, counterparty: Counterparty, company_id: int, godown_id: int) -> Counterparty:
        if counterparty.id is None:
            raise ValidationError("Labour payments require the labourer id.")
        labourer = get_labourer(db, counterparty.id, company_id, godown_id)
        return Counterparty(type=self.counterparty_type, id=labourer.id, name=labourer.name)

    def record(self, db: Session, event: Event) -> None:
        db.add(
            LabourWithdrawal(
                company_id=event.company_id,
                godown_id=event.godown_id,
                labourer_id=event.paid_to_id,
                event_id=event.id,
                withdrawal_date=event.event_date,
                amount=event.amount,
                mode=event.payment_mode,
                withdrawal_type="salary",
            )
        )
        db.flush()

    def undo(self, db: Session, event: Event) -> None:
        removed = db.query(LabourWithdrawal).filter(LabourWithdrawal.event_id == event.id).delete(
            synchronize_session=False
        )
        db.flush()
        logger.debug("Removed %s labour withdrawal(s) for event_id=%s", removed, event.id)


class VendorPaymentStep(SideEntryStep):
    def __init__(self, kind: str):
        self.counterparty_type = kind
        self.payment_model = convention_for(kind).payment_model

    def resolve(self, db: Session, counterparty: Counterparty, company_id: int, godown_id: int) -> Counterparty:
        vendor = get_vendor(db, counterparty.id, kind=self.counterparty_type, company_id=company_id)
        return Counterparty(type=self.counterparty_type, id=vendor.id, name=vendor.name)

    def record(self, db: Session, event: Event) -> None:
        db.add(
            self.payment_model(
                company_id=event.company_id,
                godown_id=event.godown_id,
                vendor_id=event.paid_to_id,
                event_id=event.id,
                purchase_id=event.purchase_id,
                payment_date=event.event_date,
                amount=event.amount,
                mode=event.payment_mode,
                note=event.description or "Payment",
            )
        )
        self._reconcile(db, event)

    def undo(self, db: Session, event: Event) -> None:
        db.query(self.payment_model).filter(self.payment_model.event_id == event.id).delete(
            synchronize_session=False
        )
        self._reconcile(db, event)

    def _reconcile(self, db: Session, event: Event) -> None:
        vendor = get_vendor(db, event.paid_to_id)
        reconcile_vendor_day(db, event.company_id, event.godown_id, vendor, event.event_date)
        if event.purchase_id:
            refresh_purchase_status(db, event.purchase_id)


class SideEntryRegistry:
    def __init__(self):
        self._steps: dict[str, SideEntryStep] = {}

    def register(self, step: SideEntryStep) -> None:
        self._steps[step.counterparty_type] = step

    def get_step(self, counterparty_type: Optional[str]) -> Optional[SideEntryStep]:
        if not counterparty_type:
            return None
        return self._steps.get(counterparty_type)

    def list_counterparty_types(self) -> list[str]:
        return sorted(self._steps)


_default_registry = SideEntryRegistry()
_default_registry.register(LabourWithdrawalStep())
_default_registry.register(VendorPaymentStep("feriwala"))
_default_registry.register(VendorPaymentStep("kabadiwala"))


def get_default_registry() -> SideEntryRegistry:
    return _default_registry
