import logging
import os
from decimal import Decimal

from sqlalchemy.orm import Session

from .accounting.service import open_accounts
from .config import get_settings
from .db import SessionLocal
from .logging_config import configure_logging
from .models import Company, Godown, Labourer, Vendor

logger = logging.getLogger(__name__)

DEMO_VENDORS = [
    ("Ramesh Pheriwala", "feriwala"),
    ("Suresh Pheriwala", "feriwala"),
    ("Gupta Scrap Traders", "kabadiwala"),
]

DEMO_LABOURERS = [
    ("Mohan", Decimal("500.00")),
    ("Kishan", Decimal("450.00")),
]


def _get_or_create_company(db: Session, name: str) -> Company:
    company = db.query(Company).filter(Company.name == name).first()
    if company:
        return company
    company = Company(name=name)
    db.add(company)
    db.flush()
    return company


def _get_or_create_godown(db: Session, company: Company, name: str) -> Godown:
    godown = db.query(Godown).filter(Godown.company_id == company.id, Godown.name == name).first()
    if godown:
        return godown
    godown = Godown(company_id=company.id, name=name)
    db.add(godown)
    db.flush()
    return godown


def _seed_vendors(db: Session, company: Company) -> None:
    for name, kind in DEMO_VENDORS:
        exists = db.query(Vendor).filter(Vendor.name == name, Vendor.kind == kind).first()
        if not exists:
            db.add(Vendor(company_id=company.id, name=name, kind=kind))


def _seed_labourers(db: Session, company: Company, godown: Godown) -> None:
    for name, daily_wage in DEMO_LABOURERS:
        exists = (
            db.query(Labourer)
            .filter(Labourer.company_id == company.id, Labourer.godown_id == godown.id, Labourer.name == name)
            .first()
        )
        if not exists:
            db.add(Labourer(company_id=company.id, godown_id=godown.id, name=name, daily_wage=daily_wage))


def seed_unit(db: Session, company_name: str, godown_name: str) -> tuple[Company, Godown]:
    company = _get_or_create_company(db, company_name)
    godown = _get_or_create_godown(db, company, godown_name)
    open_accounts(db, company.id, godown.id)
    _seed_vendors(db, company)
    _seed_labourers(db, company, godown)
    db.flush()
    return company, godown


def run_seed():
    configure_logging(get_settings().log_level)
    db: Session = SessionLocal()
    try:
        company, godown = seed_unit(
            db,
            os.getenv("SEED_COMPANY_NAME", "Demo Scrap Co"),
            os.getenv("SEED_GODOWN_NAME", "Main Godown"),
        )
        db.commit()
        logger.info("Seeded company_id=%s godown_id=%s", company.id, godown.id)
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
