from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rokadi import seed
from rokadi.db import Base
from rokadi.models import Account, Company, Godown, Labourer, Vendor


def _make_session_local():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    return TestingSessionLocal, engine


def test_seed_unit_is_idempotent():
    TestingSessionLocal, engine = _make_session_local()

    with TestingSessionLocal() as db:
        seed.seed_unit(db, "Demo Scrap Co", "Main Godown")
        db.commit()
    with TestingSessionLocal() as db:
        seed.seed_unit(db, "Demo Scrap Co", "Main Godown")
        db.commit()

        assert db.query(Company).count() == 1
        assert db.query(Godown).count() == 1
        assert sorted(a.account_type for a in db.query(Account).all()) == ["bank", "cash"]
        assert db.query(Vendor).count() == len(seed.DEMO_VENDORS)
        assert db.query(Labourer).count() == len(seed.DEMO_LABOURERS)

    Base.metadata.drop_all(engine)


def test_run_seed_uses_env_names(monkeypatch):
    TestingSessionLocal, engine = _make_session_local()
    monkeypatch.setattr(seed, "SessionLocal", TestingSessionLocal)
    monkeypatch.setenv("SEED_COMPANY_NAME", "Sharma Kabadi")
    monkeypatch.setenv("SEED_GODOWN_NAME", "Yard 2")

    seed.run_seed()

    with TestingSessionLocal() as db:
        company = db.query(Company).one()
        godown = db.query(Godown).one()
        assert company.name == "Sharma Kabadi"
        assert godown.name == "Yard 2"
        accounts = db.query(Account).filter(Account.godown_id == godown.id).all()
        assert all(account.balance == 0 for account in accounts)

    Base.metadata.drop_all(engine)
