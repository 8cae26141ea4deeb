import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rokadi.db import Base, get_db
from rokadi.main import app
from rokadi.seed import seed_unit
from rokadi.models import Account, Labourer, Vendor


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def unit(session_factory):
    with session_factory() as db:
        company, godown = seed_unit(db, "Demo Scrap Co", "Main Godown")
        db.commit()
        accounts = {a.account_type: a.id for a in db.query(Account).all()}
        vendors = {v.kind: v.id for v in db.query(Vendor).order_by(Vendor.id).all()}
        labourer_id = db.query(Labourer).order_by(Labourer.id).first().id
        return {
            "company_id": company.id,
            "godown_id": godown.id,
            "cash_id": accounts["cash"],
            "bank_id": accounts["bank"],
            "feriwala_id": vendors["feriwala"],
            "kabadiwala_id": vendors["kabadiwala"],
            "labourer_id": labourer_id,
        }


def balances(client, unit):
    response = client.get(
        "/api/rokadi/accounts", params={"company_id": unit["company_id"], "godown_id": unit["godown_id"]}
    )
    assert response.status_code == 200
    return {row["account_type"]: float(row["balance"]) for row in response.json()}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_manual_credit_and_transfer(client, unit):
    payload = {
        "company_id": unit["company_id"],
        "godown_id": unit["godown_id"],
        "account_id": unit["cash_id"],
        "type": "credit",
        "amount": "5000",
        "category": "opening",
        "reference": "Owner deposit",
    }
    response = client.post("/api/rokadi/add", json=payload)
    assert response.status_code == 200
    assert balances(client, unit) == {"cash": 5000.0, "bank": 0.0}

    transfer = dict(payload, type="transfer", amount="1200", related_account_id=unit["bank_id"])
    response = client.post("/api/rokadi/add", json=transfer)
    assert response.status_code == 200
    assert len(response.json()["entry_ids"]) == 2
    assert balances(client, unit) == {"cash": 3800.0, "bank": 1200.0}

    rows = client.get(
        "/api/rokadi/transactions",
        params={"company_id": unit["company_id"], "godown_id": unit["godown_id"], "account_id": unit["cash_id"]},
    ).json()
    assert [row["entry_type"] for row in rows] == ["debit", "credit"]
    assert rows[1]["reference"] == "Owner deposit"


def test_transfer_to_same_account_maps_to_400(client, unit):
    response = client.post(
        "/api/rokadi/add",
        json={
            "company_id": unit["company_id"],
            "godown_id": unit["godown_id"],
            "account_id": unit["cash_id"],
            "related_account_id": unit["cash_id"],
            "type": "transfer",
            "amount": "10",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"] == "same_account"


def test_unknown_account_maps_to_404(client, unit):
    response = client.get(
        "/api/rokadi/transactions",
        params={"company_id": unit["company_id"], "godown_id": unit["godown_id"], "account_id": 999},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "account_not_found"


def test_bank_credit_debit_and_statement(client, unit):
    base = {"company_id": unit["company_id"], "godown_id": unit["godown_id"], "account_id": unit["bank_id"]}
    assert client.post("/api/bank/credit", json=dict(base, amount="2500", reference="NEFT in")).status_code == 200
    assert client.post("/api/bank/debit", json=dict(base, amount="500")).status_code == 200

    rows = client.get(
        "/api/bank/statement", params={"company_id": unit["company_id"], "godown_id": unit["godown_id"]}
    ).json()
    assert [(row["entry_type"], row["category"]) for row in rows] == [("credit", "bank_credit"), ("debit", "bank_debit")]
    assert rows[0]["reference"] == "NEFT in"
    assert rows[0]["account_name"] == "Bank Account"


def test_expense_lifecycle(client, unit):
    response = client.post(
        "/api/expenses",
        json={
            "company_id": unit["company_id"],
            "godown_id": unit["godown_id"],
            "category": "salary",
            "amount": "200",
            "payment_mode": "cash",
            "paid_to": {"type": "labour", "id": unit["labourer_id"]},
        },
    )
    assert response.status_code == 201
    event_id = response.json()["event_id"]
    assert balances(client, unit)["cash"] == -200.0

    listed = client.get(
        "/api/expenses/list", params={"company_id": unit["company_id"], "godown_id": unit["godown_id"]}
    ).json()
    assert [row["id"] for row in listed] == [event_id]
    assert listed[0]["paid_to_name"] == "Mohan"

    patched = client.patch(f"/api/expenses/{event_id}", json={"description": "Advance"})
    assert patched.status_code == 200
    assert patched.json()["description"] == "Advance"

    deleted = client.delete(f"/api/expenses/{event_id}")
    assert deleted.status_code == 200
    assert balances(client, unit)["cash"] == 0.0
    assert client.delete(f"/api/expenses/{event_id}").status_code == 404


def test_vendor_purchase_ledger_and_balance(client, unit):
    response = client.post(
        "/api/vendors/purchases",
        json={
            "company_id": unit["company_id"],
            "godown_id": unit["godown_id"],
            "vendor_id": unit["feriwala_id"],
            "date": "2026-03-01",
            "lines": [{"material": "Iron", "weight": "50", "rate": "20"}],
        },
    )
    assert response.status_code == 201
    assert float(response.json()["current_balance"]) == -1000.0

    payment = client.post(
        f"/api/vendors/{unit['feriwala_id']}/payments",
        json={"company_id": unit["company_id"], "godown_id": unit["godown_id"], "amount": "400", "date": "2026-03-01"},
    )
    assert payment.status_code == 201

    params = {"company_id": unit["company_id"], "godown_id": unit["godown_id"]}
    ledger = client.get(f"/api/vendors/{unit['feriwala_id']}/ledger", params=params).json()
    assert [line["type"] for line in ledger["lines"]] == ["purchase", "payment"]
    assert float(ledger["outstanding"]) == -600.0

    balance = client.get(f"/api/vendors/{unit['feriwala_id']}/balance", params=params).json()
    assert float(balance["balance"]) == -600.0

    snapshots = client.get(
        "/api/vendors/snapshots", params=dict(params, kind="feriwala", date="2026-03-01")
    ).json()
    assert [float(row["current_balance"]) for row in snapshots] == [-600.0]

    audit = client.get(f"/api/vendors/{unit['feriwala_id']}/audit", params=params).json()
    assert audit["drifts"] == []


def test_unknown_vendor_maps_to_404(client, unit):
    response = client.get(
        "/api/vendors/999/balance", params={"company_id": unit["company_id"], "godown_id": unit["godown_id"]}
    )
    assert response.status_code == 404
    assert response.json()["error"] == "vendor_not_found"


def test_duplicate_attendance_maps_to_409(client, unit):
    payload = {
        "company_id": unit["company_id"],
        "godown_id": unit["godown_id"],
        "labourer_id": unit["labourer_id"],
        "date": "2026-06-01",
        "status": "present",
    }
    assert client.post("/api/labour/attendance", json=payload).status_code == 200
    response = client.post("/api/labour/attendance", json=payload)
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"

    history = client.get(
        f"/api/labour/{unit['labourer_id']}/history",
        params={"company_id": unit["company_id"], "godown_id": unit["godown_id"]},
    ).json()
    assert float(history["totals"]["total_earned"]) == 500.0


def test_attendance_for_date_lists_present_marks(client, unit):
    client.post(
        "/api/labour/attendance",
        json={
            "company_id": unit["company_id"],
            "godown_id": unit["godown_id"],
            "labourer_id": unit["labourer_id"],
            "date": "2026-06-02",
            "status": "present",
        },
    )

    response = client.get(
        "/api/labour/attendance",
        params={"company_id": unit["company_id"], "godown_id": unit["godown_id"], "date": "2026-06-02"},
    )

    assert response.status_code == 200
    assert response.json() == [
        {"labourer_id": unit["labourer_id"], "attendance_date": "2026-06-02", "status": "Present"}
    ]
