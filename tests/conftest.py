from __future__ import annotations

import threading
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from contractsync.api.deps import get_clicksign_client, get_db, get_vindi_client
from contractsync.core.config import settings
from contractsync.main import app
from contractsync.models.contact import Contact
from contractsync.models.contract import Contract, ContractStatus
from contractsync.services.clicksign import Envelope
from contractsync.services.http_client import ProviderError
from contractsync.services.vindi import VindiBill, VindiCustomer, VindiSubscription
from contractsync.utils.dates import utcnow


class FakeVindi:
    """Vindi em memória: clientes por (campo, valor), assinaturas e faturas por id."""

    def __init__(self) -> None:
        self.customers: dict[tuple[str, str], list[VindiCustomer]] = {}
        self.subscriptions: dict[str, VindiSubscription] = {}
        self.active_subscription_by_customer: dict[str, VindiSubscription] = {}
        self.latest_bill_by_customer: dict[str, VindiBill] = {}
        self.bills_by_subscription: dict[str, list[VindiBill]] = {}
        self.bills: dict[str, VindiBill] = {}
        self.failing_subscriptions: set[str] = set()
        self.calls: list[tuple[str, Any]] = []
        self._lock = threading.Lock()

    def _record(self, name: str, arg: Any) -> None:
        with self._lock:
            self.calls.append((name, arg))

    def calls_to(self, name: str) -> list[Any]:
        return [arg for call, arg in self.calls if call == name]

    def add_customer(self, field_name: str, value: str, customer_id: str) -> None:
        self.customers.setdefault((field_name, value), []).append(VindiCustomer(id=customer_id, name=value))

    def search_customers(self, field_name: str, value: str) -> list[VindiCustomer]:
        self._record("search_customers", (field_name, value))
        return list(self.customers.get((field_name, value), []))

    def find_subscription(self, customer_id: str, *, active_only: bool = True) -> VindiSubscription | None:
        self._record("find_subscription", customer_id)
        return self.active_subscription_by_customer.get(customer_id)

    def find_latest_bill(self, customer_id: str) -> VindiBill | None:
        self._record("find_latest_bill", customer_id)
        return self.latest_bill_by_customer.get(customer_id)

    def get_subscription(self, subscription_id: str) -> VindiSubscription:
        self._record("get_subscription", subscription_id)
        if subscription_id in self.failing_subscriptions:
            raise ProviderError("vindi API error: 503", provider="vindi", status_code=503)
        return self.subscriptions[subscription_id]

    def list_bills(self, subscription_id: str, *, status: str | None = None, **_: Any) -> list[VindiBill]:
        self._record("list_bills", subscription_id)
        if subscription_id in self.failing_subscriptions:
            raise ProviderError("vindi API error: 503", provider="vindi", status_code=503)
        bills = self.bills_by_subscription.get(subscription_id, [])
        return [bill for bill in bills if status is None or bill.status == status]

    def get_bill(self, bill_id: str) -> VindiBill:
        self._record("get_bill", bill_id)
        return self.bills[bill_id]

    def close(self) -> None:
        pass


class FakeClicksign:
    def __init__(self, envelopes: list[Envelope] | None = None) -> None:
        self.envelopes = list(envelopes or [])
        self.extra: dict[str, Envelope] = {}
        self.list_calls = 0

    def list_envelopes(self) -> list[Envelope]:
        self.list_calls += 1
        return list(self.envelopes)

    def get_envelope(self, envelope_id: str) -> Envelope:
        if envelope_id in self.extra:
            return self.extra[envelope_id]
        raise ProviderError("clicksign API error: 404", provider="clicksign", status_code=404)

    def close(self) -> None:
        pass


def pending_bill(bill_id: str, *, days_ago: int, subscription_id: str | None = None, amount: float = 500.0) -> VindiBill:
    now = utcnow()
    return VindiBill(
        id=bill_id,
        status="pending",
        due_at=now - timedelta(days=days_ago),
        created_at=now - timedelta(days=days_ago + 5),
        amount=amount,
        subscription_id=subscription_id,
    )


def paid_bill(bill_id: str, *, days_ago: int = 30, subscription_id: str | None = None, amount: float = 500.0) -> VindiBill:
    now = utcnow()
    return VindiBill(
        id=bill_id,
        status="paid",
        due_at=now - timedelta(days=days_ago),
        created_at=now - timedelta(days=days_ago + 5),
        amount=amount,
        subscription_id=subscription_id,
        charges=[{"id": f"ch-{bill_id}", "paid_at": (now - timedelta(days=days_ago)).isoformat()}],
    )


def make_contact(session: Session, **fields: Any) -> Contact:
    data = {"full_name": "Maria Souza", "email": "maria@example.com", "owner_id": uuid.uuid4()}
    data.update(fields)
    contact = Contact(**data)
    session.add(contact)
    session.commit()
    session.refresh(contact)
    return contact


def make_contract(session: Session, contact: Contact | None = None, **fields: Any) -> Contract:
    contact = contact or make_contact(session)
    data: dict[str, Any] = {
        "contact_id": contact.id,
        "owner_id": contact.owner_id,
        "status": ContractStatus.ACTIVE,
        "installments": 12,
        "contract_value": Decimal("6000.00"),
    }
    data.update(fields)
    contract = Contract(**data)
    session.add(contract)
    session.commit()
    session.refresh(contract)
    return contract


@pytest.fixture(autouse=True)
def fast_sweeps(monkeypatch) -> None:
    monkeypatch.setattr(settings, "sweep_delay_seconds", 0.0)
    monkeypatch.setattr(settings, "linkage_product_id", None)


@pytest.fixture()
def db_engine(tmp_path):
    db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Session:
    with Session(db_engine) as session:
        yield session


@pytest.fixture()
def fake_vindi() -> FakeVindi:
    return FakeVindi()


@pytest.fixture()
def fake_clicksign() -> FakeClicksign:
    return FakeClicksign()


@pytest.fixture()
def client(db_engine, fake_vindi, fake_clicksign) -> TestClient:
    def override_db():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_vindi_client] = lambda: fake_vindi
    app.dependency_overrides[get_clicksign_client] = lambda: fake_clicksign
    yield TestClient(app)
    app.dependency_overrides.clear()
