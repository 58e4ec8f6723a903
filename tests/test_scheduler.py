from __future__ import annotations

from sqlmodel import Session

from contractsync.core.config import settings
from contractsync.services.clicksign import Envelope
from contractsync.services.scheduler import run_scheduled_sweeps
from contractsync.services.vindi import VindiSubscription
from tests.conftest import FakeClicksign, FakeVindi, make_contact, make_contract, pending_bill


def _linkable(db_session: Session, vindi: FakeVindi, count: int) -> list:
    contracts = []
    for index in range(count):
        email = f"agenda{index}@example.com"
        contact = make_contact(db_session, full_name=f"Agenda Cliente {index}", email=email)
        contracts.append(make_contract(db_session, contact))
        vindi.add_customer("email", email, f"ag{index}")
        vindi.active_subscription_by_customer[f"ag{index}"] = VindiSubscription(id=f"sub-ag{index}", status="active")
    return contracts


def test_pages_linkage_until_every_contract_is_linked(db_session: Session, fake_vindi: FakeVindi, monkeypatch) -> None:
    monkeypatch.setattr(settings, "linkage_batch_size", 2)
    contracts = _linkable(db_session, fake_vindi, 5)

    summary = run_scheduled_sweeps(db_session, vindi=fake_vindi, clicksign=None)

    assert summary["linkage"] == {"mode": "vindi", "processed": 5, "linked": 5}
    assert summary["frozen_contracts"]["checked"] == 0
    for contract in contracts:
        db_session.refresh(contract)
        assert contract.vindi_subscription_id is not None


def test_frozen_sweep_runs_before_linkage(db_session: Session, fake_vindi: FakeVindi) -> None:
    make_contract(db_session, vindi_customer_id="c9", vindi_subscription_id="s9")
    fake_vindi.bills_by_subscription["s9"] = [pending_bill(f"s9-{index}", days_ago=10 + index) for index in range(3)]

    summary = run_scheduled_sweeps(db_session, vindi=fake_vindi, clicksign=None)

    assert summary["frozen_contracts"] == {"checked": 1, "frozen": 1, "unfrozen": 0, "skipped": 0}


def test_mode_follows_configured_providers(db_session: Session, fake_vindi: FakeVindi) -> None:
    make_contract(db_session, make_contact(db_session, full_name="Helena Rocha", email="helena@example.com"))
    clicksign = FakeClicksign([Envelope(id="env-h", name="Contrato Helena Rocha", status="running")])

    both = run_scheduled_sweeps(db_session, vindi=fake_vindi, clicksign=clicksign)

    assert both["linkage"]["mode"] == "all"
    assert both["linkage"]["linked"] == 1


def test_missing_vindi_key_still_runs_signature_linkage(db_session: Session) -> None:
    contract = make_contract(db_session, make_contact(db_session, full_name="Igor Tavares"))
    clicksign = FakeClicksign([Envelope(id="env-i", name="Contrato Igor Tavares", status="running")])

    summary = run_scheduled_sweeps(db_session, vindi=None, clicksign=clicksign)

    assert "VINDI_API_KEY not configured" in summary["frozen_contracts"]["error"]
    assert summary["linkage"] == {"mode": "clicksign", "processed": 1, "linked": 1}
    db_session.refresh(contract)
    assert contract.clicksign_document_key == "env-i"


def test_no_providers_reports_both_errors(db_session: Session) -> None:
    summary = run_scheduled_sweeps(db_session, vindi=None, clicksign=None)

    assert "error" in summary["frozen_contracts"]
    assert "VINDI_API_KEY" in summary["linkage"]["error"]
