from __future__ import annotations

from fastapi import status
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from contractsync.core.config import settings
from contractsync.models.contract import (
    BillingStatus,
    ContractCancellation,
    ContractStatus,
    SignatureStatus,
)
from contractsync.models.notification import Notification
from tests.conftest import make_contract

VINDI_URL = f"{settings.api_v1_str}/webhooks/vindi"
CLICKSIGN_URL = f"{settings.api_v1_str}/webhooks/clicksign"


def _charge_paid(subscription_id: str, installment: int) -> dict:
    return {
        "event": {
            "type": "charge_paid",
            "created_at": "2024-05-10T10:00:00.000-03:00",
            "data": {
                "charge": {
                    "id": 9001,
                    "installment": installment,
                    "paid_at": "2024-05-10T10:00:00.000-03:00",
                    "bill": {"id": 555, "subscription": {"id": subscription_id}},
                }
            },
        }
    }


def _notifications(db_session: Session) -> list[Notification]:
    return db_session.exec(select(Notification)).all()


def test_charge_paid_updates_mirror_and_notifies_owner(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, vindi_subscription_id="1001", installments=12)

    response = client.post(VINDI_URL, json=_charge_paid("1001", 4))

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body == {"success": True, "contract_id": str(contract.id), "new_status": "paid"}

    db_session.refresh(contract)
    assert contract.vindi_status == BillingStatus.PAID
    assert contract.paid_installments == 4
    assert contract.status == ContractStatus.ACTIVE

    notifications = _notifications(db_session)
    assert len(notifications) == 1
    assert notifications[0].user_id == contract.owner_id
    assert "4/12" in notifications[0].message
    assert notifications[0].type == "payment"


def test_replayed_vindi_event_notifies_once(client: TestClient, db_session: Session) -> None:
    make_contract(db_session, vindi_subscription_id="1001")

    first = client.post(VINDI_URL, json=_charge_paid("1001", 2))
    second = client.post(VINDI_URL, json=_charge_paid("1001", 2))

    assert first.json() == second.json()
    assert len(_notifications(db_session)) == 1


def test_contract_found_by_bill_id(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, vindi_bill_id="555")
    payload = {"event": {"type": "bill_paid", "data": {"bill": {"id": 555}}}}

    response = client.post(VINDI_URL, json=payload)

    assert response.json()["contract_id"] == str(contract.id)
    db_session.refresh(contract)
    assert contract.vindi_status == BillingStatus.PAID


def test_unmatched_vindi_event_is_acknowledged(client: TestClient) -> None:
    response = client.post(VINDI_URL, json=_charge_paid("does-not-exist", 1))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["success"] is True
    assert "No matching contract" in response.json()["message"]


def test_unknown_vindi_event_changes_nothing(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, vindi_subscription_id="1001")
    payload = {"event": {"type": "invoice_sent", "data": {"subscription": {"id": 1001}}}}

    response = client.post(VINDI_URL, json=payload)

    assert response.status_code == status.HTTP_200_OK
    assert "Unhandled event type" in response.json()["message"]
    db_session.refresh(contract)
    assert contract.vindi_status is None
    assert _notifications(db_session) == []


def test_subscription_reactivation_does_not_revive_cancelled(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, vindi_subscription_id="1001", status=ContractStatus.CANCELLED)
    payload = {"event": {"type": "subscription_reactivated", "data": {"subscription": {"id": 1001}}}}

    client.post(VINDI_URL, json=payload)

    db_session.refresh(contract)
    assert contract.status == ContractStatus.CANCELLED
    assert contract.vindi_status == BillingStatus.PAID


def test_malformed_vindi_payload_is_rejected(client: TestClient) -> None:
    response = client.post(VINDI_URL, json={"hello": "world"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False

    response = client.post(VINDI_URL, content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def _clicksign_event(name: str, key: str, document_status: str) -> dict:
    return {
        "event": {"name": name, "occurred_at": "2024-04-02T11:30:00Z"},
        "document": {"key": key, "status": document_status},
        "signer": {"email": "maria@example.com"},
    }


def test_auto_close_activates_draft_once(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, status=ContractStatus.DRAFT, clicksign_document_key="doc-1")

    response = client.post(CLICKSIGN_URL, json=_clicksign_event("auto_close", "doc-1", "closed"))

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "success": True,
        "contract_id": str(contract.id),
        "event": "auto_close",
        "new_status": "active",
        "new_clicksign_status": "signed",
    }
    notifications = _notifications(db_session)
    assert len(notifications) == 1
    assert notifications[0].title == "Atualização de Contrato"

    replay = client.post(CLICKSIGN_URL, json=_clicksign_event("auto_close", "doc-1", "closed"))
    assert replay.json()["new_status"] is None
    assert len(_notifications(db_session)) == 1


def test_partial_signature_keeps_draft(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, status=ContractStatus.DRAFT, clicksign_document_key="doc-2")

    response = client.post(CLICKSIGN_URL, json=_clicksign_event("sign", "doc-2", "running"))

    assert response.json()["new_clicksign_status"] == "partially_signed"
    db_session.refresh(contract)
    assert contract.status == ContractStatus.DRAFT
    assert contract.clicksign_status == SignatureStatus.PARTIALLY_SIGNED
    assert _notifications(db_session) == []


def test_cancel_event_cancels_and_records(client: TestClient, db_session: Session) -> None:
    contract = make_contract(db_session, clicksign_document_key="doc-3")

    response = client.post(CLICKSIGN_URL, json=_clicksign_event("cancel", "doc-3", "canceled"))

    assert response.json()["new_status"] == "cancelled"
    record = db_session.exec(
        select(ContractCancellation).where(ContractCancellation.contract_id == contract.id)
    ).one()
    assert record.reason_code == "signature_cancelled"


def test_clicksign_requires_document_key(client: TestClient) -> None:
    response = client.post(CLICKSIGN_URL, json={"event": {"name": "sign"}, "document": {}})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": "Missing document key"}


def test_clicksign_unknown_document_is_acknowledged(client: TestClient) -> None:
    response = client.post(CLICKSIGN_URL, json=_clicksign_event("sign", "nope", "closed"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Contract not found, webhook acknowledged"}


def test_cors_headers_on_preflight_and_responses(client: TestClient) -> None:
    preflight = client.options(CLICKSIGN_URL)
    assert preflight.status_code == status.HTTP_200_OK
    assert preflight.headers["access-control-allow-origin"] == "*"
    assert "content-type" in preflight.headers["access-control-allow-headers"]

    response = client.post(CLICKSIGN_URL, json={})
    assert response.headers["access-control-allow-origin"] == "*"
