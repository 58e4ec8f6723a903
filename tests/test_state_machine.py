from __future__ import annotations

from datetime import datetime

import pytest
from sqlmodel import Session, select

from contractsync.models.contract import (
    BillingStatus,
    ContractCancellation,
    ContractStatus,
    SignatureStatus,
)
from contractsync.services.state_machine import (
    CancellationInfo,
    ContractStateMachine,
    derive_status,
    months_between,
    signature_status_for_event,
)
from tests.conftest import make_contract


@pytest.mark.parametrize(
    ("overdue", "expected"),
    [(0, ContractStatus.ACTIVE), (2, ContractStatus.ACTIVE), (3, ContractStatus.FROZEN), (7, ContractStatus.FROZEN)],
)
def test_freeze_threshold_is_inclusive_at_three(overdue: int, expected: ContractStatus) -> None:
    for current in (ContractStatus.ACTIVE, ContractStatus.FROZEN):
        assert derive_status(current, signature_status=SignatureStatus.SIGNED, overdue_count=overdue) == expected


def test_cancelled_is_terminal() -> None:
    assert (
        derive_status(ContractStatus.CANCELLED, signature_status=SignatureStatus.SIGNED, overdue_count=0)
        == ContractStatus.CANCELLED
    )


def test_draft_only_activates_on_signature() -> None:
    assert derive_status(ContractStatus.DRAFT, signature_status=None, overdue_count=5) == ContractStatus.DRAFT
    assert (
        derive_status(ContractStatus.DRAFT, signature_status=SignatureStatus.PARTIALLY_SIGNED)
        == ContractStatus.DRAFT
    )
    assert derive_status(ContractStatus.DRAFT, signature_status=SignatureStatus.SIGNED) == ContractStatus.ACTIVE


def test_signed_does_not_unfreeze() -> None:
    assert derive_status(ContractStatus.FROZEN, signature_status=SignatureStatus.SIGNED) == ContractStatus.FROZEN


def test_signature_event_table() -> None:
    assert signature_status_for_event("sign", "running") == SignatureStatus.PARTIALLY_SIGNED
    assert signature_status_for_event("sign", "closed") == SignatureStatus.SIGNED
    assert signature_status_for_event("auto_close", None) == SignatureStatus.SIGNED
    assert signature_status_for_event("deadline", None) == SignatureStatus.EXPIRED
    assert signature_status_for_event("add_signer", None) is None


def test_months_between() -> None:
    assert months_between(datetime(2024, 1, 15), datetime(2024, 1, 20)) == 1
    assert months_between(datetime(2024, 1, 15), datetime(2024, 3, 14)) == 2
    assert months_between(datetime(2024, 1, 15), datetime(2024, 3, 15)) == 3
    assert months_between(None, datetime(2024, 3, 15)) is None


def test_reapplying_billing_event_is_noop(db_session: Session) -> None:
    contract = make_contract(db_session)
    machine = ContractStateMachine(db_session)

    first = machine.apply_billing_event(contract, "charge_paid", installment=4, paid_at=datetime(2024, 5, 10))
    assert first.changed
    assert contract.vindi_status == BillingStatus.PAID
    assert contract.paid_installments == 4
    assert contract.last_payment_at == datetime(2024, 5, 10)

    second = machine.apply_billing_event(contract, "charge_paid", installment=4, paid_at=datetime(2024, 5, 11))
    assert not second.changed
    assert contract.last_payment_at == datetime(2024, 5, 10)


def test_unknown_billing_event_is_ignored(db_session: Session) -> None:
    contract = make_contract(db_session)
    assert ContractStateMachine(db_session).apply_billing_event(contract, "invoice_sent") is None


def test_billing_event_never_changes_lifecycle(db_session: Session) -> None:
    contract = make_contract(db_session, status=ContractStatus.FROZEN)
    result = ContractStateMachine(db_session).apply_billing_event(contract, "subscription_reactivated")
    assert result.status == ContractStatus.FROZEN
    assert contract.vindi_status == BillingStatus.PAID


def test_refused_signature_cancels_and_records_once(db_session: Session) -> None:
    contract = make_contract(db_session, status=ContractStatus.DRAFT)
    machine = ContractStateMachine(db_session)

    result = machine.apply_signature_event(
        contract, "refuse", "canceled", occurred_at=datetime(2024, 4, 2, 8, 30)
    )
    assert result.status_changed
    assert contract.status == ContractStatus.CANCELLED

    again = machine.apply_signature_event(contract, "refuse", "canceled")
    assert not again.changed

    records = db_session.exec(
        select(ContractCancellation).where(ContractCancellation.contract_id == contract.id)
    ).all()
    assert len(records) == 1
    assert records[0].reason_code == "signature_refused"
    assert records[0].cancelled_at == datetime(2024, 4, 2, 8, 30)


def test_cancellation_wins_over_reactivation(db_session: Session) -> None:
    contract = make_contract(db_session)
    machine = ContractStateMachine(db_session)
    machine.cancel(contract, CancellationInfo(reason_code="client_request", detail="Pediu cancelamento"))

    result = machine.apply_billing_event(contract, "subscription_reactivated")
    assert result.status == ContractStatus.CANCELLED
    assert machine.apply_overdue_count(contract, 0).status == ContractStatus.CANCELLED


def test_existing_cancellation_record_cancels_on_next_apply(db_session: Session) -> None:
    contract = make_contract(db_session)
    db_session.add(ContractCancellation(contract_id=contract.id, reason_code="manual"))
    db_session.commit()

    result = ContractStateMachine(db_session).apply_overdue_count(contract, 0)
    assert result.status == ContractStatus.CANCELLED
    records = db_session.exec(
        select(ContractCancellation).where(ContractCancellation.contract_id == contract.id)
    ).all()
    assert len(records) == 1


def test_unknown_linkage_field_is_rejected(db_session: Session) -> None:
    contract = make_contract(db_session)
    with pytest.raises(ValueError):
        ContractStateMachine(db_session).apply(contract, linkage={"status": "active"})
