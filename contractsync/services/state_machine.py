"""Máquina de estados do contrato.

Único ponto que decide o status de ciclo de vida (draft/active/frozen/cancelled)
a partir dos espelhos dos provedores, e que grava essas mudanças. Todas as
escritas são derivadas do estado recebido (nunca de um read-modify-write do
valor anterior), então reaplicar a mesma entrada não altera nada.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from sqlmodel import Session, select

from contractsync.core.config import settings
from contractsync.core.logging_setup import logger
from contractsync.models.contract import (
    BillingStatus,
    Contract,
    ContractCancellation,
    ContractStatus,
    SignatureStatus,
)
from contractsync.services.payment_status import PaymentStanding
from contractsync.utils.dates import utcnow

BILLING_EVENT_STATUS: dict[str, BillingStatus] = {
    "bill_created": BillingStatus.PENDING,
    "bill_paid": BillingStatus.PAID,
    "bill_canceled": BillingStatus.CANCELLED,
    "charge_created": BillingStatus.PENDING,
    # Primeira parcela paga já libera o início do trabalho
    "charge_paid": BillingStatus.PAID,
    "charge_rejected": BillingStatus.REJECTED,
    "charge_refunded": BillingStatus.REFUNDED,
    "subscription_created": BillingStatus.PENDING,
    "subscription_activated": BillingStatus.PAID,
    "subscription_canceled": BillingStatus.CANCELLED,
    "subscription_reactivated": BillingStatus.PAID,
    "payment_profile_created": BillingStatus.PENDING,
}

LINKAGE_FIELDS = frozenset(
    {"vindi_customer_id", "vindi_subscription_id", "vindi_bill_id", "clicksign_document_key"}
)
METADATA_FIELDS = frozenset({"paid_installments", "last_payment_at", "reported_at", "first_payment_at"})

CANCELLING_SIGNATURES = frozenset({SignatureStatus.CANCELLED, SignatureStatus.REFUSED})


def billing_status_for_event(event_type: str | None) -> BillingStatus | None:
    return BILLING_EVENT_STATUS.get(event_type or "")


def signature_status_for_event(event_name: str | None, document_status: str | None) -> SignatureStatus | None:
    if event_name == "auto_close":
        return SignatureStatus.SIGNED
    if event_name == "sign":
        # Só a última assinatura fecha o documento
        return SignatureStatus.SIGNED if document_status == "closed" else SignatureStatus.PARTIALLY_SIGNED
    if event_name == "cancel":
        return SignatureStatus.CANCELLED
    if event_name == "deadline":
        return SignatureStatus.EXPIRED
    if event_name == "refuse":
        return SignatureStatus.REFUSED
    return None


def derive_status(
    current: ContractStatus,
    *,
    signature_status: SignatureStatus | None,
    cancelled: bool = False,
    overdue_count: int | None = None,
    threshold: int = 3,
) -> ContractStatus:
    """Status de ciclo de vida como função pura dos espelhos e do registro de cancelamento.

    - ``cancelled`` é terminal e sempre vence (inclusive sobre reativações de cobrança).
    - ``draft`` só vira ``active`` com o envelope assinado.
    - ``active``/``frozen`` só alternam pela regra de parcelas atrasadas.
    """
    if current == ContractStatus.CANCELLED:
        return ContractStatus.CANCELLED
    if cancelled or signature_status in CANCELLING_SIGNATURES:
        return ContractStatus.CANCELLED
    if current == ContractStatus.DRAFT:
        return ContractStatus.ACTIVE if signature_status == SignatureStatus.SIGNED else ContractStatus.DRAFT
    if overdue_count is None:
        return current
    return ContractStatus.FROZEN if overdue_count >= threshold else ContractStatus.ACTIVE


def months_between(start: datetime | None, end: datetime | None) -> int | None:
    """Mês de contrato (1-based) em que ``end`` cai, contado a partir de ``start``."""
    if start is None or end is None:
        return None
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(months, 0) + 1


@dataclass(frozen=True)
class CancellationInfo:
    reason_code: str
    detail: str | None = None
    cancelled_at: datetime | None = None
    meetings_completed: int | None = None


@dataclass
class TransitionResult:
    contract: Contract
    previous_status: ContractStatus
    status: ContractStatus
    changes: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.status


class ContractStateMachine:
    def __init__(self, session: Session, *, freeze_threshold: int | None = None) -> None:
        self.session = session
        self.freeze_threshold = freeze_threshold if freeze_threshold is not None else settings.freeze_threshold

    # ------------------------------------------------------------------
    # Transição única
    # ------------------------------------------------------------------
    def apply(
        self,
        contract: Contract,
        *,
        billing_status: BillingStatus | None = None,
        signature_status: SignatureStatus | None = None,
        overdue_count: int | None = None,
        linkage: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        cancellation: CancellationInfo | None = None,
    ) -> TransitionResult:
        previous = contract.status
        changes: dict[str, Any] = {}

        def stage(name: str, value: Any) -> None:
            if getattr(contract, name) != value:
                changes[name] = value

        for name, value in (linkage or {}).items():
            if name not in LINKAGE_FIELDS:
                raise ValueError(f"Campo de vínculo desconhecido: {name}")
            if value is not None:
                stage(name, str(value))
        for name, value in (metadata or {}).items():
            if name not in METADATA_FIELDS:
                raise ValueError(f"Campo auxiliar desconhecido: {name}")
            stage(name, value)
        if billing_status is not None:
            stage("vindi_status", billing_status)
        if signature_status is not None:
            stage("clicksign_status", signature_status)

        existing_cancellation = None
        if previous != ContractStatus.CANCELLED:
            existing_cancellation = self._cancellation_for(contract)
        new_status = derive_status(
            previous,
            signature_status=signature_status or contract.clicksign_status,
            cancelled=cancellation is not None or existing_cancellation is not None,
            overdue_count=overdue_count,
            threshold=self.freeze_threshold,
        )
        if new_status != previous:
            changes["status"] = new_status

        if not changes:
            return TransitionResult(contract=contract, previous_status=previous, status=previous)

        for name, value in changes.items():
            setattr(contract, name, value)
        contract.updated_at = utcnow()
        self.session.add(contract)

        if new_status == ContractStatus.CANCELLED and previous != ContractStatus.CANCELLED:
            if existing_cancellation is None:
                info = cancellation or self._implicit_cancellation(signature_status or contract.clicksign_status)
                self._record_cancellation(contract, info)

        self.session.commit()
        self.session.refresh(contract)
        if new_status != previous:
            logger.info("Contrato %s: %s -> %s", contract.id, previous.value, new_status.value)
        else:
            logger.info("Contrato %s atualizado: %s", contract.id, sorted(changes))
        return TransitionResult(contract=contract, previous_status=previous, status=new_status, changes=changes)

    # ------------------------------------------------------------------
    # Atalhos por origem do sinal
    # ------------------------------------------------------------------
    def apply_billing_event(
        self,
        contract: Contract,
        event_type: str,
        *,
        installment: int | None = None,
        paid_at: datetime | None = None,
    ) -> TransitionResult | None:
        billing_status = billing_status_for_event(event_type)
        if billing_status is None:
            return None
        metadata: dict[str, Any] = {}
        if event_type == "charge_paid" and installment is not None and contract.paid_installments != installment:
            metadata = {"paid_installments": installment, "last_payment_at": paid_at or utcnow()}
        return self.apply(contract, billing_status=billing_status, metadata=metadata)

    def apply_signature_event(
        self,
        contract: Contract,
        event_name: str | None,
        document_status: str | None,
        *,
        occurred_at: datetime | None = None,
    ) -> TransitionResult | None:
        signature_status = signature_status_for_event(event_name, document_status)
        if signature_status is None:
            return None
        cancellation = None
        if signature_status in CANCELLING_SIGNATURES:
            cancellation = self._implicit_cancellation(signature_status, occurred_at)
        return self.apply(contract, signature_status=signature_status, cancellation=cancellation)

    def apply_overdue_count(self, contract: Contract, overdue_count: int) -> TransitionResult:
        return self.apply(contract, overdue_count=overdue_count)

    def apply_payment_standing(self, contract: Contract, standing: PaymentStanding) -> TransitionResult:
        return self.apply(contract, billing_status=standing.billing_status)

    def cancel(self, contract: Contract, info: CancellationInfo) -> TransitionResult:
        return self.apply(contract, cancellation=info)

    # ------------------------------------------------------------------
    # Registros de cancelamento
    # ------------------------------------------------------------------
    def _cancellation_for(self, contract: Contract) -> ContractCancellation | None:
        return self.session.exec(
            select(ContractCancellation).where(ContractCancellation.contract_id == contract.id)
        ).first()

    @staticmethod
    def _implicit_cancellation(
        signature_status: SignatureStatus | None,
        occurred_at: datetime | None = None,
    ) -> CancellationInfo:
        if signature_status == SignatureStatus.REFUSED:
            return CancellationInfo(reason_code="signature_refused", cancelled_at=occurred_at)
        return CancellationInfo(reason_code="signature_cancelled", cancelled_at=occurred_at)

    def _record_cancellation(self, contract: Contract, info: CancellationInfo) -> ContractCancellation:
        cancelled_at = info.cancelled_at or utcnow()
        record = ContractCancellation(
            contract_id=contract.id,
            cancelled_at=cancelled_at,
            reason_code=info.reason_code,
            detail=info.detail,
            contract_month=months_between(contract.reported_at or contract.created_at, cancelled_at),
            meetings_completed=info.meetings_completed,
        )
        self.session.add(record)
        return record
