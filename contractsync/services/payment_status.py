from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

from contractsync.models.contract import BillingStatus, SignatureStatus
from contractsync.services.vindi import VindiBill, VindiSubscription


class Standing(str, Enum):
    EM_DIA = "em_dia"
    ATRASADO = "atrasado"
    AGUARDANDO = "aguardando"
    CANCELADO = "cancelado"
    UNKNOWN = "unknown"


STANDING_TO_BILLING_STATUS = {
    Standing.EM_DIA: BillingStatus.PAID,
    Standing.ATRASADO: BillingStatus.OVERDUE,
    Standing.AGUARDANDO: BillingStatus.PENDING,
    Standing.CANCELADO: BillingStatus.CANCELLED,
    Standing.UNKNOWN: BillingStatus.UNKNOWN,
}


@dataclass(frozen=True)
class PaymentStanding:
    standing: Standing
    details: str
    overdue_count: int = 0
    days_late: int | None = None

    @property
    def billing_status(self) -> BillingStatus:
        return STANDING_TO_BILLING_STATUS[self.standing]

    def as_dict(self) -> dict[str, object]:
        return {
            "status": self.standing.value,
            "details": self.details,
            "overdue_count": self.overdue_count,
            "days_late": self.days_late,
        }


def _is_past_due(bill: VindiBill, now: datetime) -> bool:
    return bill.status == "pending" and bill.due_at is not None and bill.due_at < now


def count_overdue(bills: Iterable[VindiBill], now: datetime) -> int:
    """Faturas pendentes com vencimento estritamente anterior a ``now`` (mesma regra da escada)."""
    return sum(1 for bill in bills if _is_past_due(bill, now))


def evaluate_subscription(
    subscription: VindiSubscription | None,
    bills: list[VindiBill],
    now: datetime,
) -> PaymentStanding:
    """Escada de status da assinatura, avaliada de cima para baixo."""
    if subscription is not None and subscription.status == "canceled":
        return PaymentStanding(Standing.CANCELADO, "Assinatura cancelada")

    if not bills:
        return PaymentStanding(Standing.AGUARDANDO, "Sem faturas geradas")

    overdue = [bill for bill in bills if _is_past_due(bill, now)]
    if overdue:
        oldest = min(overdue, key=lambda bill: bill.due_at)
        days_late = (now - oldest.due_at).days
        return PaymentStanding(
            Standing.ATRASADO,
            f"{len(overdue)} fatura(s) atrasada(s) - {days_late} dias",
            overdue_count=len(overdue),
            days_late=days_late,
        )

    if any(bill.status == "pending" for bill in bills):
        return PaymentStanding(Standing.AGUARDANDO, "Aguardando pagamento")

    return PaymentStanding(Standing.EM_DIA, "Pagamento em dia")


def evaluate_bill(bill: VindiBill, now: datetime) -> PaymentStanding:
    """Contratos com fatura avulsa (sem assinatura)."""
    if bill.status == "paid":
        return PaymentStanding(Standing.EM_DIA, "Pagamento em dia")
    if bill.status == "pending":
        if _is_past_due(bill, now):
            days_late = (now - bill.due_at).days
            return PaymentStanding(
                Standing.ATRASADO,
                f"Atrasado há {days_late} dias",
                overdue_count=1,
                days_late=days_late,
            )
        return PaymentStanding(Standing.AGUARDANDO, "Aguardando pagamento")
    if bill.status == "canceled":
        return PaymentStanding(Standing.CANCELADO, "Fatura cancelada")
    return PaymentStanding(Standing.UNKNOWN, "Sem informação")


ENVELOPE_SIGNATURE_STATUS = {
    "closed": SignatureStatus.SIGNED,
    "running": SignatureStatus.PENDING,
    "draft": SignatureStatus.PENDING,
    "canceled": SignatureStatus.CANCELLED,
    "cancelled": SignatureStatus.CANCELLED,
    "refused": SignatureStatus.REFUSED,
}


def envelope_signature_status(envelope_status: str | None) -> SignatureStatus | None:
    return ENVELOPE_SIGNATURE_STATUS.get((envelope_status or "").lower())
