from __future__ import annotations

from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from contractsync.core.logging_setup import logger
from contractsync.models.contract import Contract, ContractStatus
from contractsync.schemas.contract import PaymentInstallment, PaymentSummary
from contractsync.services.http_client import ProviderError
from contractsync.services.reconciliation import require_client
from contractsync.services.state_machine import ContractStateMachine
from contractsync.services.vindi import VindiBill, VindiClient
from contractsync.utils.dates import parse_timestamp, utcnow


def installment_status(vindi_status: str | None, due_at: datetime | None, now: datetime) -> str:
    """Status exibido para uma parcela a partir do status da fatura/cobrança na Vindi."""
    past_due = due_at is not None and due_at < now
    if vindi_status == "paid":
        return "paid"
    if vindi_status in ("processing", "scheduled"):
        return "processing"
    if vindi_status in ("canceled", "voided"):
        return "canceled"
    # pending, review e desconhecidos
    return "overdue" if past_due else "pending"


def _amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _payment_method(charge: dict[str, Any] | None) -> str | None:
    if not charge:
        return None
    return (charge.get("payment_method") or {}).get("public_name")


class PaymentSummaryService:
    """Parcelas dos contratos ativos de um contato, consultadas ao vivo na Vindi."""

    def __init__(
        self,
        session: Session,
        *,
        vindi: VindiClient | None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.vindi = vindi
        self.clock = clock
        self.state_machine = ContractStateMachine(session)

    def _from_subscription_bills(self, bills: list[VindiBill], now: datetime) -> list[PaymentInstallment]:
        installments = []
        for index, bill in enumerate(bills, start=1):
            charge = bill.charges[0] if bill.charges else None
            due_date = bill.due_at or bill.billing_at or bill.created_at
            installments.append(
                PaymentInstallment(
                    id=bill.id,
                    installment_number=index,
                    amount=bill.amount or 0.0,
                    status=installment_status(bill.status, due_date, now),
                    due_date=due_date,
                    paid_at=parse_timestamp(charge.get("paid_at")) if charge else None,
                    payment_url=bill.url,
                    payment_method=_payment_method(charge),
                )
            )
        return installments

    def _from_single_bill(self, bill: VindiBill, now: datetime) -> list[PaymentInstallment]:
        if not bill.charges:
            return [
                PaymentInstallment(
                    id=bill.id,
                    installment_number=1,
                    amount=bill.amount or 0.0,
                    status=installment_status(bill.status, bill.due_at, now),
                    due_date=bill.due_at,
                    payment_url=bill.url,
                )
            ]
        # Fatura avulsa parcelada no cartão: cada cobrança é uma parcela
        installments = []
        for index, charge in enumerate(bill.charges, start=1):
            due_date = parse_timestamp(charge.get("due_at"))
            installments.append(
                PaymentInstallment(
                    id=str(charge.get("id")),
                    installment_number=index,
                    amount=_amount(charge.get("amount")),
                    status=installment_status(charge.get("status"), due_date, now),
                    due_date=due_date,
                    paid_at=parse_timestamp(charge.get("paid_at")),
                    payment_url=charge.get("print_url") or bill.url,
                    payment_method=_payment_method(charge),
                )
            )
        return installments

    def _backfill_first_payment(self, contract: Contract, bills: list[VindiBill]) -> None:
        if contract.first_payment_at is not None:
            return
        first_paid = next((bill for bill in bills if bill.status == "paid"), None)
        if first_paid is None:
            return
        charge = first_paid.charges[0] if first_paid.charges else {}
        paid_at = (
            parse_timestamp(charge.get("paid_at"))
            or first_paid.billing_at
            or first_paid.due_at
            or first_paid.created_at
        )
        if paid_at is not None:
            self.state_machine.apply(contract, metadata={"first_payment_at": paid_at})

    def summarize(self, contact_id: UUID) -> PaymentSummary:
        vindi = require_client(self.vindi, "vindi")
        contracts = self.session.exec(
            select(Contract)
            .where(Contract.contact_id == contact_id)
            .where(Contract.status == ContractStatus.ACTIVE)
            .where(or_(Contract.vindi_subscription_id.is_not(None), Contract.vindi_bill_id.is_not(None)))
            .order_by(Contract.created_at)
        ).all()
        now = self.clock()

        installments: list[PaymentInstallment] = []
        vindi_status = None
        for contract in contracts:
            try:
                if contract.vindi_subscription_id:
                    bills = vindi.list_bills(
                        contract.vindi_subscription_id,
                        sort_by="created_at",
                        sort_order="asc",
                        per_page=100,
                        max_pages=5,
                    )
                    installments.extend(self._from_subscription_bills(bills, now))
                    self._backfill_first_payment(contract, bills)
                else:
                    bill = vindi.get_bill(contract.vindi_bill_id)
                    installments.extend(self._from_single_bill(bill, now))
            except ProviderError as exc:
                logger.error("Falha ao buscar faturas do contrato %s: %s", contract.id, exc)
                continue
            vindi_status = contract.vindi_status

        installments.sort(key=lambda item: item.installment_number)
        paid = [item for item in installments if item.status == "paid"]
        overdue_count = sum(1 for item in installments if item.status == "overdue")

        contract_total_amount = sum(float(contract.contract_value or 0) for contract in contracts)
        contract_installments = sum(contract.installments or 0 for contract in contracts)
        first_amount = installments[0].amount if installments else 0.0
        if contract_installments == 0 and first_amount > 0:
            contract_installments = round(contract_total_amount / first_amount)
        total_count = contract_installments if contract_installments > 0 else len(installments)
        total_amount = (
            contract_total_amount
            if contract_total_amount > 0
            else sum(item.amount for item in installments)
        )

        return PaymentSummary(
            is_up_to_date=overdue_count == 0,
            overdue_count=overdue_count,
            paid_count=len(paid),
            total_count=total_count,
            total_amount=total_amount,
            paid_amount=sum(item.amount for item in paid),
            installments=installments,
            vindi_status=vindi_status,
            contract_total_amount=contract_total_amount,
            contract_total_installments=total_count,
        )
