from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Callable, Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from contractsync.core.config import settings
from contractsync.core.logging_setup import logger
from contractsync.models.contract import BillingStatus, Contract, ContractStatus, SignatureStatus
from contractsync.schemas.sweeps import (
    FrozenSweepResponse,
    LinkageMode,
    LinkageResult,
    LinkageSweepResponse,
    PaymentStatusEntry,
    PaymentStatusResponse,
)
from contractsync.services.clicksign import ClicksignClient, Envelope
from contractsync.services.http_client import ProviderError
from contractsync.services.matching import (
    ContactQuery,
    CustomerMatcher,
    find_contract_envelope,
    resolve_billing,
)
from contractsync.services.notification import NotificationEmitter, contact_name
from contractsync.services.payment_status import (
    PaymentStanding,
    count_overdue,
    envelope_signature_status,
    evaluate_bill,
    evaluate_subscription,
)
from contractsync.services.state_machine import CANCELLING_SIGNATURES, ContractStateMachine
from contractsync.services.vindi import VindiClient
from contractsync.utils.concurrency import bounded_map
from contractsync.utils.dates import utcnow


def require_client(client, name: str):
    if client is None:
        raise ProviderError(f"{name.upper()}_API_KEY not configured", provider=name)
    return client


class LinkageSweep:
    """Preenche vínculos ausentes (Vindi e/ou ClickSign) em lotes paginados por offset.

    O offset percorre todos os contratos (no escopo do produto) ordenados por id;
    dentro de cada lote só os cancelados e os já vinculados são ignorados.
    """

    def __init__(
        self,
        session: Session,
        *,
        vindi: VindiClient | None = None,
        clicksign: ClicksignClient | None = None,
        delay_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.vindi = vindi
        self.clicksign = clicksign
        self.delay_seconds = settings.sweep_delay_seconds if delay_seconds is None else delay_seconds
        self.sleep = sleep
        self.clock = clock
        self.state_machine = ContractStateMachine(session)
        self._envelopes: list[Envelope] | None = None
        self._envelope_error: str | None = None

    # ------------------------------------------------------------------
    def _pause(self) -> None:
        if self.delay_seconds > 0:
            self.sleep(self.delay_seconds)

    @staticmethod
    def _needs_billing(contract: Contract) -> bool:
        return contract.vindi_customer_id is None or (
            contract.vindi_subscription_id is None and contract.vindi_bill_id is None
        )

    @classmethod
    def _needs_linkage(cls, contract: Contract, mode: LinkageMode) -> bool:
        if contract.status == ContractStatus.CANCELLED:
            return False
        missing_signature = contract.clicksign_document_key is None
        if mode == "vindi":
            return cls._needs_billing(contract)
        if mode == "clicksign":
            return missing_signature
        return cls._needs_billing(contract) or missing_signature

    def _window_query(self):
        # Janela estável: vincular um contrato não desloca o offset dos demais
        query = select(Contract)
        if settings.linkage_product_id is not None:
            query = query.where(Contract.product_id == settings.linkage_product_id)
        return query.order_by(Contract.id)

    def _load_envelopes(self) -> list[Envelope] | None:
        if self._envelopes is None and self._envelope_error is None:
            try:
                self._envelopes = self.clicksign.list_envelopes()
            except ProviderError as exc:
                logger.error("Falha ao carregar envelopes da ClickSign: %s", exc)
                self._envelope_error = str(exc)
        return self._envelopes

    # ------------------------------------------------------------------
    def run(self, *, mode: LinkageMode = "all", batch_size: int | None = None, offset: int = 0) -> LinkageSweepResponse:
        batch_size = batch_size or settings.linkage_batch_size
        if mode in ("vindi", "all"):
            require_client(self.vindi, "vindi")
        if mode in ("clicksign", "all"):
            require_client(self.clicksign, "clicksign")

        window = self.session.exec(self._window_query().offset(offset).limit(batch_size)).all()
        pending = [contract for contract in window if self._needs_linkage(contract, mode)]
        logger.info(
            "Varredura de vínculos (%s): %s contratos a partir do offset %s, %s sem vínculo",
            mode,
            len(window),
            offset,
            len(pending),
        )

        results = [self._link_contract(contract, mode) for contract in pending]
        return LinkageSweepResponse(
            mode=mode,
            offset=offset,
            batch_size=batch_size,
            processed=len(window),
            next_offset=offset + len(window),
            done=len(window) < batch_size,
            vindi_linked=sum(1 for entry in results if entry.vindi == "linked"),
            clicksign_linked=sum(1 for entry in results if entry.clicksign == "linked"),
            results=results,
        )

    def _link_contract(self, contract: Contract, mode: LinkageMode) -> LinkageResult:
        contact = contract.contact
        entry = LinkageResult(
            contract_id=contract.id,
            name=contact.full_name if contact else None,
            email=contact.email if contact else None,
        )
        linkage: dict[str, Any] = {}
        billing_status: BillingStatus | None = None
        signature_status: SignatureStatus | None = None

        if mode in ("vindi", "all") and self._needs_billing(contract):
            if contact is None:
                entry.vindi = "no_contact"
            else:
                try:
                    found, billing_status = self._link_billing(contract, ContactQuery.from_contact(contact), entry)
                    linkage.update(found)
                except ProviderError as exc:
                    logger.warning("Contrato %s: falha na Vindi, pulando: %s", contract.id, exc)
                    entry.vindi = "skip"
                    entry.errors.append(str(exc))

        if mode in ("clicksign", "all") and contract.clicksign_document_key is None:
            envelopes = self._load_envelopes()
            if envelopes is None:
                entry.clicksign = "skip"
                entry.errors.append(self._envelope_error or "clicksign unavailable")
            elif contact is None:
                entry.clicksign = "no_contact"
            else:
                envelope = find_contract_envelope(envelopes, contact.full_name)
                if envelope is None:
                    entry.clicksign = "not_found"
                else:
                    linkage["clicksign_document_key"] = envelope.id
                    entry.clicksign_document_key = envelope.id
                    entry.clicksign = "linked"
                    mirrored = envelope_signature_status(envelope.status)
                    # Match por nome nunca cancela contrato
                    if mirrored not in CANCELLING_SIGNATURES:
                        signature_status = mirrored

        if linkage or billing_status or signature_status:
            result = self.state_machine.apply(
                contract,
                linkage=linkage,
                billing_status=billing_status,
                signature_status=signature_status,
            )
            entry.updated = result.changed
        return entry

    def _link_billing(
        self,
        contract: Contract,
        query: ContactQuery,
        entry: LinkageResult,
    ) -> tuple[dict[str, Any], BillingStatus | None]:
        vindi = require_client(self.vindi, "vindi")
        customer_id = contract.vindi_customer_id
        if customer_id is None:
            match = CustomerMatcher(vindi).match(query)
            self._pause()
            if match is None:
                entry.vindi = "not_found"
                return {}, None
            customer_id = match.customer_id
            entry.vindi_match = match.strategy
        entry.vindi_customer_id = customer_id
        linkage: dict[str, Any] = {"vindi_customer_id": customer_id}

        link = resolve_billing(vindi, customer_id)
        self._pause()
        now = self.clock()
        if link.subscription is not None:
            linkage["vindi_subscription_id"] = link.subscription.id
            entry.vindi_subscription_id = link.subscription.id
            bills = vindi.list_bills(link.subscription.id, max_pages=1)
            self._pause()
            standing = evaluate_subscription(link.subscription, bills, now)
        elif link.bill is not None:
            linkage["vindi_bill_id"] = link.bill.id
            entry.vindi_bill_id = link.bill.id
            standing = evaluate_bill(link.bill, now)
        else:
            entry.vindi = "customer_found_no_subscription"
            return linkage, None

        entry.vindi = "linked"
        return linkage, standing.billing_status


class FrozenContractSweep:
    """Congela contratos com 3+ parcelas atrasadas e descongela quando regularizam."""

    def __init__(
        self,
        session: Session,
        *,
        vindi: VindiClient | None,
        concurrency: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.vindi = vindi
        self.concurrency = concurrency or settings.provider_concurrency
        self.clock = clock
        self.state_machine = ContractStateMachine(session)
        self.notifications = NotificationEmitter(session)

    def run(self) -> FrozenSweepResponse:
        vindi = require_client(self.vindi, "vindi")
        contracts = self.session.exec(
            select(Contract)
            .where(Contract.status.in_([ContractStatus.ACTIVE, ContractStatus.FROZEN]))
            .where(Contract.vindi_subscription_id.is_not(None))
            .order_by(Contract.id)
        ).all()
        targets = [(contract.id, contract.vindi_subscription_id) for contract in contracts]
        now = self.clock()

        def overdue_for(target: tuple[UUID, str]) -> int:
            bills = vindi.list_bills(target[1], status="pending", sort_by="due_at", sort_order="asc")
            return count_overdue(bills, now)

        frozen_ids: list[UUID] = []
        unfrozen_ids: list[UUID] = []
        skipped_ids: list[UUID] = []
        for outcome in bounded_map(overdue_for, targets, limit=self.concurrency):
            contract_id = outcome.item[0]
            if not outcome.ok:
                logger.error("Erro ao verificar contrato %s: %s", contract_id, outcome.error)
                skipped_ids.append(contract_id)
                continue

            contract = self.session.get(Contract, contract_id)
            result = self.state_machine.apply_overdue_count(contract, outcome.value)
            if not result.status_changed:
                continue
            if result.status == ContractStatus.FROZEN:
                frozen_ids.append(contract_id)
                logger.info("Contrato %s congelado (%s faturas atrasadas)", contract_id, outcome.value)
                self.notifications.notify_owner_safely(
                    contract,
                    title="Contrato congelado",
                    message=(
                        f"{contact_name(contract)}: contrato congelado automaticamente por ter "
                        f"{outcome.value} parcelas atrasadas."
                    ),
                    type="contract_frozen",
                )
            elif result.status == ContractStatus.ACTIVE:
                unfrozen_ids.append(contract_id)
                logger.info("Contrato %s descongelado (%s faturas atrasadas)", contract_id, outcome.value)
                self.notifications.notify_owner_safely(
                    contract,
                    title="Contrato descongelado",
                    message=(
                        f"{contact_name(contract)}: contrato descongelado automaticamente após "
                        "regularização de parcelas."
                    ),
                    type="contract_unfrozen",
                )

        return FrozenSweepResponse(
            checked=len(targets),
            frozen=len(frozen_ids),
            unfrozen=len(unfrozen_ids),
            frozen_ids=frozen_ids,
            unfrozen_ids=unfrozen_ids,
            skipped_ids=skipped_ids,
        )


class PaymentStatusSweep:
    """Recalcula o espelho de cobrança (em dia / atrasado / aguardando / cancelado)."""

    def __init__(
        self,
        session: Session,
        *,
        vindi: VindiClient | None,
        concurrency: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.vindi = vindi
        self.concurrency = concurrency or settings.provider_concurrency
        self.clock = clock
        self.state_machine = ContractStateMachine(session)

    def _standing(self, subscription_id: str | None, bill_id: str | None, now: datetime) -> PaymentStanding:
        vindi = require_client(self.vindi, "vindi")
        if subscription_id:
            subscription = vindi.get_subscription(subscription_id)
            if subscription.status == "canceled":
                return evaluate_subscription(subscription, [], now)
            bills = vindi.list_bills(subscription_id, sort_by="created_at", sort_order="desc", max_pages=1)
            return evaluate_subscription(subscription, bills, now)
        return evaluate_bill(vindi.get_bill(bill_id), now)

    def run(self, contract_ids: Sequence[UUID]) -> PaymentStatusResponse:
        if not contract_ids:
            return PaymentStatusResponse(statuses={})
        require_client(self.vindi, "vindi")
        contracts = self.session.exec(
            select(Contract)
            .where(Contract.id.in_(list(contract_ids)))
            .where(or_(Contract.vindi_subscription_id.is_not(None), Contract.vindi_bill_id.is_not(None)))
            .order_by(Contract.id)
        ).all()
        targets = [(c.id, c.vindi_subscription_id, c.vindi_bill_id) for c in contracts]
        now = self.clock()

        statuses: dict[str, PaymentStatusEntry] = {}
        outcomes = bounded_map(
            lambda target: self._standing(target[1], target[2], now),
            targets,
            limit=self.concurrency,
        )
        for outcome in outcomes:
            contract_id = outcome.item[0]
            if not outcome.ok:
                logger.error("Erro ao consultar pagamentos do contrato %s: %s", contract_id, outcome.error)
                statuses[str(contract_id)] = PaymentStatusEntry(status="unknown", details="Erro ao consultar")
                continue
            standing = outcome.value
            statuses[str(contract_id)] = PaymentStatusEntry(**standing.as_dict())
            contract = self.session.get(Contract, contract_id)
            self.state_machine.apply_payment_standing(contract, standing)
        return PaymentStatusResponse(statuses=statuses)
