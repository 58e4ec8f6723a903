from __future__ import annotations

from typing import Any

from pydantic import ValidationError
from sqlmodel import Session, select

from contractsync.core.logging_setup import logger
from contractsync.models.contract import Contract, ContractStatus
from contractsync.schemas.webhooks import ClicksignWebhookPayload, VindiWebhookPayload
from contractsync.services.notification import NotificationEmitter, contact_name
from contractsync.services.state_machine import ContractStateMachine, TransitionResult
from contractsync.utils.dates import parse_timestamp


class WebhookPayloadError(ValueError):
    """Payload recebido do provedor sem os campos obrigatórios."""


# Títulos e mensagens por tipo de evento da Vindi
VINDI_NOTIFICATIONS: dict[str, tuple[str, str]] = {
    "bill_created": ("Fatura emitida", "Nova fatura foi emitida para o cliente"),
    "bill_paid": ("Fatura paga! 💰", "O cliente pagou a fatura"),
    "bill_canceled": ("Fatura cancelada", "A fatura do cliente foi cancelada"),
    "charge_created": ("Cobrança criada", "Nova cobrança criada para o cliente"),
    "charge_paid": ("Pagamento confirmado! 💰", "O cliente pagou"),
    "charge_rejected": ("Pagamento rejeitado ⚠️", "O pagamento do cliente foi rejeitado"),
    "charge_refunded": ("Pagamento estornado", "O pagamento foi estornado"),
    "subscription_created": ("Assinatura criada", "Nova assinatura criada para o cliente"),
    "subscription_activated": ("Assinatura ativa! 💰", "A assinatura do cliente foi ativada"),
    "subscription_canceled": ("Assinatura cancelada", "A assinatura do cliente foi cancelada"),
    "subscription_reactivated": ("Assinatura reativada", "A assinatura do cliente foi reativada"),
}

CLICKSIGN_MESSAGES: dict[str, str] = {
    "auto_close": "Contrato assinado com sucesso!",
    "sign": "Contrato assinado com sucesso!",
    "cancel": "Contrato foi cancelado.",
    "refuse": "Contrato foi recusado pelo signatário.",
}


class VindiWebhookService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.state_machine = ContractStateMachine(session)
        self.notifications = NotificationEmitter(session)

    def find_contract(self, *, subscription_id: str | None, bill_id: str | None) -> Contract | None:
        if subscription_id:
            contract = self.session.exec(
                select(Contract)
                .where(Contract.vindi_subscription_id == subscription_id)
                .order_by(Contract.created_at)
            ).first()
            if contract:
                logger.info("Contrato %s encontrado pela assinatura %s", contract.id, subscription_id)
                return contract
        if bill_id:
            contract = self.session.exec(
                select(Contract).where(Contract.vindi_bill_id == bill_id).order_by(Contract.created_at)
            ).first()
            if contract:
                logger.info("Contrato %s encontrado pela fatura %s", contract.id, bill_id)
                return contract
        return None

    def handle(self, raw: Any) -> dict[str, Any]:
        try:
            payload = VindiWebhookPayload.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Webhook Vindi inválido: %s", exc.errors())
            raise WebhookPayloadError("Invalid payload") from exc

        event_type = payload.event.type
        subscription_id = payload.subscription_id
        bill_id = payload.bill_id
        logger.info("Vindi event: %s, subscription=%s, bill=%s", event_type, subscription_id, bill_id)

        contract = self.find_contract(subscription_id=subscription_id, bill_id=bill_id)
        if contract is None:
            logger.info("Nenhum contrato para o evento %s", event_type)
            return {"success": True, "message": "No matching contract found - event logged"}

        charge = payload.event.data.charge
        result = self.state_machine.apply_billing_event(
            contract,
            event_type,
            installment=charge.installment if charge else None,
            paid_at=parse_timestamp(charge.paid_at) if charge else None,
        )
        if result is None:
            logger.info("Evento Vindi não tratado: %s", event_type)
            return {
                "success": True,
                "contract_id": str(contract.id),
                "new_status": contract.vindi_status.value if contract.vindi_status else None,
                "message": f"Unhandled event type: {event_type}",
            }

        if result.changed:
            self._notify(result, event_type, charge.installment if charge else None)

        return {
            "success": True,
            "contract_id": str(contract.id),
            "new_status": contract.vindi_status.value if contract.vindi_status else None,
        }

    def _notify(self, result: TransitionResult, event_type: str, installment: int | None) -> None:
        template = VINDI_NOTIFICATIONS.get(event_type)
        if template is None:
            return
        contract = result.contract
        title, message = template
        name = contact_name(contract)
        if event_type == "charge_paid":
            total = contract.installments or 1
            if total > 1:
                message = f"{name} pagou a parcela {installment or 1}/{total}"
            else:
                message = f"{name} realizou o pagamento"
        else:
            message = f"{name}: {message}"
        self.notifications.notify_owner_safely(contract, title=title, message=message, type="payment")


class ClicksignWebhookService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.state_machine = ContractStateMachine(session)
        self.notifications = NotificationEmitter(session)

    def handle(self, raw: Any) -> dict[str, Any]:
        try:
            payload = ClicksignWebhookPayload.model_validate(raw)
        except ValidationError as exc:
            raise WebhookPayloadError("Invalid payload") from exc

        document_key = payload.document.key if payload.document else None
        if not document_key:
            logger.warning("Webhook ClickSign sem document key")
            raise WebhookPayloadError("Missing document key")

        event_name = payload.event.name if payload.event else None
        document_status = payload.document.status
        occurred_at = parse_timestamp(payload.event.occurred_at) if payload.event else None
        logger.info("ClickSign event: %s, document=%s, status=%s", event_name, document_key, document_status)

        contract = self.session.exec(
            select(Contract).where(Contract.clicksign_document_key == document_key)
        ).first()
        if contract is None:
            logger.info("Nenhum contrato para o documento %s", document_key)
            return {"message": "Contract not found, webhook acknowledged"}

        result = self.state_machine.apply_signature_event(
            contract, event_name, document_status, occurred_at=occurred_at
        )
        if result is None:
            logger.info("Evento ClickSign não tratado: %s", event_name)

        new_status: ContractStatus | None = None
        if result is not None and result.status_changed:
            new_status = result.status
            message = CLICKSIGN_MESSAGES.get(event_name or "")
            if message:
                self.notifications.notify_owner_safely(
                    contract,
                    title="Atualização de Contrato",
                    message=f"{contact_name(contract)}: {message}",
                    type="contract_update",
                )

        return {
            "success": True,
            "contract_id": str(contract.id),
            "event": event_name,
            "new_status": new_status.value if new_status else None,
            "new_clicksign_status": (
                contract.clicksign_status.value
                if result is not None and contract.clicksign_status
                else None
            ),
        }
