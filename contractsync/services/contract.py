from __future__ import annotations

from uuid import UUID

from sqlmodel import Session, select

from contractsync.models.contract import Contract, ContractCancellation
from contractsync.schemas.contract import ContractCancel
from contractsync.services.state_machine import CancellationInfo, ContractStateMachine


class ContractService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.state_machine = ContractStateMachine(session)

    def get(self, contract_id: UUID) -> Contract:
        contract = self.session.get(Contract, contract_id)
        if not contract:
            raise ValueError("Contract not found")
        return contract

    def get_cancellation(self, contract_id: UUID) -> ContractCancellation | None:
        return self.session.exec(
            select(ContractCancellation).where(ContractCancellation.contract_id == contract_id)
        ).first()

    def cancel(self, contract_id: UUID, payload: ContractCancel) -> tuple[Contract, ContractCancellation]:
        """Cancelamento manual. Repetir o pedido não cria um segundo registro."""
        contract = self.get(contract_id)
        self.state_machine.cancel(
            contract,
            CancellationInfo(
                reason_code=payload.reason_code,
                detail=payload.detail,
                cancelled_at=payload.cancelled_at,
                meetings_completed=payload.meetings_completed,
            ),
        )
        cancellation = self.get_cancellation(contract.id)
        if cancellation is None:
            raise ValueError("Cancellation record not created")
        return contract, cancellation
