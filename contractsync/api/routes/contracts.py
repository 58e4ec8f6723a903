from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from contractsync.api.deps import get_db
from contractsync.schemas.contract import ContractCancel, ContractCancellationRead, ContractRead
from contractsync.services.contract import ContractService

router = APIRouter(prefix="/contracts", tags=["contracts"])


def _service(session: Session) -> ContractService:
    return ContractService(session)


@router.get("/{contract_id}", response_model=ContractRead)
def get_contract(contract_id: UUID, session: Session = Depends(get_db)) -> ContractRead:
    try:
        contract = _service(session).get(contract_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ContractRead.model_validate(contract, from_attributes=True)


@router.post("/{contract_id}/cancel", response_model=ContractCancellationRead)
def cancel_contract(
    contract_id: UUID,
    payload: ContractCancel,
    session: Session = Depends(get_db),
) -> ContractCancellationRead:
    try:
        _, cancellation = _service(session).cancel(contract_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ContractCancellationRead.model_validate(cancellation, from_attributes=True)
