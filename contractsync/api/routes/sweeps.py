from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from contractsync.api.deps import get_clicksign_client, get_db, get_vindi_client
from contractsync.schemas.sweeps import (
    CancellationDateResponse,
    ContractIdsRequest,
    FrozenSweepResponse,
    LinkageSweepRequest,
    LinkageSweepResponse,
    PaymentStatusResponse,
    SignatureDateResponse,
)
from contractsync.services.backfill import CancellationDateBackfill, SignatureDateBackfill
from contractsync.services.clicksign import ClicksignClient
from contractsync.services.http_client import ProviderError
from contractsync.services.reconciliation import FrozenContractSweep, LinkageSweep, PaymentStatusSweep
from contractsync.services.vindi import VindiClient

router = APIRouter(prefix="/sweeps", tags=["sweeps"])


def _provider_failure(exc: ProviderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _require_ids(payload: ContractIdsRequest) -> None:
    if not payload.contract_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="contract_ids is required")


@router.post("/linkage", response_model=LinkageSweepResponse)
def run_linkage_sweep(
    payload: LinkageSweepRequest | None = None,
    session: Session = Depends(get_db),
    vindi: VindiClient | None = Depends(get_vindi_client),
    clicksign: ClicksignClient | None = Depends(get_clicksign_client),
) -> LinkageSweepResponse:
    payload = payload or LinkageSweepRequest()
    try:
        return LinkageSweep(session, vindi=vindi, clicksign=clicksign).run(
            mode=payload.mode,
            batch_size=payload.batch_size,
            offset=payload.offset,
        )
    except ProviderError as exc:
        raise _provider_failure(exc) from exc


@router.post("/frozen-contracts", response_model=FrozenSweepResponse)
def run_frozen_contract_sweep(
    session: Session = Depends(get_db),
    vindi: VindiClient | None = Depends(get_vindi_client),
) -> FrozenSweepResponse:
    try:
        return FrozenContractSweep(session, vindi=vindi).run()
    except ProviderError as exc:
        raise _provider_failure(exc) from exc


@router.post("/payment-status", response_model=PaymentStatusResponse)
def run_payment_status_sweep(
    payload: ContractIdsRequest,
    session: Session = Depends(get_db),
    vindi: VindiClient | None = Depends(get_vindi_client),
) -> PaymentStatusResponse:
    _require_ids(payload)
    try:
        return PaymentStatusSweep(session, vindi=vindi).run(payload.contract_ids)
    except ProviderError as exc:
        raise _provider_failure(exc) from exc


@router.post("/cancellation-dates", response_model=CancellationDateResponse)
def run_cancellation_date_backfill(
    payload: ContractIdsRequest,
    session: Session = Depends(get_db),
    clicksign: ClicksignClient | None = Depends(get_clicksign_client),
) -> CancellationDateResponse:
    _require_ids(payload)
    try:
        return CancellationDateBackfill(session, clicksign=clicksign).run(payload.contract_ids)
    except ProviderError as exc:
        raise _provider_failure(exc) from exc


@router.post("/signature-dates", response_model=SignatureDateResponse)
def run_signature_date_backfill(
    payload: ContractIdsRequest,
    session: Session = Depends(get_db),
    clicksign: ClicksignClient | None = Depends(get_clicksign_client),
) -> SignatureDateResponse:
    _require_ids(payload)
    try:
        return SignatureDateBackfill(session, clicksign=clicksign).run(payload.contract_ids)
    except ProviderError as exc:
        raise _provider_failure(exc) from exc
