from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from contractsync.api.deps import get_db, get_vindi_client
from contractsync.models.contact import Contact
from contractsync.schemas.contract import PaymentSummary
from contractsync.services.http_client import ProviderError
from contractsync.services.payments import PaymentSummaryService
from contractsync.services.vindi import VindiClient

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("/{contact_id}/payments", response_model=PaymentSummary)
def get_contact_payments(
    contact_id: UUID,
    session: Session = Depends(get_db),
    vindi: VindiClient | None = Depends(get_vindi_client),
) -> PaymentSummary:
    if not session.get(Contact, contact_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    try:
        return PaymentSummaryService(session, vindi=vindi).summarize(contact_id)
    except ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
