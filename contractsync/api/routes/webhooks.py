from typing import Any, Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from contractsync.api.deps import get_db
from contractsync.core.logging_setup import logger
from contractsync.services.webhooks import ClicksignWebhookService, VindiWebhookService, WebhookPayloadError

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _dispatch(request: Request, session: Session, handler: Callable[[Any], dict[str, Any]], source: str):
    try:
        raw = await request.json()
    except ValueError:
        logger.warning("Webhook %s com corpo inválido", source)
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")

    try:
        return await run_in_threadpool(handler, raw)
    except WebhookPayloadError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Erro de banco ao processar webhook %s", source)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@router.post("/vindi")
async def vindi_webhook(request: Request, session: Session = Depends(get_db)):
    return await _dispatch(request, session, VindiWebhookService(session).handle, "vindi")


@router.post("/clicksign")
async def clicksign_webhook(request: Request, session: Session = Depends(get_db)):
    return await _dispatch(request, session, ClicksignWebhookService(session).handle, "clicksign")
