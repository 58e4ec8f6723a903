from typing import Generator

from sqlmodel import Session

from contractsync.core.config import ClicksignConfig, VindiConfig, settings
from contractsync.core.logging_setup import logger
from contractsync.db.session import get_session
from contractsync.services.clicksign import ClicksignClient
from contractsync.services.http_client import ProviderError
from contractsync.services.vindi import VindiClient


def get_db() -> Session:
    yield from get_session()


def build_vindi_client() -> VindiClient | None:
    try:
        return VindiClient(VindiConfig.from_settings(settings))
    except ProviderError as exc:
        logger.warning("Cliente Vindi indisponível: %s", exc)
        return None


def build_clicksign_client() -> ClicksignClient | None:
    try:
        return ClicksignClient(ClicksignConfig.from_settings(settings))
    except ProviderError as exc:
        logger.warning("Cliente ClickSign indisponível: %s", exc)
        return None


# Sem chave configurada a dependência entrega None; o serviço decide se precisa do provedor
def get_vindi_client() -> Generator[VindiClient | None, None, None]:
    client = build_vindi_client()
    try:
        yield client
    finally:
        if client is not None:
            client.close()


def get_clicksign_client() -> Generator[ClicksignClient | None, None, None]:
    client = build_clicksign_client()
    try:
        yield client
    finally:
        if client is not None:
            client.close()
