from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional
from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configurações globais do ContractSync.
    Lê automaticamente variáveis do arquivo .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Projeto
    project_name: str = "ContractSync API"
    api_v1_str: str = "/api/v1"
    debug: bool = False

    # Banco de dados
    database_url: str = "sqlite:///./dev.db"

    # CORS (webhooks chegam de qualquer origem)
    allowed_origins: List[str] = ["*"]
    allowed_headers: str = "authorization, x-client-info, apikey, content-type"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Vindi (cobrança)
    vindi_api_key: Optional[str] = None
    vindi_base_url: str = "https://app.vindi.com.br/api/v1"

    # ClickSign (assinatura eletrônica)
    clicksign_api_key: Optional[str] = None
    clicksign_base_url: str = "https://app.clicksign.com/api/v3"
    clicksign_page_size: int = 50

    provider_timeout_seconds: float = 30.0

    # Varreduras de reconciliação
    provider_concurrency: int = 5
    sweep_delay_seconds: float = 0.5
    linkage_batch_size: int = 10
    linkage_product_id: Optional[UUID] = None
    freeze_threshold: int = 3

    # Notificações
    notification_link: str = "/contracts"


@lru_cache
def get_settings() -> Settings:
    """Retorna a instância de configurações globais (cacheada)."""
    return Settings()


settings = get_settings()


@dataclass(frozen=True)
class VindiConfig:
    api_key: str | None
    base_url: str
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, source: Settings) -> "VindiConfig":
        return cls(
            api_key=source.vindi_api_key,
            base_url=source.vindi_base_url,
            timeout_seconds=source.provider_timeout_seconds,
        )


@dataclass(frozen=True)
class ClicksignConfig:
    api_key: str | None
    base_url: str
    timeout_seconds: float = 30.0
    page_size: int = 50
    concurrency: int = 5

    @classmethod
    def from_settings(cls, source: Settings) -> "ClicksignConfig":
        return cls(
            api_key=source.clicksign_api_key,
            base_url=source.clicksign_base_url,
            timeout_seconds=source.provider_timeout_seconds,
            page_size=source.clicksign_page_size,
            concurrency=source.provider_concurrency,
        )
