from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import httpx

from contractsync.core.config import ClicksignConfig
from contractsync.core.logging_setup import logger
from contractsync.services.http_client import ProviderClient, ProviderError
from contractsync.utils.concurrency import bounded_map


@dataclass
class Envelope:
    """Envelope da ClickSign normalizado. Datas mantidas como texto ISO (comparação lexicográfica)."""

    id: str
    name: str
    status: str
    created: str | None = None
    modified: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Envelope":
        attrs = data.get("attributes") or {}
        return cls(
            id=str(data.get("id")),
            name=attrs.get("name") or "",
            status=attrs.get("status") or "",
            created=attrs.get("created") or attrs.get("created_at"),
            modified=attrs.get("modified") or attrs.get("updated_at"),
        )


class ClicksignClient(ProviderClient):
    """Cliente da API v3 da ClickSign (envelopes)."""

    provider = "clicksign"

    def __init__(self, config: ClicksignConfig, *, http_client: httpx.Client | None = None) -> None:
        if not config.api_key:
            raise ProviderError("CLICKSIGN_API_KEY not configured", provider=self.provider)
        super().__init__(
            config.base_url,
            headers={"Authorization": config.api_key, "Accept": "application/json"},
            timeout_seconds=config.timeout_seconds,
            http_client=http_client,
        )
        self._page_size = config.page_size
        self._concurrency = config.concurrency

    def _fetch_page(self, page: int) -> dict[str, Any]:
        return self._request(
            "GET",
            "/envelopes",
            params={"page[number]": page, "page[size]": self._page_size},
        )

    def list_envelopes(self) -> list[Envelope]:
        first = self._fetch_page(1)
        total_records = int((first.get("meta") or {}).get("record_count") or 0)
        total_pages = math.ceil(total_records / self._page_size) if self._page_size else 1
        envelopes = [Envelope.from_api(item) for item in first.get("data") or []]
        logger.info("ClickSign: %s envelopes em %s páginas", total_records, total_pages)

        for outcome in bounded_map(self._fetch_page, range(2, total_pages + 1), limit=self._concurrency):
            if not outcome.ok:
                logger.warning("ClickSign: falha ao carregar página %s: %s", outcome.item, outcome.error)
                continue
            envelopes.extend(Envelope.from_api(item) for item in outcome.value.get("data") or [])

        unique: dict[str, Envelope] = {}
        for envelope in envelopes:
            unique[envelope.id] = envelope
        return list(unique.values())

    def get_envelope(self, envelope_id: str) -> Envelope:
        data = self._request("GET", f"/envelopes/{envelope_id}")
        if not data.get("data"):
            raise ProviderError(f"Envelope {envelope_id} sem dados", provider=self.provider, body=data)
        return Envelope.from_api(data["data"])
