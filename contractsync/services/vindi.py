from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

import httpx

from contractsync.core.config import VindiConfig
from contractsync.core.logging_setup import logger
from contractsync.services.http_client import ProviderClient, ProviderError
from contractsync.utils.dates import parse_timestamp


def _str_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _to_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class VindiCustomer:
    id: str
    name: str
    email: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VindiCustomer":
        return cls(id=str(data["id"]), name=data.get("name") or "", email=data.get("email"))


@dataclass
class VindiSubscription:
    id: str
    status: str
    customer_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VindiSubscription":
        return cls(
            id=str(data["id"]),
            status=data.get("status") or "",
            customer_id=_str_id((data.get("customer") or {}).get("id")),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class VindiBill:
    id: str
    status: str
    due_at: datetime | None = None
    created_at: datetime | None = None
    billing_at: datetime | None = None
    amount: float | None = None
    subscription_id: str | None = None
    url: str | None = None
    charges: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VindiBill":
        return cls(
            id=str(data["id"]),
            status=data.get("status") or "",
            due_at=parse_timestamp(data.get("due_at")),
            created_at=parse_timestamp(data.get("created_at")),
            billing_at=parse_timestamp(data.get("billing_at")),
            amount=_to_float(data.get("amount")),
            subscription_id=_str_id((data.get("subscription") or {}).get("id")),
            url=data.get("url"),
            charges=list(data.get("charges") or []),
        )


class VindiClient(ProviderClient):
    """Cliente da API REST v1 da Vindi (autenticação Basic com a chave como usuário)."""

    provider = "vindi"

    def __init__(self, config: VindiConfig, *, http_client: httpx.Client | None = None) -> None:
        if not config.api_key:
            raise ProviderError("VINDI_API_KEY not configured", provider=self.provider)
        token = base64.b64encode(f"{config.api_key}:".encode("utf-8")).decode("ascii")
        super().__init__(
            config.base_url,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout_seconds=config.timeout_seconds,
            http_client=http_client,
        )

    # ------------------------------------------------------------------
    # Paginação
    # ------------------------------------------------------------------
    def _paginate(
        self,
        path: str,
        key: str,
        params: dict[str, Any],
        *,
        per_page: int,
        max_pages: int,
    ) -> Iterator[dict[str, Any]]:
        for page in range(1, max_pages + 1):
            data = self._request("GET", path, params={**params, "page": page, "per_page": per_page})
            items = data.get(key) or []
            yield from items
            if len(items) < per_page:
                return
        logger.warning("Vindi %s: limite de %s páginas atingido para %s", path, max_pages, params)

    # ------------------------------------------------------------------
    # Clientes
    # ------------------------------------------------------------------
    def search_customers(self, field_name: str, value: str) -> list[VindiCustomer]:
        data = self._request("GET", "/customers", params={"query": f"{field_name}:{value}"})
        return [VindiCustomer.from_api(item) for item in data.get("customers") or []]

    # ------------------------------------------------------------------
    # Assinaturas
    # ------------------------------------------------------------------
    def find_subscription(self, customer_id: str, *, active_only: bool = True) -> VindiSubscription | None:
        query = f"customer_id:{customer_id}"
        if active_only:
            query += " status:active"
        data = self._request(
            "GET",
            "/subscriptions",
            params={"query": query, "sort_by": "created_at", "sort_order": "desc"},
        )
        items = data.get("subscriptions") or []
        return VindiSubscription.from_api(items[0]) if items else None

    def get_subscription(self, subscription_id: str) -> VindiSubscription:
        data = self._request("GET", f"/subscriptions/{subscription_id}")
        return VindiSubscription.from_api(data["subscription"])

    # ------------------------------------------------------------------
    # Faturas
    # ------------------------------------------------------------------
    def find_latest_bill(self, customer_id: str) -> VindiBill | None:
        data = self._request(
            "GET",
            "/bills",
            params={
                "query": f"customer_id:{customer_id}",
                "sort_by": "created_at",
                "sort_order": "desc",
                "per_page": 1,
            },
        )
        items = data.get("bills") or []
        return VindiBill.from_api(items[0]) if items else None

    def list_bills(
        self,
        subscription_id: str,
        *,
        status: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        per_page: int = 50,
        max_pages: int = 10,
    ) -> list[VindiBill]:
        query = f"subscription_id:{subscription_id}"
        if status:
            query += f" status:{status}"
        params = {"query": query, "sort_by": sort_by, "sort_order": sort_order}
        return [
            VindiBill.from_api(item)
            for item in self._paginate("/bills", "bills", params, per_page=per_page, max_pages=max_pages)
        ]

    def get_bill(self, bill_id: str) -> VindiBill:
        data = self._request("GET", f"/bills/{bill_id}")
        return VindiBill.from_api(data["bill"])
