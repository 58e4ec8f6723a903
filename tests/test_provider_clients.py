from __future__ import annotations

import base64
import json

import httpx
import pytest

from contractsync.core.config import ClicksignConfig, VindiConfig
from contractsync.services.clicksign import ClicksignClient
from contractsync.services.http_client import ProviderError
from contractsync.services.vindi import VindiClient

VINDI = VindiConfig(api_key="secret", base_url="https://vindi.test/api/v1", timeout_seconds=5)
CLICKSIGN = ClicksignConfig(api_key="cs-key", base_url="https://clicksign.test/api/v3", page_size=2, concurrency=2)


def _vindi(handler) -> VindiClient:
    return VindiClient(VINDI, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def _clicksign(handler) -> ClicksignClient:
    return ClicksignClient(CLICKSIGN, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_vindi_requires_api_key() -> None:
    with pytest.raises(ProviderError, match="not configured"):
        VindiClient(VindiConfig(api_key=None, base_url="https://vindi.test"))


def test_vindi_basic_auth_and_customer_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"customers": [{"id": 42, "name": "Maria"}]})

    customers = _vindi(handler).search_customers("email", "maria@example.com")

    assert customers[0].id == "42"
    expected = base64.b64encode(b"secret:").decode()
    assert seen[0].headers["Authorization"] == f"Basic {expected}"
    assert seen[0].url.path == "/api/v1/customers"
    assert seen[0].url.params["query"] == "email:maria@example.com"


def test_vindi_list_bills_paginates_until_short_page() -> None:
    pages: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params["page"]
        pages.append(page)
        count = 2 if page == "1" else 1
        bills = [{"id": f"{page}-{index}", "status": "pending", "due_at": "2024-05-10T00:00:00.000-03:00"} for index in range(count)]
        return httpx.Response(200, json={"bills": bills})

    bills = _vindi(handler).list_bills("77", status="pending", per_page=2)

    assert pages == ["1", "2"]
    assert len(bills) == 3
    assert bills[0].due_at.hour == 3


def test_vindi_error_carries_status_and_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"errors": [{"message": "invalid"}]})

    with pytest.raises(ProviderError) as excinfo:
        _vindi(handler).get_bill("1")
    assert excinfo.value.status_code == 422
    assert excinfo.value.body["errors"][0]["message"] == "invalid"


def test_vindi_transport_failure_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError) as excinfo:
        _vindi(handler).get_subscription("1")
    assert excinfo.value.status_code is None


def _envelope(envelope_id: str, name: str) -> dict:
    return {"id": envelope_id, "attributes": {"name": name, "status": "closed", "created": "2024-01-01T00:00:00Z"}}


def test_clicksign_lists_all_pages_and_dedupes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "cs-key"
        page = request.url.params["page[number]"]
        data = {
            "1": [_envelope("e1", "Contrato A"), _envelope("e2", "Contrato B")],
            "2": [_envelope("e3", "Contrato C"), _envelope("e2", "Contrato B")],
            "3": [_envelope("e4", "Contrato D")],
        }[page]
        return httpx.Response(200, json={"data": data, "meta": {"record_count": 5}})

    envelopes = _clicksign(handler).list_envelopes()
    assert sorted(envelope.id for envelope in envelopes) == ["e1", "e2", "e3", "e4"]


def test_clicksign_skips_failed_later_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params["page[number]"]
        if page == "2":
            return httpx.Response(500, text="oops")
        return httpx.Response(200, content=json.dumps({"data": [_envelope(f"p{page}", "X")], "meta": {"record_count": 5}}))

    envelopes = _clicksign(handler).list_envelopes()
    assert sorted(envelope.id for envelope in envelopes) == ["p1", "p3"]


def test_clicksign_first_page_failure_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    with pytest.raises(ProviderError):
        _clicksign(handler).list_envelopes()
