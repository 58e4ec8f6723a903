from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx


class ProviderError(RuntimeError):
    """Falha de domínio quando a API de um provedor externo responde com erro ou fica indisponível."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body or {}


class ProviderClient:
    """Base HTTP para os clientes da Vindi e da ClickSign.

    Cada instância monta os cabeçalhos de autenticação uma única vez e pode
    receber um ``httpx.Client`` externo (útil em testes com ``MockTransport``).
    """

    provider = "provider"

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        if not self._base_url:
            raise ProviderError(f"URL base do provedor {self.provider} não configurada.", provider=self.provider)
        self._headers = dict(headers)
        self._timeout = timeout_seconds
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                headers=self._headers,
                timeout=self._timeout,
            )
        except httpx.RequestError as exc:
            raise ProviderError(
                f"Falha ao conectar com {self.provider}: {exc}",
                provider=self.provider,
            ) from exc

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {"error": response.text}
            if not isinstance(payload, dict):
                payload = {"error": payload}
            raise ProviderError(
                f"{self.provider} API error: {response.status_code}",
                provider=self.provider,
                status_code=response.status_code,
                body=payload,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Resposta inválida de {self.provider}.",
                provider=self.provider,
                status_code=response.status_code,
                body={"raw": response.text[:200]},
            ) from exc
        return data if isinstance(data, dict) else {"data": data}
