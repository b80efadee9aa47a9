"""
HTTP client for the vault API.

Wraps httpx.AsyncClient. Every request picks up the current token from the
CredentialStore (X-Vault-Token header) at send time, so a login or logout is
visible to the very next call. Each call is attempted exactly once; failures
surface as TransportError / RemoteError and retrying is the caller's decision.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import pydantic

from vaultline.credentials import CredentialStore
from vaultline.errors import RemoteError, TransportError
from vaultline.models import InitResult, SecretEntry, VaultStatus

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Vault-Token"

M = TypeVar("M", bound=pydantic.BaseModel)


def _error_message(resp: httpx.Response) -> str:
    """Pull the server's {"error": ...} message, falling back to raw text."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return resp.text.strip() or resp.reason_phrase


def _secret_url(path: str) -> str:
    return "/v1/secret/" + quote(path.lstrip("/"), safe="/")


class VaultClient:
    """Async client for the vault HTTP API."""

    def __init__(
        self,
        store: CredentialStore,
        base_url: str = "http://127.0.0.1:8200",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        headers = {}
        token = self.store.get()
        if token:
            headers[TOKEN_HEADER] = token

        try:
            resp = await self._client.request(
                method, url, json=json, params=params, headers=headers
            )
        except httpx.TransportError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            raise TransportError(f"{method} {url}: {e}") from e

        if not resp.is_success:
            raise RemoteError(resp.status_code, _error_message(resp))

        if not resp.content:
            return {}
        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteError(resp.status_code, "response body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise RemoteError(resp.status_code, "response body is not a JSON object")
        return payload

    @staticmethod
    def _parse(model: type[M], payload: dict[str, Any]) -> M:
        try:
            return model.model_validate(payload)
        except pydantic.ValidationError as e:
            raise RemoteError(None, f"unexpected {model.__name__} payload: {e}") from e

    # ── System ──────────────────────────────────────────────────────

    async def get_health(self) -> dict[str, Any]:
        """GET /v1/sys/health — liveness of the vault process."""
        return await self._request("GET", "/v1/sys/health")

    async def get_status(self) -> VaultStatus:
        """GET /v1/sys/status — initialized/sealed flags."""
        return self._parse(VaultStatus, await self._request("GET", "/v1/sys/status"))

    async def initialize(self) -> InitResult:
        """POST /v1/sys/init — returns the root token and unseal key (shown once)."""
        return self._parse(InitResult, await self._request("POST", "/v1/sys/init"))

    async def unseal(self, key: str) -> bool:
        """POST /v1/sys/unseal — returns the `sealed` flag from the response."""
        payload = await self._request("POST", "/v1/sys/unseal", json={"key": key})
        return bool(payload.get("sealed", True))

    async def seal(self) -> None:
        """POST /v1/sys/seal."""
        await self._request("POST", "/v1/sys/seal")

    # ── Secrets ─────────────────────────────────────────────────────

    async def list_secrets(self, prefix: str = "") -> list[str]:
        """GET /v1/secrets/list — secret paths in server order."""
        payload = await self._request("GET", "/v1/secrets/list", params={"prefix": prefix})
        keys = payload.get("keys")
        if keys is None:
            keys = payload.get("secrets")
        if keys is None:
            return []
        if not isinstance(keys, list):
            raise RemoteError(None, "secret listing is not a list")
        return [str(k) for k in keys]

    async def read_secret(self, path: str) -> SecretEntry:
        """GET /v1/secret/{path}."""
        payload = await self._request("GET", _secret_url(path))
        return self._parse(
            SecretEntry,
            {"path": path, "data": payload.get("data") or {}, "version": payload.get("version")},
        )

    async def write_secret(self, path: str, data: dict[str, str]) -> None:
        """POST /v1/secret/{path} with {"data": {...}}."""
        await self._request("POST", _secret_url(path), json={"data": data})

    async def delete_secret(self, path: str) -> None:
        """DELETE /v1/secret/{path}."""
        await self._request("DELETE", _secret_url(path))

    # ── Auth ────────────────────────────────────────────────────────

    async def create_token(self, ttl: str = "24h") -> str:
        """POST /v1/auth/token/create — mint a new token with the given TTL."""
        payload = await self._request("POST", "/v1/auth/token/create", json={"ttl": ttl})
        token = payload.get("token")
        if not token:
            raise RemoteError(None, "token create response has no token")
        return str(token)
