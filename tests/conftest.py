"""
Shared fixtures for the vaultline test suite.

HTTP is served by FakeVault, an in-memory stand-in for the vault server that
follows the same routes, status codes and {"error": ...} bodies, mounted on
httpx.MockTransport.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import pytest_asyncio

from vaultline.access import AccessController
from vaultline.catalog import SecretsCatalog
from vaultline.client import TOKEN_HEADER, VaultClient
from vaultline.credentials import CredentialStore
from vaultline.monitor import StatusMonitor

BASE_URL = "http://vault.test"


def _json(status_code: int, body: dict[str, Any]) -> httpx.Response:
    return httpx.Response(status_code, json=body)


def _error(status_code: int, message: str) -> httpx.Response:
    return _json(status_code, {"error": message})


class FakeVault:
    """In-memory vault server."""

    def __init__(self, root_token: str = "rt1", unseal_key: str = "uk1") -> None:
        self.initialized = False
        self.sealed = True
        self.root_token = root_token
        self.unseal_key = unseal_key
        self.tokens: set[str] = set()
        self.expired: set[str] = set()
        self.secrets: dict[str, dict[str, Any]] = {}
        self.versions: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str], list[httpx.Response | Exception]] = {}
        self._issued_tokens = 0
        self.transport = httpx.MockTransport(self.handle)

    # ── Test controls ───────────────────────────────────────────────

    def make_ready(self) -> None:
        """Initialized + unsealed, root token valid."""
        self.initialized = True
        self.sealed = False
        self.tokens.add(self.root_token)

    def put(self, path: str, data: dict[str, Any]) -> None:
        self.secrets[path] = dict(data)
        self.versions[path] = self.versions.get(path, 0) + 1

    def fail_next(self, method: str, path: str, failure: httpx.Response | Exception) -> None:
        """Make the next matching request fail with a response or raised exception."""
        self._failures.setdefault((method, path), []).append(failure)

    def last_request(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return request
        raise AssertionError(f"no {method} {path} request recorded")

    # ── Routing ─────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path

        queued = self._failures.get((method, path))
        if queued:
            failure = queued.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return failure

        if path == "/v1/sys/health":
            return _json(200, {"status": "ok"})
        if path == "/v1/sys/status":
            return self._status()
        if path == "/v1/sys/init" and method == "POST":
            return self._init()
        if path == "/v1/sys/unseal" and method == "POST":
            return self._unseal(request)
        if path == "/v1/sys/seal" and method == "POST":
            self.sealed = True
            return self._status()

        if path == "/v1/secrets/list" and method == "GET":
            denied = self._check_token(request, 500)
            if denied is not None:
                return denied
            prefix = request.url.params.get("prefix", "")
            return _json(200, {"keys": [p for p in self.secrets if p.startswith(prefix)]})
        if path == "/v1/auth/token/create" and method == "POST":
            denied = self._check_token(request, 403)
            if denied is not None:
                return denied
            return self._create_token(request)
        if path.startswith("/v1/secret/"):
            return self._secret(method, path[len("/v1/secret/"):], request)
        return _error(404, "not found")

    def _status(self) -> httpx.Response:
        return _json(200, {"initialized": self.initialized, "sealed": self.sealed})

    def _init(self) -> httpx.Response:
        if self.initialized:
            return _error(400, "vault is already initialized")
        self.initialized = True
        self.sealed = True
        self.tokens.add(self.root_token)
        return _json(200, {"root_token": self.root_token, "unseal_key": self.unseal_key})

    def _unseal(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        if not self.initialized:
            return _error(400, "vault is not initialized")
        if body.get("key") != self.unseal_key:
            return _error(400, "invalid unseal key")
        self.sealed = False
        return self._status()

    def _check_token(self, request: httpx.Request, rejected: int) -> httpx.Response | None:
        """Missing token is 401; any later failure uses the route's own status."""
        token = request.headers.get(TOKEN_HEADER)
        if not token:
            return _error(401, "missing token")
        if self.sealed:
            return _error(rejected, "vault is sealed")
        if token in self.expired:
            return _error(rejected, "token expired")
        if token not in self.tokens:
            return _error(rejected, "invalid token")
        return None

    def _create_token(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get(TOKEN_HEADER) != self.root_token:
            return _error(403, "only the root token can create tokens")
        self._issued_tokens += 1
        token = f"tok-{self._issued_tokens}"
        self.tokens.add(token)
        return _json(200, {"token": token})

    def _secret(self, method: str, path: str, request: httpx.Request) -> httpx.Response:
        if not request.headers.get(TOKEN_HEADER):
            return _error(401, "missing token")
        if not path:
            return _error(400, "missing secret path")
        # reads and deletes report every failure as 404, writes as 500
        denied = self._check_token(request, 500 if method in ("POST", "PUT") else 404)
        if denied is not None:
            return denied
        if method == "GET":
            if path not in self.secrets:
                return _error(404, "secret not found")
            return _json(200, {"data": self.secrets[path], "version": self.versions[path]})
        if method in ("POST", "PUT"):
            body = json.loads(request.content or b"{}")
            self.put(path, body.get("data") or {})
            return _json(200, {"status": "success"})
        if method == "DELETE":
            if path not in self.secrets:
                return _error(404, "secret not found")
            del self.secrets[path]
            del self.versions[path]
            return _json(200, {"status": "success"})
        return _error(405, "method not allowed")


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def ready_vault(fake_vault: FakeVault) -> FakeVault:
    """An initialized, unsealed vault."""
    fake_vault.make_ready()
    return fake_vault


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(tmp_path / "vaultline" / "token")


@pytest_asyncio.fixture
async def client(store, fake_vault):
    c = VaultClient(store, base_url=BASE_URL, transport=fake_vault.transport)
    yield c
    await c.close()


@pytest.fixture
def monitor(client, store) -> StatusMonitor:
    return StatusMonitor(client, store, interval=0.05)


@pytest.fixture
def controller(client, store, monitor) -> AccessController:
    return AccessController(client, store, monitor)


@pytest.fixture
def catalog(client) -> SecretsCatalog:
    return SecretsCatalog(client)


@pytest.fixture
def logged_in(store, ready_vault) -> CredentialStore:
    """Credential store holding the ready vault's root token."""
    store.set(ready_vault.root_token)
    return store
