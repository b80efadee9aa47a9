"""
VaultSession — wires config, credential store, client, monitor, controller
and catalog together for one client session.

Usage:
    async with VaultSession.from_config() as session:
        if session.controller.phase is AccessPhase.AUTHENTICATED:
            await session.catalog.list()
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from vaultline.access import AccessController
from vaultline.catalog import SecretsCatalog
from vaultline.client import VaultClient
from vaultline.config import Config, get_config
from vaultline.credentials import CredentialStore
from vaultline.errors import VaultlineError
from vaultline.models import AccessPhase
from vaultline.monitor import StatusMonitor

logger = logging.getLogger(__name__)


class VaultSession:
    def __init__(
        self,
        config: Config,
        store: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.store = store or CredentialStore(config.token_file)
        self.client = VaultClient(
            self.store,
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )
        self.monitor = StatusMonitor(self.client, self.store, interval=config.status_interval)
        self.controller = AccessController(self.client, self.store, self.monitor)
        self.catalog = SecretsCatalog(self.client)

    @classmethod
    def from_config(cls, config: Config | None = None, **kwargs: Any) -> VaultSession:
        return cls(config or get_config(), **kwargs)

    @property
    def phase(self) -> AccessPhase:
        return self.controller.phase

    async def open(self, poll: bool = False) -> AccessPhase:
        """Seed the token from VAULT_TOKEN, fetch initial status, optionally start polling."""
        if self.config.env_token and not self.store.present:
            self.store.set(self.config.env_token)
            logger.info("Seeded credential from VAULT_TOKEN")
        try:
            await self.monitor.refresh()
        except VaultlineError as e:
            logger.warning("Initial status fetch failed: %s", e)
        if poll:
            await self.monitor.start()
        return self.phase

    async def close(self) -> None:
        await self.monitor.stop()
        await self.client.close()

    async def __aenter__(self) -> VaultSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
