"""
Access Controller — derives the access phase and sequences vault operations.

The phase is never stored. It is recomputed from the monitor's latest status
snapshot and whether the credential store holds a token:

    status unknown / not initialized  -> UNINITIALIZED
    sealed                            -> SEALED
    no token                          -> UNAUTHENTICATED
    otherwise                         -> AUTHENTICATED

Every state-changing operation ends with an authoritative status re-fetch;
the phase moves because the server says so, not because a call returned 200.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vaultline.errors import (
    PhaseError,
    RemoteError,
    StaleCredentialError,
    ValidationError,
    VaultlineError,
)
from vaultline.models import AccessPhase, InitResult, VaultStatus

if TYPE_CHECKING:
    from vaultline.client import VaultClient
    from vaultline.credentials import CredentialStore
    from vaultline.monitor import StatusMonitor

logger = logging.getLogger(__name__)


def derive_phase(status: VaultStatus | None, credential_present: bool) -> AccessPhase:
    """Map (status, credential presence) to exactly one phase. First rule wins."""
    if status is None or not status.initialized:
        return AccessPhase.UNINITIALIZED
    if status.sealed:
        return AccessPhase.SEALED
    if not credential_present:
        return AccessPhase.UNAUTHENTICATED
    return AccessPhase.AUTHENTICATED


class AccessController:
    """Gates vault operations on the current phase and drives transitions."""

    def __init__(
        self,
        client: VaultClient,
        store: CredentialStore,
        monitor: StatusMonitor,
    ) -> None:
        self.client = client
        self.store = store
        self.monitor = monitor

    @property
    def phase(self) -> AccessPhase:
        return derive_phase(self.monitor.status, self.store.present)

    def require(self, *allowed: AccessPhase) -> AccessPhase:
        """Raise PhaseError unless the current phase is one of `allowed`."""
        phase = self.phase
        if phase not in allowed:
            raise PhaseError(phase.value, [p.value for p in allowed])
        return phase

    async def refresh(self) -> AccessPhase:
        """Re-fetch status and return the resulting phase.

        A fetch failure keeps the last good snapshot, so the phase is not
        demoted on a transient network error; the error still propagates.
        """
        await self.monitor.refresh()
        return self.phase

    # ── Transitions ─────────────────────────────────────────────────

    async def initialize(self) -> InitResult:
        """Initialize the vault and adopt the returned root token."""
        self.require(AccessPhase.UNINITIALIZED)
        result = await self.client.initialize()
        self.store.set(result.root_token)
        logger.info("Vault initialized; root token stored")
        await self.refresh()
        return result

    async def unseal(self, key: str) -> AccessPhase:
        """Submit the unseal key, then re-derive the phase from a fresh status."""
        self.require(AccessPhase.SEALED)
        if not key or not key.strip():
            raise ValidationError("unseal key is required")
        still_sealed = await self.client.unseal(key.strip())
        if still_sealed:
            logger.warning("Unseal accepted but vault still reports sealed")
        phase = await self.refresh()
        logger.info("Unseal complete; phase is now %s", phase)
        return phase

    async def seal(self) -> AccessPhase:
        self.require(AccessPhase.AUTHENTICATED)
        await self.client.seal()
        return await self.refresh()

    async def login(self, token: str) -> AccessPhase:
        """Adopt a user-supplied token once the vault accepts it.

        The token is stored first (requests read it from the store), then
        probed. Any probe failure puts back whatever token was held before
        the call, or clears the store if there was none.
        """
        self.require(AccessPhase.UNAUTHENTICATED, AccessPhase.AUTHENTICATED)
        if not token or not token.strip():
            raise ValidationError("token is required")
        previous = self.store.get()
        self.store.set(token.strip())
        try:
            await self._probe()
        except RemoteError as e:
            self._restore(previous)
            if e.is_auth_failure:
                raise StaleCredentialError(f"token rejected: {e.message}") from e
            raise
        except VaultlineError:
            self._restore(previous)
            raise
        logger.info("Login succeeded")
        return self.phase

    def logout(self) -> AccessPhase:
        self.store.clear()
        logger.info("Logged out")
        return self.phase

    async def revalidate(self) -> AccessPhase:
        """Check the held token is still accepted; drop it when it is not."""
        self.require(AccessPhase.AUTHENTICATED)
        try:
            await self._probe()
        except RemoteError as e:
            if not e.is_auth_failure:
                raise
            self.store.clear()
            raise StaleCredentialError(f"token no longer accepted: {e.message}") from e
        return self.phase

    async def create_token(self, ttl: str = "24h") -> str:
        """Mint a new token. It is returned, not adopted."""
        self.require(AccessPhase.AUTHENTICATED)
        if not ttl or not ttl.strip():
            raise ValidationError("ttl is required")
        return await self.client.create_token(ttl.strip())

    def _restore(self, previous: str | None) -> None:
        if previous:
            self.store.set(previous)
            logger.info("Login rejected; previous token kept")
        else:
            self.store.clear()

    async def _probe(self) -> None:
        # status does not check the token; a listing does once unsealed
        await self.monitor.refresh()
        status = self.monitor.status
        if status is not None and status.initialized and not status.sealed:
            await self.client.list_secrets()
