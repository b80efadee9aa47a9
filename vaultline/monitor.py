"""
Status Monitor — keeps the latest vault status snapshot.

Polls GET /v1/sys/status on a fixed interval via an APScheduler job and on
demand via refresh(). Every refresh takes a sequence number when issued; a
response that lands after a newer one has been applied is dropped, so an
overlapping manual + periodic refresh can never roll the snapshot backwards.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vaultline.errors import VaultlineError
from vaultline.models import VaultStatus

if TYPE_CHECKING:
    from vaultline.client import VaultClient
    from vaultline.credentials import CredentialStore

logger = logging.getLogger(__name__)

JOB_ID = "vault-status"

SnapshotListener = Callable[["StatusSnapshot"], None]


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable view of the last applied status fetch.

    `status` is None until the first successful fetch. A failed fetch keeps
    the previous status and only flips `unreachable`.
    """

    status: VaultStatus | None = None
    credential_present: bool = False
    unreachable: bool = False
    error: str | None = None
    fetched_at: datetime | None = None
    sequence: int = 0


class StatusMonitor:
    """Owns the status snapshot and the periodic polling job."""

    def __init__(
        self,
        client: VaultClient,
        store: CredentialStore,
        interval: float = 10.0,
    ) -> None:
        self.client = client
        self.store = store
        self.interval = interval
        self._snapshot = StatusSnapshot()
        self._issued = 0
        self._applied = 0
        self._listeners: list[SnapshotListener] = []
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    @property
    def status(self) -> VaultStatus | None:
        return self._snapshot.status

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def refresh(self) -> StatusSnapshot:
        """Fetch status now. Raises the fetch error after recording it."""
        self._issued += 1
        seq = self._issued
        try:
            status = await self.client.get_status()
        except VaultlineError as e:
            self._apply(
                seq,
                lambda prev: replace(
                    prev,
                    credential_present=self.store.present,
                    unreachable=True,
                    error=str(e),
                    sequence=seq,
                ),
            )
            raise
        self._apply(
            seq,
            lambda prev: StatusSnapshot(
                status=status,
                credential_present=self.store.present,
                fetched_at=datetime.now(UTC),
                sequence=seq,
            ),
        )
        return self._snapshot

    def _apply(self, seq: int, build: Callable[[StatusSnapshot], StatusSnapshot]) -> None:
        if seq < self._applied:
            logger.debug("Dropping stale status response #%d (applied #%d)", seq, self._applied)
            return
        self._applied = seq
        self._snapshot = build(self._snapshot)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Status listener %r failed", listener)

    # ── Periodic polling ────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self) -> None:
        """Start polling every `interval` seconds. Idempotent."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(seconds=self.interval),
            id=JOB_ID,
            name="vault status poll",
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Status polling started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the polling job. In-flight requests are left to land."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Status polling stopped")
        self._scheduler = None

    async def _poll(self) -> None:
        try:
            await self.refresh()
        except VaultlineError as e:
            logger.warning("Background status refresh failed: %s", e)
