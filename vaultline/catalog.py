"""
Secrets Catalog — client-side cache of secret paths and the selected secret.

Mutations (write/remove) are followed by a refresh so the cache reflects the
server. If the mutation succeeds but the refresh does not, the mutation is
still committed; CatalogRefreshError reports that separately from a failed
write or delete.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from vaultline.errors import CatalogRefreshError, ValidationError, VaultlineError
from vaultline.models import SecretEntry

if TYPE_CHECKING:
    from vaultline.client import VaultClient

logger = logging.getLogger(__name__)


def validate_secret(path: str, data: Mapping[str, str]) -> tuple[str, dict[str, str]]:
    """Check a write locally. Returns the normalized (path, data)."""
    path = (path or "").strip()
    if not path:
        raise ValidationError("secret path is required")
    if not isinstance(data, Mapping) or not data:
        raise ValidationError("at least one key/value pair is required")
    clean: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("secret keys must be non-empty strings")
        if not isinstance(value, str):
            raise ValidationError(f"value for {key!r} must be a string")
        clean[key] = value
    return path, clean


class SecretsCatalog:
    """Ordered path listing plus at most one selected entry.

    Callers gate on AccessPhase.AUTHENTICATED before using this.
    """

    def __init__(self, client: VaultClient) -> None:
        self.client = client
        self._paths: tuple[str, ...] = ()
        self._selected: SecretEntry | None = None
        self.prefix = ""

    @property
    def paths(self) -> tuple[str, ...]:
        return self._paths

    @property
    def selected(self) -> SecretEntry | None:
        return self._selected

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    async def list(self, prefix: str | None = None) -> tuple[str, ...]:
        """Replace the path set with the server's listing (server order)."""
        if prefix is not None:
            self.prefix = prefix
        paths = tuple(await self.client.list_secrets(self.prefix))
        self._paths = paths
        if self._selected is not None and self._selected.path not in paths:
            self._selected = None
        return paths

    async def select(self, path: str) -> SecretEntry:
        """Read a secret and make it the selected entry.

        The read confirms the path exists, so it joins `paths` if the last
        listing did not include it.
        """
        entry = await self.client.read_secret(path)
        if entry.path not in self._paths:
            self._paths = (*self._paths, entry.path)
        self._selected = entry
        return entry

    def deselect(self) -> None:
        self._selected = None

    async def write(self, path: str, data: Mapping[str, str]) -> SecretEntry:
        """Create or overwrite a secret, then re-read it from the server."""
        path, clean = validate_secret(path, data)
        await self.client.write_secret(path, clean)
        logger.info("Wrote secret %s (%d keys)", path, len(clean))
        if not path.startswith(self.prefix):
            self.prefix = ""
        try:
            await self.list()
            return await self.select(path)
        except VaultlineError as e:
            raise CatalogRefreshError("write", path, e) from e

    async def remove(self, path: str) -> None:
        """Delete a secret and refresh the listing."""
        path = (path or "").strip()
        if not path:
            raise ValidationError("secret path is required")
        await self.client.delete_secret(path)
        logger.info("Deleted secret %s", path)
        if self._selected is not None and self._selected.path == path:
            self._selected = None
        try:
            await self.list()
        except VaultlineError as e:
            raise CatalogRefreshError("delete", path, e) from e

    def clear(self) -> None:
        """Forget everything cached (e.g. on logout or seal)."""
        self._paths = ()
        self._selected = None
