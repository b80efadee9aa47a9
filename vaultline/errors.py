"""Error taxonomy shared by the client, controller and catalog."""

from __future__ import annotations

from collections.abc import Iterable

# The server reports a rejected token through the error body, often with a 500.
TOKEN_REJECTED_MESSAGES = ("invalid token", "token expired")


class VaultlineError(Exception):
    pass


class TransportError(VaultlineError):
    """The vault could not be reached (connection refused, timeout, DNS...)."""


class RemoteError(VaultlineError):
    """The vault answered with a non-2xx status or an unreadable body."""

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f"HTTP {status_code}: {message}")

    @property
    def is_auth_failure(self) -> bool:
        if self.status_code in (401, 403):
            return True
        return self.status_code is not None and self.message in TOKEN_REJECTED_MESSAGES

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ValidationError(VaultlineError):
    """Input rejected locally, before anything is sent to the vault."""


class StaleCredentialError(VaultlineError):
    """The held token was rejected by the vault during a probe."""


class PhaseError(VaultlineError):
    """Operation not permitted in the current access phase."""

    def __init__(self, phase: str, allowed: Iterable[str]) -> None:
        self.phase = phase
        self.allowed = tuple(allowed)
        super().__init__(
            f"not permitted while vault is {phase} (requires {' or '.join(self.allowed)})"
        )


class CatalogRefreshError(VaultlineError):
    """A mutation committed remotely but the follow-up refresh failed.

    The local catalog is stale; the write/delete itself must not be retried.
    """

    def __init__(self, operation: str, path: str, cause: Exception) -> None:
        self.operation = operation
        self.path = path
        self.cause = cause
        super().__init__(f"{operation} of {path!r} committed but refresh failed: {cause}")
