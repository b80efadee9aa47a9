"""Vault data models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class AccessPhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    SEALED = "sealed"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class VaultStatus(BaseModel):
    """Server-reported vault state from GET /v1/sys/status."""

    initialized: bool
    sealed: bool


class InitResult(BaseModel):
    """Credentials returned once by POST /v1/sys/init."""

    root_token: str
    unseal_key: str


class SecretEntry(BaseModel):
    """A single secret as read from GET /v1/secret/{path}."""

    path: str = Field(min_length=1)
    data: dict[str, str] = {}
    version: int = Field(default=1, ge=1)

    @field_validator("data", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        # Server stores arbitrary JSON values; the client only deals in strings
        if isinstance(v, dict):
            return {str(k): val if isinstance(val, str) else str(val) for k, val in v.items()}
        return v

    @field_validator("version", mode="before")
    @classmethod
    def default_version(cls, v: Any) -> Any:
        return 1 if v is None else v
