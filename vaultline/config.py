"""
Centralized configuration for vaultline.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from vaultline.config import get_config
    cfg = get_config()
    print(cfg.vault_addr)        # "http://127.0.0.1:8200" or $VAULT_ADDR
    print(cfg.token_file)        # ~/.config/vaultline/token
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_VAULT_ADDR = "http://127.0.0.1:8200"


def _default_token_file() -> Path:
    return Path.home() / ".config" / "vaultline" / "token"


@dataclass(frozen=True)
class Config:
    """Top-level vaultline configuration."""

    # Remote vault
    vault_addr: str = DEFAULT_VAULT_ADDR
    request_timeout: float = 10.0

    # Local credential persistence
    token_file: Path = field(default_factory=_default_token_file)
    env_token: str = ""  # VAULT_TOKEN, seeds an empty store

    # Status polling (seconds)
    status_interval: float = 10.0

    # Token creation
    token_ttl: str = "24h"

    log_level: str = "WARNING"

    @property
    def base_url(self) -> str:
        return self.vault_addr.rstrip("/")


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    token_file = os.environ.get("VAULTLINE_TOKEN_FILE")

    return Config(
        vault_addr=os.environ.get("VAULT_ADDR", DEFAULT_VAULT_ADDR),
        request_timeout=float(os.environ.get("VAULTLINE_TIMEOUT", "10")),
        token_file=Path(token_file).expanduser() if token_file else _default_token_file(),
        env_token=os.environ.get("VAULT_TOKEN", ""),
        status_interval=float(os.environ.get("VAULTLINE_STATUS_INTERVAL", "10")),
        token_ttl=os.environ.get("VAULTLINE_TOKEN_TTL", "24h"),
        log_level=os.environ.get("VAULTLINE_LOG_LEVEL", "WARNING").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
