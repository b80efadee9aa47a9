"""
Root-level shared test fixtures.

Inherited by every test suite that runs from the repo root.
"""

from __future__ import annotations

import pytest

from vaultline.config import reset_config


@pytest.fixture
def clean_env(monkeypatch):
    """Remove vault env vars that leak in from the developer's shell."""
    for key in [
        "VAULT_ADDR",
        "VAULT_TOKEN",
        "VAULTLINE_TOKEN_FILE",
        "VAULTLINE_TIMEOUT",
        "VAULTLINE_STATUS_INTERVAL",
        "VAULTLINE_TOKEN_TTL",
        "VAULTLINE_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
