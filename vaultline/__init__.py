"""
vaultline — client for a sealed/unsealed secrets vault.

The access-state core lives in:
    vaultline.credentials   CredentialStore (durable token)
    vaultline.client        VaultClient (HTTP API wrapper)
    vaultline.monitor       StatusMonitor (periodic status polling)
    vaultline.access        derive_phase / AccessController
    vaultline.catalog       SecretsCatalog (cached secret listing)
"""

from __future__ import annotations

__version__ = "0.1.0"
