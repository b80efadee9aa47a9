"""
Credential store — durable holder of the current vault access token.

The token lives in a single file (chmod 600) so it survives process restarts.
Writes go through a temp file + os.replace, so a reader sees either the old
token or the new one, never a partial write.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class CredentialStore:
    """File-backed token storage with an explicit set/get/clear lifecycle."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get(self) -> str | None:
        """Return the stored token, or None when absent."""
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        """Persist a token, overwriting any previous one."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".token-", dir=self.path.parent)
        try:
            os.fchmod(fd, stat.S_IRUSR | stat.S_IWUSR)  # 600
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Credential stored at %s", self.path)

    def clear(self) -> None:
        """Remove the stored token. No-op when nothing is stored."""
        self.path.unlink(missing_ok=True)
        logger.debug("Credential cleared from %s", self.path)

    @property
    def present(self) -> bool:
        return self.get() is not None
