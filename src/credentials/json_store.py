# src/credentials/json_store.py - v1
"""JSON file credential source.

Secrets live in one JSON object on disk, readable by the owner only. The
file is loaded once; every write replaces it atomically.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from polyglot.credentials.base_credential_source import BaseCredentialSource

logger = logging.getLogger(__name__)

_FILE_MODE = 0o600


class JsonFileCredentialSource(BaseCredentialSource):
    """File-backed store with owner-only permissions."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._secrets = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, provider_key: str) -> str | None:
        with self._lock:
            return self._secrets.get(provider_key)

    def set(self, provider_key: str, value: str) -> bool:
        if not value:
            return False
        with self._lock:
            updated = {**self._secrets, provider_key: value}
            if not self._write(updated):
                return False
            self._secrets = updated
        return True

    def delete(self, provider_key: str) -> bool:
        with self._lock:
            if provider_key not in self._secrets:
                return False
            updated = {k: v for k, v in self._secrets.items() if k != provider_key}
            if not self._write(updated):
                return False
            self._secrets = updated
        return True

    # --- Internal helpers ---

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read credentials file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring credentials file %s: not a JSON object", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items() if v}

    def _write(self, secrets: dict[str, str]) -> bool:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(secrets, f, indent=2)
            os.replace(tmp, self._path)
        except OSError as e:
            logger.error("Failed to write credentials file %s: %s", self._path, e)
            return False
        return True
