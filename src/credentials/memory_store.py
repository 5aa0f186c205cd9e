# src/credentials/memory_store.py - v1
"""In-memory credential source, optionally seeded from Settings."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Mapping

from polyglot.core.models import PROVIDERS
from polyglot.credentials.base_credential_source import BaseCredentialSource, mask_secret

if TYPE_CHECKING:
    from polyglot.config.settings import Settings

logger = logging.getLogger(__name__)


class InMemoryCredentialSource(BaseCredentialSource):
    """Dict-backed store guarded by a lock."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._secrets: dict[str, str] = {
            k: v for k, v in (initial or {}).items() if v
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> InMemoryCredentialSource:
        """Seed with the provider keys found in Settings / environment."""
        seeded: dict[str, str] = {}
        for info in PROVIDERS.values():
            value = settings.api_key_for(info.credential_key)
            if value:
                seeded[info.credential_key] = value
                logger.info("Loaded %s: %s", info.display_name, mask_secret(value))
            else:
                logger.info("No API key configured for %s", info.display_name)
        return cls(seeded)

    def get(self, provider_key: str) -> str | None:
        with self._lock:
            return self._secrets.get(provider_key)

    def set(self, provider_key: str, value: str) -> bool:
        if not value:
            return False
        with self._lock:
            self._secrets[provider_key] = value
        return True

    def delete(self, provider_key: str) -> bool:
        with self._lock:
            return self._secrets.pop(provider_key, None) is not None
