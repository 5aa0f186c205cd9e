# src/credentials/base_credential_source.py - v1
"""Abstract credential source interface.

Keys are stable provider credential keys (ProviderId values); values are
opaque secrets. Lookups are synchronous and must be safe under concurrent
reads, since every provider task checks its key at dispatch time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCredentialSource(ABC):
    """Unified interface for secret stores."""

    @abstractmethod
    def get(self, provider_key: str) -> str | None:
        """Return the secret, or None when absent."""

    @abstractmethod
    def set(self, provider_key: str, value: str) -> bool:
        """Store (or replace) a secret. Returns True on success."""

    @abstractmethod
    def delete(self, provider_key: str) -> bool:
        """Remove a secret. Returns True if something was removed."""

    def exists(self, provider_key: str) -> bool:
        """Whether a non-empty secret is stored."""
        return bool(self.get(provider_key))


def mask_secret(secret: str, head: int = 10, tail: int = 4) -> str:
    """Loggable preview of a secret, e.g. 'sk-proj-ab...9xYz'."""
    if len(secret) <= head + tail:
        return "*" * len(secret)
    return f"{secret[:head]}...{secret[-tail:]}"
