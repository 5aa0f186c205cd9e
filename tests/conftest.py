# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides credential sources, normalized results and mock adapters.
No network access: adapters are AsyncMocks or run over httpx.MockTransport.
"""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock

import pytest

from polyglot.core.models import PROVIDERS, ProviderId
from polyglot.credentials.memory_store import InMemoryCredentialSource
from polyglot.llm.models import NormalizedResult
from polyglot.logging.context import clear_context


# === FIXTURES: Credentials ===


@pytest.fixture
def all_credentials() -> InMemoryCredentialSource:
    """A credential for every known provider."""
    return InMemoryCredentialSource(
        {info.credential_key: f"test-key-{info.short_name}-0123456789" for info in PROVIDERS.values()}
    )


@pytest.fixture
def no_credentials() -> InMemoryCredentialSource:
    return InMemoryCredentialSource()


# === FIXTURES: Results and adapters ===


@pytest.fixture
def make_result() -> Callable[..., NormalizedResult]:
    """Factory for NormalizedResult with sensible defaults."""

    def _make(text: str = "An answer.", **kwargs: object) -> NormalizedResult:
        defaults: dict[str, object] = {
            "model": "test-model",
            "input_tokens": 10,
            "output_tokens": 20,
            "finish_reason": "stop",
        }
        defaults.update(kwargs)
        return NormalizedResult(text=text, **defaults)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def mock_adapters(make_result) -> dict[ProviderId, AsyncMock]:
    """One AsyncMock adapter per provider, each answering with its own name."""
    adapters: dict[ProviderId, AsyncMock] = {}
    for provider_id, info in PROVIDERS.items():
        adapter = AsyncMock()
        adapter.provider_id = provider_id
        adapter.send = AsyncMock(return_value=make_result(f"{info.short_name} answer"))
        adapters[provider_id] = adapter
    return adapters


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()
