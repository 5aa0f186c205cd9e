# src/llm/adapter_factory.py - v3
"""Factory: instantiate provider adapters from provider ids.

Adapters for one session share a single httpx.AsyncClient so the service
object owns exactly one network client and its timeouts.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Iterable

from polyglot.core.models import ProviderId, get_provider
from polyglot.llm.base_adapter import BaseProviderAdapter
from polyglot.llm.http import create_http_client

if TYPE_CHECKING:
    import httpx

    from polyglot.config.settings import Settings

logger = logging.getLogger(__name__)

# Registry of provider id -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[ProviderId, str] = {
    ProviderId.OPENAI: "polyglot.llm.adapters.openai_adapter.OpenAIAdapter",
    ProviderId.CLAUDE: "polyglot.llm.adapters.anthropic_adapter.AnthropicAdapter",
    ProviderId.GEMINI: "polyglot.llm.adapters.gemini_adapter.GeminiAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider has no registered adapter."""


def create_adapter(
    provider: ProviderId | str,
    http_client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> BaseProviderAdapter:
    """Instantiate the adapter for one provider.

    Args:
        provider: Provider id, credential key or short name.
        http_client: Shared client. The adapter creates its own if None.
        settings: Application settings (for timeouts).

    Raises:
        UnsupportedProviderError: If no adapter is registered.
    """
    try:
        provider_id = get_provider(provider).id
    except KeyError as e:
        raise UnsupportedProviderError(str(e)) from e

    if provider_id not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"No adapter registered for {provider_id.value!r}. "
            f"Available: {', '.join(sorted(p.value for p in _PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider_id])

    init_kwargs: dict[str, object] = {"http_client": http_client}
    if settings is not None:
        init_kwargs["request_timeout_s"] = settings.request_timeout_s
        init_kwargs["resource_timeout_s"] = settings.resource_timeout_s

    logger.debug("Creating adapter: provider=%s", provider_id.value)
    return adapter_cls(**init_kwargs)


def create_adapters(
    providers: Iterable[ProviderId | str] | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[ProviderId, BaseProviderAdapter]:
    """Instantiate adapters sharing one HTTP client.

    Args:
        providers: Providers to build. Defaults to every registered one.
        settings: Application settings (for timeouts).
        http_client: Shared client; built from settings when None.
    """
    if http_client is None:
        http_client = (
            create_http_client(settings.request_timeout_s)
            if settings is not None
            else create_http_client()
        )

    ids = list(_PROVIDER_REGISTRY) if providers is None else providers
    adapters: dict[ProviderId, BaseProviderAdapter] = {}
    for provider in ids:
        adapter = create_adapter(provider, http_client=http_client, settings=settings)
        adapters[adapter.provider_id] = adapter
    return adapters


def register_provider(provider: ProviderId, class_path: str) -> None:
    """Register (or replace) the adapter class for a provider.

    Args:
        provider: Provider id.
        class_path: Fully qualified class path implementing BaseProviderAdapter.
    """
    _PROVIDER_REGISTRY[provider] = class_path
    logger.info("Registered provider adapter: %s -> %s", provider.value, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
