# src/dispatch/dispatcher.py - v1
"""Concurrent fan-out of one prompt to several providers.

For each selected provider the credential is checked synchronously; missing
credentials are reported immediately without touching the adapter. Every
credentialed provider gets its own asyncio task, and outcomes are yielded
in completion order, one event per provider. A slow or failing provider
never delays or fails another's event, and nothing is raised at the
fan-out level: every failure becomes that provider's event.

Tasks outlive the consumer. If the caller stops iterating (new round,
chat ended) in-flight calls still run to completion; their events simply
have nowhere to go, and ResponseState drops late ones by generation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Iterable, Mapping

from polyglot.core.errors import MissingCredentialError, ProviderError
from polyglot.core.models import ProviderId, Status, get_provider
from polyglot.logging.context import set_provider_context
from polyglot.llm.models import NormalizedResult

if TYPE_CHECKING:
    from polyglot.credentials.base_credential_source import BaseCredentialSource
    from polyglot.llm.base_adapter import BaseProviderAdapter
    from polyglot.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchEvent:
    """Outcome of one provider call, tagged with the round it belongs to."""

    provider: ProviderId
    generation: int
    result: NormalizedResult | None = None
    error: ProviderError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("DispatchEvent needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def no_credential(self) -> bool:
        return isinstance(self.error, MissingCredentialError)

    def to_status(self) -> Status:
        """Terminal status this event moves the provider's record to."""
        if self.result is not None:
            return Status.success()
        if self.no_credential:
            return Status.no_credential()
        assert self.error is not None
        return Status.failed(self.error.reason)


class Dispatcher:
    """Pure fan-out/fan-in over independent adapter calls.

    Args:
        adapters: Adapter per provider id.
        call_logger: Optional call logger for tracking.
    """

    def __init__(
        self,
        adapters: Mapping[ProviderId, BaseProviderAdapter],
        call_logger: CallLogger | None = None,
    ) -> None:
        self._adapters = dict(adapters)
        self._call_logger = call_logger
        self._inflight: set[asyncio.Task[DispatchEvent]] = set()

    @property
    def inflight_count(self) -> int:
        """Adapter calls started and not yet finished (any generation)."""
        return len(self._inflight)

    async def dispatch_all(
        self,
        prompt: str,
        selected: Iterable[ProviderId | str],
        credentials: BaseCredentialSource,
        generation: int = 0,
    ) -> AsyncIterator[DispatchEvent]:
        """Send ``prompt`` to every selected provider concurrently.

        Yields:
            One DispatchEvent per selected provider: missing-credential
            events first, then call outcomes in completion order.
        """
        missing: list[DispatchEvent] = []
        tasks: list[asyncio.Task[DispatchEvent]] = []

        for provider in _unique(selected):
            info = get_provider(provider)
            credential = credentials.get(info.credential_key)
            if not credential:
                logger.info("Skipping %s: no credential", info.display_name)
                missing.append(
                    DispatchEvent(
                        provider=info.id,
                        generation=generation,
                        error=MissingCredentialError(info.credential_key),
                    )
                )
                continue
            tasks.append(self._start(info.id, prompt, credential, generation))

        logger.info(
            "Dispatching generation %d to %d provider(s), %d without credential",
            generation, len(tasks), len(missing),
        )

        for event in missing:
            yield event

        for next_done in asyncio.as_completed(tasks):
            yield await next_done

    def _start(
        self, provider: ProviderId, prompt: str, credential: str, generation: int,
    ) -> asyncio.Task[DispatchEvent]:
        task = asyncio.create_task(
            self._invoke(provider, prompt, credential, generation),
            name=f"dispatch-{provider.name.lower()}-{generation}",
        )
        # Keep a strong reference until done so abandoned tasks are not collected
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _invoke(
        self, provider: ProviderId, prompt: str, credential: str, generation: int,
    ) -> DispatchEvent:
        set_provider_context(provider.value)
        start = time.monotonic()

        adapter = self._adapters.get(provider)
        if adapter is None:
            error = ProviderError(
                f"No adapter configured for {provider.value}",
                reason="provider not available",
            )
            return self._failed(provider, generation, error, start)

        try:
            result = await adapter.send(prompt, credential)
        except ProviderError as e:
            logger.warning("%s failed: %s", provider.value, e)
            return self._failed(provider, generation, e, start)
        except Exception as e:
            logger.exception("%s raised an unexpected error", provider.value)
            error = ProviderError(
                f"Unexpected error: {e!r}",
                reason=f"unexpected error: {type(e).__name__}",
            )
            return self._failed(provider, generation, error, start)

        logger.info(
            "%s succeeded in %dms (%d chars)",
            provider.value, int((time.monotonic() - start) * 1000), len(result.text),
        )
        if self._call_logger is not None:
            self._call_logger.record_success(provider, generation, result)
        return DispatchEvent(provider=provider, generation=generation, result=result)

    def _failed(
        self, provider: ProviderId, generation: int, error: ProviderError, start: float,
    ) -> DispatchEvent:
        if self._call_logger is not None:
            self._call_logger.record_failure(
                provider, generation, error,
                latency_ms=int((time.monotonic() - start) * 1000),
            )
        return DispatchEvent(provider=provider, generation=generation, error=error)


def _unique(selected: Iterable[ProviderId | str]) -> list[ProviderId]:
    seen: set[ProviderId] = set()
    ordered: list[ProviderId] = []
    for provider in selected:
        pid = get_provider(provider).id
        if pid not in seen:
            seen.add(pid)
            ordered.append(pid)
    return ordered
