# src/conversation/session.py - v2
"""Conversation session: the service object callers hold.

Owns the adapters (and through them one HTTP client), the credential
source, the response state, the dispatcher and the summary engine.
Presentation layers call submit()/summarize()/end() and read snapshots.

Usage:
    session = ConversationSession.from_settings(load_settings())
    await session.submit("Explain TCP handshakes")
    if session.state.can_summarize:
        await session.summarize()
    await session.aclose()
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Iterable, Mapping

from polyglot.core.models import (
    PROVIDERS,
    ConversationSummary,
    ProviderId,
    ResponseRecord,
    get_provider,
)
from polyglot.conversation.state import ResponseState
from polyglot.dispatch.dispatcher import Dispatcher
from polyglot.logging.context import round_context
from polyglot.summary.engine import SUMMARIZER_PROVIDER, SummaryEngine

if TYPE_CHECKING:
    import httpx

    from polyglot.config.settings import Settings
    from polyglot.credentials.base_credential_source import BaseCredentialSource
    from polyglot.llm.base_adapter import BaseProviderAdapter
    from polyglot.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


class ConversationSession:
    """Round lifecycle over a shared ResponseState.

    Args:
        adapters: Adapter per provider id.
        credentials: Secret store consulted at dispatch and summary time.
        settings: Optional settings (default provider selection).
        call_logger: Optional call logger shared by dispatch and summary.
        summary_engine: Override the engine (defaults to the designated
            summarizer's adapter from ``adapters``).
        http_client: Client shared by the adapters; closed by aclose().
    """

    def __init__(
        self,
        adapters: Mapping[ProviderId, BaseProviderAdapter],
        credentials: BaseCredentialSource,
        settings: Settings | None = None,
        call_logger: CallLogger | None = None,
        summary_engine: SummaryEngine | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._adapters = dict(adapters)
        self._credentials = credentials
        self._settings = settings
        self._call_logger = call_logger
        self._dispatcher = Dispatcher(self._adapters, call_logger=call_logger)
        self._state = ResponseState()
        self._summary_engine = summary_engine
        self._http_client = http_client
        self._prompt: str | None = None
        self.conversation_id = uuid.uuid4().hex[:12]

    @classmethod
    def from_settings(cls, settings: Settings) -> ConversationSession:
        """Wire adapters, credentials and call logger from Settings."""
        from polyglot.credentials.json_store import JsonFileCredentialSource
        from polyglot.credentials.memory_store import InMemoryCredentialSource
        from polyglot.llm.adapter_factory import create_adapters
        from polyglot.llm.http import create_http_client
        from polyglot.tracking.call_logger import CallLogger

        credentials: BaseCredentialSource
        if settings.credentials_file is not None:
            credentials = JsonFileCredentialSource(settings.credentials_file)
        else:
            credentials = InMemoryCredentialSource.from_settings(settings)

        http_client = create_http_client(settings.request_timeout_s)
        return cls(
            adapters=create_adapters(settings=settings, http_client=http_client),
            credentials=credentials,
            settings=settings,
            call_logger=CallLogger(),
            http_client=http_client,
        )

    # --- Accessors ---

    @property
    def state(self) -> ResponseState:
        return self._state

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def credentials(self) -> BaseCredentialSource:
        return self._credentials

    @property
    def call_logger(self) -> CallLogger | None:
        return self._call_logger

    def default_selection(self) -> list[ProviderId]:
        """Providers selected when the caller does not choose."""
        if self._settings is not None:
            return [get_provider(p).id for p in self._settings.default_providers_list]
        return list(PROVIDERS)

    # --- Rounds ---

    def start_round(
        self,
        prompt: str,
        selected: Iterable[ProviderId | str] | None = None,
        is_follow_up: bool = False,
    ) -> int:
        """Reset state for a new prompt and return its generation.

        Raises:
            ValueError: Blank prompt or no provider selected.
        """
        if not prompt.strip():
            raise ValueError("Prompt must not be empty")
        if selected is None:
            selected = self.default_selection()
        providers = [get_provider(p).id for p in selected]
        if not providers:
            raise ValueError("Select at least one provider")

        generation = self._state.begin_round(
            prompt, providers, self._credentials, is_follow_up=is_follow_up,
        )
        self._prompt = prompt
        return generation

    async def run_round(self, generation: int | None = None) -> dict[ProviderId, ResponseRecord]:
        """Dispatch the current round's prompt and apply every event.

        Only providers still ``pending`` are dispatched; a provider that had
        no credential at round start is not called even if a key was stored
        since. Stops consuming as soon as the round is superseded; the
        remaining in-flight calls finish in the background and are discarded.

        Raises:
            RuntimeError: No round started, or ``generation`` is not the
                current round.
        """
        if self._prompt is None:
            raise RuntimeError("start_round() must be called before run_round()")
        current = self._state.generation
        if generation is None:
            generation = current
        elif generation != current:
            raise RuntimeError(f"Round {generation} is no longer current (now {current})")
        prompt = self._prompt
        selected = self._state.pending_providers(generation)

        with round_context(self.conversation_id, generation):
            events = self._dispatcher.dispatch_all(
                prompt, selected, self._credentials, generation=generation,
            )
            try:
                async for event in events:
                    self._state.apply_event(event)
                    if self._state.generation != generation:
                        logger.info("Round %d superseded, detaching", generation)
                        break
            finally:
                await events.aclose()

        return self._state.records

    async def submit(
        self, prompt: str, selected: Iterable[ProviderId | str] | None = None,
    ) -> dict[ProviderId, ResponseRecord]:
        """Start a round and wait for every selected provider to settle."""
        generation = self.start_round(prompt, selected)
        return await self.run_round(generation)

    async def submit_follow_up(
        self, question: str, selected: Iterable[ProviderId | str] | None = None,
    ) -> dict[ProviderId, ResponseRecord]:
        """One follow-up round carrying the previous summary as context.

        Without a ready summary the previous prompt alone is used as context.
        """
        summary = self._state.summary
        if summary is None:
            raise RuntimeError("No previous round to follow up on")

        context = summary.context_for_follow_up
        if not summary.is_ready:
            context += "\n\n"
        prompt = context + question

        generation = self.start_round(prompt, selected, is_follow_up=True)
        return await self.run_round(generation)

    async def summarize(self) -> ConversationSummary | None:
        """Synthesize the current round via the designated summarizer.

        Raises:
            SummaryUnavailableError: Fewer than two successful responses.
        """
        with round_context(self.conversation_id, self._state.generation):
            return await self._engine().summarize(self._state)

    def end(self) -> None:
        """End the chat: drop records and summary, invalidate in-flight calls."""
        self._state.end_round()
        self._prompt = None

    def snapshot(self) -> tuple[dict[ProviderId, ResponseRecord], ConversationSummary | None]:
        """Copies of the current records and summary."""
        return self._state.records, self._state.summary

    async def aclose(self) -> None:
        """Close the shared HTTP client and adapter-owned clients, then flush the call log."""
        from polyglot.llm.base_adapter import BaseProviderAdapter

        if self._http_client is not None:
            await self._http_client.aclose()
        for adapter in self._adapters.values():
            if isinstance(adapter, BaseProviderAdapter):
                await adapter.aclose()
        if (
            self._call_logger is not None
            and self._settings is not None
            and self._settings.call_log_path is not None
        ):
            self._call_logger.save(self._settings.call_log_path)

    # --- Internal helpers ---

    def _engine(self) -> SummaryEngine:
        if self._summary_engine is None:
            adapter = self._adapters.get(SUMMARIZER_PROVIDER)
            if adapter is None:
                from polyglot.llm.adapter_factory import create_adapter

                adapter = create_adapter(
                    SUMMARIZER_PROVIDER, http_client=self._http_client, settings=self._settings,
                )
                self._adapters[SUMMARIZER_PROVIDER] = adapter
            self._summary_engine = SummaryEngine(
                adapter, self._credentials, call_logger=self._call_logger,
            )
        return self._summary_engine
