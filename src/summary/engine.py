# src/summary/engine.py - v2
"""Summary engine: synthesize one answer from the successful responses.

Runs only on explicit request and only when at least two providers
succeeded. The synthesis always goes to one designated provider (Claude),
whatever was dispatched, using that provider's own credential. Failures
land on the summary status alone; provider records are never touched.
Calling summarize() again after a failure rebuilds the prompt from the
then-current successful records.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from polyglot.core.errors import MissingCredentialError, ProviderError
from polyglot.core.models import ConversationSummary, ProviderId, ResponseRecord, get_provider

if TYPE_CHECKING:
    from polyglot.conversation.state import ResponseState
    from polyglot.credentials.base_credential_source import BaseCredentialSource
    from polyglot.llm.base_adapter import BaseProviderAdapter
    from polyglot.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

SUMMARIZER_PROVIDER = ProviderId.CLAUDE
SUMMARIZER_CREDENTIAL_REQUIRED = "designated summarizer credential required"

_PROMPT_PATH = Path(__file__).parent / "prompts" / "summary.txt"
_prompt_template: str | None = None


def _load_prompt() -> str:
    global _prompt_template
    if _prompt_template is None:
        _prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
    return _prompt_template


def build_summary_prompt(original_prompt: str, responses: Sequence[ResponseRecord]) -> str:
    """Embed the question and each labeled successful response."""
    blocks = []
    for index, record in enumerate(r for r in responses if r.has_content):
        blocks.append(f"{index + 1}. {record.display_name}:\n{record.content}\n")
    return _load_prompt().format(
        original_prompt=original_prompt,
        responses="\n".join(blocks),
    )


class SummaryEngine:
    """Delegate synthesis to the designated adapter.

    Args:
        adapter: Adapter of the designated summarizer provider.
        credentials: Source for the summarizer's own credential.
        call_logger: Optional call logger for tracking.
    """

    def __init__(
        self,
        adapter: BaseProviderAdapter,
        credentials: BaseCredentialSource,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._adapter = adapter
        self._credentials = credentials
        self._call_logger = call_logger

    async def summarize(self, state: ResponseState) -> ConversationSummary | None:
        """Run one summarization attempt against the current round.

        Returns:
            The round's summary after the attempt, or None when the round
            ended while the call was in flight.

        Raises:
            SummaryUnavailableError: Fewer than two successful responses (no
                network call is made), or a summary is already pending.
        """
        generation = state.generation
        snapshot = state.begin_summary(generation)
        successful = snapshot.successful_responses
        prompt = build_summary_prompt(snapshot.original_prompt, successful)

        info = get_provider(SUMMARIZER_PROVIDER)
        credential = self._credentials.get(info.credential_key)
        if not credential:
            logger.warning("Cannot summarize: no credential for %s", info.display_name)
            error = MissingCredentialError(
                info.credential_key, reason=SUMMARIZER_CREDENTIAL_REQUIRED,
            )
            state.fail_summary(generation, error.reason)
            return _current(state, generation)

        logger.info(
            "Summarizing %d responses (%s) for generation %d",
            len(successful),
            ", ".join(r.provider.name.lower() for r in successful),
            generation,
        )
        start = time.monotonic()
        try:
            result = await self._adapter.send(prompt, credential)
        except asyncio.CancelledError:
            logger.warning("Summary call cancelled for generation %d", generation)
            state.fail_summary(generation, "cancelled")
            raise
        except ProviderError as e:
            logger.warning("Summary failed: %s", e)
            self._record_failure(generation, e, start)
            state.fail_summary(generation, e.reason)
        except Exception as e:
            logger.exception("Summary raised an unexpected error")
            error = ProviderError(
                f"Unexpected error: {e!r}", reason=f"unexpected error: {type(e).__name__}",
            )
            self._record_failure(generation, error, start)
            state.fail_summary(generation, error.reason)
        else:
            if self._call_logger is not None:
                self._call_logger.record_success(
                    SUMMARIZER_PROVIDER, generation, result, purpose="summary",
                )
            if not state.complete_summary(generation, result.text):
                logger.info("Dropping summary for ended generation %d", generation)

        return _current(state, generation)

    def _record_failure(self, generation: int, error: ProviderError, start: float) -> None:
        if self._call_logger is not None:
            self._call_logger.record_failure(
                SUMMARIZER_PROVIDER, generation, error,
                latency_ms=int((time.monotonic() - start) * 1000),
                purpose="summary",
            )


def _current(state: ResponseState, generation: int) -> ConversationSummary | None:
    if state.generation != generation:
        return None
    return state.summary
