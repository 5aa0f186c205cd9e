# src/conversation/state.py - v2
"""Per-round response state: provider -> ResponseRecord plus the summary.

All mutations go through the methods below and are serialized by one lock,
so completions arriving from concurrent provider tasks (or from threads)
never interleave. Every write is a whole-record replacement.

The generation token identifies the current round. Starting or ending a
round bumps it; events and summary results carrying an older generation
are discarded on arrival.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from polyglot.core.errors import SummaryUnavailableError
from polyglot.core.models import (
    PROVIDERS,
    ConversationSummary,
    ProviderId,
    ResponseRecord,
    Status,
    UserQuestion,
    get_provider,
)

if TYPE_CHECKING:
    from polyglot.credentials.base_credential_source import BaseCredentialSource
    from polyglot.dispatch.dispatcher import DispatchEvent

logger = logging.getLogger(__name__)


class ResponseState:
    """Records and summary of the current round, tagged with its generation."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._generation = 0
        self._records: dict[ProviderId, ResponseRecord] = {}
        self._summary: ConversationSummary | None = None
        self._question: UserQuestion | None = None

    # --- Round lifecycle ---

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin_round(
        self,
        prompt: str,
        selected: Iterable[ProviderId | str],
        credentials: BaseCredentialSource,
        is_follow_up: bool = False,
    ) -> int:
        """Clear the previous round and create this round's records.

        Selected providers start ``pending`` or ``no_credential`` (decided
        here, before any network call); the others are ``disabled``.

        Returns:
            The new generation token.
        """
        selected_ids = {get_provider(p).id for p in selected}
        records: dict[ProviderId, ResponseRecord] = {}
        for provider_id, info in PROVIDERS.items():
            if provider_id not in selected_ids:
                status = Status.disabled()
            elif credentials.exists(info.credential_key):
                status = Status.pending()
            else:
                status = Status.no_credential()
            records[provider_id] = ResponseRecord(provider=provider_id, status=status)

        with self._lock:
            self._generation += 1
            self._records = records
            self._question = UserQuestion(
                question=prompt,
                timestamp=datetime.now(timezone.utc),
                is_follow_up=is_follow_up,
            )
            self._summary = ConversationSummary(
                original_prompt=prompt, responses=list(records.values()),
            )
            generation = self._generation

        logger.info(
            "Round %d started: %s",
            generation,
            ", ".join(f"{p.name.lower()}={r.status}" for p, r in records.items()),
        )
        return generation

    def end_round(self) -> int:
        """Drop records and summary; in-flight results become stale."""
        with self._lock:
            self._generation += 1
            self._records = {}
            self._summary = None
            self._question = None
            generation = self._generation
        logger.info("Round ended, generation now %d", generation)
        return generation

    def pending_providers(self, generation: int) -> list[ProviderId]:
        """Providers of this round still awaiting a dispatch outcome.

        Empty when the generation is no longer current. Providers marked
        ``no_credential`` at round start stay out even if a key appears later.
        """
        with self._lock:
            if generation != self._generation:
                return []
            return [p for p, r in self._records.items() if r.status.kind == "pending"]

    # --- Provider events ---

    def apply_event(self, event: DispatchEvent) -> bool:
        """Apply one dispatcher event.

        Returns:
            True if a record changed, False if the event was discarded.
        """
        with self._lock:
            if event.generation != self._generation:
                logger.debug(
                    "Discarding stale %s event (generation %d, current %d)",
                    event.provider.value, event.generation, self._generation,
                )
                return False

            record = self._records.get(event.provider)
            if record is None or record.status.kind != "pending":
                # the dispatcher re-reports no_credential decided at round start
                repeated = (
                    record is not None
                    and event.no_credential
                    and record.status.kind == "no_credential"
                )
                if not repeated:
                    logger.warning(
                        "Ignoring %s event for record in state %s",
                        event.provider.value, record.status if record else "<none>",
                    )
                return False

            if event.result is not None:
                updated = ResponseRecord(
                    provider=event.provider,
                    status=Status.success(),
                    content=event.result.text,
                    timestamp=datetime.now(timezone.utc),
                )
            else:
                updated = ResponseRecord(provider=event.provider, status=event.to_status())

            self._records[event.provider] = updated
            self._sync_summary()
            return True

    # --- Summary ---

    def begin_summary(self, generation: int) -> ConversationSummary:
        """Move the summary to ``pending`` and return a snapshot to work from.

        Raises:
            SummaryUnavailableError: Stale generation, no round, fewer than
                two successful responses, or a summary already pending.
        """
        with self._lock:
            if generation != self._generation or self._summary is None:
                raise SummaryUnavailableError("No active round to summarize")
            if not self._summary.can_summarize:
                raise SummaryUnavailableError(
                    "Need at least 2 successful responses to summarize"
                )
            if self._summary.summary_status.kind == "pending":
                raise SummaryUnavailableError("Summary already in progress")

            self._summary = self._summary.model_copy(
                update={"summary_status": Status.pending(), "summary_content": "",
                        "timestamp": None},
            )
            return self._summary.model_copy(deep=True)

    def complete_summary(self, generation: int, content: str) -> bool:
        """pending -> success. Dropped if the round has moved on."""
        with self._lock:
            if not self._summary_pending(generation):
                return False
            self._summary = self._summary.model_copy(  # type: ignore[union-attr]
                update={
                    "summary_status": Status.success(),
                    "summary_content": content,
                    "timestamp": datetime.now(timezone.utc),
                },
            )
            return True

    def fail_summary(self, generation: int, reason: str) -> bool:
        """pending -> failed(reason). Provider records are left untouched."""
        with self._lock:
            if not self._summary_pending(generation):
                return False
            self._summary = self._summary.model_copy(  # type: ignore[union-attr]
                update={"summary_status": Status.failed(reason)},
            )
            return True

    # --- Read access (copies) ---

    @property
    def records(self) -> dict[ProviderId, ResponseRecord]:
        with self._lock:
            return {p: r.model_copy() for p, r in self._records.items()}

    def record(self, provider: ProviderId | str) -> ResponseRecord | None:
        with self._lock:
            record = self._records.get(get_provider(provider).id)
            return record.model_copy() if record is not None else None

    @property
    def summary(self) -> ConversationSummary | None:
        with self._lock:
            return self._summary.model_copy(deep=True) if self._summary else None

    @property
    def question(self) -> UserQuestion | None:
        with self._lock:
            return self._question.model_copy() if self._question is not None else None

    @property
    def can_summarize(self) -> bool:
        with self._lock:
            return self._summary is not None and self._summary.can_summarize

    @property
    def is_settled(self) -> bool:
        """No selected provider is still pending."""
        with self._lock:
            return all(r.status.kind != "pending" for r in self._records.values())

    # --- Internal helpers ---

    def _sync_summary(self) -> None:
        if self._summary is not None:
            self._summary = self._summary.model_copy(
                update={"responses": list(self._records.values())},
            )

    def _summary_pending(self, generation: int) -> bool:
        if generation != self._generation or self._summary is None:
            logger.debug("Discarding stale summary result (generation %d)", generation)
            return False
        return self._summary.summary_status.kind == "pending"
