# src/logging/context.py - v3
"""Contextual logging support: attach conversation_id, generation, provider.

Context variables are copied into every asyncio task at creation time, so a
provider task keeps the round values that were active when it was spawned.
Round values are scoped with round_context(); the provider value is set once
inside each provider task and dies with it.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_conversation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "conversation_id", default=None
)
_generation: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "generation", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of the values attached to log records."""

    conversation_id: str | None = None
    generation: int | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        conversation_id=_conversation_id.get(),
        generation=_generation.get(),
        provider=_provider.get(),
    )


@contextmanager
def round_context(conversation_id: str, generation: int) -> Iterator[LogContext]:
    """Tag every log record emitted inside the block with one round.

    Tasks spawned inside the block inherit the values. On exit the previous
    values are restored, so nested rounds unwind cleanly.
    """
    conversation_token = _conversation_id.set(conversation_id)
    generation_token = _generation.set(generation)
    try:
        yield get_context()
    finally:
        _generation.reset(generation_token)
        _conversation_id.reset(conversation_token)


def set_provider_context(provider: str | None) -> None:
    """Set the provider for the current task (called inside each provider task)."""
    _provider.set(provider)


def clear_context() -> None:
    _conversation_id.set(None)
    _generation.set(None)
    _provider.set(None)
