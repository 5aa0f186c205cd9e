# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

Providers, per-provider response records, their tagged status and the
conversation summary. No module redefines these types; all imports come
from core.models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# === PROVIDERS ===


class ProviderId(str, Enum):
    """Stable provider identity. Values double as credential keys."""

    OPENAI = "openai_api_key"
    CLAUDE = "claude_api_key"
    GEMINI = "gemini_api_key"


class ProviderInfo(BaseModel):
    """Static description of a provider."""

    model_config = ConfigDict(frozen=True)

    id: ProviderId
    display_name: str
    short_name: str

    @property
    def credential_key(self) -> str:
        return self.id.value


PROVIDERS: dict[ProviderId, ProviderInfo] = {
    ProviderId.CLAUDE: ProviderInfo(
        id=ProviderId.CLAUDE, display_name="Claude (Anthropic)", short_name="claude",
    ),
    ProviderId.OPENAI: ProviderInfo(
        id=ProviderId.OPENAI, display_name="ChatGPT (OpenAI)", short_name="openai",
    ),
    ProviderId.GEMINI: ProviderInfo(
        id=ProviderId.GEMINI, display_name="Gemini (Google)", short_name="gemini",
    ),
}


def get_provider(value: ProviderId | str) -> ProviderInfo:
    """Resolve a provider from its id, credential key or short name.

    Raises:
        KeyError: If nothing matches.
    """
    if isinstance(value, ProviderId):
        return PROVIDERS[value]
    needle = value.strip().lower()
    for info in PROVIDERS.values():
        if needle in (info.id.value, info.short_name):
            return info
    raise KeyError(f"Unknown provider: {value!r}")


# === STATUS ===

StatusKind = Literal["idle", "pending", "success", "failed", "no_credential", "disabled"]

_STATUS_TEXT: dict[str, str] = {
    "idle": "Ready",
    "pending": "Loading...",
    "success": "Complete",
    "no_credential": "No API Key",
    "disabled": "Disabled",
}


class Status(BaseModel):
    """Tagged status of a provider record or of the summary.

    ``reason`` is only carried by the ``failed`` variant.
    """

    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    reason: str | None = None

    @model_validator(mode="after")
    def _check_reason(self) -> Status:
        if self.kind == "failed" and not self.reason:
            raise ValueError("failed status requires a reason")
        if self.kind != "failed" and self.reason is not None:
            raise ValueError(f"{self.kind} status cannot carry a reason")
        return self

    @classmethod
    def idle(cls) -> Status:
        return cls(kind="idle")

    @classmethod
    def pending(cls) -> Status:
        return cls(kind="pending")

    @classmethod
    def success(cls) -> Status:
        return cls(kind="success")

    @classmethod
    def failed(cls, reason: str) -> Status:
        return cls(kind="failed", reason=reason)

    @classmethod
    def no_credential(cls) -> Status:
        return cls(kind="no_credential")

    @classmethod
    def disabled(cls) -> Status:
        return cls(kind="disabled")

    @property
    def is_terminal(self) -> bool:
        return self.kind in ("success", "failed", "no_credential", "disabled")

    @property
    def status_text(self) -> str:
        """User-facing label."""
        if self.kind == "failed":
            return f"Error: {self.reason}"
        return _STATUS_TEXT[self.kind]

    def __str__(self) -> str:
        return self.kind if self.reason is None else f"{self.kind}({self.reason})"


# === RECORDS ===


class ResponseRecord(BaseModel):
    """Outcome of one provider for one conversation round.

    Invariants: content is non-empty iff status is success, and the
    timestamp is only set on success.
    """

    model_config = ConfigDict(validate_assignment=True)

    provider: ProviderId
    status: Status = Field(default_factory=Status.idle)
    content: str = ""
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> ResponseRecord:
        is_success = self.status.kind == "success"
        if is_success != bool(self.content):
            raise ValueError(
                f"content must be non-empty iff status is success "
                f"(status={self.status}, content_len={len(self.content)})"
            )
        if self.timestamp is not None and not is_success:
            raise ValueError("timestamp is only set on success")
        return self

    @property
    def has_content(self) -> bool:
        return self.status.kind == "success" and bool(self.content)

    @property
    def display_name(self) -> str:
        return PROVIDERS[self.provider].display_name

    @property
    def preview_content(self) -> str:
        """First three lines of the content, with an ellipsis when longer."""
        lines = self.content.splitlines()
        preview = "\n".join(lines[:3])
        return preview + "..." if len(lines) > 3 else preview


SummaryStatusKind = Literal["idle", "pending", "success", "failed"]


class ConversationSummary(BaseModel):
    """Aggregated view of a round plus the optional synthesized answer."""

    model_config = ConfigDict(validate_assignment=True)

    original_prompt: str
    responses: list[ResponseRecord] = Field(default_factory=list)
    summary_content: str = ""
    summary_status: Status = Field(default_factory=Status.idle)
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def _check_summary_status(self) -> ConversationSummary:
        if self.summary_status.kind not in ("idle", "pending", "success", "failed"):
            raise ValueError(f"invalid summary status: {self.summary_status}")
        return self

    @property
    def successful_responses(self) -> list[ResponseRecord]:
        return [r for r in self.responses if r.has_content]

    @property
    def can_summarize(self) -> bool:
        """True when at least two providers answered successfully."""
        return len(self.successful_responses) >= 2

    @property
    def is_ready(self) -> bool:
        return self.summary_status.kind == "success" and bool(self.summary_content)

    @property
    def context_for_follow_up(self) -> str:
        """Prefix for a single follow-up question."""
        if not self.is_ready:
            return self.original_prompt
        return (
            "Previous conversation:\n"
            f"User: {self.original_prompt}\n"
            "\n"
            f"Summary of AI responses: {self.summary_content}\n"
            "\n"
            "New question:\n"
        )


class UserQuestion(BaseModel):
    """Prompt that opened a round."""

    question: str
    timestamp: datetime
    is_follow_up: bool = False
