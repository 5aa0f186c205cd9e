# src/llm/models.py - v2
"""LLM-specific types: Message, NormalizedResult."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class NormalizedResult(BaseModel):
    """Provider output after stripping the provider-specific envelope.

    Only ``text`` is required; the rest is best-effort metadata.
    """

    text: str
    model: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    finish_reason: str | None = None
    latency_ms: int = 0

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v:
            raise ValueError("text must not be empty")
        return v

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
