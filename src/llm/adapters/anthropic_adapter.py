# src/llm/adapters/anthropic_adapter.py - v3
"""Anthropic Claude adapter implementing BaseProviderAdapter.

Uses the Messages API directly: x-api-key header plus a pinned
anthropic-version header. Claude is also the designated summarizer, see
summary/engine.py.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from polyglot.core.errors import EmptyContentError, TruncatedError
from polyglot.core.models import ProviderId
from polyglot.llm.base_adapter import BaseProviderAdapter
from polyglot.llm.models import Message, NormalizedResult

ANTHROPIC_ENDPOINT = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
_TRUNCATED = "max_tokens"


class _ClaudeContent(BaseModel):
    type: str
    text: str | None = None


class _ClaudeUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class ClaudeResponse(BaseModel):
    """Messages API response envelope."""

    id: str | None = None
    model: str | None = None
    content: list[_ClaudeContent]
    stop_reason: str | None = None
    usage: _ClaudeUsage


class AnthropicAdapter(BaseProviderAdapter):
    """Adapter for Anthropic Claude models."""

    endpoint = ANTHROPIC_ENDPOINT
    model = "claude-opus-4-1-20250805"
    max_tokens = 1024
    temperature = 0.7

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.CLAUDE

    def build_payload(self, messages: list[Message]) -> dict[str, Any]:
        # The Messages API takes system text as a top-level field
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
            "temperature": self.temperature,
        }
        if system:
            payload["system"] = system
        return payload

    def build_headers(self, credential: str) -> dict[str, str]:
        return {
            "x-api-key": credential,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def parse_response(self, data: Any) -> NormalizedResult:
        resp: ClaudeResponse = self._validate(ClaudeResponse, data)
        if resp.stop_reason == _TRUNCATED:
            raise TruncatedError(resp.stop_reason)
        if not resp.content:
            raise EmptyContentError("response has no content blocks")

        text = resp.content[0].text or ""
        if not text.strip():
            raise EmptyContentError("content[0].text is empty")

        return NormalizedResult(
            text=text,
            model=resp.model or self.model,
            input_tokens=resp.usage.input_tokens,
            output_tokens=resp.usage.output_tokens,
            finish_reason=resp.stop_reason,
        )
