# src/llm/adapters/openai_adapter.py - v2
"""OpenAI Chat Completions adapter implementing BaseProviderAdapter.

Request: {model, messages, max_tokens, temperature}, bearer auth.
Response: text = choices[0].message.content; finish_reason "length"
means the output hit max_tokens and is reported as truncated.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from polyglot.core.errors import EmptyContentError, TruncatedError
from polyglot.core.models import ProviderId
from polyglot.llm.base_adapter import BaseProviderAdapter
from polyglot.llm.models import Message, NormalizedResult

OPENAI_ENDPOINT = "https://api.openai.com/v1/chat/completions"
_TRUNCATED = "length"


class _OpenAIMessage(BaseModel):
    role: str
    content: str | None = None


class _OpenAIChoice(BaseModel):
    index: int = 0
    message: _OpenAIMessage
    finish_reason: str | None = None


class _OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIResponse(BaseModel):
    """Chat Completions response envelope."""

    id: str | None = None
    model: str | None = None
    choices: list[_OpenAIChoice]
    usage: _OpenAIUsage | None = None


class OpenAIAdapter(BaseProviderAdapter):
    """OpenAI GPT adapter."""

    endpoint = OPENAI_ENDPOINT
    model = "gpt-3.5-turbo"
    max_tokens = 1000
    temperature = 0.7

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.OPENAI

    def build_payload(self, messages: list[Message]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def build_headers(self, credential: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    def parse_response(self, data: Any) -> NormalizedResult:
        resp: OpenAIResponse = self._validate(OpenAIResponse, data)
        if not resp.choices:
            raise EmptyContentError("response has no choices")

        choice = resp.choices[0]
        if choice.finish_reason == _TRUNCATED:
            raise TruncatedError(choice.finish_reason)

        text = choice.message.content or ""
        if not text.strip():
            raise EmptyContentError("choices[0].message.content is empty")

        usage = resp.usage
        return NormalizedResult(
            text=text,
            model=resp.model or self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason,
        )
