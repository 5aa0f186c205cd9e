# src/llm/adapters/gemini_adapter.py - v2
"""Google Gemini adapter implementing BaseProviderAdapter.

generateContent over REST with the x-goog-api-key header. The API answers
in camelCase while older gateways echo snake_case, so envelope fields
accept both spellings.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from polyglot.core.errors import EmptyContentError, TruncatedError
from polyglot.core.models import ProviderId
from polyglot.llm.base_adapter import BaseProviderAdapter
from polyglot.llm.models import Message, NormalizedResult

GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    f"{GEMINI_MODEL}:generateContent"
)
_TRUNCATED = "MAX_TOKENS"


class _GeminiPart(BaseModel):
    text: str | None = None


class _GeminiContent(BaseModel):
    parts: list[_GeminiPart] | None = None
    role: str | None = None


class _GeminiCandidate(BaseModel):
    content: _GeminiContent | None = None
    finish_reason: str | None = Field(
        default=None, validation_alias=AliasChoices("finish_reason", "finishReason"),
    )
    index: int | None = None


class _GeminiUsage(BaseModel):
    prompt_token_count: int = Field(
        default=0, validation_alias=AliasChoices("prompt_token_count", "promptTokenCount"),
    )
    candidates_token_count: int = Field(
        default=0,
        validation_alias=AliasChoices("candidates_token_count", "candidatesTokenCount"),
    )


class GeminiResponse(BaseModel):
    """generateContent response envelope."""

    model_config = ConfigDict(protected_namespaces=())

    candidates: list[_GeminiCandidate]
    usage_metadata: _GeminiUsage | None = Field(
        default=None, validation_alias=AliasChoices("usage_metadata", "usageMetadata"),
    )
    model_version: str | None = Field(
        default=None, validation_alias=AliasChoices("model_version", "modelVersion"),
    )


class GeminiAdapter(BaseProviderAdapter):
    """Google Gemini adapter."""

    endpoint = GEMINI_ENDPOINT
    model = GEMINI_MODEL
    max_tokens = 2048
    temperature = 0.7

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.GEMINI

    def build_payload(self, messages: list[Message]) -> dict[str, Any]:
        contents = []
        for m in messages:
            role = "model" if m.role == "assistant" else "user"
            contents.append({"parts": [{"text": m.content}], "role": role})
        return {
            "contents": contents,
            "generation_config": {
                "temperature": self.temperature,
                "max_output_tokens": self.max_tokens,
            },
        }

    def build_headers(self, credential: str) -> dict[str, str]:
        return {"x-goog-api-key": credential}

    def parse_response(self, data: Any) -> NormalizedResult:
        resp: GeminiResponse = self._validate(GeminiResponse, data)
        if not resp.candidates:
            raise EmptyContentError("response has no candidates")

        candidate = resp.candidates[0]
        if candidate.finish_reason == _TRUNCATED:
            raise TruncatedError(candidate.finish_reason)

        # parts can be missing entirely, e.g. on safety-blocked candidates
        parts = candidate.content.parts if candidate.content else None
        text = (parts[0].text or "") if parts else ""
        if not text.strip():
            raise EmptyContentError("candidates[0].content.parts[0].text is empty")

        usage = resp.usage_metadata
        return NormalizedResult(
            text=text,
            model=resp.model_version or self.model,
            input_tokens=usage.prompt_token_count if usage else 0,
            output_tokens=usage.candidates_token_count if usage else 0,
            finish_reason=candidate.finish_reason,
        )
