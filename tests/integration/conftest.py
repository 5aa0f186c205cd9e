# tests/integration/conftest.py - v8
"""Shared fixtures for integration tests.

Real adapters, dispatcher, state and summary engine wired together; only
the network is replaced, by an httpx.MockTransport that routes each request
to a per-host responder. Responders can be swapped per test.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from polyglot.conversation.session import ConversationSession
from polyglot.llm.adapter_factory import create_adapters
from polyglot.llm.http import create_http_client
from polyglot.tracking.call_logger import CallLogger

OPENAI_HOST = "api.openai.com"
ANTHROPIC_HOST = "api.anthropic.com"
GEMINI_HOST = "generativelanguage.googleapis.com"

Responder = Callable[[httpx.Request], Any]


def openai_body(text: str, finish_reason: str = "stop") -> dict:
    return {
        "model": "gpt-3.5-turbo-0125",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def claude_body(text: str, stop_reason: str = "end_turn") -> dict:
    return {
        "model": "claude-opus-4-1-20250805",
        "content": [{"type": "text", "text": text}],
        "stop_reason": stop_reason,
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }


def gemini_body(text: str, finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": finish_reason}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5},
    }


class ProviderRouter:
    """Routes mock requests by host and keeps every request seen."""

    openai_body = staticmethod(openai_body)
    claude_body = staticmethod(claude_body)
    gemini_body = staticmethod(gemini_body)

    def __init__(self) -> None:
        self.responders: dict[str, Responder] = {
            OPENAI_HOST: lambda request: httpx.Response(200, json=openai_body("OpenAI says hi.")),
            ANTHROPIC_HOST: lambda request: httpx.Response(200, json=claude_body("Claude says hi.")),
            GEMINI_HOST: lambda request: httpx.Response(200, json=gemini_body("Gemini says hi.")),
        }
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responders[request.url.host](request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def router() -> ProviderRouter:
    return ProviderRouter()


@pytest.fixture
def live_session(router, all_credentials) -> ConversationSession:
    """Session with real adapters over the mock transport."""
    client = create_http_client(transport=httpx.MockTransport(router))
    return ConversationSession(
        create_adapters(http_client=client),
        all_credentials,
        call_logger=CallLogger(),
        http_client=client,
    )
