# tests/unit/dispatch/test_unit_dispatcher.py - v1
"""Tests for dispatch/dispatcher.py - concurrent fan-out and isolation."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from polyglot.core.errors import HttpStatusError, ProviderError, TruncatedError
from polyglot.core.models import ProviderId
from polyglot.dispatch.dispatcher import DispatchEvent, Dispatcher
from polyglot.tracking.call_logger import CallLogger

ALL = [ProviderId.CLAUDE, ProviderId.OPENAI, ProviderId.GEMINI]


async def _collect(dispatcher, prompt, selected, credentials, generation=1):
    return [e async for e in dispatcher.dispatch_all(prompt, selected, credentials, generation)]


class TestDispatchEvent:
    def test_exactly_one_outcome(self, make_result):
        with pytest.raises(ValueError):
            DispatchEvent(provider=ProviderId.CLAUDE, generation=1)
        with pytest.raises(ValueError):
            DispatchEvent(
                provider=ProviderId.CLAUDE, generation=1,
                result=make_result(), error=ProviderError("x"),
            )

    def test_to_status(self, make_result):
        ok = DispatchEvent(provider=ProviderId.CLAUDE, generation=1, result=make_result())
        assert ok.to_status().kind == "success"
        failed = DispatchEvent(provider=ProviderId.CLAUDE, generation=1, error=TruncatedError("length"))
        assert failed.to_status().reason == "truncated"


class TestDispatchAll:
    @pytest.mark.asyncio
    async def test_all_succeed(self, mock_adapters, all_credentials):
        events = await _collect(Dispatcher(mock_adapters), "Hi", ALL, all_credentials)
        assert {e.provider for e in events} == set(ALL)
        assert all(e.ok and e.generation == 1 for e in events)
        for provider in ALL:
            mock_adapters[provider].send.assert_awaited_once()
            prompt, credential = mock_adapters[provider].send.await_args.args
            assert prompt == "Hi"
            assert credential.startswith("test-key-")

    @pytest.mark.asyncio
    async def test_completion_order(self, mock_adapters, all_credentials, make_result):
        gate = asyncio.Event()

        async def slow(prompt, credential):
            await gate.wait()
            return make_result("slow claude")

        mock_adapters[ProviderId.CLAUDE].send = AsyncMock(side_effect=slow)

        events = []
        async for event in Dispatcher(mock_adapters).dispatch_all("Hi", ALL, all_credentials, 1):
            events.append(event)
            if len(events) == 2:
                gate.set()

        assert events[-1].provider == ProviderId.CLAUDE
        assert events[-1].result.text == "slow claude"

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, mock_adapters, all_credentials):
        mock_adapters[ProviderId.OPENAI].send.side_effect = HttpStatusError(
            429, '{"error": {"message": "rate limited"}}'
        )
        mock_adapters[ProviderId.GEMINI].send.side_effect = TruncatedError("MAX_TOKENS")

        events = {e.provider: e for e in await _collect(Dispatcher(mock_adapters), "Hi", ALL, all_credentials)}
        assert events[ProviderId.CLAUDE].ok
        assert events[ProviderId.OPENAI].to_status().reason == "rate limited"
        assert events[ProviderId.GEMINI].to_status().reason == "truncated"

    @pytest.mark.asyncio
    async def test_missing_credential_skips_adapter(self, mock_adapters, all_credentials):
        all_credentials.delete("gemini_api_key")
        events = await _collect(Dispatcher(mock_adapters), "Hi", ALL, all_credentials)

        assert events[0].provider == ProviderId.GEMINI
        assert events[0].no_credential
        assert events[0].to_status().kind == "no_credential"
        mock_adapters[ProviderId.GEMINI].send.assert_not_awaited()
        assert sum(e.ok for e in events) == 2

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, mock_adapters, all_credentials):
        mock_adapters[ProviderId.CLAUDE].send.side_effect = RuntimeError("boom")
        events = {e.provider: e for e in await _collect(Dispatcher(mock_adapters), "Hi", ALL, all_credentials)}
        assert events[ProviderId.CLAUDE].error.reason == "unexpected error: RuntimeError"
        assert events[ProviderId.OPENAI].ok

    @pytest.mark.asyncio
    async def test_missing_adapter(self, mock_adapters, all_credentials):
        del mock_adapters[ProviderId.GEMINI]
        events = await _collect(Dispatcher(mock_adapters), "Hi", [ProviderId.GEMINI], all_credentials)
        assert events[0].error.reason == "provider not available"

    @pytest.mark.asyncio
    async def test_duplicate_selection(self, mock_adapters, all_credentials):
        events = await _collect(
            Dispatcher(mock_adapters), "Hi", ["claude", ProviderId.CLAUDE, "claude_api_key"], all_credentials,
        )
        assert len(events) == 1
        mock_adapters[ProviderId.CLAUDE].send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_calls_are_logged(self, mock_adapters, all_credentials):
        mock_adapters[ProviderId.OPENAI].send.side_effect = HttpStatusError(500, "oops")
        call_logger = CallLogger()
        await _collect(Dispatcher(mock_adapters, call_logger=call_logger), "Hi", ALL, all_credentials, 4)

        assert call_logger.total_calls == 3
        assert all(r.generation == 4 for r in call_logger.records)
        assert [r.provider for r in call_logger.failures] == [ProviderId.OPENAI]

    @pytest.mark.asyncio
    async def test_abandoned_calls_finish(self, mock_adapters, all_credentials, make_result):
        gate = asyncio.Event()

        async def slow(prompt, credential):
            await gate.wait()
            return make_result()

        for adapter in mock_adapters.values():
            adapter.send = AsyncMock(side_effect=slow)

        dispatcher = Dispatcher(mock_adapters)
        events = dispatcher.dispatch_all("Hi", ALL, all_credentials, 1)
        consumer = asyncio.ensure_future(events.__anext__())
        await asyncio.sleep(0)
        assert dispatcher.inflight_count == 3

        consumer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await consumer
        await events.aclose()

        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert dispatcher.inflight_count == 0
