# tests/integration/test_int_conversation_flow.py - v1
"""Integration tests: full rounds through real adapters over a mock network.

Coverage: session -> dispatcher -> adapters (wire format) -> state -> summary.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from polyglot.core.errors import SummaryUnavailableError
from polyglot.core.models import ProviderId


class TestRoundOverWire:
    @pytest.mark.asyncio
    async def test_all_providers_answer(self, live_session, router):
        records = await live_session.submit("Say hi")

        assert records[ProviderId.OPENAI].content == "OpenAI says hi."
        assert records[ProviderId.CLAUDE].content == "Claude says hi."
        assert records[ProviderId.GEMINI].content == "Gemini says hi."
        assert len(router.requests) == 3

        gemini = router.requests_to("generativelanguage.googleapis.com")[0]
        assert json.loads(gemini.content)["contents"][0]["parts"][0]["text"] == "Say hi"

    @pytest.mark.asyncio
    async def test_mixed_failures_block_summary(self, live_session, router):
        router.responders["api.openai.com"] = lambda request: httpx.Response(
            429, json={"error": {"message": "rate limited", "type": "requests"}},
        )
        router.responders["generativelanguage.googleapis.com"] = lambda request: httpx.Response(
            200, json=router.gemini_body("Partial", finish_reason="MAX_TOKENS"),
        )

        records = await live_session.submit("Explain BGP")
        assert records[ProviderId.CLAUDE].status.kind == "success"
        assert records[ProviderId.OPENAI].status.status_text == "Error: rate limited"
        assert records[ProviderId.GEMINI].status.status_text == "Error: truncated"
        assert records[ProviderId.GEMINI].content == ""

        with pytest.raises(SummaryUnavailableError):
            await live_session.summarize()
        assert len(router.requests_to("api.anthropic.com")) == 1

    @pytest.mark.asyncio
    async def test_summary_round_trip(self, live_session, router):
        router.responders["api.openai.com"] = lambda request: httpx.Response(500, text="internal")
        await live_session.submit("Explain BGP")

        router.responders["api.anthropic.com"] = lambda request: httpx.Response(
            200, json=router.claude_body("BGP is the routing protocol of the internet."),
        )
        summary = await live_session.summarize()

        assert summary.is_ready
        summary_request = router.requests_to("api.anthropic.com")[-1]
        prompt = json.loads(summary_request.content)["messages"][0]["content"]
        assert "Explain BGP" in prompt
        assert "Claude (Anthropic):\nClaude says hi." in prompt
        assert "Gemini (Google):\nGemini says hi." in prompt
        assert "ChatGPT" not in prompt

        assert [r.purpose for r in live_session.call_logger.records].count("summary") == 1

    @pytest.mark.asyncio
    async def test_slow_provider_does_not_block_others(self, live_session, router):
        release = asyncio.Event()

        async def slow(request):
            await release.wait()
            return httpx.Response(200, json=router.openai_body("Finally."))

        router.responders["api.openai.com"] = slow
        generation = live_session.start_round("Hi")
        runner = asyncio.create_task(live_session.run_round(generation))

        for _ in range(200):
            await asyncio.sleep(0.01)
            done = [live_session.state.record(p).status.kind for p in ("claude", "gemini")]
            if done == ["success", "success"]:
                break
        records = live_session.state.records
        assert records[ProviderId.CLAUDE].status.kind == "success"
        assert records[ProviderId.GEMINI].status.kind == "success"
        assert records[ProviderId.OPENAI].status.kind == "pending"

        release.set()
        final = await runner
        assert final[ProviderId.OPENAI].content == "Finally."

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self, live_session, router):
        live_session.credentials.delete("gemini_api_key")
        records = await live_session.submit("Hi")
        assert records[ProviderId.GEMINI].status.kind == "no_credential"
        assert router.requests_to("generativelanguage.googleapis.com") == []
        await live_session.aclose()
