# src/llm/http.py - v1
"""Shared async HTTP client for provider adapters.

One client is created per service object and injected into every adapter,
so connection pooling is shared and tests can swap in httpx.MockTransport.
The overall (resource) bound is enforced by the adapter around the whole
exchange, since httpx only times individual connect/read/write phases.
"""

from __future__ import annotations

import httpx

DEFAULT_REQUEST_TIMEOUT_S = 30.0
DEFAULT_RESOURCE_TIMEOUT_S = 60.0


def create_http_client(
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the AsyncClient shared by all adapters."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(request_timeout_s),
        transport=transport,
        headers={"Content-Type": "application/json"},
    )
