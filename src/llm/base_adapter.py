# src/llm/base_adapter.py - v1
"""Abstract provider adapter.

An adapter turns a generic prompt into one provider-specific POST and turns
the provider's response envelope back into a NormalizedResult. Subclasses
only describe the wire format (payload, headers, envelope parsing); the
HTTP exchange and the mapping of transport failures to ProviderError live
here. No retries: retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from polyglot.core.errors import DecodeError, HttpStatusError, TransportError
from polyglot.core.models import ProviderId
from polyglot.llm.http import (
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_RESOURCE_TIMEOUT_S,
    create_http_client,
)
from polyglot.llm.models import Message, NormalizedResult

logger = logging.getLogger(__name__)


class BaseProviderAdapter(ABC):
    """Unified interface for all provider wire formats."""

    endpoint: str
    model: str
    max_tokens: int
    temperature: float = 0.7

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        resource_timeout_s: float = DEFAULT_RESOURCE_TIMEOUT_S,
    ) -> None:
        self.__client = http_client
        self._owns_client = http_client is None
        self._request_timeout_s = request_timeout_s
        self._resource_timeout_s = resource_timeout_s

    @property
    def _client(self) -> httpx.AsyncClient:
        """Lazy-init a private client when none was injected."""
        if self.__client is None:
            self.__client = create_http_client(self._request_timeout_s)
        return self.__client

    @property
    @abstractmethod
    def provider_id(self) -> ProviderId:
        """Provider this adapter speaks for."""

    @abstractmethod
    def build_payload(self, messages: list[Message]) -> dict[str, Any]:
        """Provider-specific JSON request body."""

    @abstractmethod
    def build_headers(self, credential: str) -> dict[str, str]:
        """Provider-specific auth headers."""

    @abstractmethod
    def parse_response(self, data: Any) -> NormalizedResult:
        """Extract the first completion's text from a 2xx envelope.

        Raises:
            DecodeError: Envelope does not match the schema.
            EmptyContentError: Text field absent or empty.
            TruncatedError: Output stopped at the length cap.
        """

    async def send(self, prompt: str, credential: str) -> NormalizedResult:
        """Send one prompt and return the normalized text.

        Raises:
            ProviderError: Any failure, classified per the error taxonomy.
        """
        return await self.send_messages([Message(role="user", content=prompt)], credential)

    async def send_messages(
        self, messages: list[Message], credential: str
    ) -> NormalizedResult:
        payload = self.build_payload(messages)
        headers = self.build_headers(credential)

        start = time.monotonic()
        data = await self._post(payload, headers)
        result = self.parse_response(data)
        latency_ms = int((time.monotonic() - start) * 1000)

        logger.debug(
            "%s replied: model=%s, chars=%d, latency=%dms",
            self.provider_id.value, result.model, len(result.text), latency_ms,
        )
        return result.model_copy(update={"latency_ms": latency_ms})

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client and self.__client is not None:
            await self.__client.aclose()
            self.__client = None

    # --- Internal helpers ---

    async def _post(self, payload: dict[str, Any], headers: dict[str, str]) -> Any:
        try:
            response = await asyncio.wait_for(
                self._client.post(self.endpoint, json=payload, headers=headers),
                timeout=self._resource_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"no response within {self._resource_timeout_s}s", timed_out=True,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(_describe(e), timed_out=True) from e
        except httpx.RequestError as e:
            raise TransportError(_describe(e)) from e

        if not response.is_success:
            raise HttpStatusError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"invalid JSON body: {e}") from e

    @staticmethod
    def _validate(envelope: type[BaseModel], data: Any) -> Any:
        """Validate a decoded body against an envelope model."""
        try:
            return envelope.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(p) for p in first["loc"]) or "<root>"
            raise DecodeError(f"{location}: {first['msg']}") from e


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
