# src/core/errors.py - v1
"""Provider-call error taxonomy.

Every adapter failure is a ProviderError subclass. ``reason`` is the short
human-readable text shown on the failed record; ``str(error)`` keeps the
detailed form for logs.
"""

from __future__ import annotations

import json


class ProviderError(Exception):
    """Base class for all provider-call failures."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason or message


class MissingCredentialError(ProviderError):
    """No credential stored for the provider; no call was made."""

    def __init__(self, provider_key: str, reason: str = "No API key found") -> None:
        super().__init__(f"No credential stored for {provider_key}", reason=reason)
        self.provider_key = provider_key


class TransportError(ProviderError):
    """Connection, DNS or timeout failure before a response was received."""

    def __init__(self, detail: str, timed_out: bool = False) -> None:
        reason = "timeout" if timed_out else f"network error: {detail}"
        super().__init__(f"Transport failure: {detail}", reason=reason)
        self.detail = detail
        self.timed_out = timed_out


class HttpStatusError(ProviderError):
    """Non-2xx HTTP response."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"HTTP {status_code}: {body}",
            reason=extract_error_message(body) or f"HTTP {status_code}",
        )
        self.status_code = status_code
        self.body = body


class DecodeError(ProviderError):
    """Response body did not match the provider's envelope schema."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Decoding error: {detail}", reason=f"decoding error: {detail}")
        self.detail = detail


class EmptyContentError(ProviderError):
    """The expected text field was absent or empty."""

    def __init__(self, detail: str = "") -> None:
        message = f"Empty content: {detail}" if detail else "Empty content"
        super().__init__(message, reason="empty content")


class TruncatedError(ProviderError):
    """The provider stopped at its output-length cap; content is discarded."""

    def __init__(self, finish_reason: str) -> None:
        super().__init__(
            f"Response truncated due to max tokens limit ({finish_reason})",
            reason="truncated",
        )
        self.finish_reason = finish_reason


class SummaryUnavailableError(Exception):
    """Summarization requested while fewer than two responses succeeded."""


def extract_error_message(body: str) -> str:
    """Pull a readable message out of an error body.

    Providers wrap errors as ``{"error": {"message": ...}}``; plain-text
    bodies are returned stripped.
    """
    text = body.strip()
    if not text:
        return ""
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
        if isinstance(data.get("message"), str):
            return data["message"]
    return text
