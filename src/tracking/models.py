# src/tracking/models.py - v2
"""Tracking domain models: ProviderCallRecord."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from polyglot.core.models import ProviderId

CallPurpose = Literal["dispatch", "summary"]


class ProviderCallRecord(BaseModel):
    """Individual provider API call log entry."""

    call_id: str
    timestamp: datetime
    provider: ProviderId
    generation: int
    purpose: CallPurpose
    outcome: Literal["success", "failed"]
    model: str | None = None
    error_type: str | None = None
    reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int = 0
