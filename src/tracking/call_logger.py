# src/tracking/call_logger.py - v2
"""Provider call logging: one record per adapter invocation.

Covers both dispatch calls and summary calls. Records are appended from
concurrent provider tasks, so the list is guarded by a lock.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from polyglot.core.errors import ProviderError
from polyglot.core.models import ProviderId
from polyglot.llm.models import NormalizedResult
from polyglot.tracking.models import CallPurpose, ProviderCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates provider call records across rounds."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ProviderCallRecord] = []

    def record_success(
        self,
        provider: ProviderId,
        generation: int,
        result: NormalizedResult,
        purpose: CallPurpose = "dispatch",
    ) -> ProviderCallRecord:
        """Record a call that returned text."""
        return self._append(
            ProviderCallRecord(
                call_id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                provider=provider,
                generation=generation,
                purpose=purpose,
                outcome="success",
                model=result.model,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                total_tokens=result.total_tokens,
                latency_ms=result.latency_ms,
            )
        )

    def record_failure(
        self,
        provider: ProviderId,
        generation: int,
        error: ProviderError,
        latency_ms: int = 0,
        purpose: CallPurpose = "dispatch",
    ) -> ProviderCallRecord:
        """Record a call that ended in a ProviderError."""
        return self._append(
            ProviderCallRecord(
                call_id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                provider=provider,
                generation=generation,
                purpose=purpose,
                outcome="failed",
                error_type=type(error).__name__,
                reason=error.reason,
                latency_ms=latency_ms,
            )
        )

    @property
    def records(self) -> list[ProviderCallRecord]:
        """All recorded calls."""
        with self._lock:
            return list(self._records)

    @property
    def total_calls(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all successful calls."""
        with self._lock:
            return sum(r.total_tokens for r in self._records)

    @property
    def failures(self) -> list[ProviderCallRecord]:
        with self._lock:
            return [r for r in self._records if r.outcome == "failed"]

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self.records:
                f.write(json.dumps(record.model_dump(mode="json")) + "\n")
        logger.info("Saved %d call records to %s", self.total_calls, path)

    def _append(self, record: ProviderCallRecord) -> ProviderCallRecord:
        with self._lock:
            self._records.append(record)
        return record
