"""Per-job tracing: one timed span per pipeline stage.

A finished trace is flushed to the audit sink as a ``pipeline_trace`` event.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class StageSpan:
    name: str
    offset_ms: float
    duration_ms: float = 0.0
    failed: bool = False
    tags: dict = field(default_factory=dict)


class JobTrace:
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self.spans: list[StageSpan] = []
        self.started_at = datetime.now(timezone.utc)
        self._t0 = time.perf_counter()

    def _now_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000

    @contextmanager
    def span(self, name: str, **tags) -> Iterator[StageSpan]:
        stage = StageSpan(name=name, offset_ms=self._now_ms(), tags=tags)
        self.spans.append(stage)
        try:
            yield stage
        except BaseException:
            stage.failed = True
            raise
        finally:
            stage.duration_ms = self._now_ms() - stage.offset_ms

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    def to_record(self, success: bool, intent: str | None = None) -> dict:
        """Audit payload for the finished job."""
        spans = []
        for stage in self.spans:
            entry = {
                "name": stage.name,
                "duration_ms": round(stage.duration_ms, 2),
                "failed": stage.failed,
            }
            entry.update(stage.tags)
            spans.append(entry)
        return {
            "job_id": self.job_id,
            "started_at": self.started_at.isoformat(),
            "latency_ms": round(self.elapsed_ms, 2),
            "success": success,
            "intent": intent,
            "spans": spans,
        }
