"""
Request metrics: events, the in-process buffer, aggregation and the recorder.

Request handlers record one MetricEvent per API call through
MetricsRecorder. Events accumulate in a MetricsBuffer until the flusher
(see documind.flusher) drains them into a FlushRecord.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

import numpy as np
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class MetricEvent:
    """A single completed API call."""
    endpoint: str
    timestamp: float
    duration_ms: float
    status: str = STATUS_SUCCESS
    error_kind: Optional[str] = None
    query_length: Optional[int] = None
    result_count: Optional[int] = None

    def __post_init__(self):
        if self.status not in (STATUS_SUCCESS, STATUS_ERROR):
            raise ValueError(f"Unknown metric status: {self.status!r}")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")
        if self.error_kind is not None and not isinstance(self.error_kind, str):
            raise ValueError(f"error_kind must be a string, got {type(self.error_kind).__name__}")

    @property
    def is_error(self) -> bool:
        return self.status == STATUS_ERROR


class MetricsBuffer:
    """
    Ordered, process-owned list of events awaiting a flush.

    drain() swaps the list out under a lock, so an event appended during a
    flush lands in the next snapshot, never in both or neither.
    """

    def __init__(self, max_retained: int = 10000):
        if max_retained < 1:
            raise ValueError("max_retained must be at least 1")
        self.max_retained = max_retained
        self._events: List[MetricEvent] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append(self, event: MetricEvent):
        with self._lock:
            self._events.append(event)

    def drain(self) -> List[MetricEvent]:
        with self._lock:
            events, self._events = self._events, []
        return events

    def snapshot(self) -> List[MetricEvent]:
        with self._lock:
            return list(self._events)

    def requeue(self, events: List[MetricEvent]) -> int:
        """
        Put a failed snapshot back in front of newer events.

        Keeps at most max_retained events, dropping the oldest first.

        Returns:
            Number of events dropped
        """
        with self._lock:
            combined = list(events) + self._events
            dropped = max(len(combined) - self.max_retained, 0)
            self._events = combined[dropped:]
        if dropped:
            logger.warning(f"Metrics buffer over capacity | dropped_events={dropped} | max_retained={self.max_retained}")
        return dropped


class LatencyStats(BaseModel):
    min: float
    max: float
    mean: float
    p50: float
    p95: float
    total: float


class EndpointStats(BaseModel):
    count: int
    error_count: int
    errors: Dict[str, int] = Field(default_factory=dict)
    latency_ms: LatencyStats
    avg_query_length: Optional[float] = None
    avg_result_count: Optional[float] = None


class FlushRecord(BaseModel):
    """Aggregate of every event drained in one flush."""
    timestamp: str
    event_count: int
    endpoints: Dict[str, EndpointStats] = Field(default_factory=dict)

    @classmethod
    def from_events(cls, events: List[MetricEvent], now: Optional[datetime] = None) -> "FlushRecord":
        now = now or datetime.now(timezone.utc)
        grouped: Dict[str, List[MetricEvent]] = {}
        for event in events:
            grouped.setdefault(event.endpoint, []).append(event)

        return cls(
            timestamp=now.isoformat(),
            event_count=len(events),
            endpoints={name: _endpoint_stats(group) for name, group in sorted(grouped.items())},
        )


def _mean_of(values: List[Optional[int]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return round(float(np.mean(present)), 2)


def _endpoint_stats(events: List[MetricEvent]) -> EndpointStats:
    durations = np.array([e.duration_ms for e in events], dtype=float)

    errors: Dict[str, int] = {}
    for event in events:
        if event.is_error:
            kind = event.error_kind or "unknown"
            errors[kind] = errors.get(kind, 0) + 1

    return EndpointStats(
        count=len(events),
        error_count=sum(errors.values()),
        errors=errors,
        latency_ms=LatencyStats(
            min=round(float(durations.min()), 2),
            max=round(float(durations.max()), 2),
            mean=round(float(durations.mean()), 2),
            p50=round(float(np.percentile(durations, 50)), 2),
            p95=round(float(np.percentile(durations, 95)), 2),
            total=round(float(durations.sum()), 2),
        ),
        avg_query_length=_mean_of([e.query_length for e in events]),
        avg_result_count=_mean_of([e.result_count for e in events]),
    )


class MetricsRecorder:
    """
    Best-effort entry point for request handlers.

    Recording never raises: a broken metric must not change a request's
    outcome, so failures are logged and the event is discarded.
    """

    def __init__(self, buffer: MetricsBuffer):
        self.buffer = buffer

    def record(self, event: MetricEvent):
        try:
            if not isinstance(event, MetricEvent):
                raise TypeError(f"Expected MetricEvent, got {type(event).__name__}")
            self.buffer.append(event)
        except Exception:
            logger.exception("Failed to record metric event")

    @contextmanager
    def track(self, endpoint: str, **fields) -> Iterator[dict]:
        """
        Time the enclosed block and record its outcome.

        The yielded dict may be updated (e.g. result_count) before the block
        exits. Exceptions are recorded as errors and re-raised.
        """
        details = dict(fields)
        timestamp = time.time()
        start = time.perf_counter()
        try:
            yield details
        except Exception as e:
            kind = str(getattr(e, "kind", None) or type(e).__name__)
            self._record_outcome(endpoint, timestamp, start, STATUS_ERROR, details, error_kind=kind)
            raise
        self._record_outcome(endpoint, timestamp, start, STATUS_SUCCESS, details)

    def _record_outcome(self, endpoint, timestamp, start, status, details, error_kind=None):
        try:
            event = MetricEvent(
                endpoint=endpoint,
                timestamp=timestamp,
                duration_ms=(time.perf_counter() - start) * 1000,
                status=status,
                error_kind=error_kind,
                query_length=details.get("query_length"),
                result_count=details.get("result_count"),
            )
        except Exception:
            logger.exception(f"Failed to build metric event | endpoint={endpoint}")
            return
        self.record(event)
