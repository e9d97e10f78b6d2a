"""Durable metrics storage and the periodic/shutdown flush tasks."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from documind.metrics import FlushRecord, MetricEvent, MetricsBuffer

logger = logging.getLogger(__name__)


class MetricsStore:
    """Append-only JSON Lines file, one FlushRecord per line."""

    def __init__(self, path: Path, max_bytes: int = 0):
        self.path = Path(path)
        self.max_bytes = max_bytes

    def append(self, record: FlushRecord):
        line = record.model_dump_json() + "\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._rotate_if_needed(len(line.encode("utf-8")))
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.flush()

    def _rotate_if_needed(self, incoming: int):
        if self.max_bytes <= 0 or not self.path.exists():
            return
        if self.path.stat().st_size + incoming <= self.max_bytes:
            return
        suffix = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        rotated = self.path.with_name(f"{self.path.name}.{suffix}")
        self.path.rename(rotated)
        logger.info(f"Rotated metrics file | rotated_to={rotated}")

    def read_records(self) -> List[dict]:
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


class MetricsFlusher:
    """
    Drains the buffer into the store on a fixed interval and once at shutdown.

    A failed write puts the snapshot back into the buffer so the next tick
    retries it; the buffer's max_retained bounds how much is kept.
    """

    def __init__(
        self,
        buffer: MetricsBuffer,
        store: MetricsStore,
        interval_seconds: float = 60.0,
        shutdown_timeout: float = 5.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.buffer = buffer
        self.store = store
        self.interval_seconds = interval_seconds
        self.shutdown_timeout = shutdown_timeout
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None
        self._in_flight = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _aggregate(self, events: List[MetricEvent]) -> Tuple[Optional[FlushRecord], List[MetricEvent]]:
        """
        Build the record for a snapshot.

        Events that cannot be aggregated are dropped one by one with an error
        log, so a single bad event never costs the rest of the snapshot.

        Returns:
            The record (None if nothing survived) and the events it covers
        """
        try:
            return FlushRecord.from_events(events), events
        except Exception:
            logger.exception(f"Metrics aggregation failed, isolating bad events | events={len(events)}")

        kept = []
        for event in events:
            try:
                FlushRecord.from_events([event])
            except Exception as e:
                logger.error(f"Dropping unaggregatable metric event | endpoint={event.endpoint} | error={e}")
                continue
            kept.append(event)

        logger.warning(f"Metrics events dropped | dropped_events={len(events) - len(kept)}")
        if not kept:
            return None, kept
        return FlushRecord.from_events(kept), kept

    async def flush(self) -> Optional[FlushRecord]:
        events = self.buffer.drain()
        if not events:
            return None

        record, events = self._aggregate(events)
        if record is None:
            return None

        self._in_flight = len(events)
        try:
            await asyncio.to_thread(self.store.append, record)
        except Exception as e:
            self._in_flight = 0
            logger.error(f"Metrics flush failed, retrying next tick | events={len(events)} | error={e}")
            self.buffer.requeue(events)
            return None
        # left set on cancellation so a timed-out shutdown can count the write as lost
        self._in_flight = 0

        logger.info(f"Metrics flushed | events={record.event_count} | endpoints={len(record.endpoints)}")
        return record

    def start(self):
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="metrics-flusher")
        logger.info(f"Metrics flusher started | interval_s={self.interval_seconds} | path={self.store.path}")

    async def _run(self):
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                try:
                    await self.flush()
                except Exception:
                    logger.exception("Metrics flush tick failed, timer keeps running")

    async def _drain_for_shutdown(self):
        if self._task is not None:
            try:
                await self._task
            except Exception:
                logger.exception("Metrics flusher task ended with an error")
        await self.flush()

    async def stop(self) -> bool:
        """
        Stop the timer and write whatever is still buffered.

        Returns:
            True if no events remain in memory, False if events were lost
            to a timeout or a failed final write
        """
        if self._stopping is not None:
            self._stopping.set()

        try:
            await asyncio.wait_for(self._drain_for_shutdown(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            lost = len(self.buffer) + self._in_flight
            logger.error(
                f"Metrics shutdown flush timed out after {self.shutdown_timeout}s | events_lost={lost}"
            )
            return False
        except Exception:
            logger.exception(f"Metrics shutdown flush failed | events_lost={len(self.buffer) + self._in_flight}")
            return False
        finally:
            self._task = None

        remaining = len(self.buffer)
        if remaining:
            logger.error(f"Metrics final flush failed | events_lost={remaining}")
            return False
        logger.info("Metrics flusher stopped")
        return True
