"""Liveness and live-metrics endpoints."""

from fastapi import APIRouter, Depends

from documind.metrics import FlushRecord, MetricsBuffer
from documind.routes.deps import get_metrics_buffer

router = APIRouter(tags=["health"])


class PendingMetrics(FlushRecord):
    pending_events: int


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/api/metrics", response_model=PendingMetrics)
async def pending_metrics(buffer: MetricsBuffer = Depends(get_metrics_buffer)):
    events = buffer.snapshot()
    record = FlushRecord.from_events(events)
    return PendingMetrics(**record.model_dump(), pending_events=len(events))
