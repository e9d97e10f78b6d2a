"""Shared fixtures for DocuMind tests."""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from documind.config import Settings
from documind.metrics import MetricEvent, MetricsBuffer
from documind.rag import RetrievedChunk


@pytest.fixture
def make_event():
    def _make(endpoint="/api/ask", duration_ms=100.0, status="success", **kwargs):
        return MetricEvent(
            endpoint=endpoint,
            timestamp=time.time(),
            duration_ms=duration_ms,
            status=status,
            **kwargs,
        )
    return _make


@pytest.fixture
def buffer():
    return MetricsBuffer(max_retained=1000)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        gemini_api_key="test-key",
        metrics_path=tmp_path / "metrics" / "metrics.jsonl",
        metrics_flush_interval=3600,
        metrics_shutdown_timeout=2.0,
    )


@pytest.fixture
def fake_rag():
    rag = MagicMock()
    rag.ask = AsyncMock(return_value={"answer": "Fixed answer.", "sources": ["guide.md#page-1"]})
    rag.search = AsyncMock(return_value=[
        RetrievedChunk(id="c1", text="Chunk one text", file="guide.md", page=1, score=0.91),
        RetrievedChunk(id="c2", text="Chunk two text", file="guide.md", page=2, score=0.83),
    ])
    rag.list_documents = AsyncMock(return_value=[
        {"file": "guide.md", "service": "guides", "chunks": 2},
    ])
    rag.close = AsyncMock()
    return rag
