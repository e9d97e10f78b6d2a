"""Request-scoped accessors for objects owned by the application lifespan."""

from fastapi import Request

from documind.metrics import MetricsBuffer, MetricsRecorder
from documind.rag import RAGEngine


def get_rag_engine(request: Request) -> RAGEngine:
    return request.app.state.rag


def get_recorder(request: Request) -> MetricsRecorder:
    return request.app.state.metrics_recorder


def get_metrics_buffer(request: Request) -> MetricsBuffer:
    return request.app.state.metrics_buffer
