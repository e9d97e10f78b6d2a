"""FastAPI application entrypoint with RAG engine and metrics lifecycle management."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from documind.config import Settings
from documind.flusher import MetricsFlusher, MetricsStore
from documind.logging_config import setup_logging
from documind.metrics import MetricsBuffer, MetricsRecorder
from documind.rag import RAGEngine
from documind.routes import documents_router, health_router, questions_router, search_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, rag: Optional[RAGEngine] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)

        engine = rag
        if engine is None:
            engine = RAGEngine(settings)
            try:
                await engine.verify_collection()
            except Exception:
                await engine.close()
                raise
        app.state.rag = engine

        buffer = MetricsBuffer(max_retained=settings.metrics_max_retained)
        flusher = MetricsFlusher(
            buffer,
            MetricsStore(settings.metrics_path, max_bytes=settings.metrics_max_bytes),
            interval_seconds=settings.metrics_flush_interval,
            shutdown_timeout=settings.metrics_shutdown_timeout,
        )
        app.state.metrics_buffer = buffer
        app.state.metrics_recorder = MetricsRecorder(buffer)
        app.state.metrics_flusher = flusher
        flusher.start()

        try:
            yield
        finally:
            # uvicorn turns SIGINT/SIGTERM into this teardown
            try:
                await flusher.stop()
            finally:
                await engine.close()

    app = FastAPI(title="DocuMind RAG", lifespan=lifespan)

    app.include_router(health_router)
    app.include_router(documents_router)
    app.include_router(search_router)
    app.include_router(questions_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    return app


app = create_app()
