"""
Tests for the RAG engine.

Gemini and Qdrant are mocked; no network calls are made.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from documind.config import Settings
from documind.embeddings import QUERY_TASK, EmbeddingModel
from documind.prompts import DEFAULT_NO_ANSWER
from documind.rag import RAGEngine, RAGError


def point(point_id, score, **payload):
    return SimpleNamespace(id=point_id, score=score, payload=payload)


FIXED_POINTS = [
    point("a", 0.92, text="Rotate keys every 90 days.", file="security.md", page=2, service="handbook"),
    point("b", 0.88, text="Keys live in the vault.", file="ops.pdf", page=7, service="handbook"),
]


@pytest.fixture
def chat_client():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(text="Every 90 days.")
    return client


@pytest.fixture
def embedder():
    embedder = MagicMock()
    embedder.embed_query_async = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return embedder


@pytest.fixture
def qdrant():
    qdrant = MagicMock()
    qdrant.query_points = AsyncMock(return_value=SimpleNamespace(points=list(FIXED_POINTS)))
    qdrant.collection_exists = AsyncMock(return_value=True)
    qdrant.close = AsyncMock()
    return qdrant


@pytest.fixture
def engine(chat_client, embedder, qdrant):
    return RAGEngine(
        Settings(gemini_api_key="test", top_k=3, collection_name="handbook"),
        client=chat_client,
        embedder=embedder,
        qdrant=qdrant,
    )


class TestRAGEngineInit:
    """Tests for engine construction and startup checks."""

    def test_missing_api_key(self):
        with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
            RAGEngine(Settings(gemini_api_key=None))

    def test_verify_collection_missing(self, engine, qdrant):
        qdrant.collection_exists.return_value = False
        with pytest.raises(RuntimeError, match="handbook"):
            asyncio.run(engine.verify_collection())

    def test_close_releases_qdrant(self, engine, qdrant):
        asyncio.run(engine.close())
        qdrant.close.assert_awaited_once()


class TestAsk:
    """Tests for the ask pipeline."""

    def test_returns_fixed_model_text(self, engine):
        result = asyncio.run(engine.ask("How often are keys rotated?"))

        assert result["answer"] == "Every 90 days."
        assert result["sources"] == ["ops.pdf#page-7", "security.md#page-2"]

    def test_calls_services_in_order_with_composed_prompt(self, engine, embedder, qdrant, chat_client):
        asyncio.run(engine.ask("How often are keys rotated?"))

        embedder.embed_query_async.assert_awaited_once_with("How often are keys rotated?")
        search_kwargs = qdrant.query_points.await_args.kwargs
        assert search_kwargs["collection_name"] == "handbook"
        assert search_kwargs["query"] == [0.1, 0.2, 0.3]
        assert search_kwargs["limit"] == 3

        prompt = chat_client.models.generate_content.call_args.kwargs["contents"]
        assert "Rotate keys every 90 days." in prompt
        assert "Keys live in the vault." in prompt
        assert "How often are keys rotated?" in prompt

    def test_no_chunks_skips_generation(self, engine, qdrant, chat_client):
        qdrant.query_points.return_value = SimpleNamespace(points=[])

        result = asyncio.run(engine.ask("Anything?"))

        assert result == {"answer": DEFAULT_NO_ANSWER, "sources": []}
        chat_client.models.generate_content.assert_not_called()

    def test_malformed_chunks_skipped(self, engine, qdrant):
        qdrant.query_points.return_value = SimpleNamespace(points=[
            point("x", 0.99, text="", file="empty.md", page=1),
            point("y", 0.95, text="No page here", file="nopage.md"),
            FIXED_POINTS[0],
        ])

        result = asyncio.run(engine.ask("keys?"))

        assert result["sources"] == ["security.md#page-2"]

    def test_embedding_failure(self, engine, embedder):
        embedder.embed_query_async.side_effect = ConnectionError("gemini unreachable")

        with pytest.raises(RAGError) as exc_info:
            asyncio.run(engine.ask("keys?"))

        assert exc_info.value.stage == "embedding"
        assert exc_info.value.kind == "embedding_error"

    def test_search_failure(self, engine, qdrant):
        qdrant.query_points.side_effect = RuntimeError("qdrant down")

        with pytest.raises(RAGError, match="search failed: qdrant down"):
            asyncio.run(engine.ask("keys?"))

    def test_generation_failure(self, engine, chat_client):
        chat_client.models.generate_content.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(RAGError) as exc_info:
            asyncio.run(engine.ask("keys?"))

        assert exc_info.value.stage == "generation"
        assert isinstance(exc_info.value.cause, RuntimeError)


class TestSearchAndListing:
    """Tests for search and document listing."""

    def test_search_returns_chunks(self, engine, qdrant):
        chunks = asyncio.run(engine.search("keys", top_k=2))

        assert [c.id for c in chunks] == ["a", "b"]
        assert chunks[0].file == "security.md"
        assert chunks[0].service == "handbook"
        assert qdrant.query_points.await_args.kwargs["limit"] == 2

    def test_list_documents_pages_through_collection(self, engine, qdrant):
        qdrant.scroll = AsyncMock(side_effect=[
            ([point(1, 0, file="b.md", service="guides"), point(2, 0, file="a.pdf", service="ops")], "next"),
            ([point(3, 0, file="b.md", service="guides"), point(4, 0)], None),
        ])

        documents = asyncio.run(engine.list_documents())

        assert documents == [
            {"file": "a.pdf", "service": "ops", "chunks": 1},
            {"file": "b.md", "service": "guides", "chunks": 2},
        ]
        assert qdrant.scroll.await_count == 2
        assert qdrant.scroll.await_args_list[1].kwargs["offset"] == "next"

    def test_list_documents_failure(self, engine, qdrant):
        qdrant.scroll = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(RAGError) as exc_info:
            asyncio.run(engine.list_documents())

        assert exc_info.value.stage == "listing"


class TestEmbeddingModel:
    """Tests for the Gemini embedding wrapper."""

    def _client(self, *vectors_per_call):
        client = MagicMock()
        client.models.embed_content.side_effect = [
            SimpleNamespace(embeddings=[SimpleNamespace(values=v) for v in vectors])
            for vectors in vectors_per_call
        ]
        return client

    def test_query_embedding_is_normalized(self):
        client = self._client([[3.0, 4.0]])
        model = EmbeddingModel(client, dimensions=2)

        vector = model.embed_query("hello")

        assert vector == pytest.approx([0.6, 0.8])
        assert client.models.embed_content.call_args.kwargs["config"].task_type == QUERY_TASK

    def test_batches_requests(self):
        client = self._client([[1.0, 0.0], [0.0, 1.0]], [[1.0, 1.0]])
        model = EmbeddingModel(client, dimensions=2, batch_size=2)

        embeddings = model.embed(["a", "b", "c"])

        assert embeddings.shape == (3, 2)
        assert client.models.embed_content.call_count == 2
        assert np.allclose(np.linalg.norm(embeddings, axis=1), 1.0)

    def test_empty_input(self):
        model = EmbeddingModel(MagicMock(), dimensions=4)
        assert model.embed([]).shape == (0, 4)
