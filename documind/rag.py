"""Core RAG engine: embed the question, search Qdrant, prompt Gemini."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from google import genai
from qdrant_client import AsyncQdrantClient

from documind.config import Settings
from documind.embeddings import EmbeddingModel
from documind.logging_config import log_latency
from documind.prompts import DEFAULT_NO_ANSWER, RAG_ANSWER_PROMPT

logger = logging.getLogger(__name__)

SCROLL_PAGE_SIZE = 256


class RAGError(Exception):
    """A single failed step of the pipeline (embedding, search or generation)."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")

    @property
    def kind(self) -> str:
        return f"{self.stage}_error"


@dataclass
class RetrievedChunk:
    id: str
    text: str
    file: str
    page: int
    score: float
    service: Optional[str] = None

    @property
    def source(self) -> str:
        return f"{self.file}#page-{self.page}"


class RAGEngine:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[genai.Client] = None,
        embedder: Optional[EmbeddingModel] = None,
        qdrant: Optional[AsyncQdrantClient] = None,
    ):
        self.settings = settings or Settings.from_env()

        if client is None:
            if not self.settings.gemini_api_key:
                raise RuntimeError("GEMINI_API_KEY not found in environment")
            client = genai.Client(api_key=self.settings.gemini_api_key)
        self.client = client
        self.model = self.settings.chat_model
        self.collection = self.settings.collection_name

        self.embedder = embedder or EmbeddingModel(
            self.client,
            model_name=self.settings.embedding_model,
            dimensions=self.settings.embedding_dimensions,
        )
        self.qdrant = qdrant or AsyncQdrantClient(
            url=self.settings.qdrant_url,
            api_key=self.settings.qdrant_api_key,
        )

        logger.info(f"RAGEngine initialized | collection={self.collection} | model={self.model}")

    async def verify_collection(self):
        if not await self.qdrant.collection_exists(self.collection):
            raise RuntimeError(
                f"Qdrant collection '{self.collection}' not found. Run `python -m documind.index_documents` first."
            )

    async def close(self):
        await self.qdrant.close()
        logger.info("RAGEngine resources closed")

    @log_latency("rag.search")
    async def search(self, query: str, top_k: Optional[int] = None) -> List[RetrievedChunk]:
        top_k = top_k or self.settings.top_k

        try:
            vector = await self.embedder.embed_query_async(query)
        except Exception as e:
            raise RAGError("embedding", e) from e

        try:
            response = await self.qdrant.query_points(
                collection_name=self.collection,
                query=vector,
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise RAGError("search", e) from e

        chunks: List[RetrievedChunk] = []
        for point in response.points:
            payload = point.payload or {}
            text = payload.get("text")
            file = payload.get("file")
            page = payload.get("page")

            if not text or not file or page is None:
                logger.warning(f"Skipping malformed chunk | id={point.id}")
                continue

            chunks.append(
                RetrievedChunk(
                    id=str(point.id),
                    text=text,
                    file=file,
                    page=page,
                    score=point.score,
                    service=payload.get("service"),
                )
            )

        logger.info(f"Retrieval complete | requested={top_k} | chunks={len(chunks)}")
        return chunks

    @log_latency("rag.ask")
    async def ask(self, question: str, top_k: Optional[int] = None) -> Dict:
        logger.info(f"Query received | question_length={len(question)}")

        chunks = await self.search(question, top_k)
        if not chunks:
            logger.warning("No usable chunks retrieved, skipping generation")
            return {"answer": DEFAULT_NO_ANSWER, "sources": []}

        context = "\n\n".join(c.text for c in chunks)
        prompt = RAG_ANSWER_PROMPT.format(context=context, question=question)

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
            )
            answer = (response.text or "").strip()
        except Exception as e:
            raise RAGError("generation", e) from e

        logger.info(f"LLM response received | answer_length={len(answer)}")
        return {
            "answer": answer,
            "sources": sorted({c.source for c in chunks}),
        }

    @log_latency("rag.list_documents")
    async def list_documents(self) -> List[Dict]:
        documents: Dict[str, Dict] = {}
        offset = None

        try:
            while True:
                points, offset = await self.qdrant.scroll(
                    collection_name=self.collection,
                    limit=SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=["file", "service"],
                    with_vectors=False,
                )
                for point in points:
                    payload = point.payload or {}
                    file = payload.get("file")
                    if not file:
                        continue
                    doc = documents.setdefault(
                        file, {"file": file, "service": payload.get("service"), "chunks": 0}
                    )
                    doc["chunks"] += 1
                if offset is None:
                    break
        except Exception as e:
            raise RAGError("listing", e) from e

        return [documents[name] for name in sorted(documents)]
