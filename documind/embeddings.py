"""Gemini embedding client with L2 normalization for consistent cosine scoring."""

import asyncio
import logging
from typing import List

import numpy as np
from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

QUERY_TASK = "RETRIEVAL_QUERY"
DOCUMENT_TASK = "RETRIEVAL_DOCUMENT"


class EmbeddingModel:
    def __init__(
        self,
        client: genai.Client,
        model_name: str = "gemini-embedding-001",
        dimensions: int = 768,
        batch_size: int = 100,
    ):
        self.client = client
        self.model_name = model_name
        self.dimensions = dimensions
        self.batch_size = batch_size

    def embed(self, texts: List[str], task_type: str = DOCUMENT_TASK, normalize: bool = True) -> np.ndarray:
        if not texts:
            return np.empty((0, self.dimensions), dtype=np.float32)

        vectors: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            response = self.client.models.embed_content(
                model=self.model_name,
                contents=batch,
                config=types.EmbedContentConfig(
                    task_type=task_type,
                    output_dimensionality=self.dimensions,
                ),
            )
            vectors.extend(e.values for e in response.embeddings)
            logger.debug(f"Embedded batch | size={len(batch)} | task={task_type}")

        embeddings = np.asarray(vectors, dtype=np.float32)
        if normalize:
            norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
            embeddings = embeddings / np.where(norms == 0, 1.0, norms)
        return embeddings

    def embed_query(self, text: str) -> List[float]:
        return self.embed([text], task_type=QUERY_TASK)[0].tolist()

    async def embed_query_async(self, text: str) -> List[float]:
        return await asyncio.to_thread(self.embed_query, text)
