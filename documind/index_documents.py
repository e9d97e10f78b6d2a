"""Offline indexing pipeline: chunks documents, embeds them with Gemini, and stores them in Qdrant."""

import argparse
from pathlib import Path

from google import genai
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from documind.config import Settings
from documind.embeddings import DOCUMENT_TASK, EmbeddingModel
from documind.ingest import load_documents
from documind.logging_config import setup_logging

UPSERT_BATCH_SIZE = 64


def main(argv=None):
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Index documents into Qdrant")
    parser.add_argument("--docs-dir", type=Path, default=settings.docs_dir)
    parser.add_argument("--collection", default=settings.collection_name)
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    if not settings.gemini_api_key:
        raise SystemExit("GEMINI_API_KEY not found in environment")

    print(f"Starting document indexing from {args.docs_dir}...")

    chunks = load_documents(docs_dir=args.docs_dir)
    if not chunks:
        print("No chunks produced, nothing to index")
        return
    print(f"Loaded {len(chunks)} chunks")

    embedder = EmbeddingModel(
        genai.Client(api_key=settings.gemini_api_key),
        model_name=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
    embeddings = embedder.embed([c["text"] for c in chunks], task_type=DOCUMENT_TASK)
    print(f"Generated embeddings with shape {embeddings.shape}")

    client = QdrantClient(url=settings.qdrant_url, api_key=settings.qdrant_api_key)

    if not client.collection_exists(args.collection):
        client.create_collection(
            collection_name=args.collection,
            vectors_config=VectorParams(size=embeddings.shape[1], distance=Distance.COSINE),
        )
        print(f"Created collection '{args.collection}'")

    points = [
        PointStruct(
            id=chunk["id"],
            vector=emb.tolist(),
            payload={**chunk["metadata"], "text": chunk["text"]},
        )
        for emb, chunk in zip(embeddings, chunks)
    ]

    for i in range(0, len(points), UPSERT_BATCH_SIZE):
        batch = points[i : i + UPSERT_BATCH_SIZE]
        client.upsert(collection_name=args.collection, points=batch)
        print(f"Upserted {i + len(batch)} / {len(points)} points")

    client.close()
    print(f"Indexed {len(points)} chunks into Qdrant")


if __name__ == "__main__":
    main()
