"""
Environment-driven settings.

Values come from the process environment, with a `.env` file in the working
directory loaded first if present.

Environment Variables:
    GEMINI_API_KEY: Gemini API key (required by the RAG engine)
    GEMINI_CHAT_MODEL: Chat model (default: models/gemini-2.5-flash)
    GEMINI_EMBEDDING_MODEL: Embedding model (default: gemini-embedding-001)
    EMBEDDING_DIMENSIONS: Embedding vector size (default: 768)

    QDRANT_URL: Qdrant endpoint (default: http://localhost:6333)
    QDRANT_API_KEY: Qdrant API key (optional)
    QDRANT_COLLECTION: Collection name (default: documind-docs)
    RAG_TOP_K: Chunks retrieved per question (default: 5)
    DOCS_DIR: Directory scanned by the indexer (default: docs)

    METRICS_PATH: JSON Lines file for flushed metrics (default: metrics/metrics.jsonl)
    METRICS_FLUSH_INTERVAL: Seconds between flushes (default: 60)
    METRICS_SHUTDOWN_TIMEOUT: Seconds allowed for the final flush (default: 5)
    METRICS_MAX_RETAINED: Max events kept in memory after failed writes (default: 10000)
    METRICS_MAX_BYTES: Rotate the metrics file past this size, 0 disables (default: 0)

    LOG_LEVEL: Root log level (default: INFO)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a number, got: {value}")


@dataclass
class Settings:
    gemini_api_key: Optional[str] = None
    chat_model: str = "models/gemini-2.5-flash"
    embedding_model: str = "gemini-embedding-001"
    embedding_dimensions: int = 768

    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: Optional[str] = None
    collection_name: str = "documind-docs"
    top_k: int = 5
    docs_dir: Path = Path("docs")

    metrics_path: Path = Path("metrics/metrics.jsonl")
    metrics_flush_interval: float = 60.0
    metrics_shutdown_timeout: float = 5.0
    metrics_max_retained: int = 10000
    metrics_max_bytes: int = 0

    log_level: str = "INFO"

    def __post_init__(self):
        if self.metrics_flush_interval <= 0:
            raise ValueError("METRICS_FLUSH_INTERVAL must be positive")
        if self.metrics_shutdown_timeout <= 0:
            raise ValueError("METRICS_SHUTDOWN_TIMEOUT must be positive")
        if self.metrics_max_retained < 1:
            raise ValueError("METRICS_MAX_RETAINED must be at least 1")
        if self.top_k < 1:
            raise ValueError("RAG_TOP_K must be at least 1")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=get_env("GEMINI_API_KEY"),
            chat_model=get_env("GEMINI_CHAT_MODEL", "models/gemini-2.5-flash"),
            embedding_model=get_env("GEMINI_EMBEDDING_MODEL", "gemini-embedding-001"),
            embedding_dimensions=get_env_int("EMBEDDING_DIMENSIONS", 768),
            qdrant_url=get_env("QDRANT_URL", "http://localhost:6333"),
            qdrant_api_key=get_env("QDRANT_API_KEY"),
            collection_name=get_env("QDRANT_COLLECTION", "documind-docs"),
            top_k=get_env_int("RAG_TOP_K", 5),
            docs_dir=Path(get_env("DOCS_DIR", "docs")),
            metrics_path=Path(get_env("METRICS_PATH", "metrics/metrics.jsonl")),
            metrics_flush_interval=get_env_float("METRICS_FLUSH_INTERVAL", 60.0),
            metrics_shutdown_timeout=get_env_float("METRICS_SHUTDOWN_TIMEOUT", 5.0),
            metrics_max_retained=get_env_int("METRICS_MAX_RETAINED", 10000),
            metrics_max_bytes=get_env_int("METRICS_MAX_BYTES", 0),
            log_level=get_env("LOG_LEVEL", "INFO").upper(),
        )
