"""Sentence-boundary aware chunking with deterministic IDs for stable document identity."""

import uuid
from typing import Dict, List

import spacy

# blank pipeline: the rule-based sentencizer needs no downloaded model
nlp = spacy.blank("en")
nlp.add_pipe("sentencizer")

NAMESPACE_DOCUMIND = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")

MIN_CHUNK_CHARS = 100


def generate_chunk_id(file: str, page: int, offset: int) -> str:
    content = f"{file}:{page}:{offset}"
    return str(uuid.uuid5(NAMESPACE_DOCUMIND, content))


def _make_chunk(sentences: List[str], *, source_file: str, page: int, service: str, offset: int) -> Dict:
    return {
        "id": generate_chunk_id(source_file, page, offset),
        "text": " ".join(sentences),
        "metadata": {"file": source_file, "page": page, "service": service},
    }


def chunk_text(
    text: str,
    *,
    source_file: str,
    page: int,
    service: str,
    max_chars: int = 2000,
    overlap_sentences: int = 2,
) -> List[Dict]:
    sentences = [sent.text.strip() for sent in nlp(text).sents if sent.text.strip()]
    if not sentences:
        return []

    chunks: List[Dict] = []
    current: List[str] = []
    current_length = 0

    def emit():
        if len(" ".join(current)) >= MIN_CHUNK_CHARS:
            chunks.append(
                _make_chunk(current, source_file=source_file, page=page, service=service, offset=len(chunks))
            )

    for sent in sentences:
        if current and current_length + len(sent) > max_chars:
            emit()
            current = current[-overlap_sentences:] if overlap_sentences else []
            current_length = sum(len(s) for s in current)

        current.append(sent)
        current_length += len(sent)

    if current:
        emit()

    return chunks
