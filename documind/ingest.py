"""Document ingestion: discover text/markdown/PDF files and turn them into chunks."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import fitz

from documind.chunker import chunk_text
from documind.cleaner import clean_text

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md"}
PDF_SUFFIXES = {".pdf"}
MIN_PAGE_CHARS = 50


@dataclass
class DocumentSource:
    path: Path
    service: str
    # identity in the index; defaults to the bare filename
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.path.name


def discover_sources(docs_dir: Path) -> List[DocumentSource]:
    """
    Every supported file under docs_dir; the service is its parent folder name.

    Sources are named by their path relative to docs_dir so same-named files
    in different folders keep distinct chunk IDs.
    """
    docs_dir = Path(docs_dir)
    if not docs_dir.is_dir():
        raise FileNotFoundError(f"Documents directory not found: {docs_dir}")

    sources = []
    for path in sorted(docs_dir.rglob("*")):
        if path.is_file() and path.suffix.lower() in TEXT_SUFFIXES | PDF_SUFFIXES:
            service = path.parent.name if path.parent != docs_dir else docs_dir.name
            sources.append(DocumentSource(path, service, name=path.relative_to(docs_dir).as_posix()))
    return sources


def extract_text_fast(page) -> str:
    return " ".join(
        block[4] for block in page.get_text("blocks")
        if block[6] == 0 and block[4].strip()
    )


def _iter_pages(path: Path) -> Iterator[Tuple[int, str]]:
    if path.suffix.lower() in PDF_SUFFIXES:
        with fitz.open(path) as doc:
            for page_index, page in enumerate(doc, start=1):
                yield page_index, extract_text_fast(page)
    else:
        # plain text has no pages; form feeds split it when present
        text = path.read_text(encoding="utf-8", errors="replace")
        for page_index, part in enumerate(text.split("\f"), start=1):
            yield page_index, part


def load_document(source: DocumentSource) -> List[Dict]:
    if not source.path.exists():
        raise FileNotFoundError(f"Document not found: {source.path}")

    all_chunks: List[Dict] = []
    for page_index, raw_text in _iter_pages(source.path):
        cleaned = clean_text(raw_text)
        if len(cleaned) < MIN_PAGE_CHARS:
            continue

        all_chunks.extend(
            chunk_text(
                text=cleaned,
                source_file=source.display_name,
                page=page_index,
                service=source.service,
            )
        )

    return all_chunks


def load_documents(sources: Optional[List[DocumentSource]] = None, docs_dir: Path = Path("docs")) -> List[Dict]:
    sources = sources if sources is not None else discover_sources(docs_dir)
    all_chunks: List[Dict] = []

    for source in sources:
        chunks = load_document(source)
        all_chunks.extend(chunks)
        logger.info(f"Loaded document | path={source.path} | chunks={len(chunks)}")

    return all_chunks
