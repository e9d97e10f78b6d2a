"""Semantic search over indexed chunks, without generation."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from documind.metrics import MetricsRecorder
from documind.rag import RAGEngine, RAGError
from documind.routes.deps import get_rag_engine, get_recorder

router = APIRouter(prefix="/api", tags=["search"])


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    top_k: Optional[int] = Field(None, ge=1, le=50)


class SearchHit(BaseModel):
    id: str
    text: str
    file: str
    page: int
    score: float


class SearchResponse(BaseModel):
    query: str
    results: List[SearchHit]


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    rag: RAGEngine = Depends(get_rag_engine),
    recorder: MetricsRecorder = Depends(get_recorder),
):
    try:
        with recorder.track("/api/search", query_length=len(request.query)) as details:
            chunks = await rag.search(request.query, request.top_k)
            details["result_count"] = len(chunks)
    except RAGError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return SearchResponse(
        query=request.query,
        results=[
            SearchHit(id=c.id, text=c.text, file=c.file, page=c.page, score=c.score)
            for c in chunks
        ],
    )
