"""RAG-based question answering endpoint."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from documind.metrics import MetricsRecorder
from documind.rag import RAGEngine, RAGError
from documind.routes.deps import get_rag_engine, get_recorder

router = APIRouter(prefix="/api", tags=["questions"])


class Question(BaseModel):
    question: str = Field(..., min_length=1)


class Answer(BaseModel):
    answer: str
    sources: List[str] = []


@router.post("/ask", response_model=Answer)
async def ask(
    q: Question,
    rag: RAGEngine = Depends(get_rag_engine),
    recorder: MetricsRecorder = Depends(get_recorder),
):
    try:
        with recorder.track("/api/ask", query_length=len(q.question)) as details:
            result = await rag.ask(q.question)
            details["result_count"] = len(result.get("sources", []))
    except RAGError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return result
