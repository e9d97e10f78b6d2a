"""Listing of indexed documents."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from documind.metrics import MetricsRecorder
from documind.rag import RAGEngine, RAGError
from documind.routes.deps import get_rag_engine, get_recorder

router = APIRouter(prefix="/api", tags=["documents"])


class DocumentInfo(BaseModel):
    file: str
    service: Optional[str] = None
    chunks: int


class DocumentList(BaseModel):
    documents: List[DocumentInfo]


@router.get("/documents", response_model=DocumentList)
async def list_documents(
    rag: RAGEngine = Depends(get_rag_engine),
    recorder: MetricsRecorder = Depends(get_recorder),
):
    try:
        with recorder.track("/api/documents") as details:
            documents = await rag.list_documents()
            details["result_count"] = len(documents)
    except RAGError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return {"documents": documents}
