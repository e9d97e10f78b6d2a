"""FastAPI routes package."""

from documind.routes.documents import router as documents_router
from documind.routes.health import router as health_router
from documind.routes.questions import router as questions_router
from documind.routes.search import router as search_router

__all__ = ["documents_router", "health_router", "questions_router", "search_router"]
