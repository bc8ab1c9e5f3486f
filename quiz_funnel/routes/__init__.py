"""APIRouter registration for the Quiz Funnel service."""

from __future__ import annotations

from fastapi import APIRouter

from quiz_funnel.routes.content import router as content_router
from quiz_funnel.routes.quizzes import router as quizzes_router
from quiz_funnel.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(quizzes_router, tags=["Quizzes"])
api_router.include_router(content_router, tags=["Content"])
api_router.include_router(sessions_router, tags=["Sessions"])

__all__ = ["api_router"]
