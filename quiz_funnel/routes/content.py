"""Public quiz content served to end users."""

from __future__ import annotations

from fastapi import APIRouter

from quiz_funnel.logic.quiz_authoring import get_public_quiz
from quiz_funnel.models.quiz_tree import QuizTree


router = APIRouter(prefix="/content")


@router.get(
    "/quizzes/{quiz_id}",
    response_model=QuizTree,
    summary="Get an active quiz with its active questions and options",
    operation_id="getQuizContent",
)
def get_quiz_content(quiz_id: int) -> QuizTree:
    return get_public_quiz(quiz_id)


__all__ = ["router"]
