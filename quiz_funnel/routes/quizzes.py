"""Quiz authoring endpoints: create, read for editing, reconcile, delete."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from quiz_funnel.logic.quiz_authoring import create_quiz, delete_quiz, get_quiz_for_edit
from quiz_funnel.logic.reconciliation import reconcile_quiz
from quiz_funnel.models.quiz_payload import QuizPayload
from quiz_funnel.models.quiz_tree import QuizTree, ReconcileResponse
from quiz_funnel.models.tenant import TenantContext
from quiz_funnel.routes.dependencies import tenant_context


router = APIRouter(prefix="/quizzes")
logger = logging.getLogger(__name__)


@router.post(
    "",
    status_code=201,
    response_model=QuizTree,
    summary="Create a quiz with its full question tree",
    operation_id="createQuiz",
)
def create_quiz_route(payload: QuizPayload, tenant: TenantContext = Depends(tenant_context)) -> QuizTree:
    return create_quiz(payload, tenant)


@router.get(
    "/{quiz_id}",
    response_model=QuizTree,
    summary="Get a quiz with its active questions for editing",
    operation_id="getQuiz",
)
def get_quiz_route(quiz_id: int, tenant: TenantContext = Depends(tenant_context)) -> QuizTree:
    return get_quiz_for_edit(quiz_id, tenant)


@router.put(
    "/{quiz_id}",
    response_model=ReconcileResponse,
    summary="Replace the quiz tree; persisted rows are reconciled by identity",
    operation_id="reconcileQuiz",
)
def reconcile_quiz_route(
    quiz_id: int,
    payload: QuizPayload,
    tenant: TenantContext = Depends(tenant_context),
) -> ReconcileResponse:
    result = reconcile_quiz(quiz_id, payload, tenant)
    logger.info("quizzes.reconciled quiz_id=%s state=%s", quiz_id, result.state.value)
    return ReconcileResponse(quiz=result.quiz, summary=result.summary)


@router.delete(
    "/{quiz_id}",
    status_code=204,
    summary="Delete a quiz with its questions, options, sessions and answers",
    operation_id="deleteQuiz",
)
def delete_quiz_route(quiz_id: int, tenant: TenantContext = Depends(tenant_context)) -> Response:
    delete_quiz(quiz_id, tenant)
    return Response(status_code=204)


__all__ = ["router"]
