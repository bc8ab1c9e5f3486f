"""End-user session endpoints: start, progress, answers, completion."""

from __future__ import annotations

from fastapi import APIRouter

from quiz_funnel.logic.session_tracking import (
    complete_session,
    get_session_state,
    record_progress,
    start_session,
    submit_answer,
)
from quiz_funnel.models.session import (
    AnswerRecorded,
    AnswerRequest,
    ProgressRequest,
    SessionStarted,
    SessionStartRequest,
    SessionState,
)


router = APIRouter(prefix="/sessions")


@router.post("", status_code=201, response_model=SessionStarted, operation_id="startSession")
def start_session_route(payload: SessionStartRequest) -> SessionStarted:
    return start_session(payload)


@router.get("/{session_id}", response_model=SessionState, operation_id="getSession")
def get_session_route(session_id: str) -> SessionState:
    return get_session_state(session_id)


@router.post("/{session_id}/progress", response_model=SessionState, operation_id="recordProgress")
def record_progress_route(session_id: str, payload: ProgressRequest) -> SessionState:
    return record_progress(session_id, payload)


@router.post("/{session_id}/answers", status_code=201, response_model=AnswerRecorded, operation_id="submitAnswer")
def submit_answer_route(session_id: str, payload: AnswerRequest) -> AnswerRecorded:
    return submit_answer(session_id, payload)


@router.post("/{session_id}/complete", response_model=SessionState, operation_id="completeSession")
def complete_session_route(session_id: str) -> SessionState:
    return complete_session(session_id)


__all__ = ["router"]
