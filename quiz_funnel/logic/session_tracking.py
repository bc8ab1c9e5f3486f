"""End-user session lifecycle: start, progress, answers, completion.

Recorded answers are the history that the reconciliation engine protects: an
option referenced here is never archived and keeps its ``associated_value``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from quiz_funnel.db.base import transaction_scope
from quiz_funnel.logic.errors import InvalidAnswer, NotFound, SessionNotFound, StorageFailure
from quiz_funnel.logic.repository_sessions import (
    get_option_question,
    get_question_quiz,
    get_session,
    insert_answer,
    insert_session,
    mark_completed,
    quiz_exists,
    set_last_question,
)
from quiz_funnel.models.session import (
    AnswerRecorded,
    AnswerRequest,
    ProgressRequest,
    SessionStarted,
    SessionStartRequest,
    SessionState,
)

logger = logging.getLogger(__name__)

COMPLETED_PROFILE = "Completed"


def _require_session(conn: Connection, session_id: str) -> dict:
    session = get_session(conn, session_id)
    if session is None:
        raise SessionNotFound(f"Session {session_id} not found", session_id=session_id)
    return session


def _require_question_in_quiz(conn: Connection, question_id: int, quiz_id: int) -> None:
    if get_question_quiz(conn, question_id) != int(quiz_id):
        raise InvalidAnswer(
            f"Question {question_id} is not an active question of quiz {quiz_id}",
            question_id=int(question_id),
            quiz_id=int(quiz_id),
        )


def start_session(request: SessionStartRequest, *, engine: Optional[Engine] = None) -> SessionStarted:
    session_id = str(uuid.uuid4())
    try:
        with transaction_scope(engine) as conn:
            if not quiz_exists(conn, request.quiz_id):
                raise NotFound(f"Quiz {request.quiz_id} not found", quiz_id=request.quiz_id)
            insert_session(conn, session_id, request.quiz_id, request.utm_params())
    except SQLAlchemyError as exc:
        logger.error("sessions.start.storage_failure quiz_id=%s", request.quiz_id, exc_info=True)
        raise StorageFailure("start_session", exc) from exc
    logger.info("sessions.started session_id=%s quiz_id=%s", session_id, request.quiz_id)
    return SessionStarted(session_id=session_id, quiz_id=request.quiz_id)


def record_progress(session_id: str, request: ProgressRequest, *, engine: Optional[Engine] = None) -> SessionState:
    try:
        with transaction_scope(engine) as conn:
            session = _require_session(conn, session_id)
            _require_question_in_quiz(conn, request.last_question_id, session["quiz_id"])
            set_last_question(conn, session_id, request.last_question_id)
            state = get_session(conn, session_id)
    except SQLAlchemyError as exc:
        logger.error("sessions.progress.storage_failure session_id=%s", session_id, exc_info=True)
        raise StorageFailure("record_progress", exc) from exc
    logger.info("sessions.progress session_id=%s question_id=%s", session_id, request.last_question_id)
    return SessionState(**state)  # type: ignore[arg-type]


def submit_answer(session_id: str, request: AnswerRequest, *, engine: Optional[Engine] = None) -> AnswerRecorded:
    """Record one answer; the option must be an active option of the named question."""
    answer_id = str(uuid.uuid4())
    try:
        with transaction_scope(engine) as conn:
            session = _require_session(conn, session_id)
            _require_question_in_quiz(conn, request.question_id, session["quiz_id"])
            if get_option_question(conn, request.selected_option_id) != request.question_id:
                raise InvalidAnswer(
                    f"Option {request.selected_option_id} does not belong to question {request.question_id}",
                    question_id=request.question_id,
                    option_id=request.selected_option_id,
                )
            insert_answer(conn, answer_id, session_id, request.question_id, request.selected_option_id)
    except SQLAlchemyError as exc:
        logger.error("sessions.answer.storage_failure session_id=%s", session_id, exc_info=True)
        raise StorageFailure("submit_answer", exc) from exc
    logger.info(
        "sessions.answer_recorded session_id=%s question_id=%s option_id=%s",
        session_id,
        request.question_id,
        request.selected_option_id,
    )
    return AnswerRecorded(
        answer_id=answer_id,
        session_id=session_id,
        question_id=request.question_id,
        selected_option_id=request.selected_option_id,
    )


def complete_session(session_id: str, *, engine: Optional[Engine] = None) -> SessionState:
    try:
        with transaction_scope(engine) as conn:
            _require_session(conn, session_id)
            mark_completed(conn, session_id, COMPLETED_PROFILE)
            state = get_session(conn, session_id)
    except SQLAlchemyError as exc:
        logger.error("sessions.complete.storage_failure session_id=%s", session_id, exc_info=True)
        raise StorageFailure("complete_session", exc) from exc
    logger.info("sessions.completed session_id=%s", session_id)
    return SessionState(**state)  # type: ignore[arg-type]


def get_session_state(session_id: str, *, engine: Optional[Engine] = None) -> SessionState:
    try:
        with transaction_scope(engine) as conn:
            state = _require_session(conn, session_id)
    except SQLAlchemyError as exc:
        logger.error("sessions.read.storage_failure session_id=%s", session_id, exc_info=True)
        raise StorageFailure("get_session", exc) from exc
    return SessionState(**state)


__all__ = [
    "start_session",
    "record_progress",
    "submit_answer",
    "complete_session",
    "get_session_state",
]
