"""Domain error taxonomy for quiz authoring and reconciliation.

Single source of truth for error codes and HTTP statuses. Each error carries a
human-readable ``detail`` that names the offending value or identity so the
caller can correct the payload; storage errors expose only a generic detail.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class QuizFunnelError(Exception):
    code = "QUIZ_FUNNEL_ERROR"
    status = 500
    title = "Internal Server Error"

    def __init__(self, detail: str, **context: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = dict(context)

    def to_problem(self) -> Dict[str, Any]:
        problem: Dict[str, Any] = {
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
            "code": self.code,
        }
        if self.context:
            problem["context"] = dict(self.context)
        return problem


class NotFound(QuizFunnelError):
    code = "QUIZ_NOT_FOUND"
    status = 404
    title = "Not Found"


class Unauthorized(QuizFunnelError):
    code = "QUIZ_UNAUTHORIZED"
    status = 403
    title = "Forbidden"


class DuplicateOrdering(QuizFunnelError):
    code = "PAYLOAD_DUPLICATE_ORDERING"
    status = 400
    title = "Invalid Quiz Payload"

    def __init__(self, sequence_order: int) -> None:
        super().__init__(
            f"Duplicate sequence_order: {sequence_order}. Each question must have a unique sequence_order.",
            sequence_order=sequence_order,
        )
        self.sequence_order = sequence_order


class InvalidQuestionShape(QuizFunnelError):
    code = "PAYLOAD_INVALID_QUESTION_SHAPE"
    status = 400
    title = "Invalid Quiz Payload"


class RestoreConflict(QuizFunnelError):
    code = "RECONCILE_RESTORE_CONFLICT"
    status = 409
    title = "Conflict"

    def __init__(self, question_id: int, sequence_order: int, blocking_question_id: int) -> None:
        super().__init__(
            f"Cannot restore question {question_id} with sequence_order {sequence_order}: "
            f"active question {blocking_question_id} already holds it. Reassign sequence_order values.",
            question_id=question_id,
            sequence_order=sequence_order,
            blocking_question_id=blocking_question_id,
        )
        self.question_id = question_id
        self.sequence_order = sequence_order
        self.blocking_question_id = blocking_question_id


class EmptyActiveSet(QuizFunnelError):
    code = "RECONCILE_EMPTY_ACTIVE_SET"
    status = 409
    title = "Conflict"

    def __init__(self, quiz_id: Optional[int] = None) -> None:
        if quiz_id is None:
            super().__init__("Quiz must have at least one question.")
        else:
            super().__init__(
                "Quiz must have at least one active question. Cannot archive all questions.",
                quiz_id=quiz_id,
            )


class SessionNotFound(NotFound):
    code = "SESSION_NOT_FOUND"


class InvalidAnswer(QuizFunnelError):
    code = "SESSION_INVALID_ANSWER"
    status = 400
    title = "Invalid Answer"


class StorageFailure(QuizFunnelError):
    code = "STORAGE_FAILURE"
    status = 500
    title = "Storage Failure"

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        # The underlying driver message is logged by the caller, never echoed
        super().__init__(f"Storage operation failed: {operation}")
        self.operation = operation
        self.cause = cause


VALIDATION_ERRORS = (DuplicateOrdering, InvalidQuestionShape)

__all__ = [
    "QuizFunnelError",
    "NotFound",
    "Unauthorized",
    "DuplicateOrdering",
    "InvalidQuestionShape",
    "RestoreConflict",
    "EmptyActiveSet",
    "SessionNotFound",
    "InvalidAnswer",
    "StorageFailure",
    "VALIDATION_ERRORS",
]
