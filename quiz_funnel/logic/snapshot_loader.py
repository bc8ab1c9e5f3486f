"""Read the persisted quiz tree needed to diff a submitted payload.

The snapshot is keyed by identity only: questions by ``question_id`` and
options by ``option_id`` with their owning question. Each option carries the
number of recorded answers that reference it. Read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.logic.errors import NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedQuestion:
    question_id: int
    sequence_order: int
    is_archived: bool


@dataclass(frozen=True)
class PersistedOption:
    option_id: int
    question_id: int
    is_archived: bool
    response_count: int

    @property
    def has_history(self) -> bool:
        return self.response_count > 0


@dataclass(frozen=True)
class QuizSnapshot:
    quiz_id: int
    user_id: Optional[int]
    shop_id: Optional[int]
    questions: Mapping[int, PersistedQuestion] = field(default_factory=dict)
    options: Mapping[int, PersistedOption] = field(default_factory=dict)

    def option_belongs_to(self, option_id: Optional[int], question_id: Optional[int]) -> bool:
        if option_id is None or question_id is None:
            return False
        opt = self.options.get(int(option_id))
        return opt is not None and opt.question_id == int(question_id)

    def active_question_at(self, sequence_order: int, *, exclude: Optional[int] = None) -> Optional[int]:
        """Return the id of an active question holding ``sequence_order``, if any."""
        for q in self.questions.values():
            if q.is_archived or q.question_id == exclude:
                continue
            if q.sequence_order == sequence_order:
                return q.question_id
        return None


def load_snapshot(conn: Connection, quiz_id: int) -> QuizSnapshot:
    """Load the snapshot for ``quiz_id`` on ``conn``.

    Raises ``NotFound`` when the quiz does not exist.
    """
    owner = conn.execute(
        sql_text("SELECT quiz_id, user_id, shop_id FROM quizzes WHERE quiz_id = :qid"),
        {"qid": int(quiz_id)},
    ).mappings().fetchone()
    if owner is None:
        raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))

    question_rows = conn.execute(
        sql_text(
            "SELECT question_id, sequence_order, is_archived FROM questions WHERE quiz_id = :qid"
        ),
        {"qid": int(quiz_id)},
    ).mappings().all()
    questions = {
        int(r["question_id"]): PersistedQuestion(
            question_id=int(r["question_id"]),
            sequence_order=int(r["sequence_order"]),
            is_archived=bool(r["is_archived"]),
        )
        for r in question_rows
    }

    option_rows = conn.execute(
        sql_text(
            """
            SELECT ao.option_id,
                   ao.question_id,
                   ao.is_archived,
                   COUNT(ua.answer_id) AS response_count
            FROM answer_options ao
            JOIN questions q ON q.question_id = ao.question_id
            LEFT JOIN user_answers ua ON ua.selected_option_id = ao.option_id
            WHERE q.quiz_id = :qid
            GROUP BY ao.option_id, ao.question_id, ao.is_archived
            """
        ),
        {"qid": int(quiz_id)},
    ).mappings().all()
    options = {
        int(r["option_id"]): PersistedOption(
            option_id=int(r["option_id"]),
            question_id=int(r["question_id"]),
            is_archived=bool(r["is_archived"]),
            response_count=int(r["response_count"] or 0),
        )
        for r in option_rows
    }

    logger.info(
        "snapshot_loader.loaded quiz_id=%s questions=%s options=%s",
        quiz_id,
        len(questions),
        len(options),
    )
    return QuizSnapshot(
        quiz_id=int(owner["quiz_id"]),
        user_id=int(owner["user_id"]) if owner["user_id"] is not None else None,
        shop_id=int(owner["shop_id"]) if owner["shop_id"] is not None else None,
        questions=MappingProxyType(questions),
        options=MappingProxyType(options),
    )


__all__ = ("PersistedQuestion", "PersistedOption", "QuizSnapshot", "load_snapshot")
