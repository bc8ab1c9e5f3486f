"""Question ordering under the active-uniqueness constraint.

``unique_active_quiz_sequence`` forbids two active questions of a quiz from
sharing a ``sequence_order``. Writing target orders one row at a time can
collide with a row that has not been moved yet (a swap of positions 1 and 2
trips the index on the first UPDATE). Reordering is therefore two-phase:

1. Displacement: every persisted question that the payload keeps is moved to
   the placeholder order ``-question_id``. Identities are unique and positive,
   so placeholders are unique and never equal a legal (non-negative) target.
2. Each row then receives its true target order as it is upserted.

Restoring an archived question to a different position than it held while
archived is checked against the active questions of the snapshot; a holder of
the target position blocks the restore. No automatic renumbering happens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.logic.errors import RestoreConflict
from quiz_funnel.logic.snapshot_loader import QuizSnapshot
from quiz_funnel.models.quiz_payload import QuizPayload

logger = logging.getLogger(__name__)


def placeholder_order(question_id: int) -> int:
    return -int(question_id)


@dataclass(frozen=True)
class DisplacementPlan:
    placeholders: Mapping[int, int]

    @property
    def question_ids(self) -> frozenset[int]:
        return frozenset(self.placeholders)


def check_restore_conflicts(snapshot: QuizSnapshot, payload: QuizPayload) -> None:
    """Raise ``RestoreConflict`` for the first restore blocked by an active question."""
    for question in payload.questions:
        qid = question.question_id
        if qid is None:
            continue
        persisted = snapshot.questions.get(int(qid))
        if persisted is None or not persisted.is_archived:
            continue
        target = int(question.sequence_order)
        if target == persisted.sequence_order:
            continue
        blocker = snapshot.active_question_at(target, exclude=persisted.question_id)
        if blocker is not None:
            logger.info(
                "order_sequences.restore_conflict quiz_id=%s question_id=%s target=%s blocker=%s",
                snapshot.quiz_id,
                persisted.question_id,
                target,
                blocker,
            )
            raise RestoreConflict(persisted.question_id, target, blocker)


def plan_displacement(payload_question_ids: frozenset[int]) -> DisplacementPlan:
    return DisplacementPlan(
        placeholders=MappingProxyType(
            {qid: placeholder_order(qid) for qid in sorted(payload_question_ids)}
        )
    )


def displace_questions(conn: Connection, quiz_id: int, plan: DisplacementPlan) -> None:
    """Phase 1: park every kept question on its placeholder order."""
    for qid, placeholder in plan.placeholders.items():
        conn.execute(
            sql_text(
                "UPDATE questions SET sequence_order = :ord WHERE question_id = :qid AND quiz_id = :quiz"
            ),
            {"ord": placeholder, "qid": qid, "quiz": int(quiz_id)},
        )
    logger.info(
        "order_sequences.displaced quiz_id=%s count=%s",
        quiz_id,
        len(plan.placeholders),
    )


def active_orders(conn: Connection, quiz_id: int) -> list[tuple[int, int]]:
    """Return (question_id, sequence_order) for active questions, by order."""
    rows = conn.execute(
        sql_text(
            "SELECT question_id, sequence_order FROM questions "
            "WHERE quiz_id = :qid AND is_archived = :archived "
            "ORDER BY sequence_order ASC, question_id ASC"
        ),
        {"qid": int(quiz_id), "archived": False},
    ).fetchall()
    return [(int(r[0]), int(r[1])) for r in rows]


__all__ = (
    "DisplacementPlan",
    "placeholder_order",
    "check_restore_conflicts",
    "plan_displacement",
    "displace_questions",
    "active_orders",
)
