"""Decide which persisted rows a submitted tree withdraws, and archive them.

Questions absent from the payload are always archived (soft delete). Options
absent from the payload are archived only when no recorded answer references
them; answered options stay active so past responses keep resolving to a live
option with a stable ``associated_value``.

Planning is pure; ``apply_archival`` performs the writes on the caller's
transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.logic.snapshot_loader import QuizSnapshot
from quiz_funnel.models.quiz_payload import QuizPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchivePlan:
    payload_question_ids: frozenset[int]
    payload_option_ids: frozenset[int]
    question_ids: frozenset[int]
    option_ids: frozenset[int]
    retained_option_ids: frozenset[int]


def continuation_ids(snapshot: QuizSnapshot, payload: QuizPayload) -> tuple[frozenset[int], frozenset[int]]:
    """Return (question ids, option ids) in ``payload`` that continue persisted rows.

    An option continues a persisted row only when it is submitted under the
    question that owns it.
    """
    question_ids: set[int] = set()
    option_ids: set[int] = set()
    for question in payload.questions:
        qid = question.question_id
        if qid is None or int(qid) not in snapshot.questions:
            continue
        question_ids.add(int(qid))
        for option in question.options or []:
            if snapshot.option_belongs_to(option.option_id, qid):
                option_ids.add(int(option.option_id))  # type: ignore[arg-type]
    return frozenset(question_ids), frozenset(option_ids)


def plan_archival(snapshot: QuizSnapshot, payload: QuizPayload) -> ArchivePlan:
    payload_question_ids, payload_option_ids = continuation_ids(snapshot, payload)

    questions = frozenset(
        q.question_id
        for q in snapshot.questions.values()
        if q.question_id not in payload_question_ids and not q.is_archived
    )
    withdrawn_options = [
        o for o in snapshot.options.values() if o.option_id not in payload_option_ids
    ]
    options = frozenset(
        o.option_id for o in withdrawn_options if not o.has_history and not o.is_archived
    )
    retained = frozenset(o.option_id for o in withdrawn_options if o.has_history)

    return ArchivePlan(
        payload_question_ids=payload_question_ids,
        payload_option_ids=payload_option_ids,
        question_ids=questions,
        option_ids=options,
        retained_option_ids=retained,
    )


def apply_archival(conn: Connection, snapshot: QuizSnapshot, plan: ArchivePlan) -> None:
    for question_id in sorted(plan.question_ids):
        conn.execute(
            sql_text("UPDATE questions SET is_archived = :archived WHERE question_id = :qid"),
            {"archived": True, "qid": question_id},
        )
        logger.info("archival.question quiz_id=%s question_id=%s", snapshot.quiz_id, question_id)

    for option_id in sorted(plan.option_ids):
        conn.execute(
            sql_text("UPDATE answer_options SET is_archived = :archived WHERE option_id = :oid"),
            {"archived": True, "oid": option_id},
        )
        logger.info("archival.option quiz_id=%s option_id=%s", snapshot.quiz_id, option_id)

    for option_id in sorted(plan.retained_option_ids):
        opt = snapshot.options[option_id]
        if opt.is_archived:
            conn.execute(
                sql_text("UPDATE answer_options SET is_archived = :archived WHERE option_id = :oid"),
                {"archived": False, "oid": option_id},
            )
        logger.info(
            "archival.option_retained quiz_id=%s option_id=%s responses=%s",
            snapshot.quiz_id,
            option_id,
            opt.response_count,
        )


__all__ = ("ArchivePlan", "continuation_ids", "plan_archival", "apply_archival")
