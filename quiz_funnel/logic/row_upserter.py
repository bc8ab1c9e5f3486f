"""Insert-or-update of submitted questions and options, keyed by identity.

A payload row whose identity exists in the snapshot is updated in place so
foreign history (recorded answers) keeps pointing at it; any other row is
inserted and receives a new identity. Options referenced by recorded answers
only accept display changes: their ``associated_value`` is left as persisted.

Each question is written with its true target ``sequence_order``; callers
must have displaced kept questions to placeholder orders first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.db.json_columns import encode_json
from quiz_funnel.logic.snapshot_loader import QuizSnapshot
from quiz_funnel.models.quiz_payload import OptionPayload, QuestionPayload, QuizPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertResult:
    question_ids: tuple[int, ...]
    touched_question_ids: frozenset[int]
    touched_option_ids: frozenset[int]
    inserted_question_ids: frozenset[int]
    inserted_option_ids: frozenset[int]


def _question_params(question: QuestionPayload) -> dict[str, Any]:
    return {
        "ord": int(question.sequence_order),
        "qtext": question.question_text or None,
        "kind": question.kind,
        "image_url": question.image_url or None,
        "instructions_text": question.instructions_text or None,
        "loader_text": question.loader_text or None,
        "popup_question": question.popup_question or None,
        "loader_bars": encode_json(question.loader_bars),
        "result_page_config": encode_json(question.result_page_config),
        "timeline_projection_config": encode_json(question.timeline_projection_config),
        "educational_box_title": question.educational_box_title or None,
        "educational_box_text": question.educational_box_text or None,
    }


def _update_question(conn: Connection, question_id: int, question: QuestionPayload) -> None:
    params = _question_params(question)
    params.update({"qid": question_id, "archived": False})
    conn.execute(
        sql_text(
            """
            UPDATE questions SET
                sequence_order = :ord,
                question_text = :qtext,
                kind = :kind,
                image_url = :image_url,
                instructions_text = :instructions_text,
                loader_text = :loader_text,
                popup_question = :popup_question,
                loader_bars = :loader_bars,
                result_page_config = :result_page_config,
                timeline_projection_config = :timeline_projection_config,
                educational_box_title = :educational_box_title,
                educational_box_text = :educational_box_text,
                is_archived = :archived
            WHERE question_id = :qid
            """
        ),
        params,
    )


def _insert_question(conn: Connection, quiz_id: int, question: QuestionPayload) -> int:
    params = _question_params(question)
    params.update({"quiz": int(quiz_id), "archived": False})
    row = conn.execute(
        sql_text(
            """
            INSERT INTO questions (
                quiz_id, sequence_order, question_text, kind, image_url,
                instructions_text, loader_text, popup_question, loader_bars,
                result_page_config, timeline_projection_config,
                educational_box_title, educational_box_text, is_archived
            ) VALUES (
                :quiz, :ord, :qtext, :kind, :image_url,
                :instructions_text, :loader_text, :popup_question, :loader_bars,
                :result_page_config, :timeline_projection_config,
                :educational_box_title, :educational_box_text, :archived
            )
            RETURNING question_id
            """
        ),
        params,
    ).fetchone()
    return int(row[0])


def _upsert_option(
    conn: Connection,
    snapshot: QuizSnapshot,
    question_id: int,
    option: OptionPayload,
) -> tuple[int, bool]:
    """Write one option and return (option_id, inserted)."""
    if snapshot.option_belongs_to(option.option_id, question_id):
        option_id = int(option.option_id)  # type: ignore[arg-type]
        persisted = snapshot.options[option_id]
        if persisted.has_history:
            conn.execute(
                sql_text(
                    """
                    UPDATE answer_options SET
                        option_text = :text,
                        option_image_url = :image_url,
                        is_archived = :archived
                    WHERE option_id = :oid
                    """
                ),
                {
                    "text": option.option_text,
                    "image_url": option.option_image_url or None,
                    "archived": False,
                    "oid": option_id,
                },
            )
            logger.info(
                "row_upserter.option_updated option_id=%s associated_value=preserved responses=%s",
                option_id,
                persisted.response_count,
            )
        else:
            conn.execute(
                sql_text(
                    """
                    UPDATE answer_options SET
                        option_text = :text,
                        associated_value = :value,
                        option_image_url = :image_url,
                        is_archived = :archived
                    WHERE option_id = :oid
                    """
                ),
                {
                    "text": option.option_text,
                    "value": option.associated_value,
                    "image_url": option.option_image_url or None,
                    "archived": False,
                    "oid": option_id,
                },
            )
            logger.info("row_upserter.option_updated option_id=%s", option_id)
        return option_id, False

    row = conn.execute(
        sql_text(
            """
            INSERT INTO answer_options (question_id, option_text, associated_value, option_image_url, is_archived)
            VALUES (:qid, :text, :value, :image_url, :archived)
            RETURNING option_id
            """
        ),
        {
            "qid": int(question_id),
            "text": option.option_text,
            "value": option.associated_value,
            "image_url": option.option_image_url or None,
            "archived": False,
        },
    ).fetchone()
    option_id = int(row[0])
    logger.info("row_upserter.option_inserted question_id=%s option_id=%s", question_id, option_id)
    return option_id, True


def upsert_tree(conn: Connection, snapshot: QuizSnapshot, payload: QuizPayload) -> UpsertResult:
    """Apply every payload question and option in payload order."""
    ordered: list[int] = []
    inserted_questions: set[int] = set()
    touched_options: set[int] = set()
    inserted_options: set[int] = set()

    for question in payload.questions:
        qid = question.question_id
        if qid is not None and int(qid) in snapshot.questions:
            question_id = int(qid)
            _update_question(conn, question_id, question)
            logger.info(
                "row_upserter.question_updated quiz_id=%s question_id=%s sequence_order=%s",
                snapshot.quiz_id,
                question_id,
                question.sequence_order,
            )
        else:
            question_id = _insert_question(conn, snapshot.quiz_id, question)
            inserted_questions.add(question_id)
            logger.info(
                "row_upserter.question_inserted quiz_id=%s question_id=%s sequence_order=%s",
                snapshot.quiz_id,
                question_id,
                question.sequence_order,
            )
        ordered.append(question_id)

        for option in question.options or []:
            option_id, inserted = _upsert_option(conn, snapshot, question_id, option)
            touched_options.add(option_id)
            if inserted:
                inserted_options.add(option_id)

    return UpsertResult(
        question_ids=tuple(ordered),
        touched_question_ids=frozenset(ordered),
        touched_option_ids=frozenset(touched_options),
        inserted_question_ids=frozenset(inserted_questions),
        inserted_option_ids=frozenset(inserted_options),
    )


__all__ = ("UpsertResult", "upsert_tree")
