"""Quiz-related data access helpers.

Helpers take the caller's ``Connection`` so that they compose inside one
transaction; ``transaction_scope`` and read-only ``engine.connect()`` blocks
are opened by the logic layer, never here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.db.json_columns import decode_json
from quiz_funnel.models.quiz_payload import QuizPayload
from quiz_funnel.models.quiz_tree import OptionView, QuestionView, QuizTree
from quiz_funnel.models.tenant import TenantContext


_QUIZ_COLUMNS = (
    "quiz_id, quiz_name, product_page_url, is_active, brand_logo_url, "
    "color_primary, color_secondary, color_text_default, color_text_hover, "
    "custom_domain, quiz_start_url"
)


def _header_params(payload: QuizPayload) -> Dict[str, Any]:
    return {
        "name": payload.quiz_name.strip(),
        "url": payload.product_page_url.strip(),
        "active": bool(payload.is_active),
        "logo": payload.brand_logo_url or None,
        "primary": payload.color_primary or None,
        "secondary": payload.color_secondary or None,
        "text_default": payload.color_text_default or None,
        "text_hover": payload.color_text_hover or None,
        "domain": payload.custom_domain or None,
    }


def insert_quiz(conn: Connection, payload: QuizPayload, tenant: TenantContext) -> int:
    """Insert the quiz header owned by ``tenant`` and return its id."""
    params = _header_params(payload)
    params.update({"user_id": tenant.user_id if tenant.shop_id is None else None, "shop_id": tenant.shop_id})
    row = conn.execute(
        sql_text(
            """
            INSERT INTO quizzes (
                quiz_name, product_page_url, is_active, brand_logo_url,
                color_primary, color_secondary, color_text_default, color_text_hover,
                custom_domain, user_id, shop_id
            ) VALUES (
                :name, :url, :active, :logo,
                :primary, :secondary, :text_default, :text_hover,
                :domain, :user_id, :shop_id
            )
            RETURNING quiz_id
            """
        ),
        params,
    ).fetchone()
    return int(row[0])


def set_quiz_start_url(conn: Connection, quiz_id: int, url: str) -> None:
    conn.execute(
        sql_text("UPDATE quizzes SET quiz_start_url = :url WHERE quiz_id = :qid"),
        {"url": url, "qid": int(quiz_id)},
    )


def update_quiz_header(conn: Connection, quiz_id: int, payload: QuizPayload) -> None:
    params = _header_params(payload)
    params["qid"] = int(quiz_id)
    conn.execute(
        sql_text(
            """
            UPDATE quizzes SET
                quiz_name = :name,
                product_page_url = :url,
                is_active = :active,
                brand_logo_url = :logo,
                color_primary = :primary,
                color_secondary = :secondary,
                color_text_default = :text_default,
                color_text_hover = :text_hover,
                custom_domain = :domain
            WHERE quiz_id = :qid
            """
        ),
        params,
    )


def get_quiz_owner(conn: Connection, quiz_id: int) -> Optional[tuple[Optional[int], Optional[int]]]:
    """Return (user_id, shop_id) for the quiz, or None when it does not exist."""
    row = conn.execute(
        sql_text("SELECT user_id, shop_id FROM quizzes WHERE quiz_id = :qid"),
        {"qid": int(quiz_id)},
    ).fetchone()
    if row is None:
        return None
    return (
        int(row[0]) if row[0] is not None else None,
        int(row[1]) if row[1] is not None else None,
    )


def delete_quiz_row(conn: Connection, quiz_id: int) -> int:
    result = conn.execute(
        sql_text("DELETE FROM quizzes WHERE quiz_id = :qid"),
        {"qid": int(quiz_id)},
    )
    return int(result.rowcount or 0)


def read_quiz_tree(conn: Connection, quiz_id: int, *, require_active_quiz: bool = False) -> Optional[QuizTree]:
    """Return the quiz with its active questions and options, as persisted.

    Questions are ordered by ``sequence_order``; options by ``option_id``.
    Returns None when the quiz does not exist (or is inactive and
    ``require_active_quiz`` is set).
    """
    quiz = conn.execute(
        sql_text(f"SELECT {_QUIZ_COLUMNS} FROM quizzes WHERE quiz_id = :qid"),
        {"qid": int(quiz_id)},
    ).mappings().fetchone()
    if quiz is None:
        return None
    if require_active_quiz and not bool(quiz["is_active"]):
        return None

    question_rows = conn.execute(
        sql_text(
            """
            SELECT question_id, sequence_order, kind, question_text, image_url,
                   instructions_text, loader_text, popup_question, loader_bars,
                   result_page_config, timeline_projection_config,
                   educational_box_title, educational_box_text
            FROM questions
            WHERE quiz_id = :qid AND is_archived = :archived
            ORDER BY sequence_order ASC, question_id ASC
            """
        ),
        {"qid": int(quiz_id), "archived": False},
    ).mappings().all()

    option_rows = conn.execute(
        sql_text(
            """
            SELECT ao.option_id, ao.question_id, ao.option_text, ao.associated_value, ao.option_image_url
            FROM answer_options ao
            JOIN questions q ON q.question_id = ao.question_id
            WHERE q.quiz_id = :qid AND q.is_archived = :archived AND ao.is_archived = :archived
            ORDER BY ao.option_id ASC
            """
        ),
        {"qid": int(quiz_id), "archived": False},
    ).mappings().all()

    options_by_question: Dict[int, List[OptionView]] = {}
    for r in option_rows:
        options_by_question.setdefault(int(r["question_id"]), []).append(
            OptionView(
                option_id=int(r["option_id"]),
                option_text=str(r["option_text"]),
                associated_value=str(r["associated_value"]),
                option_image_url=r["option_image_url"],
            )
        )

    questions: List[QuestionView] = []
    for r in question_rows:
        qid = int(r["question_id"])
        questions.append(
            QuestionView(
                question_id=qid,
                sequence_order=int(r["sequence_order"]),
                kind=str(r["kind"]),
                question_text=r["question_text"],
                image_url=r["image_url"],
                instructions_text=r["instructions_text"],
                loader_text=r["loader_text"],
                popup_question=r["popup_question"],
                loader_bars=decode_json(r["loader_bars"]),
                result_page_config=decode_json(r["result_page_config"]),
                timeline_projection_config=decode_json(r["timeline_projection_config"]),
                educational_box_title=r["educational_box_title"],
                educational_box_text=r["educational_box_text"],
                options=options_by_question.get(qid, []),
            )
        )

    return QuizTree(
        quiz_id=int(quiz["quiz_id"]),
        quiz_name=str(quiz["quiz_name"]),
        product_page_url=quiz["product_page_url"],
        is_active=bool(quiz["is_active"]),
        brand_logo_url=quiz["brand_logo_url"],
        color_primary=quiz["color_primary"],
        color_secondary=quiz["color_secondary"],
        color_text_default=quiz["color_text_default"],
        color_text_hover=quiz["color_text_hover"],
        custom_domain=quiz["custom_domain"],
        quiz_start_url=quiz["quiz_start_url"],
        questions=questions,
    )


__all__ = [
    "insert_quiz",
    "set_quiz_start_url",
    "update_quiz_header",
    "get_quiz_owner",
    "delete_quiz_row",
    "read_quiz_tree",
]
