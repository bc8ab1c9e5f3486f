"""Session and answer data access helpers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from quiz_funnel.db.json_columns import decode_json, encode_json


def quiz_exists(conn: Connection, quiz_id: int) -> bool:
    row = conn.execute(
        sql_text("SELECT 1 FROM quizzes WHERE quiz_id = :qid"),
        {"qid": int(quiz_id)},
    ).fetchone()
    return row is not None


def insert_session(conn: Connection, session_id: str, quiz_id: int, utm_params: Optional[Dict[str, str]]) -> None:
    conn.execute(
        sql_text(
            """
            INSERT INTO user_sessions (session_id, quiz_id, is_completed, utm_params)
            VALUES (:sid, :qid, :completed, :utm)
            """
        ),
        {"sid": session_id, "qid": int(quiz_id), "completed": False, "utm": encode_json(utm_params)},
    )


def get_session(conn: Connection, session_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(
            """
            SELECT session_id, quiz_id, last_question_viewed, is_completed, final_profile, utm_params
            FROM user_sessions WHERE session_id = :sid
            """
        ),
        {"sid": session_id},
    ).mappings().fetchone()
    if row is None:
        return None
    return {
        "session_id": str(row["session_id"]),
        "quiz_id": int(row["quiz_id"]),
        "last_question_viewed": int(row["last_question_viewed"]) if row["last_question_viewed"] is not None else None,
        "is_completed": bool(row["is_completed"]),
        "final_profile": row["final_profile"],
        "utm_params": decode_json(row["utm_params"]),
    }


def get_question_quiz(conn: Connection, question_id: int) -> Optional[int]:
    """Return the quiz id owning an active question, or None."""
    row = conn.execute(
        sql_text("SELECT quiz_id FROM questions WHERE question_id = :qid AND is_archived = :archived"),
        {"qid": int(question_id), "archived": False},
    ).fetchone()
    return int(row[0]) if row is not None else None


def get_option_question(conn: Connection, option_id: int) -> Optional[int]:
    """Return the question id owning an active option, or None."""
    row = conn.execute(
        sql_text("SELECT question_id FROM answer_options WHERE option_id = :oid AND is_archived = :archived"),
        {"oid": int(option_id), "archived": False},
    ).fetchone()
    return int(row[0]) if row is not None else None


def set_last_question(conn: Connection, session_id: str, question_id: int) -> None:
    conn.execute(
        sql_text("UPDATE user_sessions SET last_question_viewed = :qid WHERE session_id = :sid"),
        {"qid": int(question_id), "sid": session_id},
    )


def insert_answer(conn: Connection, answer_id: str, session_id: str, question_id: int, option_id: int) -> None:
    conn.execute(
        sql_text(
            """
            INSERT INTO user_answers (answer_id, session_id, question_id, selected_option_id)
            VALUES (:aid, :sid, :qid, :oid)
            """
        ),
        {"aid": answer_id, "sid": session_id, "qid": int(question_id), "oid": int(option_id)},
    )


def mark_completed(conn: Connection, session_id: str, final_profile: str) -> None:
    conn.execute(
        sql_text("UPDATE user_sessions SET is_completed = :completed, final_profile = :profile WHERE session_id = :sid"),
        {"completed": True, "profile": final_profile, "sid": session_id},
    )


__all__ = [
    "quiz_exists",
    "insert_session",
    "get_session",
    "get_question_quiz",
    "get_option_question",
    "set_last_question",
    "insert_answer",
    "mark_completed",
]
