"""Functional test bootstrap for the Quiz Funnel service.

Functional tests run against a file-backed SQLite database. The SQLite
migrations are applied once at session start; every test then starts from
empty tables so identities, archives and answers never leak across tests.

Scoped under tests/functional/ so behave runs are unaffected.
"""

from __future__ import annotations

import os
import pathlib
from typing import Callable, Iterator

import pytest
from sqlalchemy import text as sql_text

# Point the app at the test database before any quiz_funnel import builds an engine
_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Disable app startup auto-migrations; SQLite migrations are applied explicitly
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.pop("PUBLISH_WEBHOOK_URL", None)

_TABLES_CHILD_FIRST = ("user_answers", "user_sessions", "answer_options", "questions", "quizzes")


def _apply_sqlite_migrations() -> None:
    from quiz_funnel.db.base import get_engine, reset_engine
    from quiz_funnel.db.migrations_runner import apply_migrations

    reset_engine()
    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    sqlite_migrations_dir = _ROOT / "sqlite_migrations"

    # Ensure a clean migration journal so the schema is applied on this fresh DB
    journal = sqlite_migrations_dir / "_journal.json"
    if journal.exists():
        journal.unlink()
    apply_migrations(engine, migrations_dir=str(sqlite_migrations_dir))


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap() -> Iterator[None]:
    """Session-level bootstrap: apply migrations once for the shared DB."""
    _apply_sqlite_migrations()
    yield


@pytest.fixture(autouse=True)
def clean_tables() -> Iterator[None]:
    from quiz_funnel.db.base import get_engine
    from quiz_funnel.logic.events import get_buffered_events

    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    with engine.begin() as conn:
        for table in _TABLES_CHILD_FIRST:
            conn.execute(sql_text(f"DELETE FROM {table}"))
    get_buffered_events(clear=True)
    yield


@pytest.fixture
def engine():
    from quiz_funnel.db.base import get_engine

    return get_engine(os.environ["TEST_DATABASE_URL"])


@pytest.fixture
def owner():
    from quiz_funnel.models.tenant import TenantContext

    return TenantContext(user_id=101)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from quiz_funnel.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def publisher():
    """Publisher with no webhook: emits domain events and logs only."""
    from quiz_funnel.config import PublishingConfig
    from quiz_funnel.logic.publisher import QuizPublisher

    return QuizPublisher(PublishingConfig())


@pytest.fixture
def record_answer(engine) -> Callable[[int, int, int], str]:
    """Record one end-user answer and return its id."""
    from quiz_funnel.logic.session_tracking import start_session, submit_answer
    from quiz_funnel.models.session import AnswerRequest, SessionStartRequest

    def _record(quiz_id: int, question_id: int, option_id: int) -> str:
        started = start_session(SessionStartRequest(quiz_id=quiz_id), engine=engine)
        recorded = submit_answer(
            started.session_id,
            AnswerRequest(question_id=question_id, selected_option_id=option_id),
            engine=engine,
        )
        return recorded.answer_id

    return _record


@pytest.fixture
def db_rows(engine) -> Callable[[str, int], list]:
    """Return raw rows (archived included) for a quiz: 'questions' or 'options'."""

    def _rows(kind: str, quiz_id: int) -> list:
        if kind == "questions":
            stmt = (
                "SELECT question_id, sequence_order, is_archived, question_text, kind "
                "FROM questions WHERE quiz_id = :qid ORDER BY question_id"
            )
        else:
            stmt = (
                "SELECT ao.option_id, ao.question_id, ao.is_archived, ao.option_text, ao.associated_value "
                "FROM answer_options ao JOIN questions q ON q.question_id = ao.question_id "
                "WHERE q.quiz_id = :qid ORDER BY ao.option_id"
            )
        with engine.connect() as conn:
            return [dict(r) for r in conn.execute(sql_text(stmt), {"qid": int(quiz_id)}).mappings().all()]

    return _rows
