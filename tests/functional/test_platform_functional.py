"""Functional tests for configuration, logging context and the migrations runner."""

from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, text as sql_text

from quiz_funnel.config import load_config
from quiz_funnel.db.migrations_runner import JOURNAL_NAME, apply_migrations
from quiz_funnel.logging_setup import RequestIdFilter, request_id_var


@pytest.fixture
def config_env(monkeypatch, tmp_path):
    for name in ("TEST_DATABASE_URL", "DATABASE_URL", "FRONTEND_URL", "PUBLISH_WEBHOOK_URL", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_environment_beats_files_which_beat_json(config_env, monkeypatch):
    (config_env / "quiz_funnel_config.json").write_text(
        json.dumps(
            {
                "database": {"dsn": "sqlite:///from-json.db"},
                "publishing": {"frontend_url": "https://json.example/", "webhook_url": "https://hooks.json"},
                "http": {"cors_origins": ["https://editor.example", "https://quiz.example"]},
            }
        ),
        encoding="utf-8",
    )
    (config_env / "config").mkdir()
    (config_env / "config" / "publishing.webhook_url").write_text("https://hooks.file\n", encoding="utf-8")
    monkeypatch.setenv("FRONTEND_URL", "https://env.example/")

    cfg = load_config()

    assert cfg.database.dsn == "sqlite:///from-json.db"
    assert cfg.database.is_sqlite
    assert cfg.publishing.frontend_url == "https://env.example"
    assert cfg.publishing.webhook_url == "https://hooks.file"
    assert cfg.http.cors_origins == ["https://editor.example", "https://quiz.example"]


def test_defaults_without_any_source(config_env):
    cfg = load_config()

    assert cfg.database.dsn.startswith("sqlite")
    assert cfg.database.auto_apply_migrations is False
    assert cfg.publishing.webhook_url is None
    assert cfg.http.cors_origins == []


def test_invalid_timeout_is_rejected(config_env, monkeypatch):
    monkeypatch.setenv("PUBLISH_TIMEOUT_SECONDS", "0")
    with pytest.raises(ValidationError):
        load_config()


def test_log_records_carry_the_current_request_id():
    record = logging.LogRecord("quiz_funnel.test", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("req-42")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-42"

    outside = logging.LogRecord("quiz_funnel.test", logging.INFO, __file__, 1, "msg", None, None)
    RequestIdFilter().filter(outside)
    assert outside.request_id == "-"


def test_migrations_apply_once_and_journal_checksums(tmp_path, caplog):
    migrations = tmp_path / "sqlite_migrations"
    migrations.mkdir()
    script = migrations / "001_things.sql"
    script.write_text("CREATE TABLE things (id INTEGER PRIMARY KEY);\nCREATE TABLE others (id INTEGER);\n")
    engine = create_engine(f"sqlite:///{tmp_path / 'm.db'}")

    assert apply_migrations(engine, migrations) == ["001_things.sql"]
    journal = json.loads((migrations / JOURNAL_NAME).read_text(encoding="utf-8"))
    assert journal[0]["filename"] == "sqlite_migrations/001_things.sql"
    assert len(journal[0]["sha256"]) == 64

    script.write_text("CREATE TABLE things (id INTEGER PRIMARY KEY, name TEXT);\n")
    with caplog.at_level(logging.WARNING, logger="quiz_funnel.db.migrations_runner"):
        assert apply_migrations(engine, migrations) == []
    assert any("migrations.changed_after_apply" in r.getMessage() for r in caplog.records)

    with engine.connect() as conn:
        tables = {r[0] for r in conn.execute(sql_text("SELECT name FROM sqlite_master WHERE type = 'table'"))}
    assert {"things", "others"} <= tables
    engine.dispose()


def test_missing_migrations_dir_applies_nothing(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'm.db'}")
    assert apply_migrations(engine, tmp_path / "absent") == []
    engine.dispose()


def test_cors_preflight_allows_principal_headers(client):
    resp = client.options(
        "/api/v1/quizzes",
        headers={
            "Origin": "https://editor.example",
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "X-Principal-Id",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
