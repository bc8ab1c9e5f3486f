"""Application factory for the Quiz Funnel service.

No app is built at import time; ``uvicorn --factory quiz_funnel.main:create_app``
or tests call ``create_app`` explicitly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from quiz_funnel.config import AppConfig, load_config
from quiz_funnel.db.base import get_engine
from quiz_funnel.db.migrations_runner import apply_migrations
from quiz_funnel.http.problem import (
    handle_http_exception,
    handle_quiz_funnel_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from quiz_funnel.http.request_id import RequestIdMiddleware
from quiz_funnel.logging_setup import configure_logging
from quiz_funnel.logic.errors import QuizFunnelError
from quiz_funnel.middleware.cors import apply_cors
from quiz_funnel.routes import api_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def database_health() -> Dict[str, Any]:
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health.db_unreachable", exc_info=True)
        return {"status": "degraded", "db": False, "reason": type(e).__name__}
    return {"status": "ok", "db": True}


def create_app(config: AppConfig | None = None) -> FastAPI:
    configure_logging()
    cfg = config or load_config()
    # Logic modules reuse the engine bound here
    get_engine(cfg.database.dsn)

    app = FastAPI(title="Quiz Funnel Service")
    app.state.config = cfg
    for exc_class, handler in (
        (QuizFunnelError, handle_quiz_funnel_error),
        (HTTPException, handle_http_exception),
        (RequestValidationError, handle_request_validation_error),
        (Exception, handle_unexpected_error),
    ):
        app.add_exception_handler(exc_class, handler)
    apply_cors(app, cfg.http.cors_origins)
    app.add_middleware(RequestIdMiddleware)

    @app.on_event("startup")
    def _migrate() -> None:
        if not cfg.database.auto_apply_migrations:
            logger.info("startup.migrations_skipped reason=disabled")
            return
        migrations_dir = "sqlite_migrations" if cfg.database.is_sqlite else "migrations"
        try:
            applied = apply_migrations(get_engine(), migrations_dir)
        except SQLAlchemyError:
            logger.error("startup.migrations_failed dir=%s", migrations_dir, exc_info=True)
            raise
        logger.info("startup.migrations_applied dir=%s files=%s", migrations_dir, applied)

    app.include_router(api_router, prefix=API_PREFIX)
    app.add_api_route("/health", database_health, methods=["GET"], operation_id="health")
    return app


__all__ = ["API_PREFIX", "create_app", "database_health"]
