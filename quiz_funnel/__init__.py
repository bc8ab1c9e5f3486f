"""FastAPI application package for the Quiz Funnel service.

This package exposes a small FastAPI application factory. It wires only
cross-cutting middleware (request-id and CORS) and mounts the API routers.
Business logic, including the quiz reconciliation engine, lives in
`quiz_funnel/logic/` and route handlers in `quiz_funnel/routes/`.
"""

from __future__ import annotations

from quiz_funnel.main import create_app

__all__ = ["create_app"]
