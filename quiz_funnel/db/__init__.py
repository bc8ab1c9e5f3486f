"""Database bootstrap utilities for the Quiz Funnel service.

This module exposes convenience imports for engine construction, the explicit
transaction scope used by writers, and the migrations runner that applies SQL
files from the local migrations/ directory. The DB layer does not leak ORM
models into route handlers.
"""

from quiz_funnel.db.base import get_engine, reset_engine, transaction_scope
from quiz_funnel.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "transaction_scope",
    "apply_migrations",
]
