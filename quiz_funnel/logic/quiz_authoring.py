"""Quiz lifecycle operations outside reconciliation: create, read, delete."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from quiz_funnel.config import load_config
from quiz_funnel.db.base import get_engine, transaction_scope
from quiz_funnel.logic.errors import EmptyActiveSet, NotFound, StorageFailure, Unauthorized
from quiz_funnel.logic.events import QUIZ_CREATED, QUIZ_DELETED
from quiz_funnel.logic.ownership import ensure_owner
from quiz_funnel.logic.payload_validation import validate_quiz_payload
from quiz_funnel.logic.publisher import QuizPublisher, default_publisher
from quiz_funnel.logic.repository_quizzes import (
    delete_quiz_row,
    get_quiz_owner,
    insert_quiz,
    read_quiz_tree,
    set_quiz_start_url,
)
from quiz_funnel.logic.row_upserter import upsert_tree
from quiz_funnel.logic.snapshot_loader import QuizSnapshot
from quiz_funnel.models.quiz_payload import QuizPayload
from quiz_funnel.models.quiz_tree import QuizTree
from quiz_funnel.models.tenant import TenantContext

logger = logging.getLogger(__name__)


def quiz_start_url(frontend_url: str, quiz_id: int) -> str:
    return f"{frontend_url.rstrip('/')}/quiz/{int(quiz_id)}"


def create_quiz(
    payload: QuizPayload,
    tenant: TenantContext,
    *,
    engine: Optional[Engine] = None,
    publisher: Optional[QuizPublisher] = None,
    frontend_url: Optional[str] = None,
) -> QuizTree:
    """Insert a quiz and its whole tree as fresh rows.

    Identities present in ``payload`` are ignored; every row is minted anew.
    """
    if tenant.is_anonymous:
        raise Unauthorized("Unauthorized: Authentication required")
    normalized = validate_quiz_payload(payload)
    if not normalized.questions:
        logger.info("quiz_authoring.create.rejected reason=no_questions")
        raise EmptyActiveSet()
    base_url = frontend_url or load_config().publishing.frontend_url

    try:
        with transaction_scope(engine) as conn:
            quiz_id = insert_quiz(conn, normalized, tenant)
            set_quiz_start_url(conn, quiz_id, quiz_start_url(base_url, quiz_id))
            # empty snapshot: nothing continues, every row is inserted
            upsert_tree(conn, QuizSnapshot(quiz_id=quiz_id, user_id=tenant.user_id, shop_id=tenant.shop_id), normalized)
            tree = read_quiz_tree(conn, quiz_id)
    except SQLAlchemyError as exc:
        logger.error("quiz_authoring.create.storage_failure", exc_info=True)
        raise StorageFailure("create_quiz", exc) from exc

    if tree is None:
        raise StorageFailure("create_quiz")
    logger.info("quiz_authoring.created quiz_id=%s questions=%s", tree.quiz_id, len(tree.questions))
    (publisher or default_publisher()).publish(QUIZ_CREATED, tree.quiz_id, tree)
    return tree


def get_quiz_for_edit(quiz_id: int, tenant: TenantContext, *, engine: Optional[Engine] = None) -> QuizTree:
    eng = engine or get_engine()
    try:
        with eng.connect() as conn:
            owner = get_quiz_owner(conn, quiz_id)
            if owner is None:
                raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))
            ensure_owner(tenant, quiz_id=quiz_id, owner_user_id=owner[0], owner_shop_id=owner[1])
            tree = read_quiz_tree(conn, quiz_id)
    except SQLAlchemyError as exc:
        logger.error("quiz_authoring.read.storage_failure quiz_id=%s", quiz_id, exc_info=True)
        raise StorageFailure("get_quiz", exc) from exc
    if tree is None:
        raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))
    return tree


def get_public_quiz(quiz_id: int, *, engine: Optional[Engine] = None) -> QuizTree:
    """Return what end users see: an active quiz with its active rows."""
    eng = engine or get_engine()
    try:
        with eng.connect() as conn:
            tree = read_quiz_tree(conn, quiz_id, require_active_quiz=True)
    except SQLAlchemyError as exc:
        logger.error("quiz_authoring.public.storage_failure quiz_id=%s", quiz_id, exc_info=True)
        raise StorageFailure("get_public_quiz", exc) from exc
    if tree is None:
        raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))
    return tree


def delete_quiz(
    quiz_id: int,
    tenant: TenantContext,
    *,
    engine: Optional[Engine] = None,
    publisher: Optional[QuizPublisher] = None,
) -> None:
    """Delete the quiz; questions, options, sessions and answers cascade."""
    try:
        with transaction_scope(engine) as conn:
            owner = get_quiz_owner(conn, quiz_id)
            if owner is None:
                raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))
            ensure_owner(tenant, quiz_id=quiz_id, owner_user_id=owner[0], owner_shop_id=owner[1])
            delete_quiz_row(conn, quiz_id)
    except SQLAlchemyError as exc:
        logger.error("quiz_authoring.delete.storage_failure quiz_id=%s", quiz_id, exc_info=True)
        raise StorageFailure("delete_quiz", exc) from exc
    logger.info("quiz_authoring.deleted quiz_id=%s", quiz_id)
    (publisher or default_publisher()).publish(QUIZ_DELETED, quiz_id)


__all__ = [
    "quiz_start_url",
    "create_quiz",
    "get_quiz_for_edit",
    "get_public_quiz",
    "delete_quiz",
]
