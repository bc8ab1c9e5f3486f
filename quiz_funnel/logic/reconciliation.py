"""Reconciliation Transaction: merge a submitted quiz tree into persisted state.

One call is one database transaction. Steps run sequentially on a single
connection:

    validate -> begin -> load snapshot -> ownership gate
      -> restore-conflict check -> update quiz header + archive
      -> displace -> upsert -> verify -> commit

Validation happens before the transaction opens, so a rejected payload never
touches storage. Every failure after ``begin`` rolls back the whole unit.
Publication runs after commit and cannot fail the call.

The run is tracked by ``ReconciliationRun``, a small state machine:

    STARTED -> VALIDATING -> LOADED -> ARCHIVING -> DISPLACING
      -> UPSERTING -> VERIFYING -> COMMITTED

``ROLLED_BACK`` is reachable from every non-terminal state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from quiz_funnel.db.base import transaction_scope
from quiz_funnel.logic.archival_policy import apply_archival, plan_archival
from quiz_funnel.logic.errors import EmptyActiveSet, NotFound, StorageFailure
from quiz_funnel.logic.events import QUIZ_RECONCILED
from quiz_funnel.logic.order_sequences import (
    active_orders,
    check_restore_conflicts,
    displace_questions,
    plan_displacement,
)
from quiz_funnel.logic.ownership import ensure_owner
from quiz_funnel.logic.payload_validation import validate_quiz_payload
from quiz_funnel.logic.publisher import QuizPublisher, default_publisher
from quiz_funnel.logic.repository_quizzes import read_quiz_tree, update_quiz_header
from quiz_funnel.logic.row_upserter import upsert_tree
from quiz_funnel.logic.snapshot_loader import load_snapshot
from quiz_funnel.models.quiz_payload import QuizPayload
from quiz_funnel.models.quiz_tree import QuizTree, ReconcileSummary
from quiz_funnel.models.tenant import TenantContext

logger = logging.getLogger(__name__)


class ReconciliationState(str, Enum):
    STARTED = "started"
    VALIDATING = "validating"
    LOADED = "loaded"
    ARCHIVING = "archiving"
    DISPLACING = "displacing"
    UPSERTING = "upserting"
    VERIFYING = "verifying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


_S = ReconciliationState
_FORWARD = MappingProxyType({
    _S.STARTED: _S.VALIDATING,
    _S.VALIDATING: _S.LOADED,
    _S.LOADED: _S.ARCHIVING,
    _S.ARCHIVING: _S.DISPLACING,
    _S.DISPLACING: _S.UPSERTING,
    _S.UPSERTING: _S.VERIFYING,
    _S.VERIFYING: _S.COMMITTED,
})
TERMINAL_STATES = frozenset({_S.COMMITTED, _S.ROLLED_BACK})


class ReconciliationRun:
    """State of one reconciliation attempt."""

    def __init__(self, quiz_id: int) -> None:
        self.quiz_id = int(quiz_id)
        self.state = ReconciliationState.STARTED
        self.history: list[ReconciliationState] = [self.state]

    def _enter(self, target: ReconciliationState) -> None:
        logger.info(
            "reconcile.state quiz_id=%s from=%s to=%s",
            self.quiz_id,
            self.state.value,
            target.value,
        )
        self.state = target
        self.history.append(target)

    def advance(self, target: ReconciliationState) -> None:
        if _FORWARD.get(self.state) is not target:
            raise RuntimeError(f"illegal reconciliation transition {self.state.value} -> {target.value}")
        self._enter(target)

    def roll_back(self) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"reconciliation already terminal: {self.state.value}")
        self._enter(ReconciliationState.ROLLED_BACK)


@dataclass(frozen=True)
class ReconciliationResult:
    state: ReconciliationState
    quiz: QuizTree
    summary: ReconcileSummary


def _verify(conn: Connection, quiz_id: int) -> None:
    orders = active_orders(conn, quiz_id)
    if not orders:
        logger.info("reconcile.verify.empty_active_set quiz_id=%s", quiz_id)
        raise EmptyActiveSet(quiz_id)
    values = [order for _, order in orders]
    if len(set(values)) != len(values) or min(values) < 0:
        logger.error("reconcile.verify.ordering_violated quiz_id=%s orders=%s", quiz_id, values)
        raise StorageFailure("verify_ordering")


def reconcile_quiz(
    quiz_id: int,
    payload: QuizPayload,
    tenant: TenantContext,
    *,
    engine: Optional[Engine] = None,
    publisher: Optional[QuizPublisher] = None,
    run: Optional[ReconciliationRun] = None,
) -> ReconciliationResult:
    """Reconcile the persisted tree of ``quiz_id`` to ``payload``.

    Raises the domain errors of ``logic.errors``; storage errors surface as
    ``StorageFailure``. ``run`` may be supplied to observe the state history.
    """
    run = run or ReconciliationRun(quiz_id)
    try:
        run.advance(ReconciliationState.VALIDATING)
        normalized = validate_quiz_payload(payload)

        with transaction_scope(engine) as conn:
            snapshot = load_snapshot(conn, quiz_id)
            ensure_owner(
                tenant,
                quiz_id=snapshot.quiz_id,
                owner_user_id=snapshot.user_id,
                owner_shop_id=snapshot.shop_id,
            )
            run.advance(ReconciliationState.LOADED)

            # last check before the first write
            check_restore_conflicts(snapshot, normalized)

            run.advance(ReconciliationState.ARCHIVING)
            update_quiz_header(conn, snapshot.quiz_id, normalized)
            plan = plan_archival(snapshot, normalized)
            apply_archival(conn, snapshot, plan)

            run.advance(ReconciliationState.DISPLACING)
            displace_questions(conn, snapshot.quiz_id, plan_displacement(plan.payload_question_ids))

            run.advance(ReconciliationState.UPSERTING)
            upserted = upsert_tree(conn, snapshot, normalized)

            run.advance(ReconciliationState.VERIFYING)
            _verify(conn, snapshot.quiz_id)
            tree = read_quiz_tree(conn, snapshot.quiz_id)
            if tree is None:
                raise NotFound(f"Quiz {quiz_id} not found", quiz_id=int(quiz_id))
    except SQLAlchemyError as exc:
        logger.error("reconcile.storage_failure quiz_id=%s state=%s", quiz_id, run.state.value, exc_info=True)
        run.roll_back()
        raise StorageFailure("reconcile_quiz", exc) from exc
    except Exception:
        logger.info("reconcile.rolled_back quiz_id=%s state=%s", quiz_id, run.state.value)
        run.roll_back()
        raise

    run.advance(ReconciliationState.COMMITTED)
    summary = ReconcileSummary(
        archived_question_ids=sorted(plan.question_ids),
        archived_option_ids=sorted(plan.option_ids),
        retained_option_ids=sorted(plan.retained_option_ids),
        inserted_question_ids=sorted(upserted.inserted_question_ids),
        inserted_option_ids=sorted(upserted.inserted_option_ids),
    )
    logger.info(
        "reconcile.committed quiz_id=%s archived_questions=%s archived_options=%s retained_options=%s "
        "inserted_questions=%s inserted_options=%s",
        quiz_id,
        summary.archived_question_ids,
        summary.archived_option_ids,
        summary.retained_option_ids,
        summary.inserted_question_ids,
        summary.inserted_option_ids,
    )

    (publisher or default_publisher()).publish(QUIZ_RECONCILED, tree.quiz_id, tree)
    return ReconciliationResult(state=run.state, quiz=tree, summary=summary)


__all__ = (
    "ReconciliationState",
    "ReconciliationRun",
    "ReconciliationResult",
    "TERMINAL_STATES",
    "reconcile_quiz",
)
