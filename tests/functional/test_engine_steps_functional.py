"""Functional tests for the pure planning steps of the reconciliation engine.

Snapshots are built in memory; no storage is involved.
"""

from __future__ import annotations

from types import MappingProxyType

import pytest

from quiz_funnel.logic.archival_policy import plan_archival
from quiz_funnel.logic.errors import RestoreConflict, Unauthorized
from quiz_funnel.logic.order_sequences import check_restore_conflicts, placeholder_order, plan_displacement
from quiz_funnel.logic.ownership import ensure_owner
from quiz_funnel.logic.reconciliation import ReconciliationRun, ReconciliationState
from quiz_funnel.logic.snapshot_loader import PersistedOption, PersistedQuestion, QuizSnapshot
from quiz_funnel.models.quiz_payload import QuizPayload
from quiz_funnel.models.tenant import ROLE_ADMIN, TenantContext


def _snapshot() -> QuizSnapshot:
    questions = {
        10: PersistedQuestion(10, 0, False),
        11: PersistedQuestion(11, 1, False),
        12: PersistedQuestion(12, 1, True),
    }
    options = {
        100: PersistedOption(100, 10, False, 0),
        101: PersistedOption(101, 10, False, 3),
        110: PersistedOption(110, 11, False, 0),
        120: PersistedOption(120, 12, True, 1),
    }
    return QuizSnapshot(7, 1, None, MappingProxyType(questions), MappingProxyType(options))


def _payload(*questions: dict) -> QuizPayload:
    return QuizPayload.model_validate(
        {"quiz_name": "q", "product_page_url": "https://p", "questions": list(questions)}
    )


def test_archival_plan_splits_withdrawn_rows_by_history():
    payload = _payload(
        {
            "question_id": 10,
            "sequence_order": 0,
            "kind": "single_choice",
            "question_text": "kept",
            "options": [{"option_id": 110, "option_text": "foreign"}],
        }
    )

    plan = plan_archival(_snapshot(), payload)

    assert plan.payload_question_ids == frozenset({10})
    # 110 belongs to question 11, so it does not continue under question 10
    assert plan.payload_option_ids == frozenset()
    assert plan.question_ids == frozenset({11})
    assert plan.option_ids == frozenset({100, 110})
    assert plan.retained_option_ids == frozenset({101, 120})


def test_displacement_uses_negated_identities():
    plan = plan_displacement(frozenset({10, 11}))
    assert dict(plan.placeholders) == {10: -10, 11: -11}
    assert placeholder_order(42) == -42
    with pytest.raises(TypeError):
        plan.placeholders[12] = -12  # type: ignore[index]


def test_restore_conflict_names_the_active_holder():
    payload = _payload(
        {"question_id": 12, "sequence_order": 0, "kind": "info_screen"},
        {"question_id": 10, "sequence_order": 3, "kind": "info_screen"},
    )
    with pytest.raises(RestoreConflict) as exc:
        check_restore_conflicts(_snapshot(), payload)
    assert (exc.value.question_id, exc.value.sequence_order, exc.value.blocking_question_id) == (12, 0, 10)


def test_restore_at_unchanged_order_is_not_checked():
    payload = _payload({"question_id": 12, "sequence_order": 1, "kind": "info_screen"})
    check_restore_conflicts(_snapshot(), payload)


def test_run_only_moves_forward_or_rolls_back():
    run = ReconciliationRun(1)
    run.advance(ReconciliationState.VALIDATING)
    with pytest.raises(RuntimeError):
        run.advance(ReconciliationState.UPSERTING)
    run.roll_back()
    assert run.state is ReconciliationState.ROLLED_BACK
    with pytest.raises(RuntimeError):
        run.roll_back()


def test_admin_role_without_identity_owns_nothing():
    with pytest.raises(Unauthorized):
        ensure_owner(TenantContext(role=ROLE_ADMIN), quiz_id=1, owner_user_id=7, owner_shop_id=None)
    ensure_owner(TenantContext(user_id=1, role=ROLE_ADMIN), quiz_id=1, owner_user_id=7, owner_shop_id=None)
