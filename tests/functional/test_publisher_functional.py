"""Functional tests for post-commit publication.

Publication is best-effort: a failing downstream never undoes or fails a
committed reconciliation.
"""

from __future__ import annotations

import httpx

from quiz_funnel.config import PublishingConfig
from quiz_funnel.logic.events import QUIZ_RECONCILED, get_buffered_events
from quiz_funnel.logic.publisher import QuizPublisher
from quiz_funnel.logic.quiz_authoring import create_quiz
from quiz_funnel.logic.reconciliation import ReconciliationState, reconcile_quiz
from quiz_funnel.models.quiz_payload import QuizPayload


def _payload(text: str = "Q") -> QuizPayload:
    return QuizPayload.model_validate(
        {
            "quiz_name": "Publish me",
            "product_page_url": "https://shop.example/p",
            "questions": [
                {"sequence_order": 0, "kind": "single_choice", "question_text": text, "options": [{"option_text": "x"}]}
            ],
        }
    )


def test_webhook_receives_committed_tree(mocker, engine, owner):
    publisher = QuizPublisher(PublishingConfig(webhook_url="https://hooks.example/quiz", timeout_seconds=2))
    post = mocker.patch.object(QuizPublisher, "_post", return_value=None)

    tree = create_quiz(_payload(), owner, engine=engine, publisher=publisher)

    post.assert_called_once()
    body = post.call_args.args[0]
    assert body["event"] == "quiz.created"
    assert body["quiz"]["quiz_id"] == tree.quiz_id


def test_webhook_failure_does_not_fail_reconciliation(mocker, engine, owner, db_rows):
    publisher = QuizPublisher(PublishingConfig(webhook_url="https://hooks.example/quiz"))
    mocker.patch.object(QuizPublisher, "_post", side_effect=httpx.ConnectError("connection refused"))
    log_error = mocker.patch("quiz_funnel.logic.publisher.logger.error")
    tree = create_quiz(_payload(), owner, engine=engine, publisher=publisher)
    get_buffered_events(clear=True)

    result = reconcile_quiz(tree.quiz_id, _payload("Renamed"), owner, engine=engine, publisher=publisher)

    assert result.state is ReconciliationState.COMMITTED
    assert result.quiz.questions[0].question_text == "Renamed"
    assert any(r["question_text"] == "Renamed" and not r["is_archived"] for r in db_rows("questions", tree.quiz_id))
    assert log_error.called
    assert [e["type"] for e in get_buffered_events()] == [QUIZ_RECONCILED]


def test_http_error_status_is_reported_as_failure(mocker):
    request = httpx.Request("POST", "https://hooks.example/quiz")
    response = httpx.Response(503, request=request)
    client = mocker.MagicMock()
    client.__enter__.return_value.post.return_value = response
    mocker.patch("quiz_funnel.logic.publisher.httpx.Client", return_value=client)

    publisher = QuizPublisher(PublishingConfig(webhook_url="https://hooks.example/quiz"))

    assert publisher.publish("quiz.deleted", 12) is False


def test_without_webhook_only_events_are_emitted(mocker):
    client_cls = mocker.patch("quiz_funnel.logic.publisher.httpx.Client")

    assert QuizPublisher(PublishingConfig()).publish("quiz.deleted", 3) is True

    client_cls.assert_not_called()
    assert [(e["type"], e["quiz_id"]) for e in get_buffered_events()] == [("quiz.deleted", 3)]
