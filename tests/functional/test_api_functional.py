"""Functional contract tests for the HTTP API.

Requests go through ``TestClient(create_app())`` so routing, tenant headers,
problem+json error rendering and the request-id middleware are exercised
together with the logic layer.
"""

from __future__ import annotations

import typing as t

import pytest
from jsonschema import Draft202012Validator

from quiz_funnel.logic.events import QUIZ_CREATED, QUIZ_DELETED, QUIZ_RECONCILED, get_buffered_events
from quiz_funnel.models.quiz_tree import QuizTree, ReconcileResponse

OWNER = {"X-Principal-Id": "101"}
STRANGER = {"X-Principal-Id": "202"}
ADMIN = {"X-Principal-Id": "1", "X-Principal-Role": "admin"}
PROBLEM = "application/problem+json"


def _quiz_body(questions: t.Optional[list[dict]] = None, **header) -> dict:
    body = {
        "quiz_name": "Hair quiz",
        "product_page_url": "https://shop.example/products/oil",
        "color_primary": "#112233",
        "questions": questions
        if questions is not None
        else [
            {
                "sequence_order": 0,
                "kind": "single_choice",
                "question_text": "Hair type?",
                "options": [{"option_text": "Curly"}, {"option_text": "Straight"}],
            },
            {"sequence_order": 1, "kind": "info_screen", "educational_box_title": "Did you know"},
        ],
    }
    body.update(header)
    return body


def _create(client, headers=OWNER, **kwargs) -> dict:
    resp = client.post("/api/v1/quizzes", json=_quiz_body(**kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _assert_problem(resp, status: int, code: t.Optional[str] = None) -> dict:
    assert resp.status_code == status, resp.text
    assert resp.headers["content-type"].startswith(PROBLEM)
    body = resp.json()
    assert body["status"] == status
    if code is not None:
        assert body["code"] == code
    return body


def test_create_returns_tree_matching_schema(client):
    created = _create(client)

    Draft202012Validator(QuizTree.model_json_schema()).validate(created)
    assert created["quiz_start_url"].endswith(f"/quiz/{created['quiz_id']}")
    assert [q["kind"] for q in created["questions"]] == ["single_choice", "info_screen"]
    assert [o["associated_value"] for o in created["questions"][0]["options"]] == ["curly", "straight"]
    assert [e["type"] for e in get_buffered_events()] == [QUIZ_CREATED]


def test_get_quiz_requires_owner(client):
    created = _create(client)

    assert client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers=OWNER).json() == created
    assert client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers=ADMIN).status_code == 200
    _assert_problem(client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers=STRANGER), 403, "QUIZ_UNAUTHORIZED")
    _assert_problem(client.get(f"/api/v1/quizzes/{created['quiz_id']}"), 403, "QUIZ_UNAUTHORIZED")
    _assert_problem(client.get("/api/v1/quizzes/99999", headers=OWNER), 404, "QUIZ_NOT_FOUND")


def test_put_reconciles_and_reports_summary(client):
    created = _create(client)
    body = dict(created)
    body["questions"] = [created["questions"][1] | {"sequence_order": 0}]
    body["quiz_name"] = "Hair quiz v2"

    resp = client.put(f"/api/v1/quizzes/{created['quiz_id']}", json=body, headers=OWNER)

    assert resp.status_code == 200, resp.text
    Draft202012Validator(ReconcileResponse.model_json_schema()).validate(resp.json())
    result = resp.json()
    assert result["quiz"]["quiz_name"] == "Hair quiz v2"
    assert [q["question_id"] for q in result["quiz"]["questions"]] == [created["questions"][1]["question_id"]]
    assert result["summary"]["archived_question_ids"] == [created["questions"][0]["question_id"]]
    assert sorted(result["summary"]["archived_option_ids"]) == sorted(
        o["option_id"] for o in created["questions"][0]["options"]
    )
    assert QUIZ_RECONCILED in [e["type"] for e in get_buffered_events()]


@pytest.mark.parametrize(
    "questions, status, code",
    [
        (
            [
                {"sequence_order": 2, "kind": "info_screen"},
                {"sequence_order": 2, "kind": "info_screen"},
            ],
            400,
            "PAYLOAD_DUPLICATE_ORDERING",
        ),
        ([{"sequence_order": 0, "kind": "single_choice", "question_text": "?"}], 400, "PAYLOAD_INVALID_QUESTION_SHAPE"),
        ([], 409, "RECONCILE_EMPTY_ACTIVE_SET"),
    ],
    ids=["duplicate-ordering", "missing-options", "empty-active-set"],
)
def test_put_domain_errors_render_problem_json(client, questions, status, code):
    created = _create(client)

    resp = client.put(f"/api/v1/quizzes/{created['quiz_id']}", json=_quiz_body(questions), headers=OWNER)

    body = _assert_problem(resp, status, code)
    assert body["instance"] == f"/api/v1/quizzes/{created['quiz_id']}"
    assert client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers=OWNER).json() == created


def test_malformed_body_is_422_problem(client):
    resp = client.put("/api/v1/quizzes/1", json={"quiz_name": "x"}, headers=OWNER)
    body = _assert_problem(resp, 422, "REQUEST_VALIDATION_FAILED")
    assert body["errors"]


def test_conflicting_principal_headers_are_rejected(client):
    headers = {"X-Principal-Id": "101", "X-Shop-Id": "5"}
    _assert_problem(client.post("/api/v1/quizzes", json=_quiz_body(), headers=headers), 400)


@pytest.mark.parametrize(
    "headers",
    [{"X-Principal-Role": "admin"}, {"X-Principal-Role": "admin", "X-Shop-Id": "5"}],
)
def test_admin_role_without_principal_id_is_rejected(client, headers):
    created = _create(client)
    quiz_id = created["quiz_id"]

    _assert_problem(client.delete(f"/api/v1/quizzes/{quiz_id}", headers=headers), 400)
    _assert_problem(client.put(f"/api/v1/quizzes/{quiz_id}", json=_quiz_body(), headers=headers), 400)
    assert client.get(f"/api/v1/quizzes/{quiz_id}", headers=OWNER).json() == created


def test_shop_principal_owns_its_quizzes(client):
    created = _create(client, headers={"X-Shop-Id": "5"})
    assert client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers={"X-Shop-Id": "5"}).status_code == 200
    _assert_problem(client.get(f"/api/v1/quizzes/{created['quiz_id']}", headers={"X-Shop-Id": "6"}), 403)


def test_delete_cascades_sessions_and_answers(client, db_rows):
    created = _create(client)
    quiz_id = created["quiz_id"]
    question = created["questions"][0]
    session_id = client.post("/api/v1/sessions", json={"quiz_id": quiz_id}).json()["session_id"]
    client.post(
        f"/api/v1/sessions/{session_id}/answers",
        json={"question_id": question["question_id"], "selected_option_id": question["options"][0]["option_id"]},
    )

    _assert_problem(client.delete(f"/api/v1/quizzes/{quiz_id}", headers=STRANGER), 403)
    assert client.delete(f"/api/v1/quizzes/{quiz_id}", headers=OWNER).status_code == 204

    assert db_rows("questions", quiz_id) == []
    _assert_problem(client.get(f"/api/v1/sessions/{session_id}"), 404, "SESSION_NOT_FOUND")
    assert QUIZ_DELETED in [e["type"] for e in get_buffered_events()]


def test_public_content_hides_inactive_quizzes_and_archived_rows(client):
    created = _create(client)
    quiz_id = created["quiz_id"]

    content = client.get(f"/api/v1/content/quizzes/{quiz_id}")
    assert content.status_code == 200
    assert len(content.json()["questions"]) == 2

    body = dict(created)
    body["questions"] = created["questions"][:1]
    client.put(f"/api/v1/quizzes/{quiz_id}", json=body, headers=OWNER)
    assert len(client.get(f"/api/v1/content/quizzes/{quiz_id}").json()["questions"]) == 1

    body["is_active"] = False
    client.put(f"/api/v1/quizzes/{quiz_id}", json=body, headers=OWNER)
    _assert_problem(client.get(f"/api/v1/content/quizzes/{quiz_id}"), 404, "QUIZ_NOT_FOUND")


def test_session_lifecycle(client):
    created = _create(client)
    quiz_id = created["quiz_id"]
    question = created["questions"][0]

    started = client.post(
        "/api/v1/sessions",
        json={"quiz_id": quiz_id, "utm_source": "instagram", "utm_campaign": "spring"},
    )
    assert started.status_code == 201
    session_id = started.json()["session_id"]

    progress = client.post(f"/api/v1/sessions/{session_id}/progress", json={"last_question_id": question["question_id"]})
    assert progress.json()["last_question_viewed"] == question["question_id"]

    answer = client.post(
        f"/api/v1/sessions/{session_id}/answers",
        json={"question_id": question["question_id"], "selected_option_id": question["options"][1]["option_id"]},
    )
    assert answer.status_code == 201
    assert answer.json()["session_id"] == session_id

    done = client.post(f"/api/v1/sessions/{session_id}/complete")
    assert done.json()["is_completed"] is True
    assert done.json()["final_profile"] == "Completed"
    assert done.json()["utm_params"] == {"utm_source": "instagram", "utm_campaign": "spring"}


def test_session_errors(client):
    created = _create(client)
    question = created["questions"][0]
    other_question = created["questions"][1]

    _assert_problem(client.post("/api/v1/sessions", json={"quiz_id": 99999}), 404, "QUIZ_NOT_FOUND")
    _assert_problem(client.post("/api/v1/sessions/nope/complete"), 404, "SESSION_NOT_FOUND")

    session_id = client.post("/api/v1/sessions", json={"quiz_id": created["quiz_id"]}).json()["session_id"]
    mismatched = client.post(
        f"/api/v1/sessions/{session_id}/answers",
        json={"question_id": other_question["question_id"], "selected_option_id": question["options"][0]["option_id"]},
    )
    _assert_problem(mismatched, 400, "SESSION_INVALID_ANSWER")


def test_request_id_is_echoed_or_generated(client):
    assert client.get("/health", headers={"X-Request-Id": "req-123"}).headers["X-Request-Id"] == "req-123"
    generated = client.get("/health").headers["X-Request-Id"]
    assert len(generated) == 36


def test_health_reports_database(client):
    assert client.get("/health").json() == {"status": "ok", "db": True}
