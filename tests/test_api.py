"""HTTP-level tests through the ASGI app."""

import json

from app.services.quiz_service import QuizService, QuizServiceError
from tests.factories import quiz_create
from tests.test_ai import ai_quiz_json, fake_completion

API = "/api/v1"


def _payload(**kwargs) -> dict:
    return quiz_create(**kwargs).model_dump(mode="json")


async def _create(client, headers, **kwargs) -> dict:
    response = await client.post(f"{API}/quizzes", json=_payload(**kwargs), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


async def test_requires_authentication(client):
    response = await client.get(f"{API}/quizzes")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


async def test_rejects_invalid_token(client):
    response = await client.get(f"{API}/quizzes", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_create_get_and_list(client, owner_headers, other_headers):
    created = await _create(client, owner_headers, question_count=3, positions=[3, 1, 2])
    assert [q["position"] for q in created["questions"]] == [1, 2, 3]
    assert created["status"] == "draft"

    response = await client.get(f"{API}/quizzes/{created['id']}", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]

    # Drafts are private to their author
    response = await client.get(f"{API}/quizzes/{created['id']}", headers=other_headers)
    assert response.status_code == 404

    response = await client.get(f"{API}/quizzes", params={"owned": "true"}, headers=owner_headers)
    body = response.json()
    assert response.status_code == 200
    assert body["pagination"]["total_items"] == 1
    assert body["quizzes"][0]["title"] == "Arithmetic"


async def test_create_read_back_failure_is_a_backend_error(client, owner_headers, monkeypatch):
    async def unreadable(self, owner_id, data):
        raise QuizServiceError("Quiz could not be read back after create")

    monkeypatch.setattr(QuizService, "create_quiz", unreadable)

    response = await client.post(f"{API}/quizzes", json=_payload(), headers=owner_headers)
    assert response.status_code == 500
    assert response.json()["detail"] == {"message": "Internal server error", "code": "backend_failure"}


async def test_create_validates_payload(client, owner_headers):
    payload = _payload()
    payload["questions"][0]["options"] = payload["questions"][0]["options"][:1]

    response = await client.post(f"{API}/quizzes", json=payload, headers=owner_headers)
    assert response.status_code == 422


async def test_malformed_quiz_id(client, owner_headers):
    response = await client.get(f"{API}/quizzes/not-a-uuid", headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid quiz ID format"


async def test_demo_quiz_detail(client, owner_headers):
    response = await client.get(f"{API}/quizzes/demo-python", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Python Fundamentals"

    response = await client.get(f"{API}/quizzes/demo-missing", headers=owner_headers)
    assert response.status_code == 404


async def test_demo_quiz_listing(client, owner_headers):
    response = await client.get(f"{API}/demo-quizzes", headers=owner_headers)
    assert response.status_code == 200
    titles = [quiz["title"] for quiz in response.json()]
    assert "Python Fundamentals" in titles
    assert len(titles) == 3

    # Ids are derived from the slug, so repeated listings agree
    again = await client.get(f"{API}/demo-quizzes", headers=owner_headers)
    assert [q["id"] for q in again.json()] == [q["id"] for q in response.json()]


async def test_update_and_delete(client, owner_headers, other_headers):
    created = await _create(client, owner_headers)

    response = await client.put(
        f"{API}/quizzes/{created['id']}", json=_payload(title="Renamed", question_count=1), headers=other_headers
    )
    assert response.status_code == 403

    response = await client.put(
        f"{API}/quizzes/{created['id']}", json=_payload(title="Renamed", question_count=1), headers=owner_headers
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert len(response.json()["questions"]) == 1

    response = await client.delete(f"{API}/quizzes/{created['id']}", headers=owner_headers)
    assert response.status_code == 204

    response = await client.get(f"{API}/quizzes/{created['id']}", headers=owner_headers)
    assert response.status_code == 404


async def test_status_endpoints(client, owner_headers):
    created = await _create(client, owner_headers)
    quiz_url = f"{API}/quizzes/{created['id']}"

    response = await client.post(f"{quiz_url}/publish", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "public"

    response = await client.post(f"{quiz_url}/publish", headers=owner_headers)
    assert response.status_code == 422
    assert "Cannot publish" in response.json()["detail"]["message"]

    response = await client.patch(f"{quiz_url}/visibility", json={"status": "private"}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "private"

    response = await client.patch(f"{quiz_url}/visibility", json={"status": "draft"}, headers=owner_headers)
    assert response.status_code == 422

    response = await client.post(f"{quiz_url}/unpublish", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "draft"


async def test_attempt_flow(client, owner_headers):
    created = await _create(client, owner_headers, question_count=2)
    quiz_url = f"{API}/quizzes/{created['id']}"
    q1, q2 = created["questions"]

    response = await client.post(f"{quiz_url}/attempts", headers=owner_headers)
    assert response.status_code == 201
    attempt = response.json()
    assert attempt["total_questions"] == 2
    assert attempt["status"] == "in_progress"

    responses = [
        {"question_id": q1["id"], "selected_options": [q1["options"][0]["id"]]},
        {"question_id": q2["id"], "selected_options": [q2["options"][1]["id"]]},
    ]
    response = await client.post(
        f"{API}/attempts/{attempt['id']}/responses", json={"responses": responses}, headers=owner_headers
    )
    assert response.status_code == 201
    assert response.json()["count"] == 2

    response = await client.put(
        f"{quiz_url}/attempts/{attempt['id']}",
        json={"status": "completed", "score": 1, "completed_at": "2030-01-01T10:00:00Z"},
        headers=owner_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.put(
        f"{quiz_url}/attempts/{attempt['id']}",
        json={"status": "completed", "score": 1, "completed_at": "2030-01-01T10:00:00Z"},
        headers=owner_headers,
    )
    assert response.status_code == 409

    response = await client.get(f"{quiz_url}/attempts", headers=owner_headers)
    history = response.json()
    assert history["stats"]["total_attempts"] == 1
    assert history["attempts"][0]["percentage"] == 50

    response = await client.get(f"{API}/attempts/{attempt['id']}", headers=owner_headers)
    review = response.json()
    assert review["question_results"] == {q1["id"]: True, q2["id"]: False}


async def test_demo_quiz_cannot_be_attempted(client, owner_headers):
    response = await client.post(f"{API}/quizzes/demo-python/attempts", headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot create attempts for demo quizzes"


async def test_ai_generation_and_quota(client, owner_headers, monkeypatch):
    response = await client.get(f"{API}/user/ai-quota", headers=owner_headers)
    assert response.json() == {"used": 0, "limit": 2, "remaining": 2, "has_reached_limit": False}

    monkeypatch.setattr(
        "app.services.quiz_generator_service.chat_completion",
        fake_completion(json.dumps(ai_quiz_json())),
    )
    response = await client.post(f"{API}/quizzes/ai/generate", json={"prompt": "plants"}, headers=owner_headers)
    assert response.status_code == 201
    assert response.json()["source"] == "ai_generated"

    response = await client.get(f"{API}/user/ai-quota", headers=owner_headers)
    assert response.json()["remaining"] == 1


async def test_ai_generation_without_provider_key(client, owner_headers):
    # No GEMINI_API_KEY in the test environment
    response = await client.post(f"{API}/quizzes/ai/generate", json={"prompt": "plants"}, headers=owner_headers)
    assert response.status_code == 503
