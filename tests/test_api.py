"""
Tests for the practice session HTTP endpoints.
"""
import time

from api.main import sign_token, verify_token


def submit_body(session_json, correct: int):
    responses = []
    for i, item in enumerate(session_json["question_items"]):
        # Factory questions all have correct_index 0
        responses.append({
            "question_id": item["question_id"],
            "selected_index": 0 if i < correct else 1,
            "time_sec": 5,
        })
    return {"responses": responses}


class TestAuth:
    def test_token_round_trip(self):
        assert verify_token(sign_token("student-1")) == "student-1"

    def test_tampered_token(self):
        user, ts, sig = sign_token("student-1").split(":")
        assert verify_token(f"student-2:{ts}:{sig}") is None
        assert verify_token("garbage") is None
        assert verify_token(None) is None

    def test_expired_token(self):
        assert verify_token(sign_token("student-1", timestamp=int(time.time()) - 10**8)) is None

    async def test_missing_token_is_unauthorized(self, client):
        response = await client.post("/api/sessions", json={"mode": "all", "branch_id": 1})
        assert response.status_code == 401


class TestSessions:
    async def test_create_session(self, client, auth_headers, question_factory):
        await question_factory(count=40)

        response = await client.post(
            "/api/sessions",
            json={"mode": "topic", "branch_id": 1, "subject_id": 10, "topic_id": 100},
            headers=auth_headers(),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["completed"] is False
        assert data["question_count"] == 30
        assert data["score"] is None
        for item in data["question_items"]:
            assert item["correct_index"] is None
            assert len(item["options"]) == 4

    async def test_invalid_scope(self, client, auth_headers):
        response = await client.post(
            "/api/sessions", json={"mode": "subject", "branch_id": 1}, headers=auth_headers()
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_scope_for_mode"

    async def test_unknown_mode_rejected(self, client, auth_headers):
        response = await client.post(
            "/api/sessions", json={"mode": "everything", "branch_id": 1}, headers=auth_headers()
        )
        assert response.status_code == 422

    async def test_no_questions(self, client, auth_headers):
        response = await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=auth_headers())
        assert response.status_code == 404
        assert response.json()["error"] == "no_questions_available"

    async def test_submit_flow(self, client, auth_headers, question_factory):
        await question_factory(count=30)
        headers = auth_headers()
        created = (await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=headers)).json()

        response = await client.post(
            f"/api/sessions/{created['id']}/submit", json=submit_body(created, correct=30), headers=headers
        )
        assert response.status_code == 200
        result = response.json()
        assert result["score"] == 1.0
        assert result["correct_count"] == 30
        assert result["total_questions"] == 30

        again = await client.post(
            f"/api/sessions/{created['id']}/submit", json=submit_body(created, correct=30), headers=headers
        )
        assert again.status_code == 409
        assert again.json()["error"] == "session_already_completed"

        detail = (await client.get(f"/api/sessions/{created['id']}?answers=true", headers=headers)).json()
        assert detail["completed"] is True
        assert all(item["correct_index"] == 0 for item in detail["question_items"])

        progress = (await client.get("/api/progress?branch_id=1", headers=headers)).json()
        assert len(progress) == 1
        assert progress[0]["scope_type"] == "branch"
        assert progress[0]["current_level"] == 2
        assert progress[0]["total_answered"] == 30

    async def test_submit_validation(self, client, auth_headers, question_factory):
        await question_factory(count=30)
        headers = auth_headers()
        created = (await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=headers)).json()
        url = f"/api/sessions/{created['id']}/submit"

        empty = await client.post(url, json={"responses": []}, headers=headers)
        assert empty.status_code == 400
        assert empty.json()["error"] == "empty_response_set"

        unknown = await client.post(
            url, json={"responses": [{"question_id": 424242, "selected_index": 0, "time_sec": 1}]}, headers=headers
        )
        assert unknown.status_code == 400
        assert unknown.json()["error"] == "unknown_question_in_session"

        negative = await client.post(
            url, json={"responses": [{"question_id": 1, "selected_index": -1, "time_sec": 1}]}, headers=headers
        )
        assert negative.status_code == 422

    async def test_sessions_are_private(self, client, auth_headers, question_factory):
        await question_factory(count=30)
        created = (
            await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=auth_headers("student-1"))
        ).json()

        other = await client.get(f"/api/sessions/{created['id']}", headers=auth_headers("student-2"))
        assert other.status_code == 404

        history = await client.get("/api/sessions", headers=auth_headers("student-2"))
        assert history.json() == []

    async def test_history(self, client, auth_headers, question_factory):
        await question_factory(count=30)
        headers = auth_headers()
        first = (await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=headers)).json()
        second = (await client.post("/api/sessions", json={"mode": "all", "branch_id": 1}, headers=headers)).json()

        history = (await client.get("/api/sessions?branch_id=1", headers=headers)).json()
        assert [s["id"] for s in history] == [second["id"], first["id"]]
        assert history[0]["question_count"] == 30


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
