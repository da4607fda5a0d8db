from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api_server import app


OWNER = {"X-User-Id": "candidate-1"}


@pytest.fixture
def client(fake_models):
    with TestClient(app) as c:
        yield c


def test_create_start_end_and_report(client):
    created = client.post("/api/interviews", json={"interview_type": "technical", "total_questions": 3}, headers=OWNER)
    assert created.status_code == 201
    body = created.json()
    session_id = body["session_id"]
    assert body["status"] == "scheduled"
    assert body["progress"] == {"current": 1, "total": 3}

    early = client.get(f"/api/interviews/{session_id}/report", headers=OWNER)
    assert early.status_code == 409

    started = client.post(f"/api/interviews/{session_id}/start", headers=OWNER)
    assert started.status_code == 200
    assert started.json()["status"] == "in-progress"
    assert started.json()["current_question"]["text"].startswith("Question 1")

    again = client.post(f"/api/interviews/{session_id}/start", headers=OWNER)
    assert again.status_code == 409

    ended = client.post(f"/api/interviews/{session_id}/end", json={"reason": "done"}, headers=OWNER)
    assert ended.status_code == 200
    assert ended.json()["status"] == "abandoned"
    assert ended.json()["cause"] == "ended"

    report = client.get(f"/api/interviews/{session_id}/report", headers=OWNER)
    assert report.status_code == 200
    data = report.json()
    assert data["status"] == "abandoned"
    assert data["responses"] == []
    assert data["integrity"] == {"tab_switches": 0, "misbehavior_events": 0, "terminated": False}

    gone = client.post(f"/api/interviews/{session_id}/end", headers=OWNER)
    assert gone.status_code == 410


def test_create_and_start_in_one_call(client):
    resp = client.post("/api/interviews/start", json={"interview_type": "hr"}, headers=OWNER)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "in-progress"
    assert body["total_questions"] == 10
    assert body["current_question"] is not None


def test_foreign_and_unknown_sessions_are_not_found(client):
    session_id = client.post("/api/interviews", json={}, headers=OWNER).json()["session_id"]
    assert client.get(f"/api/interviews/{session_id}", headers={"X-User-Id": "someone"}).status_code == 404
    assert client.get("/api/interviews/does-not-exist", headers=OWNER).status_code == 404
    assert client.get(f"/api/interviews/{session_id}").status_code == 422


def test_invalid_create_payload(client):
    resp = client.post("/api/interviews", json={"interview_type": "karaoke"}, headers=OWNER)
    assert resp.status_code == 422


def test_history_is_paginated_and_filtered(client):
    for kind in ("technical", "behavioral", "technical"):
        client.post("/api/interviews", json={"interview_type": kind}, headers=OWNER)
    client.post("/api/interviews", json={}, headers={"X-User-Id": "someone"})

    page = client.get("/api/interviews", params={"page": 1, "limit": 2}, headers=OWNER).json()
    assert len(page["sessions"]) == 2
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    technical = client.get("/api/interviews", params={"interview_type": "technical"}, headers=OWNER).json()
    assert technical["pagination"]["total"] == 2
    assert all(item["interview_type"] == "technical" for item in technical["sessions"])

    scheduled = client.get("/api/interviews", params={"status": "completed"}, headers=OWNER).json()
    assert scheduled["sessions"] == []


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
