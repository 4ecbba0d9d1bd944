import pytest
from fastapi.testclient import TestClient

import store
from main import app
from models.session import SessionStatus


@pytest.fixture
def client():
    return TestClient(app)


def _create(client):
    response = client.post("/api/sessions", json={"intervieweeName": "Ada"})
    assert response.status_code == 201
    return response.json()["sessionId"]


def _chunk(session_id, index, events=None):
    return {
        "sessionId": session_id,
        "chunkIndex": index,
        "timestamp": 1_700_000_000_000,
        "events": events if events is not None else [
            {"type": 100, "timestamp": 1000 + index, "data": {"fileName": "a.py"}},
            {"type": 104, "timestamp": 1001 + index, "data": {"text": "x"}},
        ],
    }


def _stored():
    chunk_store = store.get_chunk_store()
    return chunk_store._objects if hasattr(chunk_store, "_objects") else {}


class TestSessions:
    def test_create_and_get(self, client):
        session_id = _create(client)
        response = client.get(f"/api/sessions/{session_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["intervieweeName"] == "Ada"
        assert body["summary"] is None

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404


class TestChunkIngestion:
    def test_first_chunk_starts_session(self, client):
        session_id = _create(client)
        response = client.post("/api/recording/chunk", json=_chunk(session_id, 0))
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["chunkIndex"] == 0
        assert body["blobUrl"].endswith(f"recordings/{session_id}/chunk-0000.json")

        session = store.sessions[session_id]
        assert session.status is SessionStatus.IN_PROGRESS
        assert session.start_time is not None

    @pytest.mark.parametrize("payload", [
        {"chunkIndex": 0, "events": [], "timestamp": 1},
        {"sessionId": "", "chunkIndex": 0, "events": [], "timestamp": 1},
        {"sessionId": "SID", "chunkIndex": 0, "events": "nope", "timestamp": 1},
        {"sessionId": "SID", "chunkIndex": -1, "events": [], "timestamp": 1},
        {"sessionId": "SID", "chunkIndex": 0, "events": [{"type": "x"}], "timestamp": 1},
    ])
    def test_malformed_payload_rejected_before_write(self, client, payload):
        session_id = _create(client)
        if payload.get("sessionId") == "SID":
            payload = {**payload, "sessionId": session_id}
        response = client.post("/api/recording/chunk", json=payload)
        assert response.status_code == 400
        assert _stored() == {}
        assert store.sessions[session_id].status is SessionStatus.PENDING

    def test_unknown_session_rejected(self, client):
        response = client.post("/api/recording/chunk", json=_chunk("ghost", 0))
        assert response.status_code == 404
        assert _stored() == {}

    def test_list_chunks_in_index_order(self, client):
        session_id = _create(client)
        for index in (2, 0, 1):
            client.post("/api/recording/chunk", json=_chunk(session_id, index))
        response = client.get(f"/api/recording/{session_id}/chunks")
        assert response.status_code == 200
        assert [c["chunkIndex"] for c in response.json()] == [0, 1, 2]

    def test_retry_overwrites(self, client):
        session_id = _create(client)
        client.post("/api/recording/chunk", json=_chunk(session_id, 0))
        client.post("/api/recording/chunk", json=_chunk(session_id, 0))
        assert len(client.get(f"/api/recording/{session_id}/chunks").json()) == 1


class TestEndRecording:
    def test_end_completes_and_summarizes(self, client):
        session_id = _create(client)
        client.post("/api/recording/chunk", json=_chunk(session_id, 0))
        response = client.post(
            "/api/recording/end",
            json={"sessionId": session_id, "endTime": "2026-01-01T12:00:00Z"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "sessionId": session_id, "status": "completed"}

        body = client.get(f"/api/sessions/{session_id}").json()
        assert body["status"] == "completed"
        assert body["behavior"]["text_edit_count"] == 1
        assert body["behavior"]["files_opened"] == ["a.py"]
        assert "Potential signs of AI assistance" in body["summary"]

    @pytest.mark.parametrize("payload", [
        {"endTime": "2026-01-01T12:00:00Z"},
        {"sessionId": "abc"},
        {},
    ])
    def test_missing_fields(self, client, payload):
        response = client.post("/api/recording/end", json=payload)
        assert response.status_code == 400

    def test_unknown_session(self, client):
        response = client.post(
            "/api/recording/end",
            json={"sessionId": "ghost", "endTime": "2026-01-01T12:00:00Z"},
        )
        assert response.status_code == 404

    def test_end_without_chunks_leaves_no_summary(self, client):
        session_id = _create(client)
        client.post("/api/recording/end", json={"sessionId": session_id, "endTime": "2026-01-01T12:00:00Z"})
        body = client.get(f"/api/sessions/{session_id}").json()
        assert body["status"] == "completed"
        assert body["summary"] is None


def test_health(client):
    assert client.get("/").json()["status"] == "ok"
