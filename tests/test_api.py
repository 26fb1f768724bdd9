"""
HTTP API endpoint tests
Test FastAPI endpoints of the recovery engine
"""

import pytest
from fastapi.testclient import TestClient

from doc_recovery.api.main import create_app


@pytest.fixture
def client(engine):
    """Create test client bound to the test engine"""
    return TestClient(create_app(engine))


@pytest.fixture
def created(client):
    """Create a session with two files"""
    response = client.post(
        "/api/v1/sessions", json={"session_id": "sess-1", "file_names": ["a.pdf", "b.pdf"]}
    )
    assert response.status_code == 201
    return "sess-1"


class TestHealthEndpoint:
    """Test GET /health"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestSessionEndpoints:
    """Test session lifecycle endpoints"""

    def test_create_and_get(self, client, created):
        response = client.get(f"/api/v1/sessions/{created}")

        assert response.status_code == 200
        data = response.json()
        assert data["current_stage"] == "upload"
        assert [f["id"] for f in data["files"]] == ["file-0", "file-1"]

    def test_duplicate_conflict(self, client, created):
        response = client.post("/api/v1/sessions", json={"session_id": created, "file_names": []})
        assert response.status_code == 409

    def test_invalid_body(self, client):
        response = client.post("/api/v1/sessions", json={"session_id": ""})
        assert response.status_code == 422

    def test_missing_session(self, client):
        assert client.get("/api/v1/sessions/missing").status_code == 404

    def test_progress(self, client, created):
        response = client.post(
            f"/api/v1/sessions/{created}/progress",
            json={"stage": "upload", "percent": 100, "message": "Uploaded"},
        )

        assert response.status_code == 200
        assert response.json()["stage"] == "upload"
        session = client.get(f"/api/v1/sessions/{created}").json()
        assert session["completed_stages"] == ["upload"]

    def test_progress_rejects_nan(self, client, created):
        response = client.post(
            f"/api/v1/sessions/{created}/progress",
            content='{"stage": "ocr", "percent": NaN, "message": "x"}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    def test_progress_unknown_session(self, client):
        response = client.post(
            "/api/v1/sessions/missing/progress",
            json={"stage": "ocr", "percent": 10, "message": "x"},
        )
        assert response.status_code == 404


class TestErrorEndpoints:
    """Test error reporting and recovery actions"""

    def test_report_error_returns_strategy(self, client, created):
        response = client.post(
            f"/api/v1/sessions/{created}/errors",
            json={"code": "PARSE_ERROR", "message": "bad xref", "file_id": "file-0"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "fallback"
        assert data["fallback_processor"] == "alternative-parser"

    def test_report_error_unknown_session_aborts(self, client):
        response = client.post(
            "/api/v1/sessions/missing/errors", json={"code": "NETWORK_ERROR", "message": "x"}
        )

        assert response.status_code == 200
        assert response.json()["type"] == "abort"

    def test_execute_and_dismiss(self, client, created):
        client.post(
            f"/api/v1/sessions/{created}/errors",
            json={"code": "MEMORY_ERROR", "message": "oom", "file_id": "file-1"},
        )
        client.post(
            f"/api/v1/sessions/{created}/errors",
            json={"code": "NETWORK_ERROR", "message": "reset", "file_id": "file-0"},
        )
        first, second = client.get(f"/api/v1/sessions/{created}").json()["notifications"]

        response = client.post(
            f"/api/v1/sessions/{created}/notifications/{first['id']}/actions",
            json={"action": "fallback", "processor_name": "low-memory"},
        )
        assert response.json() == {"success": True}

        response = client.delete(f"/api/v1/sessions/{created}/notifications/{second['id']}")
        assert response.json() == {"success": True}

        session = client.get(f"/api/v1/sessions/{created}").json()
        assert session["notifications"] == []
        assert session["files"][1]["status"] == "pending"
        assert session["files"][1]["fallback_processor"] == "low-memory"

    def test_action_unknown_session(self, client):
        response = client.post(
            "/api/v1/sessions/missing/notifications/error-1/actions", json={"action": "retry"}
        )
        assert response.status_code == 404


class TestRecoveryEndpoints:
    """Test checkpoint and recovery endpoints"""

    def test_checkpoint_restore_and_list(self, client, engine, created):
        client.post(
            f"/api/v1/sessions/{created}/progress",
            json={"stage": "extraction", "percent": 30, "message": "Extracting"},
        )

        response = client.post(f"/api/v1/sessions/{created}/checkpoints")
        assert response.json() == {"success": True}

        engine.store.remove(created)
        response = client.post(f"/api/v1/sessions/{created}/restore")
        assert response.status_code == 200
        assert response.json()["current_stage"] == "extraction"

        listing = client.get("/api/v1/recovery/sessions").json()
        assert listing[0]["session_id"] == created
        assert listing[0]["can_recover"] is True

    def test_restore_without_checkpoint(self, client):
        assert client.post("/api/v1/sessions/missing/restore").status_code == 404

    def test_recover(self, client, created):
        client.post(
            f"/api/v1/sessions/{created}/errors",
            json={"code": "OCR_ERROR", "message": "garbage", "file_id": "file-0"},
        )

        response = client.post(
            f"/api/v1/sessions/{created}/recover", json={"skip_failed_files": True}
        )

        data = response.json()
        assert data["success"] is True
        assert data["skipped_files"] == ["a.pdf"]
        assert data["session"]["files"][0]["status"] == "skipped"

    def test_recommendations(self, client, created):
        response = client.get(f"/api/v1/sessions/{created}/recommendations")

        assert response.status_code == 200
        assert response.json()["risk_level"] == "low"

    def test_recommendations_unknown_session(self, client):
        assert client.get("/api/v1/sessions/missing/recommendations").status_code == 404

    def test_stats(self, client, created):
        client.post(
            f"/api/v1/sessions/{created}/errors",
            json={"code": "OCR_ERROR", "message": "garbage", "file_id": "file-0"},
        )

        data = client.get("/api/v1/monitoring/stats").json()

        assert data["total_sessions"] == 1
        assert data["errors_by_type"] == {"OCR_ERROR": 1}
        assert data["recovery_success_rate"] == 0.0
