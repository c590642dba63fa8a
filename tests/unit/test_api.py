"""
HTTP tests for the presign and health endpoints.

The app runs in storage mock mode; individual tests swap in their own
MockStorageClient through dependency_overrides to inject failures.
"""

import re

import pytest
from fastapi.testclient import TestClient

from whisperdrop.api.dependencies import get_storage_client
from whisperdrop.config.settings import Settings
from whisperdrop.core.storage.models import DESIRED_CORS_POLICY
from whisperdrop.infrastructure.storage.client import MockStorageClient
from whisperdrop.main import create_app

UUID4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


@pytest.fixture
def app(mock_settings):
    return create_app(mock_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestPresignAudio:

    def test_returns_grant(self, client):
        response = client.post(
            "/api/presign-audio",
            json={"filename": "recording.webm", "contentType": "audio/webm"},
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"uploadUrl", "publicUrl", "key", "fileId"}
        assert UUID4_PATTERN.match(body["fileId"])
        assert body["key"] == f"audio/{body['fileId']}.webm"
        assert "method=PUT" in body["uploadUrl"]
        assert "method=GET" in body["publicUrl"]

    def test_content_type_is_optional(self, client):
        response = client.post("/api/presign-audio", json={"filename": "take.ogg"})

        assert response.status_code == 200
        assert "content-type=audio/webm" in response.json()["uploadUrl"]

    def test_uses_configured_expiry(self, mock_settings):
        settings = mock_settings.model_copy(update={"url_expiry_seconds": 600})
        with TestClient(create_app(settings)) as client:
            response = client.post("/api/presign-audio", json={"filename": "a.webm"})

        assert "expires=600" in response.json()["uploadUrl"]

    def test_empty_filename_is_rejected(self, client):
        response = client.post("/api/presign-audio", json={"filename": ""})

        assert response.status_code == 422
        assert response.json()["error"].startswith("filename: ")

    def test_missing_filename_returns_error_body(self, client):
        response = client.post("/api/presign-audio", json={})

        assert response.status_code == 422
        body = response.json()
        assert set(body) == {"error"}
        assert "filename" in body["error"]

    def test_signing_failure_returns_500_with_error(self, app, client):
        broken = MockStorageClient(bucket_name="test-bucket")
        broken.fail("presign", "The key ID is invalid", code="InvalidAccessKeyId")
        app.dependency_overrides[get_storage_client] = lambda: broken

        response = client.post("/api/presign-audio", json={"filename": "recording.webm"})

        assert response.status_code == 500
        assert "The key ID is invalid" in response.json()["error"]


class TestPresignTranscript:

    def test_returns_grant_for_file_id(self, client):
        audio = client.post("/api/presign-audio", json={"filename": "recording.webm"}).json()

        response = client.post("/api/presign-transcript", json={"fileId": audio["fileId"]})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"uploadUrl", "publicUrl", "key"}
        assert body["key"] == f"transcripts/{audio['fileId']}.json"
        assert "content-type=application/json" in body["uploadUrl"]

    def test_missing_file_id_is_rejected(self, client):
        response = client.post("/api/presign-transcript", json={})

        assert response.status_code == 422
        assert "fileId" in response.json()["error"]

    def test_empty_file_id_is_rejected(self, client):
        response = client.post("/api/presign-transcript", json={"fileId": ""})

        assert response.status_code == 422
        assert set(response.json()) == {"error"}

    def test_signing_failure_returns_500_with_error(self, app, client):
        broken = MockStorageClient(bucket_name="test-bucket")
        broken.fail("presign", "Signature mismatch")
        app.dependency_overrides[get_storage_client] = lambda: broken

        response = client.post("/api/presign-transcript", json={"fileId": "abc"})

        assert response.status_code == 500
        assert "transcripts/abc.json" in response.json()["error"]


class TestHealth:

    def test_health_is_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready_when_cors_setup_skipped(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert {"name": "bucket_cors", "status": "skipped", "error": None} in body["checks"]


class TestStartupReconciliation:

    def test_startup_applies_cors_to_mock_bucket(self, mock_settings):
        settings = mock_settings.model_copy(update={"auto_setup_cors": True})
        app = create_app(settings)

        with TestClient(app) as client:
            store = app.state.storage_client
            assert store.cors_policy == DESIRED_CORS_POLICY
            assert client.get("/health/ready").json()["status"] == "ready"

    def test_startup_failure_does_not_stop_serving(self, mock_settings, monkeypatch):
        """Broken CORS is logged; grants are still issued."""
        original = MockStorageClient.__init__

        def failing_init(self, *args, **kwargs):
            original(self, *args, **kwargs)
            self.fail("put_bucket_cors", "Access Denied", code="AccessDenied")

        monkeypatch.setattr(MockStorageClient, "__init__", failing_init)

        settings = mock_settings.model_copy(update={"auto_setup_cors": True})
        app = create_app(settings)

        with TestClient(app) as client:
            ready = client.get("/health/ready")
            presign = client.post("/api/presign-audio", json={"filename": "a.webm"})

        assert ready.status_code == 503
        assert app.state.cors_status.error_kind == "permission_denied"
        assert presign.status_code == 200
