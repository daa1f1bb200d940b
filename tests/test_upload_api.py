"""Tests for the upload API routes."""

import pytest
from fastapi.testclient import TestClient

from filedrop.core.config import settings
from filedrop.main import app
from filedrop.service import get_deletion_gateway, get_orchestrator
from filedrop.upload.deletion import DeletionGateway
from filedrop.upload.orchestrator import OUTSIDE_UPLOAD_ROOT_MESSAGE, UploadOrchestrator


@pytest.fixture
def client(storage_client, probe, sleeper, tmp_path):
    """Test client with the upload services bound to the fake backend."""
    app.dependency_overrides[get_orchestrator] = lambda: UploadOrchestrator(
        storage_client, probe=probe, sleep=sleeper, use_signed_urls=False, upload_root=tmp_path
    )
    app.dependency_overrides[get_deletion_gateway] = lambda: DeletionGateway(storage_client)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_upload_and_delete(client, backend, pdf_file):
    response = client.post(
        "/api/v1/uploads",
        json={"local_ref": str(pdf_file), "suggested_name": "Report", "bucket": "documents"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["retry_count"] == 0
    storage_key = data["storage_key"]
    assert f"documents/{storage_key}" in backend.objects

    response = client.delete(f"/api/v1/uploads/documents/{storage_key}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "error": None}
    assert backend.objects == {}


def test_upload_missing_file_returns_502(client, backend, tmp_path):
    response = client.post(
        "/api/v1/uploads",
        json={"local_ref": str(tmp_path / "gone.pdf"), "suggested_name": "gone.pdf"},
    )

    assert response.status_code == 502
    data = response.json()
    assert data["success"] is False
    assert data["error"].startswith("File does not exist")
    assert backend.network_calls == 0


def test_upload_requires_local_ref(client):
    response = client.post("/api/v1/uploads", json={"suggested_name": "a.pdf"})

    assert response.status_code == 422


def test_delete_failure_returns_502(client, backend):
    backend.remove_status = 500

    response = client.delete("/api/v1/uploads/documents/1700_report.pdf")

    assert response.status_code == 502
    assert response.json()["success"] is False


def test_upload_refuses_file_outside_upload_root(client, backend):
    response = client.post(
        "/api/v1/uploads",
        json={"local_ref": "/etc/passwd", "suggested_name": "x.txt"},
    )

    assert response.status_code == 502
    data = response.json()
    assert data["success"] is False
    assert data["error"] == OUTSIDE_UPLOAD_ROOT_MESSAGE
    assert data["retry_count"] == 0
    assert backend.network_calls == 0
    assert backend.objects == {}


def test_upload_refuses_relative_escape(client, backend, tmp_path):
    response = client.post(
        "/api/v1/uploads",
        json={"local_ref": str(tmp_path / ".." / ".." / "etc" / "passwd"), "suggested_name": "x.txt"},
    )

    assert response.status_code == 502
    assert response.json()["error"] == OUTSIDE_UPLOAD_ROOT_MESSAGE
    assert backend.network_calls == 0


def test_upload_without_bucket_uses_default_bucket(client, backend, pdf_file, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_BUCKET", "scans")

    response = client.post("/api/v1/uploads", json={"local_ref": str(pdf_file), "suggested_name": "r.pdf"})

    assert response.status_code == 201
    assert f"scans/{response.json()['storage_key']}" in backend.objects


def test_service_orchestrator_is_bound_to_upload_root(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_ROOT", str(tmp_path))

    assert get_orchestrator().upload_root == tmp_path.resolve()
