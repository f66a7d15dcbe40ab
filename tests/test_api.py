"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import REPO_URL, make_service
from reposcan.api.main import create_app


@pytest.fixture
def service(store, clone_root):
    service = make_service(store, clone_root, outputs={"fake": "app.py|2|high|command injection\n"})
    yield service
    service.shutdown()


@pytest.fixture
def client(service):
    with TestClient(create_app(service=service)) as client:
        yield client


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["docs"] == "/docs"


def test_start_scan_and_poll(client, service):
    response = client.post("/api/scan", json={"repo_url": REPO_URL})
    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "pending"
    assert body["repo_url"] == REPO_URL

    service.wait(body["id"], timeout=10)
    response = client.get(f"/api/scan/{body['id']}")
    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "completed"
    assert job["languages"] == ["python"]
    assert job["findings"][0]["file_path"] == "app.py"
    assert job["findings"][0]["severity"] == "high"
    assert job["completed_at"] is not None


@pytest.mark.parametrize("url,code", [
    ("", "EMPTY_URL"),
    ("http://github.com/octocat/hello-world", "INVALID_PROTOCOL"),
    ("https://gitlab.com/octocat/hello-world", "NOT_GITHUB"),
    ("https://github.com/octocat", "INVALID_FORMAT"),
])
def test_invalid_url(client, url, code):
    response = client.post("/api/scan", json={"repo_url": url})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == code
    assert detail["example"]


def test_missing_body(client):
    assert client.post("/api/scan", json={}).status_code == 422


def test_unknown_job(client):
    response = client.get("/api/scan/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Scan job not found"


def test_cancel(client, service):
    assert client.post("/api/scan/does-not-exist/cancel").status_code == 404

    job_id = client.post("/api/scan", json={"repo_url": REPO_URL}).json()["id"]
    service.wait(job_id, timeout=10)
    response = client.post(f"/api/scan/{job_id}/cancel")
    assert response.status_code == 202
    assert response.json() == {"id": job_id, "cancelled": False}


def test_config(client):
    response = client.get("/api/scan/config")
    assert response.status_code == 200
    config = response.json()
    assert config["private_repo_enabled"] is False
    assert config["ai_review_enabled"] is False
    assert config["tool_timeout_seconds"] == 300
    assert config["queue"]["max_concurrent"] == 2


def test_service_unavailable():
    app = create_app(service=None)
    client = TestClient(app)
    assert client.get("/api/scan/config").status_code == 503
