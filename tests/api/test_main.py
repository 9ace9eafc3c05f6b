"""Unit tests for the legal agent API application."""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import VERSION


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_check(self, client: TestClient):
        """Test /healthz endpoint returns healthy status."""
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "healthy"
        assert data["service"] == "api"
        assert data["version"] == VERSION
        assert isinstance(data["timestamp"], (int, float))

    def test_readiness_check(self, client: TestClient):
        """Test /readyz reports the wired services."""
        response = client.get("/readyz")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "ready"
        assert data["details"] == {"cache": "FileCacheStore", "whatsapp": "simulated", "pending_tasks": "0"}


class TestMiddleware:
    """Test request middleware."""

    def test_request_id_is_echoed(self, client: TestClient):
        response = client.get("/healthz", headers={"X-Request-ID": "req_custom"})

        assert response.headers["X-Request-ID"] == "req_custom"

    def test_request_id_is_generated(self, client: TestClient):
        response = client.get("/")

        assert response.headers["X-Request-ID"].startswith("req_")

    def test_oversized_request_is_rejected(self, client: TestClient):
        response = client.post(
            "/api/query/submit",
            content=b"{}",
            headers={"Content-Type": "application/json", "Content-Length": str(50 * 1024 * 1024)},
        )

        assert response.status_code == 413
        assert response.json()["error_code"] == "REQUEST_TOO_LARGE"
