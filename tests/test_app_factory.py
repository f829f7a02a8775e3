"""Tests for app factory and role-based routing."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from spotbook.api.factory import create_app
from spotbook.domain.models import SweepResult


class TestPublicRole:
    """Tests for APP_ROLE=public."""

    def test_health_available(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_tasks_not_mounted(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/tasks/health")
        assert response.status_code == 404

    def test_expire_sweep_not_mounted(self):
        """Sweep trigger should NOT be reachable on the public service."""
        client = TestClient(create_app(role="public"))
        response = client.post("/tasks/reservations/expire-sweep", json={})
        assert response.status_code == 404

    def test_reservation_routes_mounted(self):
        client = TestClient(create_app(role="public"))
        # No context headers: rejected by the route, not missing
        response = client.get("/reservations")
        assert response.status_code == 401


class TestWorkerRole:
    """Tests for APP_ROLE=worker."""

    def test_health_available(self):
        client = TestClient(create_app(role="worker"))
        response = client.get("/health")
        assert response.status_code == 200

    def test_tasks_mounted(self):
        client = TestClient(create_app(role="worker"))
        response = client.get("/tasks/health")
        assert response.status_code == 200
        assert response.json()["subsystem"] == "tasks"

    def test_expire_sweep_mounted(self):
        client = TestClient(create_app(role="worker"))
        with patch(
            "spotbook.api.routes.tasks_reservations.verify_task_auth", return_value=True
        ), patch(
            "spotbook.api.routes.tasks_reservations.run_expiration_sweep_all",
            return_value={},
        ):
            response = client.post("/tasks/reservations/expire-sweep")
        assert response.status_code == 200


class TestRoleFromEnv:
    def test_defaults_to_public(self, monkeypatch):
        monkeypatch.delenv("APP_ROLE", raising=False)
        client = TestClient(create_app())
        assert client.get("/tasks/health").status_code == 404

    def test_worker_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ROLE", "worker")
        client = TestClient(create_app())
        assert client.get("/tasks/health").status_code == 200


class TestCorrelationId:
    def test_generated_when_absent(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health")
        assert response.headers.get("X-Correlation-ID")

    def test_echoed_when_present(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health", headers={"X-Correlation-ID": "cid-123"})
        assert response.headers["X-Correlation-ID"] == "cid-123"

    def test_visible_to_handlers(self):
        seen = []

        def fake_sweep_all(batch_size=None):
            from spotbook.observability.correlation import get_correlation_id

            seen.append(get_correlation_id())
            return {"acme": SweepResult()}

        client = TestClient(create_app(role="worker"))
        with patch(
            "spotbook.api.routes.tasks_reservations.verify_task_auth", return_value=True
        ), patch(
            "spotbook.api.routes.tasks_reservations.run_expiration_sweep_all",
            side_effect=fake_sweep_all,
        ):
            client.post(
                "/tasks/reservations/expire-sweep", headers={"X-Correlation-ID": "cid-xyz"}
            )

        assert seen == ["cid-xyz"]


def test_unknown_role_rejected():
    with pytest.raises(ValueError):
        create_app(role="admin")  # type: ignore[arg-type]
