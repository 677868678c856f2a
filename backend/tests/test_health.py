"""Basic health check tests."""

from unittest.mock import patch

from config import settings


def test_health_check(client):
    """Healthy when the database answers."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["version"] == settings.APP_VERSION
    assert data["uptime"] >= 0
    assert data["timestamp"]


def test_health_check_database_down(client):
    with patch("main.check_database", return_value=False):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["database"] == "disconnected"


def test_health_check_needs_no_auth(client):
    response = client.get("/health", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 200
