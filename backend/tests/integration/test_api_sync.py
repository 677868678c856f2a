"""Integration tests for the sync API endpoint."""

import asyncio
from unittest.mock import patch

from config import settings
from models import Account, Snapshot, SyncLogEntry, SyncSession
from services.sync_service import SyncService


def test_sync_requires_token(client, db):
    response = client.post("/api/sync")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}
    assert db.query(SyncSession).count() == 0


def test_sync_rejects_wrong_token(client):
    response = client.post("/api/sync", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_sync_rejects_non_bearer_scheme(client):
    response = client.post("/api/sync", headers={"Authorization": "Basic dGVzdA=="})
    assert response.status_code == 401


def test_sync_without_configured_secret(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "SYNC_API_TOKEN", "")
    monkeypatch.setattr(settings, "AUTH_PASSWORD", "")

    response = client.post("/api/sync", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["detail"] == "Server not configured"


def test_sync_accepts_auth_password_when_no_token(client, monkeypatch):
    monkeypatch.setattr(settings, "SYNC_API_TOKEN", "")
    response = client.post("/api/sync", headers={"Authorization": "Bearer correct horse"})
    assert response.status_code == 200


def test_sync_success(client, db, auth_headers):
    response = client.post("/api/sync", headers=auth_headers)
    assert response.status_code == 200

    body = response.json()
    assert body["providers"] == {
        "SimpleFIN": {"success": True, "synced": 2, "error": None},
        "Solana": {"success": True, "synced": 1, "error": None},
    }
    assert body["total_synced"] == 3
    assert body["account_count"] == 3
    assert body["total_value_usd"] == 13734.56
    assert body["timestamp"]
    assert body["sync_session_id"] == db.query(SyncSession).one().id

    assert db.query(Account).count() == 3
    assert db.query(Snapshot).count() == 3


def test_sync_partial_failure_still_200(client, db, auth_headers, mock_provider_registry):
    failing = mock_provider_registry.get_provider("Solana")
    failing._should_fail = True
    failing._failure_type = "connection"
    failing._failure_message = "RPC unreachable"

    response = client.post("/api/sync", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["providers"]["SimpleFIN"]["success"] is True
    assert body["providers"]["Solana"] == {"success": False, "synced": 0, "error": "RPC unreachable"}
    assert db.query(SyncLogEntry).filter_by(status="failed").count() == 1


def test_sync_all_providers_fail(client_with_failing_sync, db, auth_headers):
    response = client_with_failing_sync.post("/api/sync", headers=auth_headers)

    assert response.status_code == 500
    # Provider messages stay in the logs and the sync session
    assert response.json() == {"detail": "Sync failed"}
    session = db.query(SyncSession).one()
    assert not session.is_complete
    assert "SimpleFIN token revoked" in session.error_message


def test_sync_unexpected_error_not_leaked(client, auth_headers):
    with patch.object(SyncService, "trigger_sync", side_effect=RuntimeError("db password is hunter2")):
        response = client.post("/api/sync", headers=auth_headers)

    assert response.status_code == 500
    assert "hunter2" not in response.text


def test_sync_in_progress_returns_409(client, auth_headers):
    # Hold the lock from a fresh loop, as a concurrent request would
    asyncio.run(SyncService._sync_lock.acquire())
    try:
        response = client.post("/api/sync", headers=auth_headers)
    finally:
        SyncService._sync_lock.release()

    assert response.status_code == 409
    assert "already in progress" in response.json()["detail"]


def test_sync_rate_limited_per_client(client, auth_headers):
    for _ in range(10):
        assert client.post("/api/sync", headers=auth_headers).status_code == 200

    response = client.post("/api/sync", headers=auth_headers)

    assert response.status_code == 429
    body = response.json()
    assert body["detail"] == "Too many attempts"
    assert body["retry_after"] > 0
    assert response.headers["Retry-After"] == str(body["retry_after"])

    # A rotated X-Forwarded-For from an untrusted peer is the same client
    spoofed = client.post("/api/sync", headers={**auth_headers, "X-Forwarded-For": "10.1.2.3"})
    assert spoofed.status_code == 429


def test_spoofed_forwarded_header_cannot_escape_limit(client):
    for n in range(10):
        client.post("/api/sync", headers={"Authorization": "Bearer guess", "X-Forwarded-For": f"1.1.1.{n}"})

    response = client.post(
        "/api/sync", headers={"Authorization": "Bearer guess", "X-Forwarded-For": "1.1.1.99"}
    )
    assert response.status_code == 429


def test_trusted_proxy_forwarded_clients_get_own_buckets(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "TRUSTED_PROXIES", ["testclient"])
    for _ in range(10):
        client.post("/api/sync", headers={**auth_headers, "X-Forwarded-For": "198.51.100.1"})

    limited = client.post("/api/sync", headers={**auth_headers, "X-Forwarded-For": "198.51.100.1"})
    other = client.post("/api/sync", headers={**auth_headers, "X-Forwarded-For": "198.51.100.2"})

    assert limited.status_code == 429
    assert other.status_code == 200


def test_failed_auth_counts_against_limit(client, auth_headers):
    for _ in range(10):
        client.post("/api/sync", headers={"Authorization": "Bearer guess"})

    response = client.post("/api/sync", headers=auth_headers)
    assert response.status_code == 429
