"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok'
  - No authentication required
  - degraded status when the database ping fails
"""

from __future__ import annotations


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_health_runs_in_threadpool():
    """The database ping blocks, so the handler must be a plain def."""
    import inspect

    from api.main import health

    assert not inspect.iscoroutinefunction(health)


def test_health_degraded_when_database_down(api_client, monkeypatch):
    """A failed ping reports degraded status and a database error."""
    client, _, _ = api_client
    monkeypatch.setattr(client.app.state.things, "ping", lambda: False)
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"
