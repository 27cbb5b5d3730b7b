"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - 200 response with status and version fields
  - No cookies or session required
"""

from __future__ import annotations


def test_health_returns_200(api_client):
    """Health endpoint returns 200 with status and version."""
    resp = api_client.client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "version" in data


def test_health_sets_no_cookie(api_client):
    """Health checks come from load balancers; they never get a session."""
    resp = api_client.client.get("/api/health", headers={"User-Agent": "Mozilla/5.0 (X11; Linux x86_64)"})
    assert resp.status_code == 200
    assert resp.headers.get_list("set-cookie") == []


def test_unknown_host_rejected(api_client):
    """TrustedHostMiddleware rejects Host headers outside ALLOWED_HOSTS."""
    resp = api_client.client.get("/api/health", headers={"Host": "evil.example.com"})
    assert resp.status_code == 400
