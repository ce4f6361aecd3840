"""
test_middleware.py — Tests for request/response middleware and error envelopes

Verifies request ID generation, security headers, CORS for the custom
recognition headers, the body size limit, and the ErrorResponse shape
produced by the handlers in main.py.

Called by: pytest
Depends on: ocr_relay/main.py, tests/conftest.py (client fixture)
"""

from unittest.mock import AsyncMock, patch

import pytest

from ocr_relay import __version__
from ocr_relay.config import settings
from ocr_relay.services.result_formatter import RecognitionResult


def test_request_id_header_present(client):
    """Every response should include X-Request-ID."""
    resp = client.get("/health")
    assert "X-Request-ID" in resp.headers
    assert len(resp.headers["X-Request-ID"]) == 8  # uuid4().hex[:8]


def test_request_id_unique_per_request(client):
    id1 = client.get("/health").headers["X-Request-ID"]
    id2 = client.get("/health").headers["X-Request-ID"]
    assert id1 != id2


def test_health_returns_version(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": __version__}


@pytest.mark.parametrize(
    "header, value",
    [
        ("X-Content-Type-Options", "nosniff"),
        ("X-Frame-Options", "DENY"),
        ("Referrer-Policy", "strict-origin-when-cross-origin"),
    ],
)
def test_security_headers(client, header, value):
    assert client.get("/health").headers.get(header) == value


def test_404_gets_request_id_and_envelope(client):
    """Error responses carry the request ID in both header and body."""
    resp = client.get("/nonexistent-route-xyz")
    assert resp.status_code == 404
    data = resp.json()
    assert data["success"] is False
    assert data["status_code"] == 404
    assert data["request_id"] == resp.headers["X-Request-ID"]
    assert resp.headers.get("X-Frame-Options") == "DENY"


def test_malformed_json_is_422(client, auth_headers):
    resp = client.post(
        "/recognize",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "Invalid request body"
    assert isinstance(data["detail"], list)


# ── CORS ─────────────────────────────────────────────────────────────


def test_cors_preflight_allows_custom_headers(client):
    resp = client.options(
        "/api/recognize/url",
        headers={
            "Origin": "https://ocr.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-custom-cookie, x-advanced-mode, x-custom-prompt",
        },
    )
    assert resp.status_code == 200
    allowed = resp.headers["access-control-allow-headers"].lower()
    for name in ("x-custom-cookie", "x-advanced-mode", "x-custom-prompt"):
        assert name in allowed
    assert "POST" in resp.headers["access-control-allow-methods"]


def test_cors_header_on_simple_request(client):
    resp = client.get("/health", headers={"Origin": "https://ocr.example.com"})
    assert resp.headers.get("access-control-allow-origin") == "*"


# ── Body size limit ──────────────────────────────────────────────────


def test_oversized_body_rejected(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "max_body_size_mb", 0)
    resp = client.post("/recognize", json={"imageId": "file-1"}, headers=auth_headers)
    assert resp.status_code == 413
    data = resp.json()
    assert data["success"] is False
    assert "too large" in data["error"]


def test_streamed_body_over_limit_rejected(client, auth_headers, monkeypatch):
    """A chunked body with no Content-Length is counted while it streams in."""
    monkeypatch.setattr(settings, "max_body_size_mb", 0)

    def chunks():
        yield b'{"imageId": '
        yield b'"file-1"}'

    with patch(
        "ocr_relay.services.recognition_service.recognize_image", new_callable=AsyncMock
    ) as mock_rec:
        resp = client.post(
            "/recognize",
            content=chunks(),
            headers={**auth_headers, "Content-Type": "application/json"},
        )

    assert resp.status_code == 413
    data = resp.json()
    assert data["success"] is False
    assert "too large" in data["error"]
    assert data["request_id"] == resp.headers["X-Request-ID"]
    mock_rec.assert_not_awaited()


def test_streamed_body_under_limit_accepted(client, auth_headers):
    def chunks():
        yield b'{"imageId": '
        yield b'"file-1"}'

    with patch(
        "ocr_relay.services.recognition_service.recognize_image",
        new_callable=AsyncMock,
        return_value=RecognitionResult("AB12", "captcha"),
    ):
        resp = client.post(
            "/recognize",
            content=chunks(),
            headers={**auth_headers, "Content-Type": "application/json"},
        )

    assert resp.status_code == 200
    assert resp.json()["result"] == "AB12"
