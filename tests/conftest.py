"""
conftest.py — Shared Test Fixtures for OCR Relay

Provides a FastAPI TestClient and factories for fake upstream responses.

Business Rules:
- No test touches the network: upstream calls are patched per test
- Rate limiting is switched off so tests can hammer endpoints

Called by: all test files via pytest autodiscovery
Depends on: ocr_relay.main (app)
"""

import os

# Must be set before importing app modules
os.environ["RATE_LIMIT_ENABLED"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient

COOKIE = "token=tok-123; lang=zh-CN"
TOKEN = "tok-123"


@pytest.fixture()
def client() -> TestClient:
    from ocr_relay.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def auth_headers() -> dict:
    return {"x-custom-cookie": COOKIE}


@pytest.fixture()
def cookie() -> str:
    return COOKIE


@pytest.fixture()
def token() -> str:
    return TOKEN


@pytest.fixture()
def upstream_response():
    """Factory: an httpx.Response as the upstream API would return it."""

    def _make(status_code: int = 200, *, json=None, text: str = "") -> httpx.Response:
        request = httpx.Request("POST", "https://chat.qwenlm.ai/api/test")
        if json is not None:
            return httpx.Response(status_code, json=json, request=request)
        return httpx.Response(status_code, text=text, request=request)

    return _make


@pytest.fixture()
def chat_body():
    """Factory: chat-completion body carrying one assistant message."""

    def _make(content) -> dict:
        return {"choices": [{"message": {"role": "assistant", "content": content}}]}

    return _make
