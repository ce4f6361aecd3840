"""
test_dependencies.py — Tests for header parsing in ocr_relay/dependencies.py

Covers: token extraction from cookie strings, the 400 on missing token,
base64 custom-prompt decoding, and advanced-mode flag parsing.

Called by: pytest
Depends on: ocr_relay/dependencies.py
"""

import base64

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from ocr_relay.dependencies import (
    decode_custom_prompt,
    extract_token,
    get_cookie,
    get_recognition_options,
    require_token,
)


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw})


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode()


# ── Cookie / Token ───────────────────────────────────────────────────


class TestExtractToken:
    def test_token_only(self):
        assert extract_token("token=abc") == "abc"

    def test_token_among_fields(self):
        assert extract_token("ssxmod=1; token=eyJhbGci.x.y; lang=en") == "eyJhbGci.x.y"

    def test_missing_token(self):
        assert extract_token("session=1; lang=en") is None

    def test_empty_token_value(self):
        assert extract_token("token=; lang=en") is None

    def test_empty_cookie(self):
        assert extract_token("") is None
        assert extract_token(None) is None


def test_require_token_raises_400():
    with pytest.raises(HTTPException) as exc:
        require_token("lang=en")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid cookie format: missing token"


def test_get_cookie_missing_header():
    assert get_cookie(_request({})) == ""


# ── Custom prompt ────────────────────────────────────────────────────


class TestDecodeCustomPrompt:
    def test_utf8_roundtrip(self):
        assert decode_custom_prompt(_b64("只输出数字")) == "只输出数字"

    def test_missing_padding_repaired(self):
        encoded = _b64("hello").rstrip("=")
        assert decode_custom_prompt(encoded) == "hello"

    def test_empty(self):
        assert decode_custom_prompt(None) == ""
        assert decode_custom_prompt("") == ""

    def test_invalid_utf8_replaced(self):
        encoded = base64.b64encode(b"ok\xff").decode()
        assert decode_custom_prompt(encoded) == "ok�"

    def test_undecodable_returns_empty(self):
        # 5 data characters can never be valid base64
        assert decode_custom_prompt("abcde") == ""


class TestRecognitionOptions:
    def test_defaults(self):
        opts = get_recognition_options(_request({}))
        assert opts.advanced_mode is False
        assert opts.custom_prompt == ""

    def test_advanced_with_prompt(self):
        opts = get_recognition_options(_request({
            "x-advanced-mode": "true",
            "x-custom-prompt": _b64("Read the table"),
        }))
        assert opts.advanced_mode is True
        assert opts.custom_prompt == "Read the table"

    def test_advanced_flag_is_exact_match(self):
        assert get_recognition_options(_request({"x-advanced-mode": "True"})).advanced_mode is False
        assert get_recognition_options(_request({"x-advanced-mode": "1"})).advanced_mode is False
