"""
dependencies.py — Shared FastAPI Dependencies

Header parsing for the recognition endpoints. Callers authenticate with
their own upstream session: a cookie string sent in x-custom-cookie from
which the upstream token is taken.

Business Rules:
- get_cookie returns "" when the header is missing (non-throwing)
- extract_token returns the first token=... field, or None
- require_token raises 400 when the cookie carries no token
- Advanced mode is on only for the exact header value "true"
- Bodies are JSON or urlencoded form; an empty body means "no fields"
- x-custom-prompt is base64(UTF-8); an undecodable prompt is logged and
  ignored, never an error

Called by: routers/recognize.py
Depends on: services/recognition_service.py (RecognitionOptions)
"""

import base64
import binascii
import logging
import re

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from .services.recognition_service import RecognitionOptions

log = logging.getLogger(__name__)

COOKIE_HEADER = "x-custom-cookie"
ADVANCED_MODE_HEADER = "x-advanced-mode"
CUSTOM_PROMPT_HEADER = "x-custom-prompt"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_TOKEN_RE = re.compile(r"token=([^;]+)")


# ── Cookie / Token ────────────────────────────────────────────────────


def get_cookie(request: Request) -> str:
    return request.headers.get(COOKIE_HEADER) or ""


def extract_token(cookie: str) -> str | None:
    """Return the token=... value from a cookie string, or None."""
    m = _TOKEN_RE.search(cookie or "")
    return m.group(1) if m else None


def require_token(cookie: str) -> str:
    """Token from the cookie; raises 400 if there isn't one."""
    token = extract_token(cookie)
    if not token:
        raise HTTPException(400, "Invalid cookie format: missing token")
    return token


# ── Recognition options ───────────────────────────────────────────────


def decode_custom_prompt(encoded: str | None) -> str:
    """Decode the base64 custom prompt header. Returns "" on any failure."""
    if not encoded:
        return ""
    cleaned = "".join(encoded.split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        raw = base64.b64decode(cleaned)
    except (binascii.Error, ValueError) as e:
        log.warning(f"Custom prompt decode failed, using default prompt: {e}")
        return ""
    return raw.decode("utf-8", errors="replace")


def get_recognition_options(request: Request) -> RecognitionOptions:
    """Dependency: advanced-mode flag and custom prompt from request headers."""
    advanced_mode = request.headers.get(ADVANCED_MODE_HEADER) == "true"
    custom_prompt = decode_custom_prompt(request.headers.get(CUSTOM_PROMPT_HEADER))
    return RecognitionOptions(advanced_mode=advanced_mode, custom_prompt=custom_prompt)


# ── Request body ──────────────────────────────────────────────────────


def parse_body(model: type[BaseModel]):
    """Dependency factory: read a JSON or urlencoded form body into `model`.

    An empty body gives the model's defaults so missing fields reach the
    handler (400) instead of failing validation (422).
    """

    async def _parse(request: Request) -> BaseModel:
        content_type = request.headers.get("content-type", "").lower()
        try:
            if content_type.startswith(FORM_CONTENT_TYPE):
                form = await request.form()
                return model.model_validate(dict(form))
            raw = await request.body()
            if not raw.strip():
                return model()
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False))

    return _parse
