"""Qwen chat API connector — file upload and vision chat completion.

Both calls authenticate with the caller's own session: the token parsed
from their cookie goes in a Bearer header and the full cookie is forwarded
unchanged. Nothing is cached or retried.

Usage:
    from ocr_relay.connectors.qwen_client import upload_image, chat_completion
    image_id = await upload_image(token, cookie, payload)
    data = await chat_completion(token, cookie, prompt, image_id)

Called by: services/recognition_service.py, routers/recognize.py (proxy upload)
Depends on: http_client.py, config.py
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from ..config import settings
from ..http_client import http
from ..services.image_source import ImagePayload


class UpstreamError(RuntimeError):
    """Upstream API answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _auth_headers(token: str, cookie: str) -> dict[str, str]:
    return {
        "authorization": f"Bearer {token}",
        "cookie": cookie,
    }


def _raise_for_upstream(resp: httpx.Response, prefix: str) -> None:
    if resp.is_success:
        return
    body = resp.text
    logger.warning("{}: upstream {}: {}", prefix, resp.status_code, body[:200])
    raise UpstreamError(
        f"{prefix}: {resp.reason_phrase} - {body}",
        status_code=resp.status_code,
        body=body,
    )


async def upload_file(
    token: str,
    cookie: str,
    payload: ImagePayload,
    *,
    error_prefix: str = "File upload failed",
) -> httpx.Response:
    """POST a file to the upstream file store as multipart field "file".

    Returns the raw response (already checked for a 2xx status) so the
    proxy route can pass status and body through unchanged.
    """
    headers = {"accept": "application/json", **_auth_headers(token, cookie)}
    files = {"file": (payload.filename, payload.content, payload.mime_type)}

    resp = await http.post(
        settings.upload_url,
        headers=headers,
        files=files,
        timeout=settings.upload_timeout_seconds,
    )
    _raise_for_upstream(resp, error_prefix)
    return resp


async def upload_image(token: str, cookie: str, payload: ImagePayload) -> str:
    """Upload image bytes and return the upstream file id."""
    resp = await upload_file(token, cookie, payload)
    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamError(f"File upload failed: invalid JSON response ({e})") from e

    file_id = data.get("id") if isinstance(data, dict) else None
    if not file_id:
        raise UpstreamError("File upload failed: No ID received")
    logger.info("Uploaded {} ({} bytes) as file {}", payload.filename, len(payload.content), file_id)
    return str(file_id)


def build_chat_body(prompt: str, image_id: str) -> dict[str, Any]:
    """Single-turn, non-streaming chat request: one prompt, one image."""
    chat_type = settings.upstream_chat_type
    return {
        "stream": False,
        "chat_type": chat_type,
        "model": settings.upstream_model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt, "chat_type": chat_type},
                    {"type": "image", "image": image_id, "chat_type": chat_type},
                ],
            }
        ],
    }


async def chat_completion(token: str, cookie: str, prompt: str, image_id: str) -> dict:
    """Ask the vision model about an uploaded image. Returns the JSON body."""
    headers = {
        "Content-Type": "application/json",
        "User-Agent": settings.user_agent,
        "accept": "*/*",
        **_auth_headers(token, cookie),
    }

    resp = await http.post(
        settings.chat_url,
        headers=headers,
        json=build_chat_body(prompt, image_id),
        timeout=settings.chat_timeout_seconds,
    )
    _raise_for_upstream(resp, "Qwen API request failed")

    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(f"Qwen API request failed: invalid JSON response ({e})") from e
