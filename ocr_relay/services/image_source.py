"""Image sources — turn a URL or a base64 string into uploadable bytes.

Business Rules:
  - data:image/<type>;base64,<data> → that MIME type and data
  - any other data: prefix → everything after the first comma, MIME sniffed
  - plain string → treated as raw base64
  - base64 decoding is lenient (whitespace ignored, padding repaired)
  - URL downloads follow redirects; non-2xx is a download failure
  - a malformed or non-http(s) URL is invalid input, not a download failure

Called by: services/recognition_service.py
Depends on: http_client.py, utils/file_validation.py
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

import httpx
from loguru import logger

from ..config import settings
from ..http_client import http_redirect
from ..utils.file_validation import resolve_mime

DEFAULT_FILENAME = "image.png"

_DATA_URI_RE = re.compile(r"^data:(image/.*?);base64,(.*)$", re.DOTALL)
_BASE64_JUNK_RE = re.compile(r"[^A-Za-z0-9+/=_-]")


class InvalidImageError(ValueError):
    """The supplied base64 payload could not be turned into image bytes."""


class ImageDownloadError(RuntimeError):
    """The image URL could not be fetched."""


@dataclass(frozen=True)
class ImagePayload:
    content: bytes
    mime_type: str
    filename: str = DEFAULT_FILENAME


def _b64decode_lenient(data: str) -> bytes:
    cleaned = _BASE64_JUNK_RE.sub("", data).rstrip("=")
    cleaned += "=" * (-len(cleaned) % 4)
    # Accept URL-safe alphabet as well as the standard one
    cleaned = cleaned.replace("-", "+").replace("_", "/")
    return base64.b64decode(cleaned)


def decode_base64_image(value: str) -> ImagePayload:
    """Decode a base64 image, optionally wrapped in a data: URI."""
    declared = None
    data = value
    if value.startswith("data:"):
        m = _DATA_URI_RE.match(value)
        if m:
            declared, data = m.group(1), m.group(2)
        else:
            data = value[value.find(",") + 1:]

    try:
        content = _b64decode_lenient(data)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid base64 image data: {e}") from e
    if not content:
        raise InvalidImageError("Invalid base64 image data: empty payload")

    return ImagePayload(content=content, mime_type=resolve_mime(content, declared))


async def fetch_image(url: str) -> ImagePayload:
    """Download an image from a public URL."""
    try:
        resp = await http_redirect.get(url, timeout=settings.upload_timeout_seconds)
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        raise InvalidImageError(f"Invalid imageUrl: {e}") from e
    if not resp.is_success:
        raise ImageDownloadError(
            f"Failed to download image from URL: {resp.reason_phrase}"
        )
    content = resp.content
    logger.debug("Downloaded {} bytes from {}", len(content), url)
    return ImagePayload(
        content=content,
        mime_type=resolve_mime(content, resp.headers.get("content-type")),
    )
