"""Image validation — size checks and magic-byte type detection.

Uses the `filetype` library to read the real MIME type from the first
bytes of a payload (don't trust extensions or client-sent content types).
"""
import logging

import filetype

from ..config import settings

log = logging.getLogger("ocr_relay.file_validation")

DEFAULT_IMAGE_MIME = "image/png"


def sniff_image_mime(content: bytes) -> str | None:
    """Return the image MIME type detected from magic bytes, or None."""
    if not content:
        return None
    kind = filetype.guess(content)
    if kind is None:
        return None
    if not kind.mime.startswith("image/"):
        log.debug(f"Payload sniffed as non-image type {kind.mime}")
        return None
    return kind.mime


def resolve_mime(content: bytes, declared: str | None = None) -> str:
    """Pick a MIME type for an outgoing upload.

    A declared image/* type wins; otherwise sniff; otherwise image/png.
    """
    if declared:
        declared = declared.split(";", 1)[0].strip().lower()
        if declared.startswith("image/"):
            return declared
    return sniff_image_mime(content) or DEFAULT_IMAGE_MIME


def validate_upload(content: bytes) -> tuple[bool, str | None]:
    """Check an uploaded file before proxying it.

    Returns (True, None) when acceptable, else (False, reason).
    """
    if not content:
        return False, "Empty file"
    if len(content) > settings.max_body_bytes:
        return False, (
            f"File too large ({len(content)} bytes, max {settings.max_body_bytes})"
        )
    return True, None
