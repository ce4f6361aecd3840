"""
recognize.py — Recognition & Upload Proxy Router

Four ways in, one way out: every recognition endpoint ends with
{"success": true, "result": ..., "type": "text" | "captcha"}.

Business Rules:
- Missing cookie or image field → 400 before anything else is checked
- Cookie without token=... → 400
- Bodies may be JSON or application/x-www-form-urlencoded
- Bad base64 / malformed URL → 400
- Upstream or network failure → 500 with the upstream message embedded
- /proxy/upload passes the upstream status and JSON body straight through

Called by: main.py (router mount)
Depends on: services/recognition_service.py, connectors/qwen_client.py,
            dependencies.py, utils/file_validation.py
"""

from pathlib import Path

import httpx
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from loguru import logger

from ..config import settings
from ..connectors.qwen_client import UpstreamError, upload_file
from ..dependencies import get_cookie, get_recognition_options, parse_body, require_token
from ..rate_limit import limiter
from ..schemas.recognize import (
    Base64ImageRequest,
    ImageIdRequest,
    ImageUrlRequest,
    RecognitionResponse,
)
from ..services import recognition_service
from ..services.image_source import ImageDownloadError, ImagePayload, InvalidImageError
from ..services.recognition_service import RecognitionOptions
from ..utils.file_validation import resolve_mime, validate_upload

router = APIRouter(tags=["recognize"])

_UPSTREAM_ERRORS = (UpstreamError, ImageDownloadError, httpx.HTTPError)


def _require_fields(cookie: str, value, field: str) -> None:
    if not cookie or not value:
        raise HTTPException(400, f"Missing cookie or {field}")


def _fail(where: str, e: Exception) -> HTTPException:
    logger.error("Error in {}: {}", where, e)
    return HTTPException(500, str(e) or "Recognition failed")


# ── Front page ───────────────────────────────────────────────────────────


@router.get("/", include_in_schema=False)
async def index():
    """Serve the bundled front-end."""
    page = Path(settings.static_dir) / "index.html"
    if not page.is_file():
        raise HTTPException(404, "index.html not found")
    return FileResponse(page)


# ── Recognition ──────────────────────────────────────────────────────────


@router.post("/api/recognize/url", response_model=RecognitionResponse)
@limiter.limit(settings.rate_limit_recognize)
async def recognize_url(
    request: Request,
    payload: ImageUrlRequest = Depends(parse_body(ImageUrlRequest)),
    options: RecognitionOptions = Depends(get_recognition_options),
):
    """Download an image from a URL, upload it upstream, recognize it."""
    cookie = get_cookie(request)
    image_url = payload.image_url
    _require_fields(cookie, image_url, "imageUrl")
    token = require_token(cookie)

    try:
        result = await recognition_service.recognize_url(token, cookie, image_url, options)
    except InvalidImageError as e:
        raise HTTPException(400, str(e))
    except _UPSTREAM_ERRORS as e:
        raise _fail("recognize_url", e)
    return result.to_dict()


@router.post("/api/recognize/base64", response_model=RecognitionResponse)
@limiter.limit(settings.rate_limit_recognize)
async def recognize_base64(
    request: Request,
    payload: Base64ImageRequest = Depends(parse_body(Base64ImageRequest)),
    options: RecognitionOptions = Depends(get_recognition_options),
):
    """Decode a base64 image (plain or data: URI), upload it, recognize it."""
    cookie = get_cookie(request)
    base64_image = payload.base64_image
    _require_fields(cookie, base64_image, "base64Image")
    token = require_token(cookie)

    try:
        result = await recognition_service.recognize_base64(token, cookie, base64_image, options)
    except InvalidImageError as e:
        raise HTTPException(400, str(e))
    except _UPSTREAM_ERRORS as e:
        raise _fail("recognize_base64", e)
    return result.to_dict()


@router.post("/recognize", response_model=RecognitionResponse)
@limiter.limit(settings.rate_limit_recognize)
async def recognize_file_id(
    request: Request,
    payload: ImageIdRequest = Depends(parse_body(ImageIdRequest)),
    options: RecognitionOptions = Depends(get_recognition_options),
):
    """Recognize an image already uploaded upstream (e.g. via /proxy/upload)."""
    cookie = get_cookie(request)
    image_id = payload.image_id
    _require_fields(cookie, image_id, "imageId")
    token = require_token(cookie)

    try:
        result = await recognition_service.recognize_image(token, cookie, image_id, options)
    except _UPSTREAM_ERRORS as e:
        raise _fail("recognize_file_id", e)
    return result.to_dict()


# ── Upload proxy ─────────────────────────────────────────────────────────


@router.post("/proxy/upload")
@limiter.limit(settings.rate_limit_recognize)
async def proxy_upload(request: Request, file: UploadFile | None = File(None)):
    """Forward a multipart upload to the upstream file store unchanged."""
    if file is None:
        raise HTTPException(400, "No file uploaded")

    cookie = get_cookie(request)
    token = require_token(cookie)

    content = await file.read()
    ok, reason = validate_upload(content)
    if not ok:
        raise HTTPException(400, reason)

    upload = ImagePayload(
        content=content,
        mime_type=file.content_type or resolve_mime(content),
        filename=file.filename or "image.png",
    )
    try:
        resp = await upload_file(token, cookie, upload, error_prefix="Proxy upload failed")
        data = resp.json()
    except ValueError as e:
        raise _fail("proxy_upload", UpstreamError(f"Proxy upload failed: invalid JSON response ({e})"))
    except _UPSTREAM_ERRORS as e:
        raise _fail("proxy_upload", e)

    return JSONResponse(status_code=resp.status_code, content=data)
