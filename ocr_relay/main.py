"""
main.py — OCR Relay application

Builds the FastAPI app: middleware (CORS, body limit, request ID +
security headers), error handlers, rate limiter, static files, routers.

Business Rules:
- Every response carries X-Request-ID (8 chars) and security headers
- Every error body is an ErrorResponse {success: false, error, status_code, request_id}
- Bodies larger than MAX_BODY_SIZE_MB are refused with 413: up front from
  Content-Length, or while streaming when the body is chunked
- rate_limit_default applies per IP to every route without its own limit
- CORS allows the custom recognition headers from any configured origin

Called by: uvicorn (ocr_relay.main:app), `ocr-relay` console script
Depends on: config, logging_config, http_client, rate_limit, routers
"""

import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import settings
from .http_client import close_clients
from .logging_config import setup_logging
from .rate_limit import limiter
from .routers import recognize
from .schemas.errors import ErrorResponse

ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "x-custom-cookie",
    "x-advanced-mode",
    "x-custom-prompt",
]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


# --- App Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "OCR relay starting",
        upstream=settings.upstream_base_url,
        model=settings.upstream_model,
    )
    yield
    await close_clients()
    logger.info("OCR relay stopped")


app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
app.state.limiter = limiter


# ── Middleware ───────────────────────────────────────────────────────────
# Registered innermost first: CORS ends up outermost so preflights and
# error responses both get CORS headers.


def _too_large_message() -> str:
    return f"Request body too large (max {settings.max_body_size_mb} MB)"


class BodySizeLimitMiddleware:
    """Count request body bytes as they arrive and stop at max_body_bytes.

    Covers bodies sent without Content-Length (chunked transfer). The
    HTTPException raised from receive() surfaces through the route's body
    parsing and is rendered by the HTTPException handler as a 413.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = settings.max_body_bytes
        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning("Streamed body passed {} bytes, rejecting", limit)
                    raise HTTPException(413, _too_large_message())
            return message

        await self.app(scope, limited_receive, send)


app.add_middleware(BodySizeLimitMiddleware)
# Applies rate_limit_default to every route without its own @limiter.limit
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def body_size_middleware(request: Request, call_next):
    """Refuse oversized bodies from Content-Length before reading them."""
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.max_body_bytes:
        return _error_response(request, 413, _too_large_message())
    return await call_next(request)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a short request ID, time the request, set security headers."""
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} → {} ({:.0f} ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )

    response.headers["X-Request-ID"] = request_id
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=ALLOWED_HEADERS,
)


# ── Error handlers ───────────────────────────────────────────────────────


def _error_response(request: Request, status_code: int, error: str, detail: list | None = None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error_response(
        request, 422, "Invalid request body", detail=_jsonable_errors(exc)
    )


# Plain def: SlowAPIMiddleware calls the handler without awaiting it
@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return _error_response(request, 429, f"Rate limit exceeded: {exc.detail}")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error_response(request, 500, "Internal Server Error")


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with only JSON-safe fields (ctx may hold exceptions)."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


# ── Routes ───────────────────────────────────────────────────────────────

app.include_router(recognize.router)

if Path(settings.static_dir).is_dir():
    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("ocr_relay.main:app", host="0.0.0.0", port=settings.port)
