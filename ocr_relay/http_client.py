"""Shared HTTP clients for the upstream API and image downloads.

Two module-level httpx.AsyncClient instances, built from settings:
  - http: upstream upload + chat calls. No redirects. Default timeout is
    chat_timeout_seconds (the longest call); uploads pass
    upload_timeout_seconds per request.
  - http_redirect: downloads of caller-supplied image URLs. Follows
    redirects, times out after upload_timeout_seconds.

Both send the configured User-Agent.

Usage:
    from ocr_relay.http_client import http, http_redirect
    resp = await http.post(settings.chat_url, json=body)
    resp = await http_redirect.get(image_url)
"""

import httpx
from loguru import logger

from .config import settings

_LIMITS = httpx.Limits(
    max_connections=settings.http_max_connections,
    max_keepalive_connections=settings.http_max_keepalive,
    keepalive_expiry=30,
)


def _build_client(timeout: float, follow_redirects: bool) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=settings.connect_timeout_seconds),
        limits=_LIMITS,
        follow_redirects=follow_redirects,
        headers={"User-Agent": settings.user_agent},
    )


http = _build_client(settings.chat_timeout_seconds, follow_redirects=False)
http_redirect = _build_client(settings.upload_timeout_seconds, follow_redirects=True)


async def close_clients() -> None:
    """Close both shared clients. Awaited from the app lifespan on shutdown."""
    for name, client in (("upstream", http), ("download", http_redirect)):
        try:
            await client.aclose()
        except RuntimeError as e:
            # Event loop already gone (e.g. test teardown)
            logger.debug("Closing {} client failed: {}", name, e)
