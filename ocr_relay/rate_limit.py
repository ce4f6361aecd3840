"""Shared rate limiter, keyed by client IP.

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at a
shared backend to share limits across workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri,
)
