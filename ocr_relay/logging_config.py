"""
logging_config.py — Centralized Logging Configuration for OCR Relay

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so getLogger() calls (ours, uvicorn's, httpx's) route
through Loguru.

Business Rules:
- All logs go through Loguru (no print())
- JSON lines when LOG_JSON is set, human-readable otherwise
- Request ID from middleware is bound per request

Called by: ocr_relay/main.py (lifespan)
Depends on: ocr_relay/config.py (log_level, log_json)
"""

import logging
import sys

from loguru import logger

from .config import settings


def setup_logging() -> None:
    """Configure Loguru and intercept stdlib logging.

    Safe to call more than once; handlers are replaced, not stacked.
    """
    logger.remove()

    log_level = settings.log_level.upper()

    if settings.log_json:
        logger.add(
            sys.stdout,
            level=log_level,
            format="{message}",
            serialize=True,
        )
    else:
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, json=settings.log_json)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals so Loguru reports the caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
