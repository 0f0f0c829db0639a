from __future__ import annotations

import logging

from .config import settings


APP_LOGGER = "flood"


def configure_logging(level_name: str | None = None) -> None:
    """Configure app-wide logging.

    Plain stdlib logging; plays well with uvicorn's own handlers. Module
    loggers are named ``flood.<area>``; the level applies to that prefix
    even when the root logger was already configured by the server.
    """
    level_name = (level_name or settings.LOG_LEVEL or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(APP_LOGGER).setLevel(level)

    # Keep third-party noise down unless the user explicitly asked for it.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
