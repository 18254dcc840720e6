"""Logging configuration for the ``storefront`` logger tree."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

log = logging.getLogger("storefront")


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a single stderr handler to the ``storefront`` logger.

    Calling this again only adjusts the level and re-points the handler at
    the current ``sys.stderr``.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log.setLevel(level)
    for handler in log.handlers:
        if getattr(handler, "_storefront", False):
            handler.setStream(sys.stderr)  # type: ignore[attr-defined]
            return log

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._storefront = True  # type: ignore[attr-defined]
    log.addHandler(handler)
    return log
