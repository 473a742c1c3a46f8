"""Logging setup for CLI invocations."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: int) -> None:
    """Route library logs to stderr at ``level``; safe to call more than once."""
    global _handler
    root_logger = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root_logger.addHandler(_handler)
    _handler.setLevel(level)
    logging.getLogger("ghbackport").setLevel(level)
    if root_logger.level == logging.NOTSET or root_logger.level > level:
        root_logger.setLevel(level)


__all__ = ["configure_logging"]
