"""Shared logging helpers for capalerts tools."""

from __future__ import annotations

import logging
from typing import IO

from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: int | str = logging.INFO, stream: IO[str] | None = None) -> logging.Handler:
    """Send JSON log lines to ``stream`` (stderr by default) and return the handler.

    Replaces any handlers already on the root logger.
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return handler
