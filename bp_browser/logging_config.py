from __future__ import annotations

import logging
import os
from typing import Optional, Union

from pythonjsonlogger import jsonlogger

LOG_FORMAT_ENV = "BP_BROWSER_LOG_FORMAT"
PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _format_mode(force_format: Optional[str]) -> str:
    mode = force_format if force_format is not None else os.getenv(LOG_FORMAT_ENV, "json")
    return mode.strip().lower()


def build_formatter(mode: str) -> logging.Formatter:
    """'plain' gives a one-line text formatter; anything else the JSON one."""
    if mode == "plain":
        return logging.Formatter(PLAIN_FORMAT)
    # `extra={...}` context ends up as top-level JSON keys
    return jsonlogger.JsonFormatter(JSON_FIELDS)


def configure_logging(
        level: Union[int, str] = logging.INFO,
        force_format: Optional[str] = None,
) -> None:
    """
    Install a single stream handler on the root logger.

    Format is chosen by, in order: `force_format` ("json" / "plain"),
    $BP_BROWSER_LOG_FORMAT, then "json". `level` may be a number or a
    level name such as "DEBUG".
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(_format_mode(force_format)))

    # Replace any existing handlers to avoid duplicate logs
    root.handlers.clear()
    root.addHandler(handler)
