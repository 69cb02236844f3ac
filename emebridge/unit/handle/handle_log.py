from __future__ import annotations

import logging
import os
import sys

from emebridge.static.color import Color

ROOT_LOGGER = "emebridge"

_colors: dict[str, str] = {}


class TagFormatter(logging.Formatter):
    """Prefix each record with the module tag painted in its registered color."""

    def format(self, record: logging.LogRecord) -> str:
        tag = record.name.removeprefix(f"{ROOT_LOGGER}.")
        color = _colors.get(tag, "white")
        record.tag = f"{Color.fg(color)}[{tag}]{Color.reset()}"
        return super().format(record)


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h.formatter, TagFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(TagFormatter("%(asctime)s %(levelname)-7s %(tag)s %(message)s", "%H:%M:%S"))
        root.addHandler(handler)
        root.setLevel(os.environ.get("EMEBRIDGE_LOG_LEVEL", "INFO").upper())
    return root


def set_level(level: str | int) -> None:
    if os.environ.get("EMEBRIDGE_LOG_LEVEL"):
        return
    _root().setLevel(level.upper() if isinstance(level, str) else level)


def setup_logging(name: str, color: str) -> logging.Logger:
    _root()
    _colors[name] = color
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
