"""
Book App logging setup.

Loguru is the only logging backend. Modules import `logger` directly and
emit dotted event names with structured fields attached through
`logger.bind(...)`; this module only decides where the records go.
"""
from __future__ import annotations

import os
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> {extra}"
)


def setup_logging(level: str | None = None, serialize: bool = False) -> int:
    """Reset loguru and install a single stderr sink.

    Returns the sink id so callers (tests, scripts) can remove it again.
    """
    logger.remove()
    return logger.add(
        sys.stderr,
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="{message}" if serialize else LOG_FORMAT,
        serialize=serialize,
        colorize=not serialize,
        backtrace=False,
        diagnose=False,
    )
