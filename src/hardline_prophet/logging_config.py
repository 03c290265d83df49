from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO, Tuple

LOG_LEVEL_ENV = "HARDLINE_LOG_LEVEL"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def level_for_verbosity(verbosity: int) -> int:
    """Map a ``-v`` count to a level: none is WARNING, one INFO, two or more DEBUG."""
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def resolve_level(default_level: int) -> Tuple[int, Optional[str]]:
    """Level from HARDLINE_LOG_LEVEL (a name like ``debug`` or a number).

    Returns the level and, when the variable held something unusable, the raw
    value so the caller can report it once logging is up.
    """
    raw = os.getenv(LOG_LEVEL_ENV)
    if not raw or not raw.strip():
        return default_level, None
    value = raw.strip()
    if value.isdigit():
        return int(value), None
    level = logging.getLevelName(value.upper())
    if isinstance(level, int):
        return level, None
    return default_level, raw


def configure_logging(default_level: int = logging.INFO, stream: Optional[TextIO] = None) -> int:
    """Configure the root logger and return the level in effect.

    Output goes to stderr unless ``stream`` is given; stdout is left to
    command output.
    """
    level, rejected = resolve_level(default_level)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=stream or sys.stderr)
    if rejected is not None:
        logging.getLogger(__name__).warning(
            "Ignoring unknown %s=%r; using %s", LOG_LEVEL_ENV, rejected, logging.getLevelName(level)
        )
    return level
