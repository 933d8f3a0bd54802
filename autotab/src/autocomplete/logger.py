"""Logging configuration shared by every autotab module.

All loggers live below the ``autotab`` namespace and share one stream handler
that is attached the first time :func:`init_logger` runs.  The level is read
from ``AUTOTAB_LOGGING_LEVEL``; ``AUTOTAB_VERBOSE=1`` additionally enables the
per-keystroke trace messages guarded by :data:`VERBOSE`.
"""

from __future__ import annotations

import logging
import os
import sys

_FORMAT = "%(levelname)s %(asctime)s [%(filename)s:%(lineno)d] %(message)s"
_DATE_FORMAT = "%m-%d %H:%M:%S"

_ROOT_NAME = "autotab"

VERBOSE = os.getenv("AUTOTAB_VERBOSE") == "1"

_configured = False


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger(_ROOT_NAME)
    level = os.getenv("AUTOTAB_LOGGING_LEVEL", "DEBUG" if VERBOSE else "INFO")
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def init_logger(name: str) -> logging.Logger:
    """Return a logger for *name* nested under the ``autotab`` namespace."""

    _configure_root_logger()
    if name != _ROOT_NAME and not name.startswith(_ROOT_NAME + "."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)
