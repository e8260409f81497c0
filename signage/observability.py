"""
Logging setup for the signage process.

Modules log through logging.getLogger(__name__); this installs the one
console handler and translates level names found in older properties
files (FINE, SEVERE, ...) onto Python levels.
"""

from __future__ import annotations
from typing import Optional, TextIO
import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_LEGACY_LEVELS = {
    "ALL": logging.NOTSET,
    "FINEST": logging.DEBUG,
    "FINER": logging.DEBUG,
    "FINE": logging.DEBUG,
    "CONFIG": logging.INFO,
    "SEVERE": logging.ERROR,
    "OFF": logging.CRITICAL + 10,
}


def resolve_level(name: str) -> int:
    """Level number for a Python or legacy level name. Unknown names mean INFO."""
    key = (name or "").strip().upper()
    if key in _LEGACY_LEVELS:
        return _LEGACY_LEVELS[key]
    level = logging.getLevelName(key)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure the 'signage' logger tree. Safe to call more than once."""
    root = logging.getLogger("signage")
    root.setLevel(resolve_level(level))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return root
