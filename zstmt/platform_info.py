"""Small host queries used by the command line tool."""

from __future__ import annotations

import os
from typing import Any

DEVNULL = os.devnull
PATH_SEPARATOR = os.sep


def cpu_count() -> int:
    """Return the number of online processors, at least one."""
    return os.cpu_count() or 1


def is_console(stream: Any) -> bool:
    """Tell whether ``stream`` is attached to a terminal."""
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (ValueError, OSError):
        return False