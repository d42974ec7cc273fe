"""Platform-dependent paths and helpers."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import platformdirs

from .consts import PROGRAM_NAME


def dir_last_modified(path: str | os.PathLike[str]) -> int:
    """Last-modified time of ``path`` in milliseconds since the epoch, or 0."""
    try:
        return os.stat(path).st_mtime_ns // 1_000_000
    except OSError:
        return 0


def current_time() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def cache_dir() -> Path:
    """The program's cache directory."""
    return platformdirs.user_cache_path(PROGRAM_NAME, appauthor=False, opinion=False)


def generated_projects_cache_path() -> Path:
    """Where generated cargo packages are kept."""
    return cache_dir() / "projects"


def binary_cache_path() -> Path:
    """Where cargo places built binaries."""
    return cache_dir() / "binaries"


def force_cargo_color() -> bool:
    """Whether cargo should be forced to colour its output.

    True when standard error is a terminal; always False on Windows.
    """
    if sys.platform == "win32":
        return False
    stream = sys.stderr
    if stream is None:
        return False
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False