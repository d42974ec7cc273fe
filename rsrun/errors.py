"""The program's error type."""

from __future__ import annotations


class ScriptError(Exception):
    """An error that stops the program; its message is shown to the user."""


def tag_error(message: str, cause: BaseException) -> ScriptError:
    """Wrap ``cause`` in a :class:`ScriptError` prefixed with ``message``."""
    error = ScriptError(f"{message}: {cause}")
    error.__cause__ = cause
    return error