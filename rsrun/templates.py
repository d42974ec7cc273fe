"""Expansion of ``#{name}`` substitutions in templates."""

from __future__ import annotations

import re
from collections.abc import Mapping

from .errors import ScriptError

_SUB_RE = re.compile(r"#\{([A-Za-z_][A-Za-z0-9_]*)}")


def expand(src: str, subs: Mapping[str, str]) -> str:
    """Replace every ``#{name}`` in ``src`` with ``subs[name]``.

    Raises :class:`ScriptError` for a name that has no substitution.
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        try:
            return subs[name]
        except KeyError:
            raise ScriptError(
                f"substitution `{name}` in template is unknown"
            ) from None

    return _SUB_RE.sub(replace, src)