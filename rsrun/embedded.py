"""Finding a manifest embedded in a script's source."""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .doccomment import extract_comment, scrape_markdown_manifest
from .errors import ScriptError, tag_error

logger = logging.getLogger(__name__)

_SHEBANG_RE = re.compile(r"^#![^\[].*?(\r\n|\n)")
_SHORT_COMMENT_RE = re.compile(r"(?i)^\s*//\s*cargo-deps\s*:(.*?)(\r\n|\n)")
# The crate doc comment must be the first thing in the file (after the
# shebang, which has already been removed).
_CRATE_COMMENT_RE = re.compile(r"^\s*(/\*!|//(!|/))")


class ManifestKind(Enum):
    """How an embedded manifest is written."""

    TOML = "toml"
    DEP_LIST = "dep_list"


@dataclass(frozen=True)
class EmbeddedManifest:
    """A manifest found in a script: a TOML fragment or a dependency list."""

    kind: ManifestKind
    content: str

    def to_table(self) -> dict[str, Any]:
        """Parse the manifest into a TOML table.

        Raises :class:`ScriptError` if it is not valid.
        """
        try:
            if self.kind is ManifestKind.DEP_LIST:
                return dep_list_to_toml(self.content)
            return tomllib.loads(self.content)
        except tomllib.TOMLDecodeError as err:
            raise tag_error("could not parse embedded manifest", err) from err


def dep_list_to_toml(s: str) -> dict[str, Any]:
    """Turn a comma-separated dependency list into a ``[dependencies]`` table.

    Entries without a version get ``"*"``. Raises
    :class:`tomllib.TOMLDecodeError` if the result is not valid TOML.
    """
    lines = ["[dependencies]\n"]
    for dep in s.strip().split(","):
        lines.append(f"{dep}\n" if "=" in dep else f'{dep}="*"\n')
    return tomllib.loads("".join(lines))


def strip_shebang(s: str) -> str:
    """Return ``s`` without its leading shebang line, if it has one."""
    match = _SHEBANG_RE.match(s)
    return s[match.end():] if match else s


def find_short_comment_manifest(s: str) -> tuple[EmbeddedManifest, str] | None:
    """Find a ``// cargo-deps: ...`` comment on the first non-blank line."""
    match = _SHORT_COMMENT_RE.match(s)
    if match is None:
        return None
    return EmbeddedManifest(ManifestKind.DEP_LIST, match.group(1)), s


def find_code_block_manifest(s: str) -> tuple[EmbeddedManifest, str] | None:
    """Find a ``cargo`` code block in the doc comment that starts the source."""
    match = _CRATE_COMMENT_RE.match(s)
    if match is None:
        return None
    try:
        comment = extract_comment(s[match.start(1):])
    except ScriptError as err:
        logger.error("error slicing comment: %s", err)
        return None
    manifest = scrape_markdown_manifest(comment)
    if manifest is None:
        return None
    return EmbeddedManifest(ManifestKind.TOML, manifest), s


def find_embedded_manifest(s: str) -> tuple[EmbeddedManifest, str] | None:
    """Find a manifest embedded in the source, with the source it came from."""
    return find_short_comment_manifest(s) or find_code_block_manifest(s)