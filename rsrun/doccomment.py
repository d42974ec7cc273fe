"""Reading doc comments and the ``cargo`` code block inside them."""

from __future__ import annotations

import json
import re

from markdown_it import MarkdownIt

from .errors import ScriptError

_MARGIN_RE = re.compile(r"^\s*\*( |$)")
_SPACE_RE = re.compile(r"^(\s+)")
_NESTING_RE = re.compile(r"/\*|\*/")
_LINE_COMMENT_RE = re.compile(r"^\s*//(!|/)")


def _lines(s: str) -> list[str]:
    """Split on newlines, dropping a final empty line and trailing carriage returns."""
    if not s:
        return []
    parts = s.split("\n")
    if s.endswith("\n"):
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _check_leading_spaces(s: str, n: int) -> None:
    if any(char != " " for char in s[:n]):
        raise ScriptError(
            f"leading {n} chars aren't all spaces: {json.dumps(s, ensure_ascii=False)}"
        )


def _strip_indent(line: str, leading_space: int | None) -> str:
    width = leading_space or 0
    _check_leading_spaces(line, width)
    return line[min(width, len(line)):]


def _extract_block(s: str) -> str:
    out: list[str] = []
    leading_space: int | None = None
    margin: str | None = None
    depth = 1

    for line in _lines(s):
        if depth == 0:
            break

        end_of_comment: int | None = None
        for match in _NESTING_RE.finditer(line):
            if match.group() == "/*":
                depth += 1
            elif depth == 1:
                end_of_comment = match.start()
                depth = 0
                break
            else:
                depth -= 1
        if end_of_comment is not None:
            line = line[:end_of_comment]

        if margin is None:
            found = _MARGIN_RE.match(line)
            if found:
                margin = found.group()
        if margin is not None:
            line = line[len(margin.encode("utf-8")):]

        if leading_space is None:
            found = _SPACE_RE.match(line)
            if found:
                leading_space = found.end()

        out.append(_strip_indent(line, leading_space) + "\n")

    return "".join(out)


def _extract_line(s: str) -> str:
    out: list[str] = []
    leading_space: int | None = None

    for line in _lines(s):
        marker = _LINE_COMMENT_RE.match(line)
        if marker is None:
            break
        content = line[marker.end():]

        if leading_space is None:
            found = _SPACE_RE.match(content)
            if found:
                leading_space = found.end(1)

        out.append(_strip_indent(content, leading_space) + "\n")

    return "".join(out)


def extract_comment(s: str) -> str:
    """Return the text of the doc comment that ``s`` starts with.

    Comment markers, block margins and common indentation are removed.
    Raises :class:`ScriptError` if ``s`` does not start with a doc comment
    or its indentation is not made of spaces.
    """
    if s.startswith("/*!"):
        return _extract_block(s[3:])
    if s.startswith("//!") or s.startswith("///"):
        return _extract_line(s)
    raise ScriptError("no doc comment found")


_MARKDOWN = MarkdownIt("commonmark").enable("table")


def scrape_markdown_manifest(content: str) -> str | None:
    """Return the body of the first non-empty ``cargo`` fenced block, if any."""
    for token in _MARKDOWN.parse(content):
        if token.type != "fence" or token.info.strip().lower() != "cargo":
            continue
        if token.content:
            return token.content
    return None