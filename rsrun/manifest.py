"""Building the full cargo manifest and source for a script."""

from __future__ import annotations

import copy
import datetime
import logging
import math
import os
import re
import tomllib
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from . import consts
from .embedded import EmbeddedManifest, ManifestKind, find_embedded_manifest, strip_shebang
from .errors import ScriptError, tag_error
from .input import Input, InputKind
from .templates import expand

logger = logging.getLogger(__name__)

_MAIN_RE = re.compile(r'^ *(pub )?(async )?(extern "C" )?fn main *\(', re.MULTILINE)
_BARE_KEY_RE = re.compile(r"[A-Za-z0-9_-]+")

# Manifest values holding paths that are resolved against the base path.
_PATH_SPECS: tuple[tuple[str, ...], ...] = (
    ("build-dependencies", "*", "path"),
    ("dependencies", "*", "path"),
    ("dev-dependencies", "*", "path"),
    ("package", "build"),
    ("target", "*", "dependencies", "*", "path"),
)


def contains_main_method(source: str) -> bool:
    """Whether the source appears to define a ``main`` function."""
    return _MAIN_RE.search(source) is not None


def split_input(
    input: Input,
    base_path: str | os.PathLike[str],
    deps: Sequence[tuple[str, str]],
    prelude_items: Sequence[str],
    package_path: str | os.PathLike[str],
    bin_name: str,
    script_name: str,
    toolchain: str | None,
) -> tuple[str, Path, str | None]:
    """Build the manifest text, the source path and any generated source.

    The generated source is ``None`` when the script file is used as is.
    """
    source_in_package = Path(package_path) / script_name
    empty = EmbeddedManifest(ManifestKind.TOML, "")

    if input.kind is InputKind.FILE:
        if prelude_items:
            raise ValueError("prelude items are not supported for file input")
        assert input.path is not None
        content = strip_shebang(input.content)
        part_mani, source = find_embedded_manifest(content) or (empty, content)
        if contains_main_method(content):
            source_path, template = input.path, None
        else:
            source_path, template, source = (
                source_in_package,
                consts.FILE_NO_MAIN_TEMPLATE,
                content,
            )
        sub_prelude = False
    elif input.kind is InputKind.EXPR:
        part_mani, source_path, source = empty, source_in_package, input.content
        template, sub_prelude = consts.EXPR_TEMPLATE, True
    else:
        part_mani, source_path, source = empty, source_in_package, input.content
        template = consts.LOOP_COUNT_TEMPLATE if input.count else consts.LOOP_TEMPLATE
        sub_prelude = True

    subs = {consts.SCRIPT_BODY_SUB: source}
    if sub_prelude:
        subs[consts.SCRIPT_PRELUDE_SUB] = "".join(f"{item}\n" for item in prelude_items)

    generated = expand(template, subs) if template is not None else None
    part_table = part_mani.to_table()
    logger.info("part_mani: %r", part_table)
    logger.info("source: %r", generated)

    source_path_from_package = script_name if template is not None else str(source_path)

    mani = merge_manifest(
        default_manifest(bin_name, source_path_from_package, toolchain), part_table
    )
    mani = merge_manifest(mani, deps_manifest(deps))
    mani = fix_manifest_paths(mani, base_path)

    mani_str = dump_manifest(mani)
    logger.info("manifest: %s", mani_str)
    return mani_str, source_path, generated


def default_manifest(
    bin_name: str, bin_source_path: str, toolchain: str | None
) -> dict[str, Any]:
    """The manifest every script package starts from."""
    package: dict[str, Any] = {
        "name": bin_name,
        "version": "0.1.0",
        "authors": ["Anonymous"],
        "edition": "2021",
    }
    if toolchain is not None:
        package["metadata"] = {"rustscript": {"toolchain": toolchain}}
    return {
        "bin": [{"name": bin_name, "path": bin_source_path}],
        "package": package,
        "profile": {"release": {"strip": True}},
    }


def deps_manifest(deps: Sequence[tuple[str, str]]) -> dict[str, Any]:
    """A ``[dependencies]`` table for the given ``(name, version)`` pairs.

    Versions starting with ``{`` are taken as inline tables.
    """
    lines = ["[dependencies]\n"]
    for name, version in deps:
        quote = "" if version.startswith("{") else '"'
        lines.append(f"{name}={quote}{version}{quote}\n")
    try:
        return tomllib.loads("".join(lines))
    except tomllib.TOMLDecodeError as err:
        raise tag_error("could not parse dependency manifest", err) from err


def merge_manifest(into: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into ``into`` and return the result.

    Only top-level tables are merged; every other value is replaced.
    """
    merged = dict(into)
    for key, value in source.items():
        if not isinstance(value, dict):
            merged[key] = value
            continue
        existing = merged.get(key)
        if existing is None:
            merged[key] = value
        elif isinstance(existing, dict):
            merged[key] = {**existing, **value}
        else:
            raise ScriptError(
                "cannot merge manifests: cannot merge table and non-table values"
            )
    return merged


def _locations(node: Any, spec: tuple[str, ...]):
    if not isinstance(node, dict):
        return
    head, tail = spec[0], spec[1:]
    keys = list(node) if head == "*" else ([head] if head in node else [])
    for key in keys:
        if tail:
            yield from _locations(node[key], tail)
        else:
            yield node, key


def fix_manifest_paths(
    mani: dict[str, Any], base: str | os.PathLike[str]
) -> dict[str, Any]:
    """Return a copy of the manifest with relative paths joined onto ``base``."""
    fixed = copy.deepcopy(mani)
    for spec in _PATH_SPECS:
        for parent, key in _locations(fixed, spec):
            value = parent[key]
            if isinstance(value, str) and not os.path.isabs(value):
                parent[key] = os.path.join(os.fspath(base), value)
    return fixed


def _is_table_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(
        isinstance(item, dict) for item in value
    )


def _format_key(key: str) -> str:
    return key if _BARE_KEY_RE.fullmatch(key) else _format_string(key)


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\b": "\\b", "\t": "\\t", "\n": "\\n", "\f": "\\f", "\r": "\\r"}


def _has_control(s: str) -> bool:
    return any(ord(char) < 0x20 or ord(char) == 0x7F for char in s)


def _format_string(s: str) -> str:
    if ('"' in s or "\\" in s) and "'" not in s and not _has_control(s):
        return f"'{s}'"
    out = []
    for char in s:
        if char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04X}")
        else:
            out.append(char)
    return '"' + "".join(out) + '"'


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    if isinstance(value, str):
        return _format_string(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, list):
        return "[" + ", ".join(_format_value(item) for item in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = ", ".join(
            f"{_format_key(k)} = {_format_value(v)}" for k, v in sorted(value.items())
        )
        return "{ " + items + " }"
    raise ScriptError(f"cannot write value of type {type(value).__name__} to a manifest")


def _emit_table(
    table: dict[str, Any],
    path: list[str],
    sections: list[list[str]],
    in_array: bool = False,
) -> None:
    items = sorted(table.items())
    children = [
        (key, value)
        for key, value in items
        if isinstance(value, dict) or _is_table_array(value)
    ]
    lines = [
        f"{_format_key(key)} = {_format_value(value)}"
        for key, value in items
        if not (isinstance(value, dict) or _is_table_array(value))
    ]
    if path:
        if in_array or lines or not children:
            header = ".".join(_format_key(part) for part in path)
            sections.append([f"[[{header}]]" if in_array else f"[{header}]", *lines])
    elif lines:
        sections.append(lines)

    for key, value in children:
        if isinstance(value, dict):
            _emit_table(value, [*path, key], sections)
        else:
            for item in value:
                _emit_table(item, [*path, key], sections, in_array=True)


def dump_manifest(table: dict[str, Any]) -> str:
    """Write a manifest table as TOML text, with keys in sorted order."""
    sections: list[list[str]] = []
    _emit_table(table, [], sections)
    if not sections:
        return ""
    return "\n\n".join("\n".join(lines) for lines in sections) + "\n"