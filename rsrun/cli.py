"""The command-line entry point: prepares a script package and runs it."""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from .action import decide_action_for, generate_package
from .arguments import Args, parse_args
from .consts import MAX_CACHE_AGE_MS, PROGRAM_NAME
from .defer import Defer
from .errors import ScriptError, tag_error
from .input import Input, InputKind
from .platform import (
    binary_cache_path,
    current_time,
    dir_last_modified,
    generated_projects_cache_path,
)

logger = logging.getLogger(__name__)


def parse_dependencies(deps: Iterable[str]) -> list[tuple[str, str]]:
    """Turn ``name`` or ``name=version`` strings into sorted ``(name, version)`` pairs.

    A bare name gets version ``*``. Raises :class:`ScriptError` for an empty
    name or version and for a dependency given twice.
    """
    parsed: dict[str, str] = {}
    for dep in deps:
        name, _, version = dep.partition("=") if "=" in dep else (dep, "=", "*")
        if not name:
            raise ScriptError("cannot have empty dependency package name")
        if not version:
            raise ScriptError("cannot have empty dependency version")
        if name in parsed:
            raise ScriptError(f"duplicated dependency: '{name}'")
        parsed[name] = version
    return sorted(parsed.items())


def prelude_items(
    unstable_features: Iterable[str], externs: Iterable[str]
) -> list[str]:
    """The sorted prelude lines for feature declarations and extern crates."""
    items = [f"#![feature({feature})]" for feature in unstable_features]
    items += [f"#[macro_use] extern crate {name};" for name in externs]
    return sorted(items)


def clean_cache(max_age_ms: int) -> None:
    """Remove cached packages older than ``max_age_ms``.

    An age of 0 clears the whole cache, built binaries included.
    """
    logger.info("cleaning cache with max_age: %d", max_age_ms)

    if max_age_ms == 0:
        logger.info("max_age is 0, clearing binary cache...")
        binaries = binary_cache_path()
        try:
            shutil.rmtree(binaries)
        except OSError as err:
            logger.error("failed to remove binary cache %s: %s", binaries, err)

    cutoff = current_time() - max_age_ms
    logger.info("cutoff: %20d ms", cutoff)

    projects = generated_projects_cache_path()
    if projects.exists():
        for child in projects.iterdir():
            if child.is_file():
                continue
            logger.info("checking: %s", child)
            mtime = dir_last_modified(child)
            logger.info("meta_mtime: %20d ms", mtime)
            if mtime <= cutoff:
                logger.info("removing %s", child)
                try:
                    shutil.rmtree(child)
                except OSError as err:
                    logger.error("failed to remove %s from cache: %s", child, err)
    logger.info("done cleaning cache.")


def _openable(path: Path) -> bool:
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False


def find_script(path: str | os.PathLike[str]) -> Path | None:
    """Locate the script file, trying ``.ers`` and ``.rs`` if ``path`` has no extension."""
    path = Path(path)
    if _openable(path):
        return path
    if path.name and not path.suffix:
        for extension in ("ers", "rs"):
            candidate = path.with_name(f"{path.name}.{extension}")
            if _openable(candidate):
                return candidate
    return None


def _read_script(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as err:
        raise tag_error(f"could not read {path}", err) from err


def _make_input(args: Args) -> Input:
    script = args.script
    assert script is not None
    base_path = Path(args.base_path) if args.base_path is not None else None

    if args.expr:
        return Input(InputKind.EXPR, script, base_path=base_path or Path.cwd())
    if args.loop:
        return Input(
            InputKind.LOOP, script, base_path=base_path or Path.cwd(), count=args.count
        )

    found = find_script(script)
    if found is None:
        raise ScriptError(f"could not find script: {script}")
    body = _read_script(found)
    script_path = Path.cwd() / found
    return Input(
        InputKind.FILE,
        body,
        base_path=base_path or script_path.parent,
        name=found.stem or "unknown",
        path=script_path,
    )


def run(args: Args) -> int:
    """Carry out the parsed command line and return the exit code."""
    logger.info("Arguments: %r", args)

    if args.clear_cache:
        clean_cache(0)
        if args.script is None:
            print(f"{PROGRAM_NAME} cache cleared.")
            return 0

    deps = parse_dependencies(args.dep)
    script_input = _make_input(args)
    logger.info("input: %r", script_input)

    # Set early so scripts can use them while being compiled.
    os.environ["RUST_SCRIPT_PATH"] = str(script_input.path or "")
    os.environ["RUST_SCRIPT_SAFE_NAME"] = script_input.safe_name()
    os.environ["RUST_SCRIPT_PKG_NAME"] = script_input.package_name()
    os.environ["RUST_SCRIPT_BASE_PATH"] = str(script_input.base_path)

    prelude = prelude_items(args.unstable_features, args.extern)
    logger.info("prelude_items: %r", prelude)

    action = decide_action_for(script_input, deps, prelude, args)
    logger.info("action: %r", action)

    generate_package(action)

    def clean_old_packages() -> None:
        if not args.clear_cache:
            clean_cache(MAX_CACHE_AGE_MS)

    with Defer(clean_old_packages):
        if not action.execute:
            print(action.pkg_path)
            return 0
        command = action.command_to_execute(args.script_args, args.wrapper)
        if os.name == "posix":
            command.exec()
        return command.run()


def _configure_logging() -> None:
    level_name = os.environ.get("RSRUN_LOG", "ERROR").upper()
    level = logging.getLevelName(level_name)
    logging.basicConfig(level=level if isinstance(level, int) else logging.ERROR)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit code."""
    _configure_logging()
    args = parse_args(list(argv) if argv is not None else None)
    try:
        return run(args)
    except (ScriptError, OSError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())