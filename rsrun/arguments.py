"""Command-line argument parsing."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version

from .build_kind import BuildKind
from .consts import PROGRAM_NAME


@dataclass
class Args:
    """The parsed command line."""

    script: str | None = None
    script_args: list[str] = field(default_factory=list)
    expr: bool = False
    loop: bool = False
    count: bool = False
    base_path: str | None = None
    pkg_path: str | None = None
    gen_pkg_only: bool = False
    cargo_output: bool = False
    clear_cache: bool = False
    debug: bool = False
    dep: list[str] = field(default_factory=list)
    extern: list[str] = field(default_factory=list)
    force: bool = False
    unstable_features: list[str] = field(default_factory=list)
    build_kind: BuildKind = BuildKind.NORMAL
    toolchain_version: str | None = None
    wrapper: str | None = None


def _program_version() -> str:
    try:
        return version(PROGRAM_NAME)
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the command line."""
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="Compiles and runs a Rust script",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--version", action="version", version=f"{PROGRAM_NAME} {_program_version()}"
    )
    parser.add_argument(
        "script",
        nargs=argparse.REMAINDER,
        help="Script file or expression to execute, followed by its arguments",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-e", "--expr", action="store_true",
        help="Execute <script> as a literal expression and display the result",
    )
    mode.add_argument(
        "-l", "--loop", action="store_true",
        help="Execute <script> as a literal closure once for each line from stdin",
    )

    parser.add_argument(
        "-b", "--base-path", dest="base_path",
        help="Base path for resolving dependencies",
    )
    parser.add_argument(
        "-c", "--cargo-output", dest="cargo_output", action="store_true",
        help="Show output from cargo when building",
    )
    parser.add_argument(
        "--count", action="store_true",
        help="Invoke the loop closure with two arguments: line, and line number",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Build a debug executable, not an optimised one",
    )
    parser.add_argument(
        "-d", "--dep", action="append",
        help="Add a dependency - either just the package name (for the latest "
        "version) or as `name=version`",
    )
    parser.add_argument(
        "-x", "--extern", nargs="+", action="extend",
        help="Adds an `#[macro_use] extern crate name;` item for expressions and loop scripts",
    )
    parser.add_argument(
        "-u", "--unstable-feature", dest="unstable_features", nargs="+", action="extend",
        help="Add a #![feature] declaration to the crate",
    )
    parser.add_argument(
        "--clear-cache", dest="clear_cache", action="store_true",
        help="Clears out the script cache",
    )
    parser.add_argument(
        "-f", "--force", action="store_true",
        help="Force the script to be rebuilt",
    )
    parser.add_argument(
        "-p", "--package", dest="gen_pkg_only", action="store_true",
        help="Generate the Cargo package and print the path to it, but don't compile or run it",
    )
    parser.add_argument(
        "--pkg-path", dest="pkg_path",
        help="Specify where to place the generated Cargo package",
    )
    parser.add_argument("--test", action="store_true", help="Compile and run tests")
    parser.add_argument(
        "--bench", action="store_true",
        help="Compile and run benchmarks. Requires a nightly toolchain",
    )
    parser.add_argument(
        "-t", "--toolchain",
        help="Build the script using the given toolchain version",
    )
    parser.add_argument(
        "-w", "--wrapper",
        help="Wrapper injected before the command to run, e.g. 'rust-lldb' or "
        "'hyperfine --runs 100'",
    )
    return parser


# Each option, and the options of which at least one must also be given.
_REQUIRES: dict[str, tuple[str, ...]] = {
    "--expr": ("<script>",),
    "--loop": ("<script>",),
    "--cargo-output": ("<script>",),
    "--count": ("--loop",),
    "--extern": ("--expr", "--loop"),
    "--unstable-feature": ("--expr", "--loop"),
    "--force": ("<script>",),
    "--package": ("<script>",),
    "--pkg-path": ("<script>",),
}

# Each option, and the options it cannot be used with.
_CONFLICTS: dict[str, tuple[str, ...]] = {
    "--package": ("--debug", "--force", "--test", "--bench"),
    "--pkg-path": ("--clear-cache", "--force"),
    "--test": ("--bench", "--debug", "--force"),
    "--bench": ("--test", "--debug", "--force"),
    "--toolchain": ("--bench",),
}


def _validate(parser: argparse.ArgumentParser, present: dict[str, bool]) -> None:
    if not present["<script>"] and not present["--clear-cache"]:
        parser.error("the following required arguments were not provided: <script>")
    for option, needed in _REQUIRES.items():
        if present[option] and not any(present[other] for other in needed):
            parser.error(f"{option} requires {' or '.join(needed)}")
    for option, excluded in _CONFLICTS.items():
        if not present[option]:
            continue
        for other in excluded:
            if present[other]:
                parser.error(f"{option} cannot be used with {other}")


def parse_args(argv: list[str] | None = None) -> Args:
    """Parse ``argv`` (default: the process arguments) into :class:`Args`.

    Invalid combinations exit through :meth:`argparse.ArgumentParser.error`.
    """
    parser = build_parser()
    namespace = parser.parse_args(sys.argv[1:] if argv is None else argv)

    script_and_args = list(namespace.script)
    if script_and_args and script_and_args[0] == "--":
        script_and_args = script_and_args[1:]
    script = script_and_args[0] if script_and_args else None
    script_args = script_and_args[1:]

    present = {
        "<script>": script is not None,
        "--expr": namespace.expr,
        "--loop": namespace.loop,
        "--cargo-output": namespace.cargo_output,
        "--count": namespace.count,
        "--debug": namespace.debug,
        "--extern": bool(namespace.extern),
        "--unstable-feature": bool(namespace.unstable_features),
        "--clear-cache": namespace.clear_cache,
        "--force": namespace.force,
        "--package": namespace.gen_pkg_only,
        "--pkg-path": namespace.pkg_path is not None,
        "--test": namespace.test,
        "--bench": namespace.bench,
        "--toolchain": namespace.toolchain is not None,
    }
    _validate(parser, present)

    return Args(
        script=script,
        script_args=script_args,
        expr=namespace.expr,
        loop=namespace.loop,
        count=namespace.count,
        base_path=namespace.base_path,
        pkg_path=namespace.pkg_path,
        gen_pkg_only=namespace.gen_pkg_only,
        cargo_output=namespace.cargo_output,
        clear_cache=namespace.clear_cache,
        debug=namespace.debug,
        dep=list(namespace.dep or []),
        extern=list(namespace.extern or []),
        force=namespace.force,
        unstable_features=list(namespace.unstable_features or []),
        build_kind=BuildKind.from_flags(namespace.test, namespace.bench),
        toolchain_version=namespace.toolchain,
        wrapper=namespace.wrapper,
    )