"""Deciding what to do with a script, writing its package and building the command to run."""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from .build_kind import BuildKind
from .defer import Defer
from .errors import ScriptError, tag_error
from .input import Input
from .manifest import split_input
from .platform import binary_cache_path, force_cargo_color, generated_projects_cache_path

if TYPE_CHECKING:
    from .arguments import Args

logger = logging.getLogger(__name__)


@dataclass
class Command:
    """A program to start, with its arguments, working directory and ``argv[0]``."""

    program: str
    args: list[str] = field(default_factory=list)
    cwd: Path | None = None
    arg0: str | None = None

    @property
    def argv(self) -> list[str]:
        """The program followed by its arguments."""
        return [self.program, *self.args]

    def _process_argv(self) -> list[str]:
        return [self.arg0 or self.program, *self.args]

    def run(self) -> int:
        """Run the command, wait for it and return its exit code."""
        completed = subprocess.run(
            self._process_argv(),
            executable=self.program if self.arg0 else None,
            cwd=self.cwd,
        )
        return completed.returncode

    def exec(self) -> NoReturn:
        """Replace the current process with the command."""
        sys.stdout.flush()
        sys.stderr.flush()
        if self.cwd is not None:
            os.chdir(self.cwd)
        os.execvp(self.program, self._process_argv())
        raise AssertionError("exec returned")  # pragma: no cover


@dataclass
class InputAction:
    """What to do with the script the user gave."""

    cargo_output: bool
    force_compile: bool
    execute: bool
    pkg_path: Path
    script_path: Path
    using_cache: bool
    toolchain_version: str | None
    debug: bool
    manifest: str
    script: str | None
    build_kind: BuildKind
    bin_name: str
    original_script_path: str | None = None

    def manifest_path(self) -> Path:
        """Path of the package's ``Cargo.toml``."""
        return Path(self.pkg_path) / "Cargo.toml"

    def _release_mode(self) -> bool:
        return not self.debug and self.build_kind is not BuildKind.BENCH

    def _built_binary_path(self) -> Path:
        name = f"{self.bin_name}.exe" if os.name == "nt" else self.bin_name
        return binary_cache_path() / ("release" if self._release_mode() else "debug") / name

    def _binary_is_fresh(self, binary: Path) -> bool:
        try:
            binary_stat = binary.stat()
        except FileNotFoundError:
            logger.debug("No old binary found")
            return False
        # Prefer creation time: cargo may copy an already built binary with an old mtime.
        binary_time = getattr(binary_stat, "st_birthtime", binary_stat.st_mtime)
        script_mtime = Path(self.script_path).stat().st_mtime
        manifest_mtime = self.manifest_path().stat().st_mtime
        if binary_time >= script_mtime and binary_time >= manifest_mtime:
            logger.debug("Keeping old binary")
            return True
        logger.debug("Old binary too old - rebuilding")
        return False

    def command_to_execute(
        self, script_args: Sequence[str], wrapper: str | None
    ) -> Command:
        """The command that runs the script, building it first when needed.

        For test and bench builds this is the cargo command itself.
        Raises :class:`ScriptError` if the wrapper is empty or cargo fails.
        """
        built_binary = self._built_binary_path()

        def execute_command() -> Command:
            if wrapper is not None:
                try:
                    words = shlex.split(wrapper)
                except ValueError as err:
                    raise tag_error("could not parse the wrapper", err) from err
                if not words:
                    raise ScriptError("The wrapper cannot be empty")
                return Command(words[0], [*words[1:], str(built_binary), *script_args])
            return Command(
                str(built_binary), list(script_args), arg0=self.original_script_path
            )

        normal = self.build_kind is BuildKind.NORMAL
        if normal and not self.force_compile and self._binary_is_fresh(built_binary):
            return execute_command()

        cargo_args: list[str] = []
        if self.toolchain_version is not None:
            cargo_args.append(f"+{self.toolchain_version}")
        cargo_args.append(self.build_kind.exec_command())
        if normal and not self.cargo_output:
            cargo_args.append("-q")
        if force_cargo_color():
            cargo_args += ["--color", "always"]
        cargo_args += ["--target-dir", str(binary_cache_path())]
        if self._release_mode():
            cargo_args.append("--release")

        cargo = Command("cargo", cargo_args, cwd=Path(self.pkg_path))
        if normal:
            if cargo.run() != 0:
                raise ScriptError("Could not execute cargo")
            return execute_command()
        return cargo


def decide_action_for(
    input: Input,
    deps: Sequence[tuple[str, str]],
    prelude: Sequence[str],
    args: "Args",
) -> InputAction:
    """Work out the package for the input and what should be done with it."""
    input_id = input.compute_id(deps)
    logger.info("id: %r", input_id)

    bin_name = f"{input.package_name()}_{input_id}"

    if args.pkg_path is not None:
        pkg_path, using_cache = Path(args.pkg_path), False
    else:
        pkg_path, using_cache = generated_projects_cache_path() / input_id, True
    logger.info("pkg_path: %s", pkg_path)
    logger.info("using_cache: %s", using_cache)

    toolchain = args.toolchain_version
    if toolchain is None and args.build_kind is BuildKind.BENCH:
        toolchain = "nightly"

    manifest, script_path, script = split_input(
        input,
        input.base_path,
        deps,
        prelude,
        pkg_path,
        bin_name,
        f"{input.safe_name()}.rs",
        toolchain,
    )

    debug = {
        BuildKind.NORMAL: args.debug,
        BuildKind.TEST: True,
        BuildKind.BENCH: False,
    }[args.build_kind]

    return InputAction(
        cargo_output=args.cargo_output,
        force_compile=args.force,
        execute=not args.gen_pkg_only,
        pkg_path=pkg_path,
        script_path=script_path,
        using_cache=using_cache,
        toolchain_version=toolchain,
        debug=debug,
        manifest=manifest,
        script=script,
        build_kind=args.build_kind,
        bin_name=bin_name,
        original_script_path=args.script if os.name == "posix" else None,
    )


def generate_package(action: InputAction) -> None:
    """Write the package's manifest and generated source to its directory.

    If writing fails and the package lives in the cache, its directory is removed.
    """
    logger.info("creating pkg dir...")
    pkg_path = Path(action.pkg_path)
    pkg_path.mkdir(parents=True, exist_ok=True)

    def cleanup() -> None:
        # Never remove a directory the user chose: it may hold their files.
        if action.using_cache:
            logger.info("cleaning up cache directory %s", pkg_path)
            shutil.rmtree(pkg_path)

    with Defer(cleanup) as cleanup_dir:
        logger.info("generating Cargo package...")
        overwrite_file(action.manifest_path(), action.manifest)
        if action.script is not None:
            overwrite_file(action.script_path, action.script)
        logger.info("disarming pkg dir cleanup...")
        cleanup_dir.disarm()


def overwrite_file(path: str | os.PathLike[str], content: str) -> None:
    """Write ``content`` to ``path`` atomically, unless it already holds exactly that."""
    path = Path(path)
    logger.debug("overwrite_file(%s, _)", path)
    try:
        existing = path.read_bytes().decode("utf-8")
    except FileNotFoundError:
        pass
    except UnicodeDecodeError as err:
        raise tag_error(f"could not read {path}", err) from err
    else:
        if existing == content:
            logger.debug("Equal content")
            return

    logger.debug(".. files differ")
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp")
    try:
        with os.fdopen(fd, "wb") as temp_file:
            temp_file.write(content.encode("utf-8"))
        os.replace(temp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(temp_name)
        raise