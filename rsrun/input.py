"""The different kinds of script input and the identity derived from them."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .consts import ID_DIGEST_LEN_MAX


class InputKind(Enum):
    """Where the script source came from."""

    FILE = "file"
    EXPR = "expr"
    LOOP = "loop"


@dataclass(frozen=True)
class Input:
    """A script to build: a file, an ``--expr`` expression or a ``--loop`` closure.

    ``name`` and ``path`` (the absolute script path) are set for files only;
    ``count`` records the ``--count`` flag for loops.
    """

    kind: InputKind
    content: str
    base_path: Path
    name: str | None = None
    path: Path | None = None
    count: bool = False

    def __post_init__(self) -> None:
        if self.kind is InputKind.FILE:
            if self.name is None or self.path is None:
                raise ValueError("a file input needs both a name and a path")
        elif self.path is not None:
            raise ValueError(f"a {self.kind.value} input has no path")

    def safe_name(self) -> str:
        """A filename-safe name for the input."""
        if self.kind is InputKind.FILE:
            assert self.name is not None
            return self.name
        return self.kind.value

    def package_name(self) -> str:
        """A package name for the input that is a valid identifier."""
        chars = []
        for index, char in enumerate(self.safe_name()):
            if "0" <= char <= "9":
                chars.append("_" + char if index == 0 else char)
            elif "a" <= char <= "z" or char in "_-":
                chars.append(char)
            elif "A" <= char <= "Z":
                chars.append(char.lower())
            else:
                chars.append("_")
        return "".join(chars)

    def compute_id(self, deps: Iterable[tuple[str, str]]) -> str:
        """The package id, used as the name of the package's cache folder.

        File inputs are identified by their path alone; expressions and loops
        by their dependencies and content.
        """
        hasher = hashlib.sha1()
        if self.kind is InputKind.FILE:
            hasher.update(str(self.path).encode("utf-8"))
        else:
            for name, version in deps:
                hasher.update(f"dep={name}={version};".encode("utf-8"))
            if self.kind is InputKind.LOOP:
                # The --count flag changes the generated source.
                hasher.update(b"count:")
                hasher.update(b"true;" if self.count else b"false;")
            hasher.update(self.content.encode("utf-8"))
        return hasher.hexdigest()[:ID_DIGEST_LEN_MAX]