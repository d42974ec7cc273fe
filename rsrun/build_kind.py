"""The kind of cargo build requested for a script."""

from __future__ import annotations

from enum import Enum


class BuildKind(Enum):
    """Whether the script is built normally, as tests, or as benchmarks."""

    NORMAL = "build"
    TEST = "test"
    BENCH = "bench"

    def exec_command(self) -> str:
        """Return the cargo sub-command used for this build kind."""
        return self.value

    @classmethod
    def from_flags(cls, test: bool, bench: bool) -> "BuildKind":
        """Pick the build kind from the ``--test`` and ``--bench`` flags."""
        if test and bench:
            raise ValueError("got both test and bench")
        if test:
            return cls.TEST
        if bench:
            return cls.BENCH
        return cls.NORMAL