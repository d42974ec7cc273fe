"""A context manager that runs a clean-up function unless disarmed."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class Defer:
    """Run ``func`` when the ``with`` block ends, unless :meth:`disarm` was called.

    The function runs whether the block ends normally or by an exception.
    Errors raised by the function are logged, never propagated.
    """

    def __init__(self, func: Callable[[], object]) -> None:
        self._func: Callable[[], object] | None = func

    def disarm(self) -> None:
        """Prevent the deferred function from running."""
        self._func = None

    def __enter__(self) -> "Defer":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        func, self._func = self._func, None
        if func is not None:
            try:
                func()
            except Exception as err:  # noqa: BLE001 - logged by design
                logger.error("deferred function failed: %s", err)
        return False