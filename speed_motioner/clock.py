from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    All session timing is expressed in integer milliseconds.
    """

    def now(self) -> int:
        """Return monotonic milliseconds."""


class RealClock:
    """Production clock backed by time.monotonic_ns()."""

    def now(self) -> int:
        return time.monotonic_ns() // 1_000_000
