from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .patterns import Pattern
from .symbols import Symbol

logger = logging.getLogger(__name__)

INPUT_LOG_CAPACITY = 50


@dataclass(frozen=True, slots=True)
class InputEvent:
    symbol: Symbol
    timestamp: int  # monotonic ms


class InputLog:
    """Append-only rolling window of input events.

    Indices are absolute: the n-th event ever appended has index n - 1, even
    after older events have been trimmed from the window.
    """

    def __init__(self, *, capacity: int = INPUT_LOG_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._events: deque[InputEvent] = deque(maxlen=int(capacity))
        self._total = 0

    def __len__(self) -> int:
        return len(self._events)

    @property
    def next_index(self) -> int:
        return self._total

    def append(self, event: InputEvent) -> int:
        self._events.append(event)
        self._total += 1
        return self._total - 1

    def since(self, start_index: int) -> list[InputEvent]:
        """Events recorded at or after ``start_index`` that are still in the window."""

        first_kept = self._total - len(self._events)
        skip = max(0, int(start_index) - first_kept)
        if skip >= len(self._events):
            return []
        return list(self._events)[skip:]

    def recent(self, count: int) -> list[InputEvent]:
        if count <= 0:
            return []
        return list(self._events)[-count:]


class AttemptStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    WRONG = "wrong"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.PENDING


@dataclass(slots=True)
class Attempt:
    target: Pattern
    start_index: int
    start_time: int
    deadline: int
    matched_prefix_length: int = 0
    status: AttemptStatus = AttemptStatus.PENDING
    resolved_at: int | None = None


@dataclass(frozen=True, slots=True)
class Resolution:
    status: AttemptStatus
    target: Pattern
    start_time: int
    deadline: int
    resolved_at: int

    @property
    def completion_ms(self) -> int:
        return self.resolved_at - self.start_time

    @property
    def window_ms(self) -> int:
        return self.deadline - self.start_time


def matched_prefix_length(target: Sequence[Symbol], inputs: Sequence[Symbol]) -> int:
    """Length of the longest suffix of ``inputs`` that equals a prefix of ``target``.

    >>> matched_prefix_length(["j", "j", "j"], ["x", "j", "j"])
    2
    """

    limit = min(len(target), len(inputs))
    for k in range(limit, 0, -1):
        if list(inputs[-k:]) == list(target[:k]):
            return k
    return 0


class SequenceMatcher:
    """Matches the live input stream against one attempt at a time.

    Every attempt resolves at most once. Once an attempt is terminal, later
    inputs and ticks return None until the next attempt begins.
    """

    def __init__(self, *, log: InputLog | None = None) -> None:
        self._log = log if log is not None else InputLog()
        self._attempt: Attempt | None = None

    @property
    def log(self) -> InputLog:
        return self._log

    @property
    def attempt(self) -> Attempt | None:
        return self._attempt

    def begin(self, target: Pattern, *, start_time: int, duration_ms: int) -> Attempt:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        self._attempt = Attempt(
            target=target,
            start_index=self._log.next_index,
            start_time=int(start_time),
            deadline=int(start_time) + int(duration_ms),
        )
        return self._attempt

    def cancel(self) -> None:
        self._attempt = None

    def on_input(self, event: InputEvent) -> Resolution | None:
        self._log.append(event)

        attempt = self._attempt
        if attempt is None or attempt.status.is_terminal:
            return None

        if event.timestamp >= attempt.deadline:
            return self._resolve(attempt, AttemptStatus.TIMEOUT, event.timestamp)

        target = attempt.target.symbols
        fresh = [e.symbol for e in self._log.since(attempt.start_index)]
        if not fresh:
            return None

        n = len(target)
        if n == 1:
            full_match = fresh[-1] == target[0]
        else:
            full_match = len(fresh) >= n and tuple(fresh[-n:]) == target
        if full_match:
            attempt.matched_prefix_length = n
            return self._resolve(attempt, AttemptStatus.SUCCESS, event.timestamp)

        had_progress = attempt.matched_prefix_length > 0
        attempt.matched_prefix_length = matched_prefix_length(target, fresh)
        if attempt.matched_prefix_length == 0 and not had_progress:
            return self._resolve(attempt, AttemptStatus.WRONG, event.timestamp)
        return None

    def on_tick(self, now: int) -> Resolution | None:
        attempt = self._attempt
        if attempt is None or attempt.status.is_terminal:
            return None
        if now >= attempt.deadline:
            return self._resolve(attempt, AttemptStatus.TIMEOUT, int(now))
        return None

    def _resolve(self, attempt: Attempt, status: AttemptStatus, at: int) -> Resolution:
        attempt.status = status
        attempt.resolved_at = int(at)
        logger.debug(
            "attempt %s: %s after %d ms (prefix %d/%d)",
            attempt.target.display(),
            status.value,
            attempt.resolved_at - attempt.start_time,
            attempt.matched_prefix_length,
            len(attempt.target),
        )
        return Resolution(
            status=status,
            target=attempt.target,
            start_time=attempt.start_time,
            deadline=attempt.deadline,
            resolved_at=attempt.resolved_at,
        )
