from __future__ import annotations

from .matcher import AttemptStatus
from .training_core import Difficulty, parse_difficulty

# Per-attempt input window.
PER_INPUT_MS: dict[Difficulty, int] = {
    Difficulty.EASY: 3000,
    Difficulty.MEDIUM: 2000,
    Difficulty.HARD: 1000,
}

# Attempts per session when the caller does not override it.
DEFAULT_ATTEMPTS: dict[Difficulty, int] = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 10,
    Difficulty.HARD: 20,
}

# Feedback display delay before the next pattern is dealt.
COOLDOWN_MS: dict[AttemptStatus, int] = {
    AttemptStatus.SUCCESS: 1500,
    AttemptStatus.WRONG: 1000,
    AttemptStatus.TIMEOUT: 500,
}

COUNTDOWN_STEPS = 3
COUNTDOWN_STEP_MS = 300
DISPLAY_CADENCE_MS = 100
ELAPSED_TICK_MS = 1000


def per_input_duration(difficulty: Difficulty | str, custom_timing_ms: int | None = None) -> int:
    if custom_timing_ms is not None:
        if custom_timing_ms <= 0:
            raise ValueError("custom_timing_ms must be > 0")
        return int(custom_timing_ms)
    return PER_INPUT_MS[parse_difficulty(difficulty)]


def default_attempt_count(difficulty: Difficulty | str) -> int:
    return DEFAULT_ATTEMPTS[parse_difficulty(difficulty)]


def cooldown_after(status: AttemptStatus) -> int:
    if not status.is_terminal:
        raise ValueError("cooldown only follows a terminal resolution")
    return COOLDOWN_MS[status]


def countdown_total_ms() -> int:
    return COUNTDOWN_STEPS * COUNTDOWN_STEP_MS


def countdown_step(elapsed_ms: int) -> int:
    """Remaining countdown number shown to the player (3, 2, 1), 0 when done."""

    if elapsed_ms < 0:
        return COUNTDOWN_STEPS
    done = int(elapsed_ms) // COUNTDOWN_STEP_MS
    return max(0, COUNTDOWN_STEPS - done)


def sample_remaining_ms(now: int, deadline: int) -> int:
    """Remaining time rounded up to the display cadence; display only."""

    remaining = max(0, int(deadline) - int(now))
    steps = -(-remaining // DISPLAY_CADENCE_MS)
    return steps * DISPLAY_CADENCE_MS


def elapsed_seconds(start_ms: int, now: int) -> int:
    return max(0, int(now) - int(start_ms)) // ELAPSED_TICK_MS
