from __future__ import annotations

import random
from collections.abc import Sequence
from enum import Enum
from typing import TypeVar

T = TypeVar("T")


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]

    def includes(self, tier: "Difficulty") -> bool:
        """Harder settings include every easier tier."""

        return tier.rank <= self.rank


_DIFFICULTY_RANK = {Difficulty.EASY: 0, Difficulty.MEDIUM: 1, Difficulty.HARD: 2}


class TrainingMode(str, Enum):
    MOTION = "motion"
    MOTIONS = "motions"
    COMBOS = "combos"
    CUSTOM = "custom"
    CUSTOM_COMBO = "custom-combo"


def parse_difficulty(raw: str | Difficulty) -> Difficulty:
    if isinstance(raw, Difficulty):
        return raw
    try:
        return Difficulty(str(raw).strip().lower())
    except ValueError:
        raise ValueError(f"unknown difficulty: {raw!r}") from None


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)


def clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else float(x)


def round_points(x: float) -> int:
    # Half-to-even: a 42.5 time bonus is worth 42 points.
    return int(round(x))
