from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from typing import Any

from .matcher import AttemptStatus, Resolution
from .training_core import Difficulty, clamp01, parse_difficulty, round_points

logger = logging.getLogger(__name__)

BASE_POINTS = 100
COMPLEXITY_BONUS_PER_INPUT = 25
TIME_BONUS_SHARE = 0.5

DIFFICULTY_MULTIPLIER: dict[Difficulty, float] = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.2,
    Difficulty.HARD: 1.5,
}


@dataclass(frozen=True, slots=True)
class Score:
    total_attempts: int = 0
    correct_attempts: int = 0
    current_streak: int = 0
    max_streak: int = 0
    accuracy_percent: float = 0.0
    points: int = 0
    elapsed_seconds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Score":
        return cls(
            total_attempts=int(data.get("total_attempts", 0)),
            correct_attempts=int(data.get("correct_attempts", 0)),
            current_streak=int(data.get("current_streak", 0)),
            max_streak=int(data.get("max_streak", 0)),
            accuracy_percent=float(data.get("accuracy_percent", 0.0)),
            points=int(data.get("points", 0)),
            elapsed_seconds=int(data.get("elapsed_seconds", 0)),
        )


@dataclass(frozen=True, slots=True)
class ScoreDelta:
    status: AttemptStatus
    points_awarded: int
    complexity_bonus: int
    time_bonus: int
    score: Score


def accuracy_percent(correct: int, total: int) -> float:
    return 0.0 if total == 0 else 100.0 * correct / total


def success_points(
    *,
    target_length: int,
    difficulty: Difficulty,
    window_ms: int,
    completion_ms: int,
) -> tuple[int, int, int]:
    """Return (total_points, complexity_bonus, time_bonus) for a successful attempt.

    Finishing inside the window earns up to half the base points on top;
    finishing at the wire earns no time bonus.
    """

    complexity_bonus = max(0, target_length - 1) * COMPLEXITY_BONUS_PER_INPUT
    ratio = 0.0 if window_ms <= 0 else clamp01((window_ms - completion_ms) / window_ms)
    time_bonus = round_points(BASE_POINTS * ratio * TIME_BONUS_SHARE)
    multiplier = DIFFICULTY_MULTIPLIER[difficulty]
    total = round_points((BASE_POINTS + complexity_bonus) * multiplier + time_bonus)
    return total, complexity_bonus, time_bonus


class ScoreLedger:
    """Cumulative session score, mutated only by resolutions and the elapsed tick."""

    def __init__(self, *, difficulty: Difficulty | str) -> None:
        self._difficulty = parse_difficulty(difficulty)
        self._score = Score()

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def score(self) -> Score:
        return self._score

    def apply_resolution(self, resolution: Resolution) -> ScoreDelta:
        s = self._score
        total = s.total_attempts + 1
        points_awarded = 0
        complexity_bonus = 0
        time_bonus = 0

        if resolution.status is AttemptStatus.SUCCESS:
            correct = s.correct_attempts + 1
            streak = s.current_streak + 1
            max_streak = max(s.max_streak, streak)
            points_awarded, complexity_bonus, time_bonus = success_points(
                target_length=len(resolution.target),
                difficulty=self._difficulty,
                window_ms=resolution.window_ms,
                completion_ms=resolution.completion_ms,
            )
        elif resolution.status in (AttemptStatus.WRONG, AttemptStatus.TIMEOUT):
            correct = s.correct_attempts
            streak = 0
            max_streak = s.max_streak
        else:
            raise ValueError("only terminal resolutions can be scored")

        self._score = replace(
            s,
            total_attempts=total,
            correct_attempts=correct,
            current_streak=streak,
            max_streak=max_streak,
            accuracy_percent=accuracy_percent(correct, total),
            points=s.points + points_awarded,
        )
        logger.info(
            "%s %s: +%d points (streak %d, %d/%d)",
            resolution.status.value,
            resolution.target.display(),
            points_awarded,
            streak,
            correct,
            total,
        )
        return ScoreDelta(
            status=resolution.status,
            points_awarded=points_awarded,
            complexity_bonus=complexity_bonus,
            time_bonus=time_bonus,
            score=self._score,
        )

    def tick(self, elapsed_seconds: int) -> None:
        if elapsed_seconds > self._score.elapsed_seconds:
            self._score = replace(self._score, elapsed_seconds=int(elapsed_seconds))

    def reset(self) -> None:
        self._score = Score()
