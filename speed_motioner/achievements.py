from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .results import SessionRecord
from .training_core import Difficulty, TrainingMode

logger = logging.getLogger(__name__)


class Requirement(str, Enum):
    SESSIONS_COMPLETED = "sessions_completed"
    ACCURACY = "accuracy"
    CONSECUTIVE_HIGH_ACCURACY = "consecutive_high_accuracy"
    MAX_STREAK = "max_streak"
    FAST_COMPLETION = "fast_completion"
    CUSTOM_SESSIONS = "custom_sessions"
    FAILED_ATTEMPTS = "failed_attempts"
    TIME_DIVERSITY = "time_diversity"


@dataclass(frozen=True, slots=True)
class Achievement:
    achievement_id: str
    name: str
    description: str
    category: str
    requirement: Requirement
    value: int
    points: int


ACHIEVEMENTS: dict[str, Achievement] = {
    a.achievement_id: a
    for a in (
        Achievement("first_steps", "First Steps", "Complete your first training session", "training", Requirement.SESSIONS_COMPLETED, 1, 10),
        Achievement("dedicated_trainee", "Dedicated Trainee", "Complete 10 training sessions", "training", Requirement.SESSIONS_COMPLETED, 10, 50),
        Achievement("training_master", "Training Master", "Complete 100 training sessions", "training", Requirement.SESSIONS_COMPLETED, 100, 500),
        Achievement("sharp_shooter", "Sharp Shooter", "Achieve 90% accuracy in a training session", "accuracy", Requirement.ACCURACY, 90, 25),
        Achievement("perfect_execution", "Perfect Execution", "Achieve 100% accuracy in a training session", "accuracy", Requirement.ACCURACY, 100, 100),
        Achievement("consistency_king", "Consistency King", "Achieve 90%+ accuracy in 5 consecutive sessions", "accuracy", Requirement.CONSECUTIVE_HIGH_ACCURACY, 5, 200),
        Achievement("lightning_fast", "Lightning Fast", "Complete a hard difficulty session in under 30 seconds", "speed", Requirement.FAST_COMPLETION, 30, 75),
        Achievement("combo_starter", "Combo Starter", "Reach a 10-attempt streak", "combo", Requirement.MAX_STREAK, 10, 30),
        Achievement("combo_master", "Combo Master", "Reach a 50-attempt streak", "combo", Requirement.MAX_STREAK, 50, 100),
        Achievement("combo_legend", "Combo Legend", "Reach a 100-attempt streak", "combo", Requirement.MAX_STREAK, 100, 300),
        Achievement("night_owl", "Night Owl", "Complete training sessions at different times of day", "special", Requirement.TIME_DIVERSITY, 4, 60),
        Achievement("perseverance", "Perseverance", "Continue training after failing 10 times", "special", Requirement.FAILED_ATTEMPTS, 10, 80),
        Achievement("zen_master", "Zen Master", "Complete 50 custom challenge sessions", "special", Requirement.CUSTOM_SESSIONS, 50, 200),
    )
}

HIGH_ACCURACY_PERCENT = 90.0


@dataclass(slots=True)
class AchievementStats:
    sessions_completed: int = 0
    total_attempts: int = 0
    total_correct: int = 0
    max_streak: int = 0
    max_accuracy: float = 0.0
    fastest_hard_completion_s: int | None = None
    consecutive_high_accuracy: int = 0
    custom_sessions: int = 0
    failed_attempts: int = 0
    time_slots: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions_completed": self.sessions_completed,
            "total_attempts": self.total_attempts,
            "total_correct": self.total_correct,
            "max_streak": self.max_streak,
            "max_accuracy": self.max_accuracy,
            "fastest_hard_completion_s": self.fastest_hard_completion_s,
            "consecutive_high_accuracy": self.consecutive_high_accuracy,
            "custom_sessions": self.custom_sessions,
            "failed_attempts": self.failed_attempts,
            "time_slots": list(self.time_slots),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AchievementStats":
        fastest = data.get("fastest_hard_completion_s")
        return cls(
            sessions_completed=int(data.get("sessions_completed", 0)),
            total_attempts=int(data.get("total_attempts", 0)),
            total_correct=int(data.get("total_correct", 0)),
            max_streak=int(data.get("max_streak", 0)),
            max_accuracy=float(data.get("max_accuracy", 0.0)),
            fastest_hard_completion_s=None if fastest is None else int(fastest),
            consecutive_high_accuracy=int(data.get("consecutive_high_accuracy", 0)),
            custom_sessions=int(data.get("custom_sessions", 0)),
            failed_attempts=int(data.get("failed_attempts", 0)),
            time_slots=[int(v) for v in data.get("time_slots") or ()],
        )


class AchievementTracker:
    """Lifetime stats across sessions and the achievements they unlock."""

    def __init__(
        self,
        *,
        stats: AchievementStats | None = None,
        unlocked: list[str] | None = None,
    ) -> None:
        self._stats = stats if stats is not None else AchievementStats()
        self._unlocked: list[str] = [a for a in (unlocked or []) if a in ACHIEVEMENTS]
        self._newly_unlocked: list[str] = []

    @property
    def stats(self) -> AchievementStats:
        return self._stats

    @property
    def total_points(self) -> int:
        return sum(ACHIEVEMENTS[a].points for a in self._unlocked)

    def unlocked(self) -> list[Achievement]:
        return [ACHIEVEMENTS[a] for a in self._unlocked]

    def newly_unlocked(self) -> list[Achievement]:
        return [ACHIEVEMENTS[a] for a in self._newly_unlocked]

    def clear_newly_unlocked(self) -> None:
        self._newly_unlocked = []

    def record_session(self, record: SessionRecord, *, local_hour: int) -> list[Achievement]:
        s = self._stats
        score = record.score
        s.sessions_completed += 1
        s.total_attempts += score.total_attempts
        s.total_correct += score.correct_attempts
        s.max_streak = max(s.max_streak, score.max_streak)
        s.max_accuracy = max(s.max_accuracy, score.accuracy_percent)

        if score.accuracy_percent >= HIGH_ACCURACY_PERCENT:
            s.consecutive_high_accuracy += 1
        else:
            s.consecutive_high_accuracy = 0

        if record.mode is TrainingMode.CUSTOM:
            s.custom_sessions += 1

        # Four six-hour slots: night, morning, afternoon, evening.
        slot = (int(local_hour) % 24) // 6
        if slot not in s.time_slots:
            s.time_slots.append(slot)

        if record.difficulty is Difficulty.HARD and score.elapsed_seconds > 0:
            if s.fastest_hard_completion_s is None or score.elapsed_seconds < s.fastest_hard_completion_s:
                s.fastest_hard_completion_s = score.elapsed_seconds

        return self.check()

    def record_failure(self) -> list[Achievement]:
        self._stats.failed_attempts += 1
        return self.check()

    def check(self) -> list[Achievement]:
        fresh = [
            a.achievement_id
            for a in ACHIEVEMENTS.values()
            if a.achievement_id not in self._unlocked and self._is_met(a)
        ]
        if fresh:
            self._unlocked.extend(fresh)
            self._newly_unlocked = fresh
            logger.info("achievements unlocked: %s", ", ".join(fresh))
        return [ACHIEVEMENTS[a] for a in fresh]

    def progress_percent(self, achievement_id: str) -> float:
        achievement = ACHIEVEMENTS.get(achievement_id)
        if achievement is None:
            return 0.0
        current = self._current_value(achievement.requirement)
        if current is None:
            return 0.0
        return min(100.0, current / achievement.value * 100.0)

    def reset(self) -> None:
        self._stats = AchievementStats()
        self._unlocked = []
        self._newly_unlocked = []

    def _is_met(self, achievement: Achievement) -> bool:
        if achievement.requirement is Requirement.FAST_COMPLETION:
            fastest = self._stats.fastest_hard_completion_s
            return fastest is not None and fastest <= achievement.value
        current = self._current_value(achievement.requirement)
        return current is not None and current >= achievement.value

    def _current_value(self, requirement: Requirement) -> float | None:
        s = self._stats
        if requirement is Requirement.SESSIONS_COMPLETED:
            return s.sessions_completed
        if requirement is Requirement.ACCURACY:
            return s.max_accuracy
        if requirement is Requirement.CONSECUTIVE_HIGH_ACCURACY:
            return s.consecutive_high_accuracy
        if requirement is Requirement.MAX_STREAK:
            return s.max_streak
        if requirement is Requirement.CUSTOM_SESSIONS:
            return s.custom_sessions
        if requirement is Requirement.FAILED_ATTEMPTS:
            return s.failed_attempts
        if requirement is Requirement.TIME_DIVERSITY:
            return len(s.time_slots)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"unlocked": list(self._unlocked), "stats": self._stats.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AchievementTracker":
        raw_stats = data.get("stats")
        stats = AchievementStats.from_dict(raw_stats) if isinstance(raw_stats, Mapping) else None
        unlocked = [str(a) for a in data.get("unlocked") or ()]
        return cls(stats=stats, unlocked=unlocked)
