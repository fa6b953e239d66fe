from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .matcher import AttemptStatus
from .scoring import Score
from .training_core import Difficulty, TrainingMode

if TYPE_CHECKING:
    from .session import TrainingSession


def utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    index: int
    pattern: str
    status: AttemptStatus
    completion_ms: int
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "pattern": self.pattern,
            "status": self.status.value,
            "completion_ms": self.completion_ms,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttemptOutcome":
        return cls(
            index=int(data["index"]),
            pattern=str(data.get("pattern", "")),
            status=AttemptStatus(data["status"]),
            completion_ms=int(data.get("completion_ms", 0)),
            points=int(data.get("points", 0)),
        )


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Persistable summary + outcome log for a completed training session."""

    session_id: str
    mode: TrainingMode
    difficulty: Difficulty
    target_attempt_count: int
    started_at_utc: str
    completed_at_utc: str
    input_count: int

    score: Score
    mean_completion_ms: float | None
    median_completion_ms: float | None

    outcomes: tuple[AttemptOutcome, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.session_id,
            "mode": self.mode.value,
            "difficulty": self.difficulty.value,
            "target_attempt_count": self.target_attempt_count,
            "started_at_utc": self.started_at_utc,
            "completed_at_utc": self.completed_at_utc,
            "input_count": self.input_count,
            "score": self.score.to_dict(),
            "mean_completion_ms": self.mean_completion_ms,
            "median_completion_ms": self.median_completion_ms,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionRecord":
        mean = data.get("mean_completion_ms")
        median = data.get("median_completion_ms")
        return cls(
            session_id=str(data["id"]),
            mode=TrainingMode(data["mode"]),
            difficulty=Difficulty(data["difficulty"]),
            target_attempt_count=int(data["target_attempt_count"]),
            started_at_utc=str(data.get("started_at_utc", "")),
            completed_at_utc=str(data.get("completed_at_utc", "")),
            input_count=int(data.get("input_count", 0)),
            score=Score.from_dict(data.get("score") or {}),
            mean_completion_ms=None if mean is None else float(mean),
            median_completion_ms=None if median is None else float(median),
            outcomes=tuple(AttemptOutcome.from_dict(o) for o in data.get("outcomes") or ()),
        )


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    entry_id: str
    player_name: str
    mode: TrainingMode
    difficulty: Difficulty
    points: int
    accuracy_percent: float
    max_streak: int
    elapsed_seconds: int
    completed_at_utc: str

    @classmethod
    def from_record(cls, record: SessionRecord, *, player_name: str = "Player") -> "LeaderboardEntry":
        return cls(
            entry_id=record.session_id,
            player_name=player_name,
            mode=record.mode,
            difficulty=record.difficulty,
            points=record.score.points,
            accuracy_percent=record.score.accuracy_percent,
            max_streak=record.score.max_streak,
            elapsed_seconds=record.score.elapsed_seconds,
            completed_at_utc=record.completed_at_utc,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "player_name": self.player_name,
            "mode": self.mode.value,
            "difficulty": self.difficulty.value,
            "points": self.points,
            "accuracy_percent": self.accuracy_percent,
            "max_streak": self.max_streak,
            "elapsed_seconds": self.elapsed_seconds,
            "completed_at_utc": self.completed_at_utc,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LeaderboardEntry":
        return cls(
            entry_id=str(data["id"]),
            player_name=str(data.get("player_name", "Player")),
            mode=TrainingMode(data["mode"]),
            difficulty=Difficulty(data["difficulty"]),
            points=int(data.get("points", 0)),
            accuracy_percent=float(data.get("accuracy_percent", 0.0)),
            max_streak=int(data.get("max_streak", 0)),
            elapsed_seconds=int(data.get("elapsed_seconds", 0)),
            completed_at_utc=str(data.get("completed_at_utc", "")),
        )


def session_record_from_training(session: "TrainingSession") -> SessionRecord:
    """Build a SessionRecord from a completed TrainingSession."""

    outcomes = tuple(session.outcomes())
    times_ms = sorted(o.completion_ms for o in outcomes if o.status is AttemptStatus.SUCCESS)

    mean_ms: float | None
    median_ms: float | None
    if not times_ms:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(times_ms)) / float(len(times_ms))
        mid = len(times_ms) // 2
        if len(times_ms) % 2 == 1:
            median_ms = float(times_ms[mid])
        else:
            median_ms = float(times_ms[mid - 1] + times_ms[mid]) / 2.0

    return SessionRecord(
        session_id=str(session.session_id),
        mode=session.mode,
        difficulty=session.difficulty,
        target_attempt_count=int(session.target_attempt_count),
        started_at_utc=str(session.started_at_utc),
        completed_at_utc=utc_now_iso(),
        input_count=len(session.input_history()),
        score=session.score,
        mean_completion_ms=mean_ms,
        median_completion_ms=median_ms,
        outcomes=outcomes,
    )
