from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .results import LeaderboardEntry, SessionRecord
from .training_core import Difficulty, TrainingMode

logger = logging.getLogger(__name__)

MAX_SESSIONS = 100
MAX_LEADERBOARD = 50


class TrainingHistory:
    """Completed sessions (newest first) and the points leaderboard."""

    def __init__(
        self,
        *,
        sessions: Iterable[SessionRecord] = (),
        leaderboard: Iterable[LeaderboardEntry] = (),
        player_name: str = "Player",
    ) -> None:
        self._sessions: list[SessionRecord] = list(sessions)[:MAX_SESSIONS]
        self._leaderboard: list[LeaderboardEntry] = sorted(leaderboard, key=_by_points)[:MAX_LEADERBOARD]
        self._player_name = player_name

    def sessions(self) -> list[SessionRecord]:
        return list(self._sessions)

    def leaderboard(self) -> list[LeaderboardEntry]:
        return list(self._leaderboard)

    def qualifies(self, points: int) -> bool:
        if len(self._leaderboard) < MAX_LEADERBOARD:
            return True
        return points > self._leaderboard[-1].points

    def record(self, record: SessionRecord) -> LeaderboardEntry | None:
        """Add a completed session; returns its leaderboard entry when it placed."""

        self._sessions = [record, *self._sessions][:MAX_SESSIONS]

        if not self.qualifies(record.score.points):
            logger.info("session %s did not place (%d points)", record.session_id, record.score.points)
            return None

        entry = LeaderboardEntry.from_record(record, player_name=self._player_name)
        # Stable sort keeps earlier entries ahead on ties.
        self._leaderboard = sorted([*self._leaderboard, entry], key=_by_points)[:MAX_LEADERBOARD]
        logger.info("session %s placed with %d points", record.session_id, record.score.points)
        return entry

    def leaderboard_by_mode(self, mode: TrainingMode) -> list[LeaderboardEntry]:
        return [e for e in self._leaderboard if e.mode is mode]

    def leaderboard_by_difficulty(self, difficulty: Difficulty) -> list[LeaderboardEntry]:
        return [e for e in self._leaderboard if e.difficulty is difficulty]

    def personal_best(self, mode: TrainingMode, difficulty: Difficulty) -> LeaderboardEntry | None:
        for entry in self._leaderboard:
            if entry.mode is mode and entry.difficulty is difficulty:
                return entry
        return None

    def clear_leaderboard(self) -> None:
        self._leaderboard = []

    def clear_sessions(self) -> None:
        self._sessions = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions": [s.to_dict() for s in self._sessions],
            "leaderboard": [e.to_dict() for e in self._leaderboard],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, player_name: str = "Player") -> "TrainingHistory":
        sessions: list[SessionRecord] = []
        for item in data.get("sessions") or ():
            try:
                sessions.append(SessionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                continue
        leaderboard: list[LeaderboardEntry] = []
        for item in data.get("leaderboard") or ():
            try:
                leaderboard.append(LeaderboardEntry.from_dict(item))
            except (KeyError, TypeError, ValueError):
                continue
        return cls(sessions=sessions, leaderboard=leaderboard, player_name=player_name)


def _by_points(entry: LeaderboardEntry) -> int:
    return -entry.points
