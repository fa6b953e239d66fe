from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import uuid4

from .achievements import AchievementTracker
from .clock import Clock
from .history import TrainingHistory
from .input_source import InputSource
from .matcher import AttemptStatus, InputEvent, Resolution, SequenceMatcher
from .patterns import ConfigurationError, CustomCombo, CustomConfig, PatternLibrary, parse_mode
from .persistence import KeyValueStore, save_achievements, save_history
from .relay import NullRelay, Relay, RelayStatus, parse_relay_state, publish_quietly
from .results import AttemptOutcome, SessionRecord, session_record_from_training, utc_now_iso
from .scoring import Score, ScoreDelta, ScoreLedger
from .symbols import Symbol
from .timing import (
    cooldown_after,
    countdown_step,
    countdown_total_ms,
    default_attempt_count,
    elapsed_seconds,
    per_input_duration,
    sample_remaining_ms,
)
from .training_core import Difficulty, TrainingMode, parse_difficulty

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    AWAITING_INPUT = "awaiting_input"
    COOLDOWN = "cooldown"
    COMPLETED = "completed"


_ACTIVE_PHASES = (SessionPhase.COUNTDOWN, SessionPhase.AWAITING_INPUT, SessionPhase.COOLDOWN)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    mode: TrainingMode
    difficulty: Difficulty
    target_attempt_count: int | None = None
    custom: CustomConfig | None = None
    custom_combo: CustomCombo | None = None

    @classmethod
    def create(
        cls,
        mode: TrainingMode | str,
        difficulty: Difficulty | str,
        *,
        target_attempt_count: int | None = None,
        custom: CustomConfig | None = None,
        custom_combo: CustomCombo | None = None,
    ) -> "SessionConfig":
        try:
            parsed_difficulty = parse_difficulty(difficulty)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from None
        return cls(
            mode=parse_mode(mode),
            difficulty=parsed_difficulty,
            target_attempt_count=target_attempt_count,
            custom=custom,
            custom_combo=custom_combo,
        )

    def attempt_count(self) -> int:
        if self.target_attempt_count is not None:
            return int(self.target_attempt_count)
        if self.mode is TrainingMode.CUSTOM and self.custom is not None and self.custom.target_attempt_count:
            return int(self.custom.target_attempt_count)
        return default_attempt_count(self.difficulty)

    def per_input_ms(self) -> int:
        override = None
        if self.mode is TrainingMode.CUSTOM and self.custom is not None:
            override = self.custom.timing_override_ms()
        return per_input_duration(self.difficulty, override)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    phase: SessionPhase
    mode: TrainingMode
    difficulty: Difficulty
    countdown_step: int
    target: tuple[Symbol, ...] | None
    target_name: str
    matched_prefix_length: int
    time_remaining_ms: int | None
    score: Score
    attempts_remaining: int
    last_status: AttemptStatus | None
    points_earned: int
    relay_status: RelayStatus | None


class TrainingSession:
    """Repeating attempt loop bounded by a target attempt count.

    idle -> countdown -> awaiting_input -> cooldown -> (awaiting_input | completed)

    - Time is entirely via injected Clock; ``update()`` drives countdown,
      timeouts, cooldown expiry and the elapsed-seconds tick.
    - At most one resolution is accepted per attempt.
    - Completed snapshots into history/achievements and the store exactly once.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        library: PatternLibrary,
        config: SessionConfig,
        history: TrainingHistory | None = None,
        achievements: AchievementTracker | None = None,
        store: KeyValueStore | None = None,
        relay: Relay | None = None,
        session_id: str | None = None,
        local_hour: Callable[[], int] | None = None,
    ) -> None:
        attempts = config.attempt_count()
        if attempts <= 0:
            raise ConfigurationError("target attempt count must be > 0")

        self._clock = clock
        self._library = library
        self._config = config
        self._history = history if history is not None else TrainingHistory()
        self._achievements = achievements
        self._store = store
        self._relay: Relay = relay if relay is not None else NullRelay()
        self._session_id = session_id if session_id is not None else f"session_{uuid4().hex}"
        self._local_hour = local_hour if local_hour is not None else (lambda: time.localtime().tm_hour)

        self._target_attempts = attempts
        self._per_input_ms = config.per_input_ms()

        self._ledger = ScoreLedger(difficulty=config.difficulty)
        self._matcher = SequenceMatcher()

        self._phase = SessionPhase.IDLE
        self._ended = False
        self._started_at: int | None = None
        self._started_at_utc = ""
        self._countdown_started_at: int | None = None
        self._cooldown_until: int | None = None

        self._inputs: list[InputEvent] = []
        self._outcomes: list[AttemptOutcome] = []
        self._last_delta: ScoreDelta | None = None
        self._record: SessionRecord | None = None
        self._relay_status: RelayStatus | None = None

    # -- properties ---------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def mode(self) -> TrainingMode:
        return self._config.mode

    @property
    def difficulty(self) -> Difficulty:
        return self._config.difficulty

    @property
    def target_attempt_count(self) -> int:
        return self._target_attempts

    @property
    def per_input_ms(self) -> int:
        return self._per_input_ms

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def score(self) -> Score:
        return self._ledger.score

    @property
    def started_at_utc(self) -> str:
        return self._started_at_utc

    @property
    def matcher(self) -> SequenceMatcher:
        return self._matcher

    @property
    def history(self) -> TrainingHistory:
        return self._history

    @property
    def record(self) -> SessionRecord | None:
        return self._record

    def outcomes(self) -> list[AttemptOutcome]:
        return list(self._outcomes)

    def input_history(self) -> list[InputEvent]:
        return list(self._inputs)

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        if self._phase is not SessionPhase.IDLE or self._ended:
            return
        # Reject bad configuration before anything is created.
        self._library.validate(
            self._config.mode,
            self._config.difficulty,
            self._config.custom,
            self._config.custom_combo,
        )
        now = self._clock.now()
        self._ledger.reset()
        self._started_at = now
        self._started_at_utc = utc_now_iso()
        self._countdown_started_at = now
        self._phase = SessionPhase.COUNTDOWN
        logger.info(
            "session %s started: mode=%s difficulty=%s attempts=%d window=%dms",
            self._session_id,
            self._config.mode.value,
            self._config.difficulty.value,
            self._target_attempts,
            self._per_input_ms,
        )

    def update(self) -> None:
        if self._phase not in _ACTIVE_PHASES:
            return
        now = self._clock.now()
        assert self._started_at is not None
        self._ledger.tick(elapsed_seconds(self._started_at, now))

        if self._phase is SessionPhase.COUNTDOWN:
            assert self._countdown_started_at is not None
            if now - self._countdown_started_at >= countdown_total_ms():
                self._countdown_started_at = None
                self._deal(now)
            return

        if self._phase is SessionPhase.AWAITING_INPUT:
            self._accept(self._matcher.on_tick(now))
            return

        if self._phase is SessionPhase.COOLDOWN:
            assert self._cooldown_until is not None
            if now < self._cooldown_until:
                return
            self._cooldown_until = None
            if self._ledger.score.total_attempts >= self._target_attempts:
                self._complete()
            else:
                self._deal(now)

    def handle_input(self, event: InputEvent) -> Resolution | None:
        if self._phase not in _ACTIVE_PHASES:
            return None
        self._inputs.append(event)
        publish_quietly(self._relay, event)
        resolution = self._matcher.on_input(event)
        return resolution if self._accept(resolution) else None

    def attach(self, source: InputSource) -> Callable[[], None]:
        """Subscribe to ``source``; returns the unsubscribe function."""

        return source.subscribe(self.handle_input)

    def press(self, symbol: Symbol) -> Resolution | None:
        return self.handle_input(InputEvent(symbol=symbol, timestamp=self._clock.now()))

    def finalize(self) -> SessionRecord | None:
        """Move to Completed now; no-op once the session has ended."""

        if self._phase in _ACTIVE_PHASES:
            self._complete()
        return self._record

    def cancel(self) -> None:
        """Abandon the session; pending deadline and cooldown work is dropped."""

        if self._ended:
            return
        self._ended = True
        self._matcher.cancel()
        self._countdown_started_at = None
        self._cooldown_until = None
        self._phase = SessionPhase.IDLE
        logger.info("session %s cancelled", self._session_id)

    def apply_relay_state(self, payload: Mapping[str, Any] | str | None) -> RelayStatus | None:
        self._relay_status = parse_relay_state(payload)
        return self._relay_status

    # -- view ---------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        now = self._clock.now()
        attempt = self._matcher.attempt
        showing_attempt = attempt is not None and self._phase in (SessionPhase.AWAITING_INPUT, SessionPhase.COOLDOWN)

        countdown = 0
        if self._phase is SessionPhase.COUNTDOWN and self._countdown_started_at is not None:
            countdown = countdown_step(now - self._countdown_started_at)

        remaining: int | None = None
        if self._phase is SessionPhase.AWAITING_INPUT and attempt is not None:
            remaining = sample_remaining_ms(now, attempt.deadline)

        last = self._last_delta
        return SessionSnapshot(
            phase=self._phase,
            mode=self._config.mode,
            difficulty=self._config.difficulty,
            countdown_step=countdown,
            target=attempt.target.symbols if showing_attempt and attempt is not None else None,
            target_name=attempt.target.info.name if showing_attempt and attempt is not None else "",
            matched_prefix_length=attempt.matched_prefix_length if showing_attempt and attempt is not None else 0,
            time_remaining_ms=remaining,
            score=self._ledger.score,
            attempts_remaining=max(0, self._target_attempts - self._ledger.score.total_attempts),
            last_status=None if last is None else last.status,
            points_earned=0 if last is None else last.points_awarded,
            relay_status=self._relay_status,
        )

    # -- internals ----------------------------------------------------------

    def _deal(self, now: int) -> None:
        pattern = self._library.select_pattern(
            self._config.mode,
            self._config.difficulty,
            self._config.custom,
            self._config.custom_combo,
        )
        self._matcher.begin(pattern, start_time=now, duration_ms=self._per_input_ms)
        self._phase = SessionPhase.AWAITING_INPUT

    def _accept(self, resolution: Resolution | None) -> bool:
        if resolution is None or self._phase is not SessionPhase.AWAITING_INPUT:
            return False

        delta = self._ledger.apply_resolution(resolution)
        self._last_delta = delta
        self._outcomes.append(
            AttemptOutcome(
                index=len(self._outcomes),
                pattern=resolution.target.display(),
                status=resolution.status,
                completion_ms=resolution.completion_ms,
                points=delta.points_awarded,
            )
        )
        if resolution.status is not AttemptStatus.SUCCESS and self._achievements is not None:
            self._achievements.record_failure()

        self._cooldown_until = resolution.resolved_at + cooldown_after(resolution.status)
        self._phase = SessionPhase.COOLDOWN
        return True

    def _complete(self) -> None:
        if self._ended:
            return
        self._ended = True
        self._matcher.cancel()
        self._countdown_started_at = None
        self._cooldown_until = None
        if self._started_at is not None:
            self._ledger.tick(elapsed_seconds(self._started_at, self._clock.now()))
        self._phase = SessionPhase.COMPLETED

        record = session_record_from_training(self)
        self._record = record
        self._history.record(record)
        if self._achievements is not None:
            self._achievements.record_session(record, local_hour=self._local_hour())
        if self._store is not None:
            save_history(self._store, self._history)
            if self._achievements is not None:
                save_achievements(self._store, self._achievements)
        logger.info(
            "session %s completed: %d points, %.1f%% accuracy, max streak %d",
            self._session_id,
            record.score.points,
            record.score.accuracy_percent,
            record.score.max_streak,
        )
