from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from speed_motioner.input_source import InputBus
from speed_motioner.matcher import AttemptStatus, InputEvent
from speed_motioner.patterns import ConfigurationError, CustomConfig, Pattern, PatternInfo, PatternLibrary
from speed_motioner.relay import RelayStatus
from speed_motioner.session import SessionConfig, SessionPhase, TrainingSession
from speed_motioner.symbols import Symbol
from speed_motioner.training_core import Difficulty, SeededRng, TrainingMode

U, D, R = Symbol.UP, Symbol.DOWN, Symbol.RIGHT
LP = Symbol.LP

QCF_LP = Pattern((D, R, LP), PatternInfo(name="QCF + LP", tier=Difficulty.EASY))
JUST_UP = Pattern((U,))


@dataclass
class FakeClock:
    t: int = 0

    def now(self) -> int:
        return self.t

    def advance(self, dt: int) -> None:
        self.t += int(dt)


@dataclass
class RecordingRelay:
    events: list[InputEvent] = field(default_factory=list)

    def publish_input(self, event: InputEvent) -> None:
        self.events.append(event)


class BrokenRelay:
    def publish_input(self, event: InputEvent) -> None:
        raise RuntimeError("socket closed")


def _session(
    clock: FakeClock,
    *,
    pattern: Pattern = QCF_LP,
    difficulty: Difficulty = Difficulty.MEDIUM,
    attempts: int | None = None,
    **kwargs,
) -> TrainingSession:
    library = PatternLibrary(rng=SeededRng(1), catalogs={TrainingMode.MOTION: (pattern,)})
    config = SessionConfig(mode=TrainingMode.MOTION, difficulty=difficulty, target_attempt_count=attempts)
    return TrainingSession(clock=clock, library=library, config=config, session_id="s1", local_hour=lambda: 10, **kwargs)


def _start_first_attempt(clock: FakeClock, session: TrainingSession) -> None:
    session.start()
    clock.advance(900)
    session.update()  # COUNTDOWN -> AWAITING_INPUT


def test_countdown_precedes_first_attempt() -> None:
    clock = FakeClock()
    session = _session(clock)
    assert session.phase is SessionPhase.IDLE

    session.start()
    assert session.phase is SessionPhase.COUNTDOWN
    assert session.snapshot().countdown_step == 3
    assert session.snapshot().target is None

    clock.advance(300)
    session.update()
    assert session.snapshot().countdown_step == 2

    clock.advance(599)
    session.update()
    assert session.phase is SessionPhase.COUNTDOWN

    clock.advance(1)
    session.update()
    snap = session.snapshot()
    assert snap.phase is SessionPhase.AWAITING_INPUT
    assert snap.target == (D, R, LP)
    assert snap.target_name == "QCF + LP"
    assert snap.time_remaining_ms == 2000
    assert snap.attempts_remaining == 10


def test_three_symbol_success_scores_222_on_medium() -> None:
    clock = FakeClock()
    session = _session(clock)
    _start_first_attempt(clock, session)

    assert session.press(D) is None
    clock.advance(100)
    assert session.press(R) is None
    assert session.snapshot().matched_prefix_length == 2
    clock.advance(200)
    res = session.press(LP)

    assert res is not None and res.status is AttemptStatus.SUCCESS
    assert session.phase is SessionPhase.COOLDOWN
    s = session.score
    assert (s.total_attempts, s.correct_attempts, s.current_streak, s.points) == (1, 1, 1, 222)

    snap = session.snapshot()
    assert snap.last_status is AttemptStatus.SUCCESS
    assert snap.points_earned == 222
    assert snap.time_remaining_ms is None


def test_cooldown_after_success_then_next_attempt() -> None:
    clock = FakeClock()
    session = _session(clock)
    _start_first_attempt(clock, session)
    for sym in (D, R, LP):
        session.press(sym)
    resolved_at = clock.now()

    clock.advance(1499)
    session.update()
    assert session.phase is SessionPhase.COOLDOWN

    clock.advance(1)
    session.update()
    assert session.phase is SessionPhase.AWAITING_INPUT
    attempt = session.matcher.attempt
    assert attempt is not None
    assert attempt.start_time == resolved_at + 1500
    assert attempt.status is AttemptStatus.PENDING


def test_single_symbol_wrong_input() -> None:
    clock = FakeClock()
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    _start_first_attempt(clock, session)

    clock.advance(50)
    res = session.press(D)
    assert res is not None and res.status is AttemptStatus.WRONG
    s = session.score
    assert (s.total_attempts, s.correct_attempts, s.current_streak) == (1, 0, 0)

    clock.advance(999)
    session.update()
    assert session.phase is SessionPhase.COOLDOWN
    clock.advance(1)
    session.update()
    assert session.phase is SessionPhase.AWAITING_INPUT


def test_no_input_times_out() -> None:
    clock = FakeClock()
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    _start_first_attempt(clock, session)

    clock.advance(2999)
    session.update()
    assert session.phase is SessionPhase.AWAITING_INPUT
    assert session.snapshot().time_remaining_ms == 100

    clock.advance(1)
    session.update()
    assert session.phase is SessionPhase.COOLDOWN
    s = session.score
    assert s.total_attempts == 1
    assert s.points == 0
    assert session.snapshot().last_status is AttemptStatus.TIMEOUT

    clock.advance(500)
    session.update()
    assert session.phase is SessionPhase.AWAITING_INPUT


def test_inputs_during_cooldown_do_not_leak_into_next_attempt() -> None:
    clock = FakeClock()
    session = _session(clock)
    _start_first_attempt(clock, session)
    for sym in (D, R, LP):
        session.press(sym)

    clock.advance(100)
    assert session.press(D) is None
    assert session.press(R) is None
    assert session.score.total_attempts == 1

    clock.advance(1400)
    session.update()
    assert session.phase is SessionPhase.AWAITING_INPUT

    res = session.press(LP)
    assert res is not None and res.status is AttemptStatus.WRONG
    assert session.score.total_attempts == 2
    assert len(session.input_history()) == 6


def test_inputs_during_countdown_are_ignored_for_matching() -> None:
    clock = FakeClock()
    session = _session(clock)
    session.start()
    clock.advance(100)
    session.press(D)
    session.press(R)
    clock.advance(800)
    session.update()

    assert session.press(LP) is not None
    assert session.score.correct_attempts == 0


def test_invalid_configuration_rejected_before_start() -> None:
    clock = FakeClock()
    library = PatternLibrary(rng=SeededRng(1))

    empty_custom = SessionConfig(
        mode=TrainingMode.CUSTOM,
        difficulty=Difficulty.EASY,
        custom=CustomConfig(include_basic=False),
    )
    session = TrainingSession(clock=clock, library=library, config=empty_custom)
    with pytest.raises(ConfigurationError, match="select at least one pattern family"):
        session.start()
    assert session.phase is SessionPhase.IDLE

    no_combo = SessionConfig(mode=TrainingMode.CUSTOM_COMBO, difficulty=Difficulty.EASY)
    session = TrainingSession(clock=clock, library=library, config=no_combo)
    with pytest.raises(ConfigurationError, match="select a custom combo first"):
        session.start()
    assert session.phase is SessionPhase.IDLE

    with pytest.raises(ConfigurationError):
        SessionConfig.create("arcade", "easy")

    with pytest.raises(ConfigurationError):
        TrainingSession(
            clock=clock,
            library=library,
            config=SessionConfig(mode=TrainingMode.MOTION, difficulty=Difficulty.EASY, target_attempt_count=0),
        )


def test_cancel_stops_deadline_and_cooldown_work() -> None:
    clock = FakeClock()
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    _start_first_attempt(clock, session)

    session.cancel()
    assert session.phase is SessionPhase.IDLE
    assert session.matcher.attempt is None

    clock.advance(5000)
    session.update()
    assert session.press(U) is None
    assert session.score.total_attempts == 0
    assert session.record is None

    session.start()
    assert session.phase is SessionPhase.IDLE


def test_cancel_during_cooldown() -> None:
    clock = FakeClock()
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    _start_first_attempt(clock, session)
    session.press(U)
    assert session.phase is SessionPhase.COOLDOWN

    session.cancel()
    clock.advance(2000)
    session.update()
    assert session.phase is SessionPhase.IDLE
    assert session.matcher.attempt is None


def test_elapsed_seconds_tick_from_start() -> None:
    clock = FakeClock()
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    session.start()
    clock.advance(900)
    session.update()
    assert session.score.elapsed_seconds == 0

    clock.advance(1100)
    session.update()
    assert session.score.elapsed_seconds == 2


def test_relay_mirrors_inputs_and_failures_are_contained() -> None:
    clock = FakeClock()
    relay = RecordingRelay()
    session = _session(clock, relay=relay)
    _start_first_attempt(clock, session)
    session.press(D)
    assert [e.symbol for e in relay.events] == [D]

    broken = _session(FakeClock(), relay=BrokenRelay())
    broken.start()
    assert broken.press(D) is None
    assert len(broken.input_history()) == 1


def test_relay_status_projection_in_snapshot() -> None:
    clock = FakeClock()
    session = _session(clock)
    assert session.snapshot().relay_status is None

    assert session.apply_relay_state({"status": "active", "players": 2}) is RelayStatus.ACTIVE
    assert session.snapshot().relay_status is RelayStatus.ACTIVE
    assert session.apply_relay_state("WAITING") is RelayStatus.WAITING
    assert session.apply_relay_state({"status": "paused"}) is None


def test_session_consumes_an_input_source() -> None:
    clock = FakeClock()
    bus = InputBus(clock=clock)
    session = _session(clock, pattern=JUST_UP, difficulty=Difficulty.EASY)
    detach = session.attach(bus)
    _start_first_attempt(clock, session)

    bus.emit(U)
    assert session.score.correct_attempts == 1

    detach()
    assert bus.emit(U) is not None
    assert len(session.input_history()) == 1


def test_sub_minimum_custom_timing_rejected_as_configuration_error() -> None:
    clock = FakeClock()
    config = SessionConfig(
        mode=TrainingMode.CUSTOM,
        difficulty=Difficulty.EASY,
        custom=CustomConfig(seconds_per_input=0.0004),
    )
    with pytest.raises(ConfigurationError, match="seconds per input"):
        TrainingSession(clock=clock, library=PatternLibrary(rng=SeededRng(1)), config=config)
