from __future__ import annotations

import pytest

from speed_motioner.matcher import (
    AttemptStatus,
    InputEvent,
    InputLog,
    SequenceMatcher,
    matched_prefix_length,
)
from speed_motioner.patterns import Pattern
from speed_motioner.symbols import Symbol

U, D, L, R = Symbol.UP, Symbol.DOWN, Symbol.LEFT, Symbol.RIGHT
LP, MP = Symbol.LP, Symbol.MP


def _ev(sym: Symbol, t: int) -> InputEvent:
    return InputEvent(symbol=sym, timestamp=t)


def test_multi_symbol_success_at_last_input() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((D, R, LP)), start_time=0, duration_ms=2000)

    assert m.on_input(_ev(D, 0)) is None
    assert m.attempt is not None and m.attempt.matched_prefix_length == 1
    assert m.on_input(_ev(R, 100)) is None
    assert m.attempt.matched_prefix_length == 2

    res = m.on_input(_ev(LP, 300))
    assert res is not None
    assert res.status is AttemptStatus.SUCCESS
    assert res.completion_ms == 300
    assert res.window_ms == 2000


def test_single_symbol_wrong_is_immediate() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((U,)), start_time=0, duration_ms=3000)

    res = m.on_input(_ev(D, 50))
    assert res is not None
    assert res.status is AttemptStatus.WRONG
    assert m.attempt is not None and m.attempt.matched_prefix_length == 0


def test_single_symbol_success() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((LP,)), start_time=1000, duration_ms=3000)

    res = m.on_input(_ev(LP, 1200))
    assert res is not None and res.status is AttemptStatus.SUCCESS
    assert res.completion_ms == 200


def test_timeout_on_tick_at_deadline() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((U,)), start_time=0, duration_ms=3000)

    assert m.on_tick(2999) is None
    res = m.on_tick(3000)
    assert res is not None
    assert res.status is AttemptStatus.TIMEOUT
    assert res.resolved_at == 3000


def test_input_at_deadline_resolves_timeout() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((U,)), start_time=0, duration_ms=1000)

    res = m.on_input(_ev(U, 1000))
    assert res is not None and res.status is AttemptStatus.TIMEOUT


def test_first_symbol_wrong_on_multi_symbol_target() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((D, R, LP)), start_time=0, duration_ms=2000)

    res = m.on_input(_ev(U, 10))
    assert res is not None and res.status is AttemptStatus.WRONG


def test_deviation_after_progress_stays_pending() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((D, R, LP)), start_time=0, duration_ms=2000)

    assert m.on_input(_ev(D, 0)) is None
    # Progress drops back to zero but the attempt stays open until the deadline.
    assert m.on_input(_ev(U, 50)) is None
    assert m.attempt is not None and m.attempt.matched_prefix_length == 0
    assert m.attempt.status is AttemptStatus.PENDING

    assert m.on_input(_ev(D, 100)) is None
    assert m.on_input(_ev(R, 150)) is None
    res = m.on_input(_ev(LP, 200))
    assert res is not None and res.status is AttemptStatus.SUCCESS


def test_repeated_symbol_target_partial_prefix() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((LP, LP, LP)), start_time=0, duration_ms=2000)

    assert m.on_input(_ev(LP, 10)) is None
    assert m.on_input(_ev(LP, 20)) is None
    assert m.attempt is not None and m.attempt.matched_prefix_length == 2
    res = m.on_input(_ev(LP, 30))
    assert res is not None and res.status is AttemptStatus.SUCCESS


def test_repeated_symbol_after_noise_recovers_suffix() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((LP, LP, MP)), start_time=0, duration_ms=2000)

    assert m.on_input(_ev(LP, 10)) is None
    assert m.on_input(_ev(LP, 20)) is None
    # LP LP LP: the longest suffix matching a prefix is still LP LP.
    assert m.on_input(_ev(LP, 30)) is None
    assert m.attempt is not None and m.attempt.matched_prefix_length == 2
    res = m.on_input(_ev(MP, 40))
    assert res is not None and res.status is AttemptStatus.SUCCESS


def test_events_before_attempt_start_are_ignored() -> None:
    m = SequenceMatcher()
    # Inputs pressed during the previous cooldown.
    m.on_input(_ev(D, 0))
    m.on_input(_ev(R, 10))

    m.begin(Pattern((D, R, LP)), start_time=100, duration_ms=2000)
    res = m.on_input(_ev(LP, 150))

    # Without the stale D R this LP is a wrong first input, never a success.
    assert res is not None
    assert res.status is AttemptStatus.WRONG


def test_terminal_attempt_latches() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((LP,)), start_time=0, duration_ms=1000)

    first = m.on_input(_ev(LP, 10))
    assert first is not None and first.status is AttemptStatus.SUCCESS

    assert m.on_input(_ev(LP, 20)) is None
    assert m.on_input(_ev(U, 30)) is None
    assert m.on_tick(5000) is None
    assert m.attempt is not None and m.attempt.status is AttemptStatus.SUCCESS


def test_cancel_drops_attempt_but_keeps_logging() -> None:
    m = SequenceMatcher()
    m.begin(Pattern((LP,)), start_time=0, duration_ms=1000)
    m.cancel()

    assert m.attempt is None
    assert m.on_input(_ev(LP, 10)) is None
    assert m.on_tick(2000) is None
    assert len(m.log) == 1


def test_input_log_keeps_absolute_indices_past_capacity() -> None:
    log = InputLog(capacity=3)
    for i in range(5):
        log.append(_ev(LP if i % 2 == 0 else MP, i))

    assert len(log) == 3
    assert log.next_index == 5
    assert [e.timestamp for e in log.since(3)] == [3, 4]
    assert [e.timestamp for e in log.since(0)] == [2, 3, 4]
    assert log.since(5) == []
    assert [e.timestamp for e in log.recent(2)] == [3, 4]


def test_matched_prefix_length_examples() -> None:
    assert matched_prefix_length((D, R, LP), ()) == 0
    assert matched_prefix_length((D, R, LP), (U, D)) == 1
    assert matched_prefix_length((D, R, LP), (D, R)) == 2
    assert matched_prefix_length((LP, LP, LP), (MP, LP, LP)) == 2
    assert matched_prefix_length((D, R, LP), (R,)) == 0


def test_begin_rejects_non_positive_duration() -> None:
    m = SequenceMatcher()
    with pytest.raises(ValueError):
        m.begin(Pattern((LP,)), start_time=0, duration_ms=0)
