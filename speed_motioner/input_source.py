"""Input sources feeding logical symbols to the trainer.

Keyboard events and polled gamepad state are both reduced to discrete
``InputEvent`` pushes on an ``InputBus``; consumers never learn where an
event came from.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Protocol

from .clock import Clock
from .matcher import InputEvent
from .settings import Settings
from .symbols import AttackButtonMode, Symbol, enabled_symbols

logger = logging.getLogger(__name__)

InputCallback = Callable[[InputEvent], None]

STICK_DEADZONE = 0.3


class InputSource(Protocol):
    def subscribe(self, callback: InputCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        ...


class InputBus:
    """Push-based input source.

    Symbols for attack buttons disabled by the attack-button mode are dropped
    here so that they never reach the matcher.
    """

    def __init__(self, *, clock: Clock, attack_mode: AttackButtonMode = AttackButtonMode.SIX) -> None:
        self._clock = clock
        self._allowed = enabled_symbols(attack_mode)
        self._attack_mode = AttackButtonMode(attack_mode)
        self._subscribers: list[InputCallback] = []

    @property
    def attack_mode(self) -> AttackButtonMode:
        return self._attack_mode

    @attack_mode.setter
    def attack_mode(self, mode: AttackButtonMode) -> None:
        self._attack_mode = AttackButtonMode(mode)
        self._allowed = enabled_symbols(self._attack_mode)

    def subscribe(self, callback: InputCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, symbol: Symbol, timestamp: int | None = None) -> InputEvent | None:
        if symbol not in self._allowed:
            logger.debug("dropping %s: disabled in %d-button mode", symbol.value, int(self._attack_mode))
            return None
        event = InputEvent(symbol=symbol, timestamp=self._clock.now() if timestamp is None else int(timestamp))
        for callback in list(self._subscribers):
            callback(event)
        return event


class KeyboardTranslator:
    def __init__(self, settings: Settings) -> None:
        self._map = settings.keyboard_map()

    def translate(self, key_name: str) -> Symbol | None:
        return self._map.get(str(key_name).strip().lower())


@dataclass(frozen=True, slots=True)
class PadState:
    """One poll of a gamepad: pressed buttons, axis values and hat positions."""

    buttons: tuple[bool, ...] = ()
    axes: tuple[float, ...] = ()
    hats: tuple[tuple[int, int], ...] = ()


def stick_directions(x: float, y: float, deadzone: float = STICK_DEADZONE) -> set[Symbol]:
    """Four-way reading of an analog stick; the dominant axis wins."""

    if abs(x) < deadzone and abs(y) < deadzone:
        return set()
    if abs(x) > abs(y):
        if x > deadzone:
            return {Symbol.RIGHT}
        if x < -deadzone:
            return {Symbol.LEFT}
        return set()
    if y > deadzone:
        return {Symbol.DOWN}
    if y < -deadzone:
        return {Symbol.UP}
    return set()


def hat_directions(hat: tuple[int, int]) -> set[Symbol]:
    # Hat y is positive for up, unlike stick axes.
    x, y = hat
    out: set[Symbol] = set()
    if x > 0:
        out.add(Symbol.RIGHT)
    elif x < 0:
        out.add(Symbol.LEFT)
    if y > 0:
        out.add(Symbol.UP)
    elif y < 0:
        out.add(Symbol.DOWN)
    return out


class GamepadEdgeDetector:
    """Turns polled pad state into press events (rising edges only).

    Polling runs every frame, so most polls report nothing new and return an
    empty list.
    """

    def __init__(self, settings: Settings, *, deadzone: float = STICK_DEADZONE) -> None:
        self._buttons = settings.gamepad_map()
        self._deadzone = float(deadzone)
        self._held: dict[Hashable, set[Symbol]] = {}

    def poll(self, pad_id: Hashable, state: PadState) -> list[Symbol]:
        held: set[Symbol] = set()
        pressed: list[Symbol] = []

        def press(sym: Symbol) -> None:
            if sym not in held:
                held.add(sym)
                pressed.append(sym)

        for index, is_down in enumerate(state.buttons):
            sym = self._buttons.get(index)
            if sym is not None and is_down:
                press(sym)
        if len(state.axes) >= 2:
            for sym in sorted(stick_directions(state.axes[0], state.axes[1], self._deadzone), key=_order):
                press(sym)
        for hat in state.hats:
            for sym in sorted(hat_directions(hat), key=_order):
                press(sym)

        previous = self._held.get(pad_id, set())
        self._held[pad_id] = held
        return [sym for sym in pressed if sym not in previous]

    def forget(self, pad_id: Hashable) -> None:
        self._held.pop(pad_id, None)


def _order(sym: Symbol) -> int:
    return list(Symbol).index(sym)
