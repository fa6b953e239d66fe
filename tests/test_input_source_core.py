from __future__ import annotations

from dataclasses import dataclass

from speed_motioner.input_source import (
    GamepadEdgeDetector,
    InputBus,
    KeyboardTranslator,
    PadState,
    hat_directions,
    stick_directions,
)
from speed_motioner.matcher import InputEvent
from speed_motioner.settings import Settings
from speed_motioner.symbols import AttackButtonMode, Symbol, display_sequence, notation_to_symbols, parse_symbol


@dataclass
class FakeClock:
    t: int = 0

    def now(self) -> int:
        return self.t

    def advance(self, dt: int) -> None:
        self.t += int(dt)


def test_bus_delivers_timestamped_events_to_subscribers() -> None:
    clock = FakeClock(t=500)
    bus = InputBus(clock=clock)
    seen: list[InputEvent] = []
    unsubscribe = bus.subscribe(seen.append)

    bus.emit(Symbol.DOWN)
    clock.advance(16)
    bus.emit(Symbol.LP, timestamp=520)

    assert seen == [InputEvent(Symbol.DOWN, 500), InputEvent(Symbol.LP, 520)]

    unsubscribe()
    bus.emit(Symbol.UP)
    assert len(seen) == 2


def test_bus_drops_disabled_attacks_in_four_button_mode() -> None:
    bus = InputBus(clock=FakeClock(), attack_mode=AttackButtonMode.FOUR)
    seen: list[InputEvent] = []
    bus.subscribe(seen.append)

    assert bus.emit(Symbol.HP) is None
    assert bus.emit(Symbol.HK) is None
    assert bus.emit(Symbol.MK) is not None
    assert [e.symbol for e in seen] == [Symbol.MK]

    bus.attack_mode = AttackButtonMode.SIX
    assert bus.emit(Symbol.HP) is not None


def test_keyboard_translation_with_default_bindings() -> None:
    keys = KeyboardTranslator(Settings())
    assert keys.translate("w") is Symbol.UP
    assert keys.translate("up") is Symbol.UP
    assert keys.translate("ArrowLeft") is Symbol.LEFT
    assert keys.translate("j") is Symbol.LP
    assert keys.translate("o") is Symbol.HK
    assert keys.translate("space") is None


def test_rebinding_overrides_default_key() -> None:
    settings = Settings.from_dict({"key_bindings": {"lp": "f", "nonsense": "z"}})
    keys = KeyboardTranslator(settings)
    assert keys.translate("f") is Symbol.LP
    assert keys.translate("z") is None
    assert settings.key_bindings["lp"] == "f"


def test_settings_from_dict_tolerates_bad_values() -> None:
    settings = Settings.from_dict({"attack_button_mode": "five", "gamepad_buttons": {"x": "lp", "7": "hk"}})
    assert settings.attack_button_mode is AttackButtonMode.SIX
    assert settings.gamepad_map()[7] is Symbol.HK
    assert 8 not in settings.gamepad_map()  # start is not a symbol

    restored = Settings.from_dict(settings.to_dict())
    assert restored == settings


def test_stick_uses_dominant_axis_and_deadzone() -> None:
    assert stick_directions(0.1, -0.2) == set()
    assert stick_directions(0.9, 0.4) == {Symbol.RIGHT}
    assert stick_directions(-0.2, 0.8) == {Symbol.DOWN}
    assert stick_directions(0.0, -0.5) == {Symbol.UP}


def test_hat_directions() -> None:
    assert hat_directions((0, 1)) == {Symbol.UP}
    assert hat_directions((-1, -1)) == {Symbol.LEFT, Symbol.DOWN}
    assert hat_directions((0, 0)) == set()


def test_gamepad_reports_rising_edges_only() -> None:
    pad = GamepadEdgeDetector(Settings())
    pressed_lp = PadState(buttons=(True,))

    assert pad.poll(0, pressed_lp) == [Symbol.LP]
    # Held: no repeat.
    assert pad.poll(0, pressed_lp) == []
    assert pad.poll(0, PadState(buttons=(False,))) == []
    assert pad.poll(0, pressed_lp) == [Symbol.LP]


def test_gamepad_stick_and_dpad_share_direction_state() -> None:
    pad = GamepadEdgeDetector(Settings())
    down_stick = PadState(axes=(0.0, 0.9))
    assert pad.poll("p1", down_stick) == [Symbol.DOWN]

    # D-pad down while the stick is still held down is the same press.
    dpad = (False,) * 13 + (True,)
    assert pad.poll("p1", PadState(buttons=dpad, axes=(0.0, 0.9))) == []

    # Roll to forward.
    assert pad.poll("p1", PadState(axes=(0.9, 0.1))) == [Symbol.RIGHT]


def test_gamepad_ignores_start_select_and_tracks_pads_separately() -> None:
    pad = GamepadEdgeDetector(Settings())
    start = (False,) * 8 + (True,)
    assert pad.poll(0, PadState(buttons=start)) == []

    assert pad.poll(0, PadState(buttons=(True,))) == [Symbol.LP]
    assert pad.poll(1, PadState(buttons=(True,))) == [Symbol.LP]

    pad.forget(0)
    assert pad.poll(0, PadState(buttons=(True,))) == [Symbol.LP]


def test_symbol_parsing_and_numpad_notation() -> None:
    assert parse_symbol(" LP ") is Symbol.LP
    assert parse_symbol("start") is None
    assert notation_to_symbols(("6", "5", "2", "3", "RP")) == (Symbol.RIGHT, Symbol.DOWN, Symbol.DOWN, Symbol.MP)
    assert display_sequence((Symbol.DOWN, Symbol.RIGHT, Symbol.LP)) == "↓ → LP"
