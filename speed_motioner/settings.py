from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .symbols import AttackButtonMode, Symbol, parse_symbol

DEFAULT_KEY_BINDINGS: dict[str, str] = {
    "up": "w",
    "down": "s",
    "left": "a",
    "right": "d",
    "lp": "j",
    "mp": "k",
    "hp": "l",
    "lk": "u",
    "mk": "i",
    "hk": "o",
}

# Arrow keys always drive directions in addition to the bound keys.
ARROW_KEYS: dict[str, Symbol] = {
    "up": Symbol.UP,
    "down": Symbol.DOWN,
    "left": Symbol.LEFT,
    "right": Symbol.RIGHT,
}

# Xbox-style layout: face buttons and bumpers are attacks, 12-15 the d-pad.
DEFAULT_GAMEPAD_BUTTONS: dict[int, str] = {
    0: "lp",
    1: "lk",
    2: "mp",
    3: "mk",
    4: "hp",
    5: "hk",
    8: "start",
    9: "select",
    10: "ls",
    11: "rs",
    12: "up",
    13: "down",
    14: "left",
    15: "right",
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Snapshot from the settings provider: bindings and attack-button mode."""

    attack_button_mode: AttackButtonMode = AttackButtonMode.SIX
    key_bindings: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEY_BINDINGS))
    gamepad_buttons: dict[int, str] = field(default_factory=lambda: dict(DEFAULT_GAMEPAD_BUTTONS))

    def keyboard_map(self) -> dict[str, Symbol]:
        """Raw key name -> symbol. Bound keys take precedence over arrow keys."""

        mapping: dict[str, Symbol] = {}
        for name, sym in ARROW_KEYS.items():
            mapping[name] = sym
            mapping[f"arrow{name}"] = sym
        for action, key in self.key_bindings.items():
            sym = parse_symbol(action)
            if sym is not None and key:
                mapping[str(key).lower()] = sym
        return mapping

    def gamepad_map(self) -> dict[int, Symbol]:
        out: dict[int, Symbol] = {}
        for index, action in self.gamepad_buttons.items():
            sym = parse_symbol(action)
            if sym is not None:
                out[int(index)] = sym
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "attack_button_mode": int(self.attack_button_mode),
            "key_bindings": dict(self.key_bindings),
            "gamepad_buttons": {str(k): v for k, v in self.gamepad_buttons.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        try:
            mode = AttackButtonMode(int(data.get("attack_button_mode", 6)))
        except (TypeError, ValueError):
            mode = AttackButtonMode.SIX

        bindings = dict(DEFAULT_KEY_BINDINGS)
        raw_bindings = data.get("key_bindings")
        if isinstance(raw_bindings, dict):
            for action, key in raw_bindings.items():
                if parse_symbol(str(action)) is not None and str(key).strip() != "":
                    bindings[str(action).lower()] = str(key).strip().lower()

        buttons = dict(DEFAULT_GAMEPAD_BUTTONS)
        raw_buttons = data.get("gamepad_buttons")
        if isinstance(raw_buttons, dict):
            for index, action in raw_buttons.items():
                try:
                    buttons[int(index)] = str(action).strip().lower()
                except ValueError:
                    continue

        return cls(attack_button_mode=mode, key_bindings=bindings, gamepad_buttons=buttons)
