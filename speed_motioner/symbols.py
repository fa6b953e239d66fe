"""Logical input alphabet.

Symbols are independent of physical keys or buttons. Directions use the
four cardinal symbols; numpad notation (7 8 9 / 4 5 6 / 1 2 3) from combo
lists is folded onto them, with diagonals collapsing to their vertical
component and neutral (5) dropped.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Symbol(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    LP = "lp"
    MP = "mp"
    HP = "hp"
    LK = "lk"
    MK = "mk"
    HK = "hk"

    @property
    def is_direction(self) -> bool:
        return self in DIRECTIONS

    @property
    def is_attack(self) -> bool:
        return self in ATTACKS


DIRECTIONS: frozenset[Symbol] = frozenset({Symbol.UP, Symbol.DOWN, Symbol.LEFT, Symbol.RIGHT})
ATTACKS: frozenset[Symbol] = frozenset(
    {Symbol.LP, Symbol.MP, Symbol.HP, Symbol.LK, Symbol.MK, Symbol.HK}
)


class AttackButtonMode(IntEnum):
    FOUR = 4
    SIX = 6


_ACTIVE_ATTACKS: dict[AttackButtonMode, tuple[Symbol, ...]] = {
    AttackButtonMode.FOUR: (Symbol.LP, Symbol.MP, Symbol.LK, Symbol.MK),
    AttackButtonMode.SIX: (Symbol.LP, Symbol.MP, Symbol.HP, Symbol.LK, Symbol.MK, Symbol.HK),
}


def active_attacks(mode: AttackButtonMode) -> tuple[Symbol, ...]:
    return _ACTIVE_ATTACKS[AttackButtonMode(mode)]


def enabled_symbols(mode: AttackButtonMode) -> frozenset[Symbol]:
    return DIRECTIONS | frozenset(active_attacks(mode))


def parse_symbol(raw: str) -> Symbol | None:
    """Map a logical action name to a Symbol; None for non-symbol actions (start, select)."""

    try:
        return Symbol(str(raw).strip().lower())
    except ValueError:
        return None


_NUMPAD_DIRECTIONS: dict[str, Symbol | None] = {
    "1": Symbol.DOWN,
    "2": Symbol.DOWN,
    "3": Symbol.DOWN,
    "4": Symbol.LEFT,
    "5": None,
    "6": Symbol.RIGHT,
    "7": Symbol.UP,
    "8": Symbol.UP,
    "9": Symbol.UP,
}

_NOTATION_ATTACKS: dict[str, Symbol] = {
    "LP": Symbol.LP,
    "MP": Symbol.MP,
    "HP": Symbol.HP,
    "LK": Symbol.LK,
    "MK": Symbol.MK,
    "HK": Symbol.HK,
    # Tekken right punch / right kick share the medium punch and light kick slots.
    "RP": Symbol.MP,
    "RK": Symbol.LK,
}


def notation_to_symbols(tokens: list[str] | tuple[str, ...]) -> tuple[Symbol, ...]:
    """Convert numpad/button notation tokens (e.g. ["2", "3", "6", "LP"]) to symbols."""

    out: list[Symbol] = []
    for token in tokens:
        key = str(token).strip().upper()
        if key in _NUMPAD_DIRECTIONS:
            sym = _NUMPAD_DIRECTIONS[key]
            if sym is not None:
                out.append(sym)
            continue
        attack = _NOTATION_ATTACKS.get(key)
        if attack is None:
            raise ValueError(f"unknown notation token: {token!r}")
        out.append(attack)
    return tuple(out)


_GLYPHS: dict[Symbol, str] = {
    Symbol.UP: "↑",
    Symbol.DOWN: "↓",
    Symbol.LEFT: "←",
    Symbol.RIGHT: "→",
}


def glyph(symbol: Symbol) -> str:
    return _GLYPHS.get(symbol, symbol.value.upper())


def display_sequence(symbols: tuple[Symbol, ...] | list[Symbol]) -> str:
    return " ".join(glyph(s) for s in symbols)
