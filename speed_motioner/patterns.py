from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from .symbols import AttackButtonMode, Symbol, display_sequence, enabled_symbols, notation_to_symbols
from .training_core import Difficulty, SeededRng, TrainingMode, parse_difficulty

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Invalid training configuration, rejected before any attempt is created."""


class PatternFamily(str, Enum):
    BASIC = "basic"
    MOTION = "motion"
    COMBO = "combo"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class PatternInfo:
    name: str = ""
    notation: str = ""
    description: str = ""
    tier: Difficulty | None = None
    family: PatternFamily | None = None


@dataclass(frozen=True, slots=True)
class Pattern:
    symbols: tuple[Symbol, ...]
    info: PatternInfo = field(default_factory=PatternInfo)

    def __post_init__(self) -> None:
        symbols = tuple(Symbol(s) for s in self.symbols)
        if not symbols:
            raise ConfigurationError("pattern must contain at least one symbol")
        object.__setattr__(self, "symbols", symbols)

    def __len__(self) -> int:
        return len(self.symbols)

    @property
    def tier(self) -> Difficulty:
        if self.info.tier is not None:
            return self.info.tier
        return tier_for_length(len(self.symbols))

    def display(self) -> str:
        return display_sequence(self.symbols)

    def uses_only(self, allowed: frozenset[Symbol]) -> bool:
        return all(s in allowed for s in self.symbols)


def tier_for_length(length: int) -> Difficulty:
    # Single inputs are easy, pairs medium, three or more hard.
    if length <= 1:
        return Difficulty.EASY
    if length == 2:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def parse_mode(raw: str | TrainingMode) -> TrainingMode:
    if isinstance(raw, TrainingMode):
        return raw
    try:
        return TrainingMode(str(raw).strip().lower())
    except ValueError:
        raise ConfigurationError(f"unknown training mode: {raw!r}") from None


# ---------------------------------------------------------------------------
# Custom combos (user-authored patterns)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CustomCombo:
    combo_id: str
    name: str
    symbols: tuple[Symbol, ...]
    description: str = ""

    def to_pattern(self) -> Pattern:
        return Pattern(
            self.symbols,
            PatternInfo(name=self.name, description=self.description, family=PatternFamily.CUSTOM),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.combo_id,
            "name": self.name,
            "description": self.description,
            "inputs": [s.value for s in self.symbols],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomCombo":
        return cls(
            combo_id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            symbols=tuple(Symbol(s) for s in data.get("inputs", [])),
        )


class CustomComboBook:
    """User-authored combos, keyed by id and kept in creation order."""

    def __init__(self, combos: Iterable[CustomCombo] = ()) -> None:
        self._combos: dict[str, CustomCombo] = {c.combo_id: c for c in combos}

    def __len__(self) -> int:
        return len(self._combos)

    def all(self) -> list[CustomCombo]:
        return list(self._combos.values())

    def get(self, combo_id: str) -> CustomCombo | None:
        return self._combos.get(combo_id)

    def find(self, key: str) -> CustomCombo | None:
        """Look up a combo by id, falling back to a case-insensitive name match."""

        key = str(key).strip()
        if key in self._combos:
            return self._combos[key]
        folded = key.casefold()
        for combo in self._combos.values():
            if combo.name.casefold() == folded:
                return combo
        return None

    def add(self, *, name: str, symbols: Iterable[Symbol | str], description: str = "") -> CustomCombo:
        combo = CustomCombo(
            combo_id=f"custom_{uuid4().hex}",
            name=_combo_name(name),
            description=str(description).strip(),
            symbols=_combo_symbols(symbols),
        )
        self._combos[combo.combo_id] = combo
        return combo

    def update(
        self,
        combo_id: str,
        *,
        name: str | None = None,
        symbols: Iterable[Symbol | str] | None = None,
        description: str | None = None,
    ) -> CustomCombo:
        current = self._combos.get(combo_id)
        if current is None:
            raise KeyError(combo_id)
        updated = CustomCombo(
            combo_id=combo_id,
            name=current.name if name is None else _combo_name(name),
            description=current.description if description is None else str(description).strip(),
            symbols=current.symbols if symbols is None else _combo_symbols(symbols),
        )
        self._combos[combo_id] = updated
        return updated

    def delete(self, combo_id: str) -> bool:
        return self._combos.pop(combo_id, None) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"combos": [c.to_dict() for c in self._combos.values()]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomComboBook":
        raw = data.get("combos")
        combos: list[CustomCombo] = []
        if isinstance(raw, list):
            for item in raw:
                if not isinstance(item, dict):
                    continue
                try:
                    combo = CustomCombo.from_dict(item)
                except (KeyError, ValueError):
                    continue
                if combo.symbols:
                    combos.append(combo)
        return cls(combos)


def _combo_name(name: str) -> str:
    candidate = str(name).strip()
    if candidate == "":
        raise ConfigurationError("custom combo needs a name")
    return candidate


def _combo_symbols(symbols: Iterable[Symbol | str]) -> tuple[Symbol, ...]:
    try:
        out = tuple(Symbol(s) for s in symbols)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from None
    if not out:
        raise ConfigurationError("custom combo must contain at least one input")
    return out


# Shortest per-input window a custom timing override may ask for.
MIN_TIMING_OVERRIDE_MS = 100


@dataclass(frozen=True, slots=True)
class CustomConfig:
    """Custom challenge selection: which families feed the pool, plus timing overrides."""

    include_basic: bool = True
    include_motions: bool = False
    include_combos: bool = False
    include_custom_combo: bool = False
    custom_combo: CustomCombo | None = None
    seconds_per_input: float | None = None
    target_attempt_count: int | None = None

    def enabled_families(self) -> list[PatternFamily]:
        families: list[PatternFamily] = []
        if self.include_basic:
            families.append(PatternFamily.BASIC)
        if self.include_motions:
            families.append(PatternFamily.MOTION)
        if self.include_combos:
            families.append(PatternFamily.COMBO)
        if self.include_custom_combo and self.custom_combo is not None:
            families.append(PatternFamily.CUSTOM)
        return families

    def validate(self) -> None:
        if self.include_custom_combo and self.custom_combo is None:
            raise ConfigurationError("select a custom combo first")
        if not self.enabled_families():
            raise ConfigurationError("select at least one pattern family")
        self.timing_override_ms()
        if self.target_attempt_count is not None and self.target_attempt_count <= 0:
            raise ConfigurationError("number of inputs must be > 0")

    def timing_override_ms(self) -> int | None:
        """Timing override in ms; windows shorter than the minimum are rejected."""

        if self.seconds_per_input is None:
            return None
        ms = float(self.seconds_per_input) * 1000.0
        if not math.isfinite(ms) or ms < MIN_TIMING_OVERRIDE_MS:
            raise ConfigurationError(f"seconds per input must be at least {MIN_TIMING_OVERRIDE_MS / 1000.0:g}")
        return int(round(ms))


# ---------------------------------------------------------------------------
# Static catalogs
# ---------------------------------------------------------------------------

U, D, L, R = Symbol.UP, Symbol.DOWN, Symbol.LEFT, Symbol.RIGHT
LP, MP, HP = Symbol.LP, Symbol.MP, Symbol.HP
LK, MK, HK = Symbol.LK, Symbol.MK, Symbol.HK


@dataclass(frozen=True, slots=True)
class MotionShape:
    key: str
    name: str
    notation: str
    directions: tuple[Symbol, ...]


# Diagonals are folded onto the four cardinal symbols.
MOTION_SHAPES: dict[str, MotionShape] = {
    s.key: s
    for s in (
        MotionShape("QCF", "Quarter-Circle Forward", "236", (D, R)),
        MotionShape("QCB", "Quarter-Circle Back", "214", (D, L)),
        MotionShape("DP", "Dragon Punch", "623", (R, D, R)),
        MotionShape("HCF", "Half-Circle Forward", "41236", (L, D, R)),
        MotionShape("HCB", "Half-Circle Back", "63214", (R, D, L)),
        MotionShape("CHARGE_B_F", "Charge Back-Forward", "[4]6", (L, R)),
        MotionShape("CHARGE_D_U", "Charge Down-Up", "[2]8", (D, U)),
        MotionShape("D_QCF", "Double QCF", "236236", (D, R, D, R)),
    )
}


def _p(family: PatternFamily, *symbols: Symbol, name: str = "", tier: Difficulty | None = None) -> Pattern:
    return Pattern(symbols, PatternInfo(name=name, tier=tier, family=family))


def _motion(shape_key: str, attack: Symbol) -> Pattern:
    shape = MOTION_SHAPES[shape_key]
    return Pattern(
        shape.directions + (attack,),
        PatternInfo(
            name=f"{shape.name} + {attack.value.upper()}",
            notation=f"{shape.notation}+{attack.value.upper()}",
            family=PatternFamily.MOTION,
        ),
    )


_B, _M, _C = PatternFamily.BASIC, PatternFamily.MOTION, PatternFamily.COMBO

MOTION_CATALOG: tuple[Pattern, ...] = (
    _p(_B, U),
    _p(_B, D),
    _p(_B, L),
    _p(_B, R),
    _p(_B, LP),
    _p(_B, MP),
    *(_p(_M, d, a) for a in (LP, MP) for d in (U, D, L, R)),
    _motion("QCF", LP),
    _motion("QCB", LP),
    _motion("CHARGE_B_F", LP),
    _motion("CHARGE_D_U", LP),
    _motion("DP", LP),
    _motion("HCF", LP),
    _motion("HCB", LP),
)

MOTIONS_CATALOG: tuple[Pattern, ...] = (
    _p(_B, LP),
    _p(_B, MP),
    *(_p(_M, d, LP) for d in (L, R, U, D)),
    _p(_M, L, MP),
    _p(_M, R, MP),
    _motion("QCF", LP),
    _motion("QCF", MP),
    _motion("QCF", HP),
    _motion("QCB", LP),
    _motion("QCB", MP),
    _motion("QCB", LK),
    _motion("CHARGE_B_F", LP),
    _motion("CHARGE_D_U", LK),
    _motion("DP", LP),
    _motion("DP", MP),
    _motion("DP", HP),
    _motion("HCF", LP),
    _motion("HCB", LP),
    _motion("HCB", HK),
    _motion("D_QCF", LP),
)

# Named combos from popular fighting games, in numpad notation.
_REAL_COMBOS: tuple[tuple[str, str, tuple[str, ...], Difficulty, str], ...] = (
    ("Hadoken", "236+P", ("2", "3", "6", "LP"), Difficulty.EASY, "Quarter-circle forward + punch"),
    ("Shoryuken", "623+P", ("6", "2", "3", "LP"), Difficulty.MEDIUM, "Dragon punch motion + punch"),
    ("Tatsumaki Senpukyaku", "214+K", ("2", "1", "4", "LK"), Difficulty.EASY, "Quarter-circle back + kick"),
    ("Basic Target Combo", "MP, HP", ("MP", "HP"), Difficulty.EASY, "Medium punch into heavy punch"),
    ("Crouch MK into Hadoken", "2MK, 236+P", ("2", "MK", "2", "3", "6", "LP"), Difficulty.MEDIUM, "Crouch medium kick cancelled into hadoken"),
    ("Jump-in Combo", "j.HP, 2MP, 236+P", ("9", "HP", "2", "MP", "2", "3", "6", "LP"), Difficulty.MEDIUM, "Jumping heavy punch, crouch medium punch, hadoken"),
    ("Shinku Hadoken", "236236+P", ("2", "3", "6", "2", "3", "6", "LP"), Difficulty.HARD, "Double quarter-circle forward + punch"),
    ("Lightning Legs", "K×5", ("LK", "LK", "LK", "LK", "LK"), Difficulty.MEDIUM, "Rapidly tap kick button"),
    ("Basic Chain", "5A, 5B, 236+A", ("LP", "HP", "2", "3", "6", "LP"), Difficulty.MEDIUM, "Standing A, standing B, fireball"),
    ("Sakahagi", "63214+A", ("6", "3", "2", "1", "4", "LP"), Difficulty.HARD, "Half-circle back + A"),
    ("Electric Wind God Fist", "f,n,d,df+RP", ("6", "5", "2", "3", "RP"), Difficulty.HARD, "Forward, neutral, down, down-forward + right punch"),
    ("Basic Launcher Combo", "df+LP, LP, RP, LK", ("3", "LP", "LP", "RP", "LK"), Difficulty.MEDIUM, "Down-forward left punch, left punch, right punch, left kick"),
    ("Basic Gatling", "5P, 5K, 2D, 236+P", ("LP", "LK", "2", "HK", "2", "3", "6", "LP"), Difficulty.MEDIUM, "Punch, kick, crouch heavy slash, gunflame"),
)


def _real_combo(name: str, notation: str, tokens: tuple[str, ...], tier: Difficulty, description: str) -> Pattern:
    return Pattern(
        notation_to_symbols(tokens),
        PatternInfo(name=name, notation=notation, description=description, tier=tier, family=_C),
    )


REAL_COMBO_PATTERNS: tuple[Pattern, ...] = tuple(_real_combo(*row) for row in _REAL_COMBOS)

COMBOS_CATALOG: tuple[Pattern, ...] = (
    _p(_B, LP),
    _p(_B, MP),
    _p(_C, LP, LP),
    _p(_C, LP, MP),
    _p(_C, MP, LP),
    _p(_C, U, LP),
    _p(_C, D, MP),
    _p(_C, L, R),
    _p(_C, U, D),
    _p(_C, LP, LP, LP),
    _p(_C, LP, MP, LP),
    _p(_C, MP, LP, MP),
    _p(_C, L, LP, MP),
    _p(_C, R, MP, LP),
    _p(_C, U, LP, D),
    _p(_C, LP, LP, MP, MP),
    _p(_C, LP, MP, LP, MP),
    _p(_C, U, LP, D, MP),
    _p(_C, L, LP, MP, R),
    *REAL_COMBO_PATTERNS,
)

BASIC_FAMILY: tuple[Pattern, ...] = (
    _p(_B, U),
    _p(_B, D),
    _p(_B, L),
    _p(_B, R),
    _p(_B, LP),
    _p(_B, MP),
    *(_p(_B, d, LP) for d in (U, D, L, R)),
)

MOTION_FAMILY: tuple[Pattern, ...] = (
    _motion("QCF", LP),
    _motion("QCF", MP),
    _motion("QCB", LP),
    _motion("QCB", MP),
    _motion("DP", LP),
    _motion("DP", MP),
    _motion("HCF", LP),
    _motion("HCB", LP),
    _motion("CHARGE_B_F", LP),
    _motion("CHARGE_D_U", LP),
    _motion("D_QCF", LP),
)

COMBO_FAMILY: tuple[Pattern, ...] = (
    _p(_C, LP, LP),
    _p(_C, LP, MP),
    _p(_C, MP, LP),
    _p(_C, LP, LP, LP),
    _p(_C, LP, MP, LP),
    _p(_C, MP, LP, MP),
    _p(_C, LP, MP, HP),
    _p(_C, LP, LP, MP, MP),
    _p(_C, LP, MP, LP, MP),
    _p(_C, LP, MP, HP, LP),
    _p(_C, LP, LP, MP, MP, LP),
    _p(_C, LP, MP, LP, MP, LP),
    _p(_C, U, LP),
    _p(_C, D, MP),
    _p(_C, L, LP, MP),
    _p(_C, R, MP, LP),
    _p(_C, U, LP, D, MP),
    _p(_C, L, LP, MP, R),
    _p(_C, D, LP, LP, MP, U),
    _p(_C, R, MP, L, LP, MP, LP),
    _p(_C, U, D, LP, MP, LP, MP),
    _p(_C, L, R, L, LP, MP, LP),
    _p(_C, LP, U, MP, D, LP, L, MP),
    _p(_C, U, D),
    _p(_C, L, R),
    _p(_C, U, LP, D),
)

DEFAULT_CATALOGS: dict[TrainingMode, tuple[Pattern, ...]] = {
    TrainingMode.MOTION: MOTION_CATALOG,
    TrainingMode.MOTIONS: MOTIONS_CATALOG,
    TrainingMode.COMBOS: COMBOS_CATALOG,
}

DEFAULT_FAMILIES: dict[PatternFamily, tuple[Pattern, ...]] = {
    PatternFamily.BASIC: BASIC_FAMILY,
    PatternFamily.MOTION: MOTION_FAMILY,
    PatternFamily.COMBO: COMBO_FAMILY,
}


def check_motion_patterns(patterns: Iterable[Pattern]) -> None:
    """Multi-symbol motion patterns are directional prefixes with an attack suffix."""

    for pattern in patterns:
        if pattern.info.family is not PatternFamily.MOTION or len(pattern) < 2:
            continue
        *prefix, last = pattern.symbols
        if not last.is_attack or not all(s.is_direction for s in prefix):
            raise ConfigurationError(f"motion pattern must end with an attack: {pattern.display()}")


class PatternLibrary:
    """Supplies the next target pattern for a training mode and difficulty.

    Fixed modes draw uniformly from their catalog filtered to the difficulty
    tier and all easier tiers. Custom mode draws from the union of the enabled
    families. Custom-combo mode always returns the one user-authored combo.
    Patterns that reference attack buttons disabled by the attack-button mode
    are never returned.
    """

    def __init__(
        self,
        *,
        rng: SeededRng,
        attack_mode: AttackButtonMode = AttackButtonMode.SIX,
        catalogs: Mapping[TrainingMode, tuple[Pattern, ...]] | None = None,
        families: Mapping[PatternFamily, tuple[Pattern, ...]] | None = None,
    ) -> None:
        self._rng = rng
        self._attack_mode = AttackButtonMode(attack_mode)
        self._catalogs = dict(DEFAULT_CATALOGS if catalogs is None else catalogs)
        self._families = dict(DEFAULT_FAMILIES if families is None else families)
        for patterns in (*self._catalogs.values(), *self._families.values()):
            check_motion_patterns(patterns)

    @property
    def attack_mode(self) -> AttackButtonMode:
        return self._attack_mode

    @attack_mode.setter
    def attack_mode(self, mode: AttackButtonMode) -> None:
        self._attack_mode = AttackButtonMode(mode)

    def validate(
        self,
        mode: TrainingMode | str,
        difficulty: Difficulty | str,
        custom_config: CustomConfig | None = None,
        custom_combo: CustomCombo | None = None,
    ) -> None:
        """Raise ConfigurationError unless at least one pattern can be selected."""

        self.pool(mode, difficulty, custom_config, custom_combo)

    def pool(
        self,
        mode: TrainingMode | str,
        difficulty: Difficulty | str,
        custom_config: CustomConfig | None = None,
        custom_combo: CustomCombo | None = None,
    ) -> tuple[Pattern, ...]:
        mode = parse_mode(mode)
        try:
            difficulty = parse_difficulty(difficulty)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from None

        allowed = enabled_symbols(self._attack_mode)

        if mode is TrainingMode.CUSTOM_COMBO:
            if custom_combo is None:
                raise ConfigurationError("select a custom combo first")
            pattern = custom_combo.to_pattern()
            if not pattern.uses_only(allowed):
                raise ConfigurationError(
                    f"custom combo {custom_combo.name!r} uses buttons disabled in "
                    f"{int(self._attack_mode)}-button mode"
                )
            return (pattern,)

        if mode is TrainingMode.CUSTOM:
            config = custom_config if custom_config is not None else CustomConfig()
            config.validate()
            candidates: list[Pattern] = []
            for family in config.enabled_families():
                if family is PatternFamily.CUSTOM:
                    assert config.custom_combo is not None
                    candidates.append(config.custom_combo.to_pattern())
                else:
                    candidates.extend(self._families.get(family, ()))
        else:
            candidates = [p for p in self._catalogs.get(mode, ()) if difficulty.includes(p.tier)]

        pool = tuple(p for p in candidates if p.uses_only(allowed))
        if not pool:
            raise ConfigurationError(
                f"no patterns available for mode {mode.value!r} at {difficulty.value} "
                f"with {int(self._attack_mode)} attack buttons"
            )
        return pool

    def select_pattern(
        self,
        mode: TrainingMode | str,
        difficulty: Difficulty | str,
        custom_config: CustomConfig | None = None,
        custom_combo: CustomCombo | None = None,
    ) -> Pattern:
        pool = self.pool(mode, difficulty, custom_config, custom_combo)
        pattern = pool[0] if len(pool) == 1 else self._rng.choice(pool)
        logger.debug("selected pattern %s (pool=%d, mode=%s)", pattern.display(), len(pool), mode)
        return pattern
