from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .patterns import MIN_TIMING_OVERRIDE_MS, ConfigurationError, CustomCombo, CustomComboBook, CustomConfig, parse_mode
from .session import SessionConfig
from .symbols import AttackButtonMode
from .training_core import Difficulty, TrainingMode, parse_difficulty

MODE_ENV = "SPEED_MOTIONER_MODE"
DIFFICULTY_ENV = "SPEED_MOTIONER_DIFFICULTY"
ATTEMPTS_ENV = "SPEED_MOTIONER_ATTEMPTS"
SECONDS_PER_INPUT_ENV = "SPEED_MOTIONER_SECONDS_PER_INPUT"
CUSTOM_COMBO_ENV = "SPEED_MOTIONER_CUSTOM_COMBO"
ATTACK_BUTTONS_ENV = "SPEED_MOTIONER_ATTACK_BUTTONS"
DB_PATH_ENV = "SPEED_MOTIONER_DB_PATH"
LOG_LEVEL_ENV = "SPEED_MOTIONER_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_COMBO_MODES = (TrainingMode.CUSTOM, TrainingMode.CUSTOM_COMBO)


@dataclass(frozen=True, slots=True)
class AppConfig:
    mode: TrainingMode = TrainingMode.MOTION
    difficulty: Difficulty = Difficulty.EASY
    target_attempt_count: int | None = None
    seconds_per_input: float | None = None
    custom_combo: str | None = None
    attack_button_mode: AttackButtonMode = AttackButtonMode.SIX
    db_path: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        def raw(name: str) -> str:
            return str(env.get(name, "")).strip()

        mode = TrainingMode.MOTION
        if raw(MODE_ENV):
            try:
                mode = parse_mode(raw(MODE_ENV))
            except ValueError as exc:
                raise ValueError(f"{MODE_ENV}: {exc}") from None

        difficulty = Difficulty.EASY
        if raw(DIFFICULTY_ENV):
            try:
                difficulty = parse_difficulty(raw(DIFFICULTY_ENV))
            except ValueError as exc:
                raise ValueError(f"{DIFFICULTY_ENV}: {exc}") from None

        attempts: int | None = None
        if raw(ATTEMPTS_ENV):
            try:
                attempts = int(raw(ATTEMPTS_ENV))
            except ValueError:
                raise ValueError(f"{ATTEMPTS_ENV} must be an integer") from None
            if attempts <= 0:
                raise ValueError(f"{ATTEMPTS_ENV} must be > 0")

        seconds: float | None = None
        if raw(SECONDS_PER_INPUT_ENV):
            try:
                seconds = float(raw(SECONDS_PER_INPUT_ENV))
            except ValueError:
                raise ValueError(f"{SECONDS_PER_INPUT_ENV} must be a number") from None
            if not math.isfinite(seconds) or seconds * 1000.0 < MIN_TIMING_OVERRIDE_MS:
                raise ValueError(f"{SECONDS_PER_INPUT_ENV} must be at least {MIN_TIMING_OVERRIDE_MS / 1000.0:g}")

        attack_mode = AttackButtonMode.SIX
        if raw(ATTACK_BUTTONS_ENV):
            try:
                attack_mode = AttackButtonMode(int(raw(ATTACK_BUTTONS_ENV)))
            except ValueError:
                raise ValueError(f"{ATTACK_BUTTONS_ENV} must be 4 or 6") from None

        db_path = Path(raw(DB_PATH_ENV)).expanduser() if raw(DB_PATH_ENV) else None

        level = raw(LOG_LEVEL_ENV).upper() or "WARNING"
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"{LOG_LEVEL_ENV}: unknown level {level!r}")

        return cls(
            mode=mode,
            difficulty=difficulty,
            target_attempt_count=attempts,
            seconds_per_input=seconds,
            custom_combo=raw(CUSTOM_COMBO_ENV) or None,
            attack_button_mode=attack_mode,
            db_path=db_path,
            log_level=level,
        )

    def resolved_db_path(self) -> Path:
        if self.db_path is not None:
            return self.db_path
        return Path.home() / ".speed_motioner.sqlite3"

    def custom_config(self, combo: CustomCombo | None = None) -> CustomConfig | None:
        if self.mode is not TrainingMode.CUSTOM:
            return None
        return CustomConfig(
            include_basic=True,
            include_motions=True,
            include_combos=True,
            include_custom_combo=combo is not None,
            custom_combo=combo,
            seconds_per_input=self.seconds_per_input,
            target_attempt_count=self.target_attempt_count,
        )

    def session_config(self, combos: CustomComboBook) -> SessionConfig:
        """Resolve the selected custom combo (by id or name) against the stored book."""

        combo: CustomCombo | None = None
        if self.custom_combo is not None and self.mode in _COMBO_MODES:
            combo = combos.find(self.custom_combo)
            if combo is None:
                raise ConfigurationError(f"custom combo not found: {self.custom_combo!r}")
        return SessionConfig(
            mode=self.mode,
            difficulty=self.difficulty,
            target_attempt_count=self.target_attempt_count,
            custom=self.custom_config(combo),
            custom_combo=combo if self.mode is TrainingMode.CUSTOM_COMBO else None,
        )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
