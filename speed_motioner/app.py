"""Pygame shell for the Speed Motioner trainer.

Keyboard and gamepad input are reduced to symbols and pushed into the
training session; the screen is a plain text status readout. Timing,
matching, scoring and history live in the core modules.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable

import pygame

from .achievements import AchievementTracker
from .clock import RealClock
from .config import AppConfig, configure_logging
from .history import TrainingHistory
from .input_source import GamepadEdgeDetector, InputBus, KeyboardTranslator, PadState
from .matcher import AttemptStatus
from .patterns import ConfigurationError, CustomComboBook, PatternLibrary
from .persistence import KeyValueStore, SqliteKeyValueStore, load_achievements, load_custom_combos, load_history
from .session import SessionPhase, SessionSnapshot, TrainingSession
from .settings import Settings
from .symbols import display_sequence
from .training_core import SeededRng

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_STATUS_TEXT = {
    AttemptStatus.SUCCESS: "Correct!",
    AttemptStatus.WRONG: "Wrong input",
    AttemptStatus.TIMEOUT: "Too slow",
}


class TrainerScreen:
    """Owns one training session at a time; Enter starts, Esc cancels."""

    def __init__(
        self,
        *,
        font: pygame.font.Font,
        config: AppConfig,
        settings: Settings,
        store: KeyValueStore,
        history: TrainingHistory,
        achievements: AchievementTracker,
        combos: CustomComboBook | None = None,
    ) -> None:
        self._font = font
        self._config = config
        self._settings = settings
        self._store = store
        self._history = history
        self._achievements = achievements
        self._combos = combos if combos is not None else CustomComboBook()

        self._clock = RealClock()
        self._bus = InputBus(clock=self._clock, attack_mode=settings.attack_button_mode)
        self._keys = KeyboardTranslator(settings)
        self._pads = GamepadEdgeDetector(settings)

        self._session: TrainingSession | None = None
        self._detach: Callable[[], None] | None = None
        self._error = ""

    @property
    def session(self) -> TrainingSession | None:
        return self._session

    @property
    def error(self) -> str:
        return self._error

    def start_session(self) -> None:
        library = PatternLibrary(rng=SeededRng(_new_seed()), attack_mode=self._settings.attack_button_mode)
        try:
            session = TrainingSession(
                clock=self._clock,
                library=library,
                config=self._config.session_config(self._combos),
                history=self._history,
                achievements=self._achievements,
                store=self._store,
            )
            session.start()
        except ConfigurationError as exc:
            self._error = str(exc)
            logger.warning("cannot start session: %s", exc)
            return
        self._error = ""
        self.end_session()
        self._session = session
        self._detach = session.attach(self._bus)

    def end_session(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        if self._session is not None:
            self._session.cancel()
            self._session = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.JOYDEVICEREMOVED:
            self._pads.forget(getattr(event, "instance_id", None))
            return
        if event.type != pygame.KEYDOWN:
            return

        if event.key == pygame.K_ESCAPE:
            self.end_session()
            return

        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._session is None or self._session.phase is SessionPhase.COMPLETED:
                self.start_session()
            return

        symbol = self._keys.translate(pygame.key.name(event.key))
        if symbol is not None:
            self._bus.emit(symbol)

    def poll_gamepads(self) -> None:
        for joystick in _iter_connected_joysticks():
            for symbol in self._pads.poll(joystick.get_instance_id(), _pad_state(joystick)):
                self._bus.emit(symbol)

    def update(self) -> None:
        if self._session is not None:
            self._session.update()

    def render(self, surface: pygame.Surface) -> None:
        surface.fill((10, 10, 14))
        lines = self._status_lines()
        y = 40
        for text in lines:
            surface.blit(self._font.render(text, True, (235, 235, 245)), (40, y))
            y += 44

    def _status_lines(self) -> list[str]:
        mode = f"{self._config.mode.value} / {self._config.difficulty.value}"
        if self._session is None:
            lines = [f"Speed Motioner ({mode})", "Press Enter to start."]
            if self._error:
                lines.append(self._error)
            return lines
        return _snapshot_lines(self._session.snapshot(), mode)


def _snapshot_lines(snap: SessionSnapshot, mode: str) -> list[str]:
    score = snap.score
    header = (
        f"{mode}   points {score.points}   streak {score.current_streak}   "
        f"accuracy {score.accuracy_percent:.0f}%   {score.elapsed_seconds}s"
    )
    if snap.phase is SessionPhase.COUNTDOWN:
        return [header, f"Get ready... {snap.countdown_step}"]
    if snap.phase is SessionPhase.COMPLETED:
        return [
            header,
            f"Done: {score.correct_attempts}/{score.total_attempts} correct, max streak {score.max_streak}",
            "Press Enter to go again.",
        ]

    lines = [header]
    if snap.target is not None:
        done = display_sequence(snap.target[: snap.matched_prefix_length])
        todo = display_sequence(snap.target[snap.matched_prefix_length :])
        lines.append(snap.target_name or "Input:")
        lines.append(f"[{done}] {todo}")
    if snap.phase is SessionPhase.AWAITING_INPUT and snap.time_remaining_ms is not None:
        lines.append(f"{snap.time_remaining_ms / 1000.0:.1f}s   {snap.attempts_remaining} left")
    if snap.phase is SessionPhase.COOLDOWN and snap.last_status is not None:
        text = _STATUS_TEXT.get(snap.last_status, "")
        if snap.points_earned:
            text = f"{text} +{snap.points_earned}"
        lines.append(text)
    return lines


def _pad_state(joystick: pygame.joystick.Joystick) -> PadState:
    return PadState(
        buttons=tuple(bool(joystick.get_button(i)) for i in range(joystick.get_numbuttons())),
        axes=tuple(float(joystick.get_axis(i)) for i in range(joystick.get_numaxes())),
        hats=tuple(tuple(joystick.get_hat(i)) for i in range(joystick.get_numhats())),
    )


def _iter_connected_joysticks() -> list[pygame.joystick.Joystick]:
    joysticks: list[pygame.joystick.Joystick] = []
    try:
        count = int(pygame.joystick.get_count())
    except pygame.error:
        return joysticks
    for idx in range(count):
        try:
            js = pygame.joystick.Joystick(idx)
            if not js.get_init():
                js.init()
            joysticks.append(js)
        except pygame.error:
            continue
    return joysticks


def _init_joysticks() -> None:
    # Safe on platforms with no joystick support.
    try:
        pygame.joystick.init()
    except pygame.error:
        return
    _iter_connected_joysticks()


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    config = AppConfig.from_env()
    configure_logging(config.log_level)

    store = SqliteKeyValueStore(config.resolved_db_path())
    settings = Settings(attack_button_mode=config.attack_button_mode)

    pygame.init()
    _init_joysticks()

    pygame.display.set_caption("Speed Motioner")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    screen = TrainerScreen(
        font=font,
        config=config,
        settings=settings,
        store=store,
        history=load_history(store),
        achievements=load_achievements(store),
        combos=load_custom_combos(store),
    )

    running = True
    frame = 0
    try:
        while running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                    break
                screen.handle_event(event)

            screen.poll_gamepads()
            screen.update()
            screen.render(surface)

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        screen.end_session()
        pygame.quit()
        store.close()

    return 0
