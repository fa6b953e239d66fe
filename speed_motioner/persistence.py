from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from .achievements import AchievementTracker
from .history import TrainingHistory
from .patterns import CustomComboBook
from .results import utc_now_iso

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

TRAINING_KEY = "speed-motioner-training"
ACHIEVEMENTS_KEY = "speed-motioner-achievements"
CUSTOM_COMBOS_KEY = "speed-motioner-custom-combos"


class KeyValueStore(Protocol):
    def get(self, key: str) -> dict[str, Any] | None: ...
    def put(self, key: str, value: Mapping[str, Any]) -> None: ...


class MemoryKeyValueStore:
    """In-process store; values are JSON round-tripped like the sqlite store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._data.get(key)
        return None if raw is None else _decode(key, raw)

    def put(self, key: str, value: Mapping[str, Any]) -> None:
        self._data[key] = json.dumps(dict(value))


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteKeyValueStore:
    """JSON blobs keyed by name in a single sqlite table."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        if str(self._path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = open_db(self._path)

    def get(self, key: str) -> dict[str, Any] | None:
        row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return _decode(key, str(row[0]))

    def put(self, key: str, value: Mapping[str, Any]) -> None:
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO kv_store(key, value, updated_at_utc) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at_utc = excluded.updated_at_utc
                """,
                (key, json.dumps(dict(value)), utc_now_iso()),
            )
        logger.debug("stored %s in %s", key, self._path)

    def close(self) -> None:
        self._conn.close()


def _decode(key: str, raw: str) -> dict[str, Any] | None:
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("ignoring unreadable blob for %s", key)
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def load_history(store: KeyValueStore, *, player_name: str = "Player") -> TrainingHistory:
    data = store.get(TRAINING_KEY)
    if data is None:
        return TrainingHistory(player_name=player_name)
    return TrainingHistory.from_dict(data, player_name=player_name)


def save_history(store: KeyValueStore, history: TrainingHistory) -> None:
    store.put(TRAINING_KEY, history.to_dict())


def load_achievements(store: KeyValueStore) -> AchievementTracker:
    data = store.get(ACHIEVEMENTS_KEY)
    return AchievementTracker() if data is None else AchievementTracker.from_dict(data)


def save_achievements(store: KeyValueStore, tracker: AchievementTracker) -> None:
    store.put(ACHIEVEMENTS_KEY, tracker.to_dict())


def load_custom_combos(store: KeyValueStore) -> CustomComboBook:
    data = store.get(CUSTOM_COMBOS_KEY)
    return CustomComboBook() if data is None else CustomComboBook.from_dict(data)


def save_custom_combos(store: KeyValueStore, book: CustomComboBook) -> None:
    store.put(CUSTOM_COMBOS_KEY, book.to_dict())
