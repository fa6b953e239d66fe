"""Optional broadcast relay collaborator.

The relay mirrors input events to other participants and reports an
aggregate ``waiting|active`` status. The trainer never waits on it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol

from .matcher import InputEvent

logger = logging.getLogger(__name__)


class RelayStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"


def parse_relay_state(payload: Mapping[str, Any] | str | None) -> RelayStatus | None:
    """Project a relay game-state payload to its status; None when absent or unknown."""

    if payload is None:
        return None
    raw = payload if isinstance(payload, str) else payload.get("status")
    try:
        return RelayStatus(str(raw).strip().lower())
    except ValueError:
        return None


class Relay(Protocol):
    def publish_input(self, event: InputEvent) -> None: ...


class NullRelay:
    def publish_input(self, event: InputEvent) -> None:
        return None


def publish_quietly(relay: Relay, event: InputEvent) -> None:
    """Fire-and-forget publish; relay failures never reach the trainer."""

    try:
        relay.publish_input(event)
    except Exception:
        logger.warning("relay publish failed for %s", event.symbol.value, exc_info=True)
