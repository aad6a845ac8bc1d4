"""Canonical game enums."""

from __future__ import annotations

from enum import Enum, IntEnum


class GameType(IntEnum):
    """Bear games are won by the lowest score, bull games by the highest."""

    BEAR = 0
    BULL = 1


class GameStatus(str, Enum):
    """Game lifecycle: Waiting → Started → Ended."""

    WAITING = "Waiting"
    STARTED = "Started"
    ENDED = "Ended"
