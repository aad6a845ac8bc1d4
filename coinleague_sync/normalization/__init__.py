"""Normalize heterogeneous indexer encodings into canonical values."""

from __future__ import annotations

from typing import Any

from ..enums import GameStatus, GameType
from ..utils.parsing import parse_big_int

_BULL_ALIASES = {"bull", "1"}


def normalize_game_type(value: Any) -> GameType:
    """Map any source encoding of a game type onto GameType.

    "Bull"/"bull"/"1"/1 (and big-integer or hex encodings of 1) are bull;
    everything else, including missing values, is bear.
    """
    if isinstance(value, GameType):
        return value
    if value is None:
        return GameType.BEAR
    if isinstance(value, str) and value.strip().lower() in _BULL_ALIASES:
        return GameType.BULL
    if parse_big_int(value) == 1:
        return GameType.BULL
    return GameType.BEAR


def normalize_status(value: Any) -> GameStatus:
    """Case-insensitive status mapping; unknown values become Waiting."""
    if isinstance(value, GameStatus):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for status in GameStatus:
            if status.value.lower() == lowered:
                return status
    return GameStatus.WAITING


def parse_timestamp(value: Any) -> int | None:
    """Unix seconds from an indexer field; 0 and garbage mean absent."""
    parsed = parse_big_int(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed
