"""Winner ranking and prize split for finished games."""

from __future__ import annotations

from typing import Sequence

from ..enums import GameStatus, GameType
from ..models import OnChainGame, OnChainPlayer

# Winner share of the pot, and of that share when the game had more than three players
WINNER_SHARE = (8, 10)
LARGE_GAME_WINNER_SHARE = (6, 10)
LARGE_GAME_THRESHOLD = 3


def rank_players(players: Sequence[OnChainPlayer], game_type: int) -> list[OnChainPlayer]:
    """Order players best first.

    Bear games rank by ascending score, bull games by descending score. The
    sort is stable, so on ties the earlier player index ranks higher.
    """
    ordered = sorted(players, key=lambda p: p.index)
    if game_type == GameType.BEAR:
        return sorted(ordered, key=lambda p: p.score)
    return sorted(ordered, key=lambda p: -p.score)


def winner_prize(total_amount_collected: int, num_players: int) -> int:
    """Prize paid to the winner, in the smallest token unit."""
    prize = total_amount_collected * WINNER_SHARE[0] // WINNER_SHARE[1]
    if num_players > LARGE_GAME_THRESHOLD:
        prize = prize * LARGE_GAME_WINNER_SHARE[0] // LARGE_GAME_WINNER_SHARE[1]
    return prize


def derive_status(game: OnChainGame) -> GameStatus:
    if game.finished:
        return GameStatus.ENDED
    if game.started:
        return GameStatus.STARTED
    return GameStatus.WAITING
