"""Decoded factory contract return values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..utils.parsing import normalize_address


@dataclass(frozen=True)
class OnChainGame:
    id: int
    game_type: int
    started: bool
    scores_done: bool
    finished: bool
    aborted: bool
    num_coins: int
    num_players: int
    duration: int
    start_timestamp: int
    abort_timestamp: int
    amount_to_play: int
    total_amount_collected: int
    coin_to_play: str

    @classmethod
    def from_call(cls, raw: Sequence[Any]) -> "OnChainGame":
        (
            game_id, game_type, started, scores_done, finished, aborted,
            num_coins, num_players, duration, start_ts, abort_ts,
            amount_to_play, total_collected, coin_to_play,
        ) = raw
        return cls(
            id=int(game_id),
            game_type=int(game_type),
            started=bool(started),
            scores_done=bool(scores_done),
            finished=bool(finished),
            aborted=bool(aborted),
            num_coins=int(num_coins),
            num_players=int(num_players),
            duration=int(duration),
            start_timestamp=int(start_ts),
            abort_timestamp=int(abort_ts),
            amount_to_play=int(amount_to_play),
            total_amount_collected=int(total_collected),
            coin_to_play=normalize_address(coin_to_play) or "",
        )


@dataclass(frozen=True)
class OnChainPlayer:
    index: int
    player_address: str
    captain_coin: str
    score: int
    affiliate: str | None
    coin_feeds: tuple[str, ...] = ()

    @classmethod
    def from_call(cls, index: int, raw: Sequence[Any]) -> "OnChainPlayer":
        coin_feeds, player_address, captain_coin, score, affiliate = raw
        return cls(
            index=index,
            player_address=normalize_address(player_address) or "",
            captain_coin=normalize_address(captain_coin) or "",
            score=int(score),
            affiliate=normalize_address(affiliate),
            coin_feeds=tuple(normalize_address(c) or "" for c in coin_feeds),
        )


@dataclass(frozen=True)
class OnChainCoin:
    coin_feed: str
    start_price: int
    end_price: int
    score: int

    @classmethod
    def from_call(cls, raw: Sequence[Any]) -> "OnChainCoin":
        coin_feed, start_price, end_price, score = raw
        return cls(
            coin_feed=normalize_address(coin_feed) or "",
            start_price=int(start_price),
            end_price=int(end_price),
            score=int(score),
        )
