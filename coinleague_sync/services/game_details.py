"""
On-chain detail enrichment for a single game.

Reads the factory's game struct, players, per-player coin feeds and
per-coin prices, then writes everything in one transaction: game state,
participants, participant coin feeds, placeholder tokens, game coin
feeds and (for finished, scored games) the winner's result.

All reads happen before the transaction opens so no connection is held
while waiting on the chain.
"""

from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..chain.abi import FACTORY_ABI
from ..chain.reader import ResilientChainReader
from ..config import EnrichmentConfig
from ..config_chains import get_factory_address
from ..db import get_async_session
from ..logging import logger
from ..models import OnChainCoin, OnChainGame, OnChainPlayer
from ..persistence.coin_feeds import ensure_tokens, upsert_coin_feed
from ..persistence.games import update_game_state
from ..persistence.participants import add_participant_coin_feeds, upsert_participant
from ..persistence.results import insert_result_once
from ..persistence.users import ensure_accounts, increment_joined_games, record_win
from ..utils.datetime_utils import from_unix
from ..utils.parsing import normalize_address
from .payouts import derive_status, rank_players, winner_prize

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class EnrichmentError(RuntimeError):
    """Raised when a game cannot be enriched (e.g. no factory on the chain)."""


@dataclass
class GameSnapshot:
    """Everything read from chain for one game."""

    game: OnChainGame
    players: list[OnChainPlayer]
    coins: dict[str, OnChainCoin] = field(default_factory=dict)


class GameDetailEnricher:
    def __init__(
        self,
        reader: ResilientChainReader,
        session_scope: SessionScope = get_async_session,
        config: EnrichmentConfig | None = None,
        factory_resolver: Callable[[int], str | None] = get_factory_address,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._reader = reader
        self._session_scope = session_scope
        self._config = config or EnrichmentConfig()
        self._factory_resolver = factory_resolver
        self._sleep = sleep

    async def enrich(
        self,
        game_id: int,
        int_id: int,
        contract_address: str,
        chain_id: int,
        game_type: int,
    ) -> None:
        """Refresh one stored game from the factory contract.

        ``contract_address`` is the per-game address; reads go through the
        chain's factory, which keys games by ``int_id``.
        """
        factory = self._factory_resolver(chain_id)
        if not factory:
            raise EnrichmentError(f"No factory address configured for chain {chain_id}")

        snapshot = await self._read_snapshot(chain_id, factory, int_id)
        await self._write_snapshot(game_id, chain_id, game_type, snapshot)
        logger.info(
            "game_enriched",
            game_id=game_id,
            int_id=int_id,
            chain_id=chain_id,
            contract_address=contract_address,
            players=len(snapshot.players),
            coins=len(snapshot.coins),
        )

    async def _call(self, chain_id: int, factory: str, method: str, *args: Any) -> Any:
        return await self._reader.call(chain_id, factory, FACTORY_ABI, method, args)

    async def _read_snapshot(self, chain_id: int, factory: str, int_id: int) -> GameSnapshot:
        game = OnChainGame.from_call(await self._call(chain_id, factory, "games", int_id))
        raw_players = await self._call(chain_id, factory, "getPlayers", int_id)

        players: list[OnChainPlayer] = []
        for index, raw in enumerate(raw_players):
            if index:
                await self._sleep(self._config.player_read_delay_seconds)
            feeds = await self._call(chain_id, factory, "playerCoinFeeds", index, int_id)
            player = OnChainPlayer.from_call(index, raw)
            players.append(replace(player, coin_feeds=tuple(normalize_address(a) or "" for a in feeds)))

        snapshot = GameSnapshot(game=game, players=players)
        for player in players:
            for coin in (player.captain_coin, *player.coin_feeds):
                if not coin or coin in snapshot.coins:
                    continue
                raw_coin = await self._call(chain_id, factory, "coins", int_id, coin)
                snapshot.coins[coin] = replace(OnChainCoin.from_call(raw_coin), coin_feed=coin)
        return snapshot

    async def _write_snapshot(
        self, game_id: int, chain_id: int, game_type: int, snapshot: GameSnapshot
    ) -> None:
        game = snapshot.game
        players = snapshot.players

        async with self._session_scope() as session:
            await update_game_state(
                session,
                game_id,
                status=derive_status(game).value,
                started_at=from_unix(game.start_timestamp) if game.started else None,
                ended_at=from_unix(game.abort_timestamp) if game.finished else None,
                total_amount_collected=game.total_amount_collected,
                current_players=len(players),
            )

            accounts = [p.player_address for p in players]
            accounts.extend(p.affiliate for p in players if p.affiliate and not _is_zero(p.affiliate))
            await ensure_accounts(session, accounts)

            for player in players:
                participant_id, inserted = await upsert_participant(session, game_id, _clean_affiliate(player))
                if inserted:
                    await increment_joined_games(session, player.player_address)
                await add_participant_coin_feeds(session, participant_id, player.coin_feeds)

            await ensure_tokens(session, chain_id, snapshot.coins.keys())
            for coin in snapshot.coins.values():
                await upsert_coin_feed(session, game_id, coin)

            if game.finished and game.scores_done and players:
                await self._record_winner(session, game_id, game_type, game, players)

    async def _record_winner(
        self,
        session: AsyncSession,
        game_id: int,
        game_type: int,
        game: OnChainGame,
        players: list[OnChainPlayer],
    ) -> None:
        winner = rank_players(players, game_type)[0]
        prize = winner_prize(game.total_amount_collected, len(players))
        inserted = await insert_result_once(
            session,
            game_id=game_id,
            winner=winner.player_address,
            score=winner.score,
            prize=prize,
            captain_coin=winner.captain_coin,
        )
        if inserted:
            await record_win(session, winner.player_address, prize)
            logger.info(
                "game_result_recorded",
                game_id=game_id,
                winner=winner.player_address,
                score=winner.score,
                prize=prize,
            )


def _is_zero(address: str) -> bool:
    return int(address, 16) == 0


def _clean_affiliate(player: OnChainPlayer) -> OnChainPlayer:
    """The contract reports "no affiliate" as the zero address."""
    if player.affiliate and not _is_zero(player.affiliate):
        return player
    return replace(player, affiliate=None)
