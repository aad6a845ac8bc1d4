"""
Game reconciliation pipeline.

Pages through the subgraph, upserts base game rows and hands each
processed game to the detail enricher. Always returns a SyncResult; a
failure never escapes ``sync()``.

Counters:
- synced: games inserted
- updated: existing games refreshed
- skipped: unparsable ids, existing games without updateExisting, finalized games
- errors: per-game failures (details in errors_details)
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..chain.abi import FACTORY_GAME_ADDRESS_ABI
from ..chain.reader import ResilientChainReader
from ..config_chains import ZERO_ADDRESS, get_factory_address
from ..db import get_async_session
from ..indexer.client import IndexerClient, IndexerEndpointUnavailable, IndexerError
from ..logging import logger
from ..models import IndexedGame, SyncRequest, SyncResult
from ..persistence.games import ExistingGame, load_existing_games, upsert_game
from ..persistence.users import ensure_accounts, existing_addresses
from ..utils.datetime_utils import now_utc
from ..utils.parsing import normalize_address
from .game_details import GameDetailEnricher

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class _Totals:
    synced: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[str] = field(default_factory=list)

    def fail(self, int_id: object, message: str) -> None:
        self.errors += 1
        self.details.append(f"Game {int_id}: {message}")

    def result(self, success: bool = True, error: str | None = None) -> SyncResult:
        return SyncResult(
            success=success,
            synced=self.synced,
            updated=self.updated,
            skipped=self.skipped,
            errors=self.errors,
            errors_details=self.details or None,
            error=error,
        )


class GameSyncService:
    def __init__(
        self,
        indexer: IndexerClient,
        reader: ResilientChainReader,
        enricher: GameDetailEnricher,
        session_scope: SessionScope = get_async_session,
        factory_resolver: Callable[[int], str | None] = get_factory_address,
    ) -> None:
        self._indexer = indexer
        self._reader = reader
        self._enricher = enricher
        self._session_scope = session_scope
        self._factory_resolver = factory_resolver

    async def sync(self, request: SyncRequest) -> SyncResult:
        """Reconcile one chain's games. Never raises."""
        chain_id = request.chain_id
        if chain_id is None:
            return SyncResult(success=False, error="chainId is required")
        if not self._indexer.endpoint_for(chain_id):
            return SyncResult(
                success=False, error=f"No GraphQL endpoint configured for chainId {chain_id}"
            )
        factory = self._factory_resolver(chain_id)
        if not factory:
            return SyncResult(
                success=False, error=f"No factory address found for chainId {chain_id}"
            )

        totals = _Totals()
        logger.info(
            "sync_started",
            chain_id=chain_id,
            status=request.status,
            limit=request.limit,
            skip=request.skip,
            sync_all=request.sync_all,
            update_existing=request.update_existing,
        )
        try:
            await self._run(request, chain_id, factory, totals)
        except IndexerEndpointUnavailable as exc:
            logger.error("sync_indexer_unavailable", chain_id=chain_id, error=str(exc))
            return totals.result(success=False, error=str(exc))
        except IndexerError as exc:
            logger.error("sync_indexer_failed", chain_id=chain_id, error=str(exc))
            return totals.result(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("sync_failed", chain_id=chain_id, error=str(exc))
            return totals.result(success=False, error=str(exc) or exc.__class__.__name__)

        logger.info(
            "sync_completed",
            chain_id=chain_id,
            synced=totals.synced,
            updated=totals.updated,
            skipped=totals.skipped,
            errors=totals.errors,
        )
        if totals.details:
            logger.warning("sync_error_details", chain_id=chain_id, details=totals.details[:5])
        return totals.result()

    async def _run(self, request: SyncRequest, chain_id: int, factory: str, totals: _Totals) -> None:
        async with self._session_scope() as session:
            await ensure_accounts(session, [ZERO_ADDRESS])

        skip = request.skip
        while True:
            games = await self._indexer.fetch_games(
                chain_id, status=request.status, skip=skip, first=request.limit
            )
            if not games:
                break

            page_errors_before = totals.errors
            await self._process_page(games, request, chain_id, factory, totals)
            logger.info(
                "sync_page_done",
                chain_id=chain_id,
                skip=skip,
                fetched=len(games),
                errors=totals.errors - page_errors_before,
            )

            if request.sync_all and len(games) == request.limit:
                skip += request.limit
            else:
                break

    async def _process_page(
        self,
        games: list[IndexedGame],
        request: SyncRequest,
        chain_id: int,
        factory: str,
        totals: _Totals,
    ) -> None:
        valid_ids = [g.int_id for g in games if g.int_id is not None and g.int_id > 0]
        async with self._session_scope() as session:
            existing = await load_existing_games(session, chain_id, valid_ids)
            known_creators = await existing_addresses(
                session,
                {g.creator_address for g in existing.values() if g.creator_address != ZERO_ADDRESS},
            )
        known_creators.add(ZERO_ADDRESS)

        for game in games:
            int_id = game.int_id
            if int_id is None or int_id <= 0:
                logger.debug("sync_game_invalid_id", chain_id=chain_id, raw_id=game.id)
                totals.skipped += 1
                continue

            stored = existing.get(int_id)
            if stored is not None and (not request.update_existing or stored.finalized):
                totals.skipped += 1
                continue

            try:
                game_id, address = await self._upsert(
                    game, int_id, chain_id, factory, stored, known_creators, totals
                )
            except Exception as exc:
                logger.warning("sync_game_failed", chain_id=chain_id, int_id=int_id, error=str(exc))
                totals.fail(int_id, str(exc) or exc.__class__.__name__)
                continue

            try:
                await self._enricher.enrich(game_id, int_id, address, chain_id, int(game.game_type))
            except Exception as exc:
                logger.warning(
                    "sync_game_details_failed", chain_id=chain_id, int_id=int_id, error=str(exc)
                )
                totals.fail(int_id, f"details: {exc}")

    async def _upsert(
        self,
        game: IndexedGame,
        int_id: int,
        chain_id: int,
        factory: str,
        stored: ExistingGame | None,
        known_creators: set[str],
        totals: _Totals,
    ) -> tuple[int, str]:
        address = stored.address if stored else None
        if not address or address == ZERO_ADDRESS:
            address = await self._resolve_address(chain_id, factory, int_id)

        creator = (stored.creator_address if stored else None) or ZERO_ADDRESS
        if creator not in known_creators:
            async with self._session_scope() as session:
                await ensure_accounts(session, [creator])
            known_creators.add(creator)

        values = {
            "int_id": int_id,
            "chain_id": chain_id,
            "address": address,
            "type": int(game.game_type),
            "status": game.status.value,
            "duration": game.duration,
            "num_coins": game.num_coins,
            "num_players": game.num_players,
            "current_players": game.current_players,
            "entry": game.entry,
            "coin_to_play": game.coin_to_play,
            "amount_to_play": game.entry,
            "start_timestamp": game.start_timestamp,
            "abort_timestamp": game.abort_timestamp,
            "started_at": game.started_at,
            "ended_at": game.ended_at,
            "creator_address": creator,
            "created_at": game.created_at or now_utc(),
        }
        async with self._session_scope() as session:
            game_id, inserted = await upsert_game(session, values)

        if inserted:
            totals.synced += 1
            logger.info("sync_game_created", chain_id=chain_id, int_id=int_id)
        else:
            totals.updated += 1
        return game_id, address

    async def _resolve_address(self, chain_id: int, factory: str, int_id: int) -> str:
        """Per-game contract address from the factory; zero address on failure."""
        try:
            resolved = await self._reader.call(
                chain_id, factory, FACTORY_GAME_ADDRESS_ABI, "games", (int_id,)
            )
        except Exception as exc:
            logger.warning(
                "sync_game_address_unresolved", chain_id=chain_id, int_id=int_id, error=str(exc)
            )
            return ZERO_ADDRESS
        return normalize_address(resolved) or ZERO_ADDRESS
