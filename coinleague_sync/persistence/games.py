"""Game persistence helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import literal_column, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Game, GameResult
from ..enums import GameStatus
from ..logging import logger
from ..utils.datetime_utils import now_utc

# Columns fixed at creation time
_INSERT_ONLY_COLUMNS = {"int_id", "chain_id", "creator_address", "created_at"}


@dataclass(frozen=True)
class ExistingGame:
    id: int
    int_id: int
    address: str
    creator_address: str
    status: str
    has_result: bool

    @property
    def finalized(self) -> bool:
        """Ended with a stored result; nothing left to reconcile."""
        return self.status == GameStatus.ENDED.value and self.has_result


async def load_existing_games(
    session: AsyncSession, chain_id: int, int_ids: Iterable[int]
) -> dict[int, ExistingGame]:
    """Bulk-load stored games for one chain, keyed by int_id."""
    ids = sorted(set(int_ids))
    if not ids:
        return {}
    stmt = (
        select(
            Game.id,
            Game.int_id,
            Game.address,
            Game.creator_address,
            Game.status,
            GameResult.id.is_not(None).label("has_result"),
        )
        .outerjoin(GameResult, GameResult.game_id == Game.id)
        .where(Game.chain_id == chain_id, Game.int_id.in_(ids))
    )
    result = await session.execute(stmt)
    return {
        row.int_id: ExistingGame(
            id=row.id,
            int_id=row.int_id,
            address=row.address,
            creator_address=row.creator_address,
            status=row.status,
            has_result=bool(row.has_result),
        )
        for row in result.all()
    }


async def upsert_game(session: AsyncSession, values: dict[str, Any]) -> tuple[int, bool]:
    """Insert or update a game on (int_id, chain_id).

    Returns (game_id, inserted).
    """
    base_stmt = insert(Game).values(**values)
    conflict_updates = {
        column: getattr(base_stmt.excluded, column)
        for column in values
        if column not in _INSERT_ONLY_COLUMNS
    }
    conflict_updates["updated_at"] = now_utc()

    stmt = base_stmt.on_conflict_do_update(
        constraint="uq_game_chain_int_id",
        set_=conflict_updates,
    ).returning(
        Game.id,
        (literal_column("xmax") == 0).label("inserted"),
    )
    row = (await session.execute(stmt)).first()
    if not row:
        raise RuntimeError("Failed to upsert game")
    game_id, inserted = row
    logger.debug(
        "game_upserted",
        game_id=game_id,
        int_id=values.get("int_id"),
        chain_id=values.get("chain_id"),
        inserted=bool(inserted),
    )
    return game_id, bool(inserted)


async def update_game_state(session: AsyncSession, game_id: int, **values: Any) -> None:
    values["updated_at"] = now_utc()
    await session.execute(update(Game).where(Game.id == game_id).values(**values))
