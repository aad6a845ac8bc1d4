"""GameResult persistence helpers."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import GameResult


async def insert_result_once(
    session: AsyncSession,
    *,
    game_id: int,
    winner: str,
    score: int,
    prize: int,
    captain_coin: str,
) -> bool:
    """Write the winner row unless one exists. Returns True when inserted."""
    stmt = (
        insert(GameResult)
        .values(
            game_id=game_id,
            user_address=winner,
            position=1,
            score=Decimal(score),
            prize=Decimal(prize),
            captain_coin=captain_coin,
        )
        .on_conflict_do_nothing(index_elements=["game_id"])
        .returning(GameResult.id)
    )
    result = await session.execute(stmt)
    return result.first() is not None
