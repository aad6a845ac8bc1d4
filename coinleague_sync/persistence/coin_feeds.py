"""Token and per-game coin feed persistence helpers."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import GameCoinFeed, GameToken
from ..models import OnChainCoin
from ..utils.datetime_utils import now_utc

PLACEHOLDER_TOKEN = {
    "symbol": "UNKNOWN",
    "name": "Unknown Token",
    "base": "USD",
    "base_name": "US Dollar",
    "is_active": True,
}


async def ensure_tokens(session: AsyncSession, chain_id: int, addresses: Iterable[str]) -> None:
    """Create placeholder tokens for feeds we have no metadata for."""
    rows = [
        {"chain_id": chain_id, "address": address, **PLACEHOLDER_TOKEN}
        for address in dict.fromkeys(a for a in addresses if a)
    ]
    if not rows:
        return
    await session.execute(
        insert(GameToken)
        .values(rows)
        .on_conflict_do_nothing(constraint="uq_game_token_chain_address")
    )


def _nullable(value: int) -> Decimal | None:
    # Zero on chain means not settled yet
    return Decimal(value) if value else None


async def upsert_coin_feed(session: AsyncSession, game_id: int, coin: OnChainCoin) -> None:
    stmt = insert(GameCoinFeed).values(
        game_id=game_id,
        token_address=coin.coin_feed,
        start_price=Decimal(coin.start_price),
        end_price=_nullable(coin.end_price),
        score=_nullable(coin.score),
    )
    stmt = stmt.on_conflict_do_update(
        constraint="uq_game_coin_feed",
        set_={
            "start_price": stmt.excluded.start_price,
            "end_price": stmt.excluded.end_price,
            "score": stmt.excluded.score,
            "updated_at": now_utc(),
        },
    )
    await session.execute(stmt)
