"""UserAccount persistence helpers."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import UserAccount
from ..utils.datetime_utils import now_utc


async def existing_addresses(session: AsyncSession, addresses: Iterable[str]) -> set[str]:
    """Which of ``addresses`` already have an account."""
    wanted = {a for a in addresses if a}
    if not wanted:
        return set()
    result = await session.execute(
        select(UserAccount.address).where(UserAccount.address.in_(wanted))
    )
    return set(result.scalars().all())


async def ensure_accounts(session: AsyncSession, addresses: Iterable[str]) -> int:
    """Create accounts for unknown addresses; concurrent creators are harmless.

    Returns the number of accounts actually created.
    """
    unique = sorted({a for a in addresses if a})
    if not unique:
        return 0
    stmt = (
        insert(UserAccount)
        .values([{"address": address} for address in unique])
        .on_conflict_do_nothing(index_elements=["address"])
        .returning(UserAccount.address)
    )
    result = await session.execute(stmt)
    return len(result.scalars().all())


async def increment_joined_games(session: AsyncSession, address: str) -> None:
    await session.execute(
        update(UserAccount)
        .where(UserAccount.address == address)
        .values(
            total_joined_games=UserAccount.total_joined_games + 1,
            updated_at=now_utc(),
        )
    )


async def record_win(session: AsyncSession, address: str, prize: int) -> None:
    await session.execute(
        update(UserAccount)
        .where(UserAccount.address == address)
        .values(
            total_winned_games=UserAccount.total_winned_games + 1,
            total_earned=UserAccount.total_earned + Decimal(prize),
            updated_at=now_utc(),
        )
    )
