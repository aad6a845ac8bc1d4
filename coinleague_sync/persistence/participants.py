"""Participant and participant coin-feed persistence helpers."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import literal_column
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import GameParticipant, GameParticipantCoinFeed
from ..models import OnChainPlayer


async def upsert_participant(
    session: AsyncSession, game_id: int, player: OnChainPlayer
) -> tuple[int, bool]:
    """Insert or refresh a participant. Returns (participant_id, inserted)."""
    stmt = insert(GameParticipant).values(
        game_id=game_id,
        user_address=player.player_address,
        captain_coin=player.captain_coin,
        affiliate=player.affiliate,
        player_index=player.index,
    )
    stmt = stmt.on_conflict_do_update(
        constraint="uq_participant_game_user",
        set_={
            "captain_coin": stmt.excluded.captain_coin,
            "affiliate": stmt.excluded.affiliate,
            "player_index": stmt.excluded.player_index,
        },
    ).returning(
        GameParticipant.id,
        (literal_column("xmax") == 0).label("inserted"),
    )
    participant_id, inserted = (await session.execute(stmt)).one()
    return participant_id, bool(inserted)


async def add_participant_coin_feeds(
    session: AsyncSession, participant_id: int, token_addresses: Iterable[str]
) -> None:
    """Append coin feeds; feeds already recorded are skipped."""
    rows = [
        {"participant_id": participant_id, "token_address": address}
        for address in dict.fromkeys(a for a in token_addresses if a)
    ]
    if not rows:
        return
    await session.execute(
        insert(GameParticipantCoinFeed)
        .values(rows)
        .on_conflict_do_nothing(constraint="uq_participant_coin_feed")
    )
