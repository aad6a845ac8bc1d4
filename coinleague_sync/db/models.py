"""CoinLeague game models: accounts, games, participants, coin feeds, results."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..enums import GameStatus
from .base import Base

# Signed int256 fits in 78 decimal digits
WEI = Numeric(78, 0)
ADDRESS = String(42)


class UserAccount(Base):
    """A wallet seen as creator, player, affiliate or winner."""

    __tablename__ = "user_accounts"

    address: Mapped[str] = mapped_column(ADDRESS, primary_key=True)
    username: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    total_joined_games: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    total_winned_games: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    total_earned: Mapped[Decimal] = mapped_column(WEI, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Game(Base):
    """One CoinLeague game, keyed by its factory id on a chain."""

    __tablename__ = "games"
    __table_args__ = (
        UniqueConstraint("int_id", "chain_id", name="uq_game_chain_int_id"),
        Index("idx_games_chain_status", "chain_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    int_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    address: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=GameStatus.WAITING.value, nullable=False)
    duration: Mapped[int] = mapped_column(BigInteger, nullable=False)
    num_coins: Mapped[int] = mapped_column(Integer, nullable=False)
    num_players: Mapped[int] = mapped_column(Integer, nullable=False)
    current_players: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    entry: Mapped[Decimal] = mapped_column(WEI, nullable=False)
    coin_to_play: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    amount_to_play: Mapped[Decimal] = mapped_column(WEI, nullable=False)
    total_amount_collected: Mapped[Decimal | None] = mapped_column(WEI, nullable=True)
    start_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    abort_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    creator_address: Mapped[str] = mapped_column(
        ADDRESS, ForeignKey("user_accounts.address"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    participants: Mapped[list["GameParticipant"]] = relationship(
        "GameParticipant", back_populates="game", cascade="all, delete-orphan"
    )
    coin_feeds: Mapped[list["GameCoinFeed"]] = relationship(
        "GameCoinFeed", back_populates="game", cascade="all, delete-orphan"
    )
    result: Mapped["GameResult | None"] = relationship(
        "GameResult", back_populates="game", uselist=False, cascade="all, delete-orphan"
    )


class GameParticipant(Base):
    __tablename__ = "game_participants"
    __table_args__ = (
        UniqueConstraint("game_id", "user_address", name="uq_participant_game_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_address: Mapped[str] = mapped_column(ADDRESS, ForeignKey("user_accounts.address"), nullable=False)
    captain_coin: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    affiliate: Mapped[str | None] = mapped_column(ADDRESS, ForeignKey("user_accounts.address"), nullable=True)
    player_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    game: Mapped[Game] = relationship("Game", back_populates="participants")
    coin_feeds: Mapped[list["GameParticipantCoinFeed"]] = relationship(
        "GameParticipantCoinFeed", back_populates="participant", cascade="all, delete-orphan"
    )


class GameParticipantCoinFeed(Base):
    """A non-captain coin picked by a participant."""

    __tablename__ = "game_participant_coin_feeds"
    __table_args__ = (
        UniqueConstraint("participant_id", "token_address", name="uq_participant_coin_feed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("game_participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_address: Mapped[str] = mapped_column(ADDRESS, nullable=False)

    participant: Mapped[GameParticipant] = relationship("GameParticipant", back_populates="coin_feeds")


class GameToken(Base):
    """Token metadata per chain. Unknown feeds get placeholder metadata."""

    __tablename__ = "game_tokens"
    __table_args__ = (
        UniqueConstraint("chain_id", "address", name="uq_game_token_chain_address"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    address: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    symbol: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    base: Mapped[str] = mapped_column(String(20), nullable=False)
    base_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class GameCoinFeed(Base):
    """Price and score of one coin within a game. NULL end_price/score: not final yet."""

    __tablename__ = "game_coin_feeds"
    __table_args__ = (
        UniqueConstraint("game_id", "token_address", name="uq_game_coin_feed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_address: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    start_price: Mapped[Decimal] = mapped_column(WEI, nullable=False)
    end_price: Mapped[Decimal | None] = mapped_column(WEI, nullable=True)
    score: Mapped[Decimal | None] = mapped_column(WEI, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    game: Mapped[Game] = relationship("Game", back_populates="coin_feeds")


class GameResult(Base):
    """The winner of a finished game. Written once."""

    __tablename__ = "game_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    user_address: Mapped[str] = mapped_column(ADDRESS, ForeignKey("user_accounts.address"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    score: Mapped[Decimal] = mapped_column(WEI, nullable=False)
    prize: Mapped[Decimal] = mapped_column(WEI, nullable=False)
    captain_coin: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    game: Mapped[Game] = relationship("Game", back_populates="result")
