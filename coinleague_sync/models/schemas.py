"""Pydantic models for indexer records and sync requests/results."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config_chains import ZERO_ADDRESS
from ..normalization import normalize_game_type, normalize_status, parse_timestamp
from ..utils.datetime_utils import from_unix, now_unix
from ..utils.parsing import normalize_address, parse_big_int, parse_int
from ..enums import GameStatus, GameType


class IndexedGame(BaseModel):
    """One game record as returned by the subgraph, decoded at the boundary.

    ``int_id`` is None when the source id cannot be parsed; callers skip
    such records instead of failing the page.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    int_id: int | None = Field(None, alias="intId")
    game_type: GameType = Field(GameType.BEAR, alias="type")
    duration: int = 0
    status: GameStatus = GameStatus.WAITING
    num_coins: int = Field(2, alias="numCoins")
    num_players: int = Field(2, alias="numPlayers")
    current_players: int = Field(0, alias="currentPlayers")
    entry: int = 0
    created_at_ts: int | None = Field(None, alias="createdAt")
    started_at_ts: int | None = Field(None, alias="startedAt")
    starts_at_ts: int | None = Field(None, alias="startsAt")
    aborted_at_ts: int | None = Field(None, alias="abortedAt")
    ended_at_ts: int | None = Field(None, alias="endedAt")
    coin_to_play: str = Field(ZERO_ADDRESS, alias="coinToPlay")

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("int_id", mode="before")
    @classmethod
    def _parse_int_id(cls, v: Any) -> int | None:
        return parse_big_int(v)

    @field_validator("game_type", mode="before")
    @classmethod
    def _parse_game_type(cls, v: Any) -> GameType:
        return normalize_game_type(v)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> GameStatus:
        return normalize_status(v)

    @field_validator("duration", "entry", "current_players", mode="before")
    @classmethod
    def _parse_zero_default(cls, v: Any) -> int:
        return parse_int(v, 0)

    @field_validator("num_coins", "num_players", mode="before")
    @classmethod
    def _parse_two_default(cls, v: Any) -> int:
        return parse_int(v, 2)

    @field_validator(
        "created_at_ts", "started_at_ts", "starts_at_ts", "aborted_at_ts", "ended_at_ts",
        mode="before",
    )
    @classmethod
    def _parse_ts(cls, v: Any) -> int | None:
        return parse_timestamp(v)

    @field_validator("coin_to_play", mode="before")
    @classmethod
    def _parse_coin(cls, v: Any) -> str:
        return normalize_address(v) or ZERO_ADDRESS

    @property
    def start_timestamp(self) -> int:
        return self.starts_at_ts or self.started_at_ts or self.created_at_ts or now_unix()

    @property
    def abort_timestamp(self) -> int:
        return self.aborted_at_ts or self.start_timestamp + self.duration

    @property
    def started_at(self) -> datetime | None:
        return from_unix(self.started_at_ts)

    @property
    def ended_at(self) -> datetime | None:
        return from_unix(self.ended_at_ts)

    @property
    def created_at(self) -> datetime | None:
        return from_unix(self.created_at_ts)


class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: int | None = Field(None, alias="chainId")
    limit: int = Field(100, ge=1, le=1000)
    status: str | None = None
    skip: int = Field(0, ge=0)
    sync_all: bool = Field(False, alias="syncAll")
    update_existing: bool = Field(False, alias="updateExisting")


class SyncResult(BaseModel):
    """Outcome of one reconciliation run. Serialize with ``by_alias=True``."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    synced: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    errors_details: list[str] | None = Field(None, alias="errorsDetails")
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
