"""Tests for GameDetailEnricher."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from coinleague_sync.config import EnrichmentConfig
from coinleague_sync.services import game_details
from coinleague_sync.services.game_details import EnrichmentError, GameDetailEnricher
from tests.helpers import address

FACTORY = "0x43fB5D9d4Dcd6D71d668dc6f12fFf97F35C0Bd7E"
ZERO = "0x" + "0" * 40
COIN_A = address("a")
COIN_B = address("b")
COIN_C = address("c")
ALICE = address("d")
BOB = address("2")
CAROL = address("3")
AFFILIATE = address("f")


def game_struct(*, started=True, finished=True, scores_done=True, total=3 * 10**18):
    return (
        7, 0, started, scores_done, finished, False,
        2, 3, 3600, 1_700_000_000, 1_700_003_600,
        10**18, total, ZERO,
    )


PLAYERS = [
    ([COIN_B], "0x" + "D" * 40, COIN_A, 50, AFFILIATE),
    ([COIN_C], BOB, COIN_A, 20, ZERO),
    ([COIN_B], CAROL, COIN_C, 90, ZERO),
]

PLAYER_FEEDS = {0: [COIN_B], 1: [COIN_C], 2: [COIN_B]}


class FakeReader:
    """Answers factory reads from fixed data and records every call."""

    def __init__(self, struct=None, players=PLAYERS, fail_on: str | None = None):
        self.struct = struct or game_struct()
        self.players = players
        self.fail_on = fail_on
        self.calls: list[tuple[str, tuple]] = []

    async def call(self, chain_id, address, abi, method, args=()):
        self.calls.append((method, tuple(args)))
        if method == self.fail_on:
            raise TimeoutError("rpc exhausted")
        if method == "games":
            return self.struct
        if method == "getPlayers":
            return self.players
        if method == "playerCoinFeeds":
            return PLAYER_FEEDS[args[0]]
        if method == "coins":
            coin = args[1]
            return (coin, 100, 0 if coin == COIN_C else 110, 0 if coin == COIN_C else 10)
        raise AssertionError(f"unexpected method {method}")


@pytest.fixture
def store(monkeypatch):
    """Patch the persistence helpers used by the enricher with AsyncMocks."""
    mocks = {
        "update_game_state": AsyncMock(),
        "ensure_accounts": AsyncMock(return_value=0),
        "upsert_participant": AsyncMock(side_effect=lambda session, game_id, player: (100 + player.index, True)),
        "increment_joined_games": AsyncMock(),
        "add_participant_coin_feeds": AsyncMock(),
        "ensure_tokens": AsyncMock(),
        "upsert_coin_feed": AsyncMock(),
        "insert_result_once": AsyncMock(return_value=True),
        "record_win": AsyncMock(),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(game_details, name, mock)
    return mocks


def make_enricher(reader, session_scope, sleep=None, factory=FACTORY):
    return GameDetailEnricher(
        reader,
        session_scope=session_scope,
        config=EnrichmentConfig(player_read_delay_seconds=0.3),
        factory_resolver=lambda chain_id: factory,
        sleep=sleep or AsyncMock(),
    )


class TestReads:
    """Tests for the contract read sequence."""

    @pytest.mark.asyncio
    async def test_each_coin_read_once(self, store, session_scope):
        """Coins shared between players are read a single time."""
        reader = FakeReader()
        await make_enricher(reader, session_scope).enrich(1, 7, address("9"), 137, 0)

        coin_reads = sorted(args[1] for method, args in reader.calls if method == "coins")
        assert coin_reads == [COIN_A, COIN_B, COIN_C]

    @pytest.mark.asyncio
    async def test_player_reads_are_spaced(self, store, session_scope):
        """Per-player feed reads are sequential with a delay between them."""
        sleep = AsyncMock()
        reader = FakeReader()
        await make_enricher(reader, session_scope, sleep=sleep).enrich(1, 7, address("9"), 137, 0)

        feed_reads = [args for method, args in reader.calls if method == "playerCoinFeeds"]
        assert feed_reads == [(0, 7), (1, 7), (2, 7)]
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.3)

    @pytest.mark.asyncio
    async def test_read_failure_propagates_without_writes(self, store, session_scope):
        """A failed contract read raises and nothing is written."""
        reader = FakeReader(fail_on="getPlayers")
        with pytest.raises(TimeoutError):
            await make_enricher(reader, session_scope).enrich(1, 7, address("9"), 137, 0)

        assert session_scope.sessions == []
        store["update_game_state"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_factory(self, store, session_scope):
        """Chains without a factory cannot be enriched."""
        with pytest.raises(EnrichmentError):
            await make_enricher(FakeReader(), session_scope, factory=None).enrich(1, 7, address("9"), 56, 0)


class TestWrites:
    """Tests for what gets persisted."""

    @pytest.mark.asyncio
    async def test_game_state_update(self, store, session_scope):
        """Status, timestamps, total and player count come from chain."""
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        store["update_game_state"].assert_awaited_once()
        kwargs = store["update_game_state"].await_args.kwargs
        assert kwargs["status"] == "Ended"
        assert kwargs["started_at"] == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert kwargs["ended_at"] == datetime.fromtimestamp(1_700_003_600, tz=timezone.utc)
        assert kwargs["total_amount_collected"] == 3 * 10**18
        assert kwargs["current_players"] == 3
        assert len(session_scope.sessions) == 1

    @pytest.mark.asyncio
    async def test_waiting_game_has_no_timestamps(self, store, session_scope):
        """A game that has not started has no started_at/ended_at."""
        reader = FakeReader(struct=game_struct(started=False, finished=False, scores_done=False))
        await make_enricher(reader, session_scope).enrich(1, 7, address("9"), 137, 0)

        kwargs = store["update_game_state"].await_args.kwargs
        assert kwargs["status"] == "Waiting"
        assert kwargs["started_at"] is None
        assert kwargs["ended_at"] is None
        store["insert_result_once"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_participants_and_accounts(self, store, session_scope):
        """Players and real affiliates get accounts; addresses are lowercased."""
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        accounts = store["ensure_accounts"].await_args.args[1]
        assert set(accounts) == {ALICE, BOB, CAROL, AFFILIATE}

        players = [call.args[2] for call in store["upsert_participant"].await_args_list]
        assert [p.player_address for p in players] == [ALICE, BOB, CAROL]
        assert players[0].affiliate == AFFILIATE
        assert players[1].affiliate is None

        feeds = [call.args[1:] for call in store["add_participant_coin_feeds"].await_args_list]
        assert feeds == [(100, (COIN_B,)), (101, (COIN_C,)), (102, (COIN_B,))]

    @pytest.mark.asyncio
    async def test_joined_counter_only_for_new_participants(self, store, session_scope):
        """total_joined_games grows only when the participant row is new."""
        store["upsert_participant"].side_effect = lambda session, game_id, player: (
            100 + player.index,
            player.index == 0,
        )
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        store["increment_joined_games"].assert_awaited_once()
        assert store["increment_joined_games"].await_args.args[1] == ALICE

    @pytest.mark.asyncio
    async def test_tokens_and_coin_feeds(self, store, session_scope):
        """Every distinct coin gets a placeholder token and a coin feed row."""
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        tokens = set(store["ensure_tokens"].await_args.args[2])
        assert tokens == {COIN_A, COIN_B, COIN_C}
        coins = {call.args[2].coin_feed: call.args[2] for call in store["upsert_coin_feed"].await_args_list}
        assert coins[COIN_A].end_price == 110
        assert coins[COIN_C].end_price == 0


class TestResult:
    """Tests for winner recording."""

    @pytest.mark.asyncio
    async def test_bear_winner(self, store, session_scope):
        """In a bear game the lowest score wins; 3 players → 80% prize."""
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        kwargs = store["insert_result_once"].await_args.kwargs
        assert kwargs["winner"] == BOB
        assert kwargs["score"] == 20
        assert kwargs["prize"] == 3 * 10**18 * 8 // 10
        assert kwargs["captain_coin"] == COIN_A
        store["record_win"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bull_winner(self, store, session_scope):
        """In a bull game the highest score wins."""
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 1)

        assert store["insert_result_once"].await_args.kwargs["winner"] == CAROL

    @pytest.mark.asyncio
    async def test_existing_result_not_counted_again(self, store, session_scope):
        """A result already on file does not bump the winner's counters."""
        store["insert_result_once"].return_value = False
        await make_enricher(FakeReader(), session_scope).enrich(1, 7, address("9"), 137, 0)

        store["record_win"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_result_before_scores(self, store, session_scope):
        """Finished games without final scores get no result yet."""
        reader = FakeReader(struct=game_struct(scores_done=False))
        await make_enricher(reader, session_scope).enrich(1, 7, address("9"), 137, 0)

        store["insert_result_once"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_result_without_players(self, store, session_scope):
        """A finished game without players has no winner."""
        reader = FakeReader(players=[])
        await make_enricher(reader, session_scope).enrich(1, 7, address("9"), 137, 0)

        store["insert_result_once"].assert_not_awaited()
