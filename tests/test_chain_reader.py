"""Tests for ResilientChainReader rotation, backoff and circuit breaking."""

from __future__ import annotations

import pytest

from coinleague_sync.chain.errors import NoRpcEndpointsError
from coinleague_sync.chain.health import EndpointHealth
from coinleague_sync.chain.reader import ResilientChainReader
from coinleague_sync.config import ChainReaderConfig

A = "https://a.example"
B = "https://b.example"
CHAIN = 137
FACTORY = "0x43fB5D9d4Dcd6D71d668dc6f12fFf97F35C0Bd7E"


def rate_limited() -> Exception:
    return ValueError({"code": -32090, "message": "Too many requests"})


class FakeTransport:
    """Scripted transport: per-url connect failures and a queue of call outcomes."""

    def __init__(self, outcomes=None, connect_errors=None):
        self.outcomes = list(outcomes or [])
        self.connect_errors = {url: list(errs) for url, errs in (connect_errors or {}).items()}
        self.connected: list[str] = []
        self.calls: list[tuple] = []
        self.closed: list[str] = []

    async def connect(self, url):
        self.connected.append(url)
        errors = self.connect_errors.get(url)
        if errors:
            raise errors.pop(0)
        return url

    async def call(self, handle, address, abi, method, args):
        self.calls.append((handle, method, tuple(args)))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self, handle):
        self.closed.append(handle)


def make_reader(clock, transport, urls=(A, B), health=None):
    return ResilientChainReader(
        {CHAIN: list(urls)},
        health=health or EndpointHealth(clock=clock),
        transport=transport,
        config=ChainReaderConfig(),
        sleep=clock.sleep,
    )


class TestCall:
    """Tests for call() retry behaviour."""

    @pytest.mark.asyncio
    async def test_success_on_primary(self, clock):
        """A healthy primary endpoint answers directly."""
        transport = FakeTransport(outcomes=["0xgame"])
        reader = make_reader(clock, transport)

        result = await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert result == "0xgame"
        assert transport.connected == [A]
        assert transport.calls == [(A, "games", (7,))]

    @pytest.mark.asyncio
    async def test_handle_is_reused(self, clock):
        """Consecutive calls reuse the connected endpoint."""
        transport = FakeTransport(outcomes=[1, 2])
        reader = make_reader(clock, transport)

        await reader.call(CHAIN, FACTORY, [], "games", (1,))
        await reader.call(CHAIN, FACTORY, [], "games", (2,))

        assert transport.connected == [A]

    @pytest.mark.asyncio
    async def test_rate_limit_rotates_endpoint(self, clock):
        """A rate-limited call trips the breaker and the retry uses the next endpoint."""
        transport = FakeTransport(outcomes=[rate_limited(), "ok"])
        health = EndpointHealth(clock=clock)
        reader = make_reader(clock, transport, health=health)

        result = await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert result == "ok"
        assert transport.connected == [A, B]
        assert transport.closed == [A]
        assert 10.0 in clock.sleeps
        assert await health.available([A, B]) == [B]

    @pytest.mark.asyncio
    async def test_rate_limit_backoff_grows_and_caps(self, clock):
        """Consecutive rate limits back off 10s, 20s, ... capped at 30s."""
        transport = FakeTransport(outcomes=[rate_limited(), rate_limited(), rate_limited(), rate_limited(), "ok"])
        reader = ResilientChainReader(
            {CHAIN: [A, B]},
            health=EndpointHealth(clock=clock),
            transport=transport,
            config=ChainReaderConfig(max_retries=5),
            sleep=clock.sleep,
        )

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "ok"

        backoffs = [s for s in clock.sleeps if s >= 10]
        assert backoffs == [10.0, 20.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_retryable_errors_back_off_exponentially(self, clock):
        """Transient errors wait 3s then 6s and keep the endpoint."""
        transport = FakeTransport(outcomes=[TimeoutError("timed out"), ConnectionError("reset"), "ok"])
        reader = make_reader(clock, transport)

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "ok"

        assert [s for s in clock.sleeps if s >= 1] == [3.0, 6.0]
        assert transport.connected == [A]

    @pytest.mark.asyncio
    async def test_fatal_error_propagates_immediately(self, clock):
        """Reverts are raised on the first attempt without retrying."""
        transport = FakeTransport(outcomes=[ValueError("execution reverted")])
        reader = make_reader(clock, transport)

        with pytest.raises(ValueError, match="execution reverted"):
            await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert len(transport.calls) == 1
        assert [s for s in clock.sleeps if s >= 1] == []

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_last_error(self, clock):
        """After max_retries the last observed error is raised, never a default."""
        transport = FakeTransport(
            outcomes=[TimeoutError("first"), TimeoutError("second"), TimeoutError("third")]
        )
        reader = make_reader(clock, transport)

        with pytest.raises(TimeoutError, match="third"):
            await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert len(transport.calls) == 3
        assert [s for s in clock.sleeps if s >= 1] == [3.0, 6.0]

    @pytest.mark.asyncio
    async def test_calls_are_spaced(self, clock):
        """Calls to the same endpoint are spaced by the configured delay."""
        transport = FakeTransport(outcomes=[1, 2])
        reader = make_reader(clock, transport)

        await reader.call(CHAIN, FACTORY, [], "games", (1,))
        await reader.call(CHAIN, FACTORY, [], "games", (2,))

        assert clock.sleeps == pytest.approx([0.3, 0.3])


class TestConnect:
    """Tests for endpoint selection and recovery."""

    @pytest.mark.asyncio
    async def test_unreachable_primary_falls_through(self, clock):
        """A connection failure moves on to the next endpoint after a short pause."""
        transport = FakeTransport(outcomes=["ok"], connect_errors={A: [ConnectionError("refused")]})
        reader = make_reader(clock, transport)

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "ok"
        assert transport.connected == [A, B]
        assert 1.0 in clock.sleeps

    @pytest.mark.asyncio
    async def test_all_disabled_fails_open(self, clock):
        """When every endpoint is disabled the breakers are cleared and retried."""
        health = EndpointHealth(clock=clock)
        await health.disable(A, 60)
        await health.disable(B, 60)
        transport = FakeTransport(outcomes=["ok"])
        reader = make_reader(clock, transport, health=health)

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "ok"
        assert transport.connected == [A]
        assert await health.available([A, B]) == [A, B]

    @pytest.mark.asyncio
    async def test_rate_limited_pass_waits_and_restarts(self, clock):
        """A pass that ends rate limited waits, clears breakers and starts over."""
        transport = FakeTransport(
            outcomes=["ok"],
            connect_errors={A: [rate_limited()], B: [rate_limited()]},
        )
        reader = make_reader(clock, transport)

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "ok"
        assert transport.connected == [A, B, A]
        assert 10.0 in clock.sleeps

    @pytest.mark.asyncio
    async def test_unreachable_everywhere_raises(self, clock):
        """If no endpoint ever connects, every attempt fails and the last error surfaces."""
        transport = FakeTransport(
            connect_errors={
                A: [ConnectionError("a down")] * 3,
                B: [ConnectionError("b down")] * 3,
            }
        )
        reader = make_reader(clock, transport)

        with pytest.raises(ConnectionError, match="b down"):
            await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert transport.connected == [A, B] * 3
        assert transport.calls == []
        assert [s for s in clock.sleeps if s >= 3] == [3.0, 6.0]

    @pytest.mark.asyncio
    async def test_connect_timeout_is_retried(self, clock):
        """A transient failure while connecting is retried with backoff, not raised."""
        transport = FakeTransport(outcomes=["0xgame"], connect_errors={A: [TimeoutError("timed out")]})
        reader = make_reader(clock, transport, urls=(A,))

        assert await reader.call(CHAIN, FACTORY, [], "games", (7,)) == "0xgame"
        assert transport.connected == [A, A]
        assert 3.0 in clock.sleeps

    @pytest.mark.asyncio
    async def test_fatal_connect_error_is_not_retried(self, clock):
        """A fatal connect error propagates on the first attempt."""
        transport = FakeTransport(outcomes=["ok"], connect_errors={A: [ValueError("invalid chain id")]})
        reader = make_reader(clock, transport, urls=(A,))

        with pytest.raises(ValueError, match="invalid chain id"):
            await reader.call(CHAIN, FACTORY, [], "games", (7,))

        assert transport.connected == [A]
        assert [s for s in clock.sleeps if s >= 1] == []

    @pytest.mark.asyncio
    async def test_no_endpoints_configured(self, clock):
        """A chain without endpoints is a configuration error."""
        reader = make_reader(clock, FakeTransport(), urls=())

        with pytest.raises(NoRpcEndpointsError):
            await reader.call(CHAIN, FACTORY, [], "games", (7,))

    @pytest.mark.asyncio
    async def test_close_releases_handles(self, clock):
        """close() disconnects every cached provider."""
        transport = FakeTransport(outcomes=["ok"])
        reader = make_reader(clock, transport)
        await reader.call(CHAIN, FACTORY, [], "games", (7,))

        await reader.close()

        assert transport.closed == [A]
