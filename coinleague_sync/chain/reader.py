"""
Resilient contract reader over a rotating list of public RPC endpoints.

Public endpoints rate limit aggressively and go down without notice. The
reader spaces calls per endpoint, trips a circuit breaker on endpoints
that rate limit, rotates to the next healthy one and backs off on
transient failures. After retries are exhausted the last observed error
is raised; the reader never substitutes a default value.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import ChainReaderConfig
from ..logging import logger
from .abi import ABI
from .errors import ErrorKind, NoRpcEndpointsError, classify_error
from .health import EndpointHealth
from .transport import Web3Transport


@dataclass
class _CallState:
    """Outcome of the latest failed attempt of one call."""

    kind: ErrorKind | None = None
    rate_limits: int = 0


def _is_retryable(exc: BaseException) -> bool:
    return classify_error(exc) is not ErrorKind.FATAL


class ResilientChainReader:
    def __init__(
        self,
        rpc_urls: Mapping[int, Sequence[str]],
        health: EndpointHealth | None = None,
        transport: Any | None = None,
        config: ChainReaderConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or ChainReaderConfig()
        self._rpc_urls = {chain_id: list(urls) for chain_id, urls in rpc_urls.items()}
        self._health = health or EndpointHealth()
        self._transport = transport or Web3Transport(self._config.request_timeout_seconds)
        self._sleep = sleep
        # chain id -> (endpoint url, provider handle)
        self._handles: dict[int, tuple[str, Any]] = {}

    @property
    def health(self) -> EndpointHealth:
        return self._health

    async def call(
        self,
        chain_id: int,
        address: str,
        abi: ABI,
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Call a read-only contract method with retries and endpoint rotation."""
        cfg = self._config
        state = _CallState()
        exponential = wait_exponential(multiplier=cfg.retry_delay_base_seconds)

        def backoff(retry_state: RetryCallState) -> float:
            if state.kind is ErrorKind.RATE_LIMITED:
                return min(
                    cfg.rate_limit_delay_seconds * state.rate_limits,
                    cfg.max_rate_limit_backoff_seconds,
                )
            return exponential(retry_state)

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                "rpc_call_retrying",
                chain_id=chain_id,
                method=method,
                attempt=retry_state.attempt_number,
                max_retries=cfg.max_retries,
                wait_seconds=retry_state.upcoming_sleep,
            )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(cfg.max_retries),
            wait=backoff,
            retry=retry_if_exception(_is_retryable),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                url: str | None = None
                try:
                    url, handle = await self._get_handle(chain_id)
                    await self._health.throttle(url, cfg.rpc_call_delay_seconds, self._sleep)
                    result = await self._transport.call(handle, address, abi, method, args)
                except Exception as exc:
                    await self._record_failure(chain_id, url, method, exc, state)
                    raise
        return result

    async def _record_failure(
        self,
        chain_id: int,
        url: str | None,
        method: str,
        exc: Exception,
        state: _CallState,
    ) -> None:
        state.kind = classify_error(exc)
        if state.kind is ErrorKind.RATE_LIMITED:
            state.rate_limits += 1
            if url is not None:
                await self._health.disable(url, self._config.circuit_breaker_timeout_seconds)
                await self._drop_handle(chain_id, url)
        else:
            state.rate_limits = 0
        logger.warning(
            "rpc_call_failed",
            chain_id=chain_id,
            rpc_url=url,
            method=method,
            kind=state.kind.value,
            error=str(exc),
        )

    async def close(self) -> None:
        handles = list(self._handles.items())
        self._handles.clear()
        for chain_id, (url, handle) in handles:
            try:
                await self._transport.close(handle)
            except Exception as exc:
                logger.debug("rpc_close_failed", chain_id=chain_id, rpc_url=url, error=str(exc))

    async def _get_handle(self, chain_id: int) -> tuple[str, Any]:
        cached = self._handles.get(chain_id)
        if cached is not None:
            return cached
        connected = await self._connect(chain_id)
        self._handles[chain_id] = connected
        return connected

    async def _drop_handle(self, chain_id: int, url: str) -> None:
        cached = self._handles.get(chain_id)
        if cached is None or cached[0] != url:
            return
        del self._handles[chain_id]
        try:
            await self._transport.close(cached[1])
        except Exception as exc:
            logger.debug("rpc_close_failed", chain_id=chain_id, rpc_url=url, error=str(exc))

    async def _connect(self, chain_id: int) -> tuple[str, Any]:
        """Walk healthy endpoints until one answers."""
        cfg = self._config
        urls = self._rpc_urls.get(chain_id)
        if not urls:
            raise NoRpcEndpointsError(f"No RPC endpoints configured for chain {chain_id}")

        last_error: Exception | None = None
        for cycle in range(cfg.max_endpoint_cycles):
            candidates = await self._health.available(urls)
            if not candidates:
                logger.warning("rpc_all_endpoints_disabled", chain_id=chain_id)
                await self._health.reset(urls)
                candidates = list(urls)

            ended_rate_limited = False
            for index, url in enumerate(candidates):
                await self._health.throttle(url, cfg.rpc_call_delay_seconds, self._sleep)
                try:
                    handle = await self._transport.connect(url)
                except Exception as exc:
                    kind = classify_error(exc)
                    if kind is ErrorKind.FATAL:
                        raise
                    last_error = exc
                    ended_rate_limited = kind is ErrorKind.RATE_LIMITED
                    if ended_rate_limited:
                        await self._health.disable(url, cfg.circuit_breaker_timeout_seconds)
                    logger.warning(
                        "rpc_connect_failed",
                        chain_id=chain_id,
                        rpc_url=url,
                        kind=kind.value,
                        error=str(exc),
                    )
                    if index < len(candidates) - 1:
                        await self._sleep(cfg.endpoint_switch_delay_seconds)
                    continue
                logger.debug("rpc_connected", chain_id=chain_id, rpc_url=url)
                return url, handle

            if not ended_rate_limited:
                break
            logger.warning(
                "rpc_endpoints_rate_limited",
                chain_id=chain_id,
                cycle=cycle + 1,
                wait_seconds=cfg.rate_limit_delay_seconds,
            )
            await self._sleep(cfg.rate_limit_delay_seconds)
            await self._health.reset(urls)

        if last_error is None:
            raise NoRpcEndpointsError(f"No RPC endpoint reachable for chain {chain_id}")
        raise last_error
