"""Async GraphQL client for the per-chain CoinLeague subgraphs."""

from __future__ import annotations

from typing import Any, Callable

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import IndexerConfig
from ..config_chains import get_indexer_endpoint
from ..logging import logger
from ..models import IndexedGame
from .queries import build_games_query

TERMINAL_MARKERS = ("removed", "not found")


class IndexerError(RuntimeError):
    """Raised when the indexer cannot return a page of games."""


class IndexerEndpointUnavailable(IndexerError):
    """The endpoint has been removed or no longer exists.

    This is not retried - the endpoint needs reconfiguring.
    """


class IndexerQueryError(IndexerError):
    """Any other GraphQL, HTTP or transport failure."""


class IndexerNotConfigured(IndexerError):
    """No indexer endpoint is configured for the chain."""


def _raise_for_message(message: str) -> None:
    if any(marker in message.lower() for marker in TERMINAL_MARKERS):
        raise IndexerEndpointUnavailable(message)
    raise IndexerQueryError(message)


class IndexerClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        config: IndexerConfig | None = None,
        endpoint_resolver: Callable[[int], str | None] = get_indexer_endpoint,
        retry_wait: Any = None,
    ) -> None:
        self._config = config or IndexerConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._config.request_timeout_seconds,
            headers={"Content-Type": "application/json"},
        )
        self._resolve_endpoint = endpoint_resolver
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    def endpoint_for(self, chain_id: int) -> str | None:
        return self._resolve_endpoint(chain_id)

    async def fetch_games(
        self,
        chain_id: int,
        status: str | None = None,
        skip: int = 0,
        first: int = 100,
    ) -> list[IndexedGame]:
        """Fetch one page of games, newest first."""
        endpoint = self._resolve_endpoint(chain_id)
        if not endpoint:
            raise IndexerNotConfigured(f"No indexer endpoint configured for chain {chain_id}")

        query, variables = build_games_query(status=status, skip=skip, first=first)
        payload = await self._post(endpoint, {"query": query, "variables": variables})

        errors = payload.get("errors")
        if errors:
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            logger.warning("indexer_query_errors", chain_id=chain_id, errors=messages)
            _raise_for_message("; ".join(messages))

        data = payload.get("data") or {}
        raw_games = data.get("games") or []
        games = [IndexedGame.model_validate(raw) for raw in raw_games if isinstance(raw, dict)]
        logger.debug(
            "indexer_page_fetched",
            chain_id=chain_id,
            status=status,
            skip=skip,
            first=first,
            count=len(games),
        )
        return games

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._config.transport_retry_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(endpoint, json=body)
        except httpx.TransportError as exc:
            logger.error("indexer_transport_failed", endpoint=endpoint, error=str(exc))
            raise IndexerQueryError(f"Indexer request failed: {exc}") from exc

        if response.status_code >= 400:
            _raise_for_message(f"Indexer HTTP {response.status_code}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise IndexerQueryError(f"Indexer returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise IndexerQueryError("Indexer returned an unexpected payload")
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
