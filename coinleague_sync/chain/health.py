"""Shared per-endpoint state: circuit breakers and call spacing."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Iterable


class EndpointHealth:
    """Circuit-breaker map (url → disabled-until) and last-call map (url → time).

    One instance is shared by every reader in the process. All mutations
    happen under an asyncio.Lock; sleeps never hold it.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._disabled_until: dict[str, float] = {}
        self._last_call: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def available(self, urls: Iterable[str]) -> list[str]:
        """Endpoints not currently disabled, in the given order."""
        async with self._lock:
            now = self._clock()
            for url, until in list(self._disabled_until.items()):
                if until <= now:
                    del self._disabled_until[url]
            return [url for url in urls if url not in self._disabled_until]

    async def disable(self, url: str, seconds: float) -> None:
        async with self._lock:
            self._disabled_until[url] = self._clock() + seconds

    async def reset(self, urls: Iterable[str] | None = None) -> None:
        """Clear breakers for ``urls``, or all of them."""
        async with self._lock:
            if urls is None:
                self._disabled_until.clear()
                return
            for url in urls:
                self._disabled_until.pop(url, None)

    async def throttle(
        self,
        url: str,
        spacing: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Wait until ``spacing`` seconds have passed since the last call to ``url``."""
        async with self._lock:
            now = self._clock()
            last = self._last_call.get(url)
            slot = now if last is None else max(now, last + spacing)
            self._last_call[url] = slot
        wait = slot - now
        if wait > 0:
            await sleep(wait)
