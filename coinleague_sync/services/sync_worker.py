"""
Per-chain background sync workers.

Each worker polls its chain on a fixed interval. A tick that fires while
the previous sync is still running is skipped, so syncs for one chain
never overlap. Failures are recorded in the worker state and never stop
the poll loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable

from structlog.contextvars import bound_contextvars

from ..logging import logger
from ..models import SyncRequest, SyncResult
from ..utils.datetime_utils import now_utc

SyncFn = Callable[[SyncRequest], Awaitable[SyncResult]]

DEFAULT_POLL_INTERVAL_SECONDS = 120.0
DEFAULT_PAGE_SIZE = 50


@dataclass
class SyncWorkerState:
    is_running: bool = False
    last_sync_time: datetime | None = None
    last_error: str | None = None
    games_synced: int = 0
    errors: int = 0
    start_time: datetime | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class ChainSyncWorker:
    def __init__(
        self,
        chain_id: int,
        sync_fn: SyncFn,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.chain_id = chain_id
        self.poll_interval = poll_interval
        self._sync_fn = sync_fn
        self._page_size = page_size
        self._state = SyncWorkerState()
        self._processing = False
        self._poll_task: asyncio.Task | None = None
        self._sync_tasks: set[asyncio.Task] = set()

    @property
    def is_processing(self) -> bool:
        return self._processing

    def start(self) -> None:
        """Fire an immediate sync and start polling. Needs a running event loop."""
        if self._state.is_running:
            logger.warning("sync_worker_already_running", chain_id=self.chain_id)
            return
        self._state.is_running = True
        self._state.start_time = now_utc()
        logger.info(
            "sync_worker_started", chain_id=self.chain_id, poll_interval=self.poll_interval
        )
        self.tick()
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"sync-poll-{self.chain_id}"
        )

    def stop(self) -> None:
        """Stop polling. A sync already in flight runs to completion."""
        if not self._state.is_running:
            logger.warning("sync_worker_not_running", chain_id=self.chain_id)
            return
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        self._state.is_running = False
        logger.info("sync_worker_stopped", chain_id=self.chain_id)

    async def wait_idle(self, timeout: float | None = None) -> None:
        if self._sync_tasks:
            await asyncio.wait(set(self._sync_tasks), timeout=timeout)

    def get_state(self) -> SyncWorkerState:
        return replace(self._state)

    def tick(self) -> bool:
        """Schedule one sync unless one is in flight. Returns whether it was scheduled."""
        if self._processing:
            logger.debug("sync_worker_tick_skipped", chain_id=self.chain_id)
            return False
        # Claimed before the task is scheduled so a concurrent tick sees it
        self._processing = True
        task = asyncio.create_task(self._run_guarded(), name=f"sync-run-{self.chain_id}")
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            self.tick()

    async def _run_guarded(self) -> None:
        try:
            await self._sync_once()
        finally:
            self._processing = False

    async def _sync_once(self) -> None:
        started = now_utc()
        request = SyncRequest(
            chain_id=self.chain_id,
            limit=self._page_size,
            update_existing=True,
            sync_all=False,
        )
        try:
            with bound_contextvars(trigger="worker"):
                result = await self._sync_fn(request)
        except Exception as exc:
            self._state.last_error = str(exc) or exc.__class__.__name__
            self._state.errors += 1
            logger.exception("sync_worker_sync_failed", chain_id=self.chain_id, error=str(exc))
            return

        duration_ms = int((now_utc() - started).total_seconds() * 1000)
        self._state.last_sync_time = now_utc()
        self._state.games_synced += result.synced + result.updated
        self._state.errors += result.errors
        self._state.last_error = result.error

        if result.success:
            logger.info(
                "sync_worker_sync_completed",
                chain_id=self.chain_id,
                synced=result.synced,
                updated=result.updated,
                skipped=result.skipped,
                errors=result.errors,
                duration_ms=duration_ms,
            )
        else:
            logger.warning(
                "sync_worker_sync_unsuccessful",
                chain_id=self.chain_id,
                error=result.error,
                details=(result.errors_details or [])[:3],
            )


class WorkerManager:
    """Owns one ChainSyncWorker per chain id."""

    def __init__(
        self,
        sync_fn: SyncFn,
        default_poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._sync_fn = sync_fn
        self._default_poll_interval = default_poll_interval
        self._page_size = page_size
        self._workers: dict[int, ChainSyncWorker] = {}
        # Stopped workers whose last sync may still be running
        self._draining: list[ChainSyncWorker] = []

    def start_worker(self, chain_id: int, poll_interval: float | None = None) -> bool:
        """Start a worker for ``chain_id``; no-op (False) when one exists."""
        if chain_id in self._workers:
            logger.warning("sync_worker_exists", chain_id=chain_id)
            return False
        interval = poll_interval or self._default_poll_interval
        # Reuse a stopped worker whose sync is still running
        worker = self._take_draining(chain_id)
        if worker is None:
            worker = ChainSyncWorker(
                chain_id, self._sync_fn, poll_interval=interval, page_size=self._page_size
            )
        else:
            worker.poll_interval = interval
            logger.info("sync_worker_revived", chain_id=chain_id)
        self._workers[chain_id] = worker
        worker.start()
        return True

    def stop_worker(self, chain_id: int) -> bool:
        worker = self._workers.pop(chain_id, None)
        if worker is None:
            logger.warning("sync_worker_missing", chain_id=chain_id)
            return False
        worker.stop()
        if worker.is_processing:
            self._draining.append(worker)
        return True

    def _take_draining(self, chain_id: int) -> ChainSyncWorker | None:
        self._draining = [w for w in self._draining if w.is_processing]
        for worker in self._draining:
            if worker.chain_id == chain_id:
                self._draining.remove(worker)
                return worker
        return None

    def stop_all(self) -> None:
        for chain_id in list(self._workers):
            self.stop_worker(chain_id)

    async def wait_idle(self, timeout: float | None = None) -> None:
        """Wait for in-flight syncs, including those of stopped workers."""
        workers = [*self._workers.values(), *self._draining]
        await asyncio.gather(*(w.wait_idle(timeout) for w in workers))
        self._draining = [w for w in self._draining if w.is_processing]

    def get_worker_state(self, chain_id: int) -> SyncWorkerState | None:
        worker = self._workers.get(chain_id)
        return worker.get_state() if worker else None

    def get_all_workers_state(self) -> dict[int, SyncWorkerState]:
        return {chain_id: worker.get_state() for chain_id, worker in self._workers.items()}
