"""Wiring: builds the reader, indexer client, enricher, pipeline and worker manager."""

from __future__ import annotations

from dataclasses import dataclass

from .chain.health import EndpointHealth
from .chain.reader import ResilientChainReader
from .config import Settings, settings as default_settings
from .config_chains import all_rpc_urls
from .db import close_db
from .indexer.client import IndexerClient
from .logging import logger
from .services.game_details import GameDetailEnricher
from .services.game_sync import GameSyncService
from .services.sync_worker import WorkerManager

SHUTDOWN_TIMEOUT_SECONDS = 60.0


@dataclass
class SyncRuntime:
    reader: ResilientChainReader
    indexer: IndexerClient
    enricher: GameDetailEnricher
    pipeline: GameSyncService
    manager: WorkerManager

    def start_enabled_workers(self, chain_ids: list[int], poll_interval: float | None = None) -> None:
        for chain_id in chain_ids:
            self.manager.start_worker(chain_id, poll_interval)

    async def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Stop workers, let in-flight syncs finish, then release clients."""
        self.manager.stop_all()
        await self.manager.wait_idle(timeout)
        await self.indexer.aclose()
        await self.reader.close()
        await close_db()
        logger.info("runtime_shutdown_complete")


def build_runtime(config: Settings | None = None) -> SyncRuntime:
    config = config or default_settings
    reader = ResilientChainReader(
        all_rpc_urls(),
        health=EndpointHealth(),
        config=config.chain_reader_config,
    )
    indexer = IndexerClient(config=config.indexer_config)
    enricher = GameDetailEnricher(reader, config=config.enrichment_config)
    pipeline = GameSyncService(indexer, reader, enricher)
    manager = WorkerManager(
        pipeline.sync,
        default_poll_interval=config.sync_poll_interval_seconds,
        page_size=config.sync_worker_page_size,
    )
    return SyncRuntime(
        reader=reader,
        indexer=indexer,
        enricher=enricher,
        pipeline=pipeline,
        manager=manager,
    )
