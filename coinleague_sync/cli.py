"""
Command line entry points.

    coinleague-sync sync-all [CHAIN_ID] [STATUS] [--update-existing] [--limit N]
    coinleague-sync run-workers [--chains 137,8453] [--interval 120]
    coinleague-sync init-db
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from structlog.contextvars import bound_contextvars

from .config import settings
from .config_chains import CHAIN_CONFIG
from .db import init_db
from .logging import logger
from .models import SyncRequest, SyncResult
from .runtime import build_runtime

DEFAULT_CHAIN_ID = 137
DEFAULT_STATUS = "Waiting"


def _parse_chains(value: str) -> list[int]:
    chains: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise argparse.ArgumentTypeError(f"Invalid chainId: {part}")
        chains.append(int(part))
    return chains


def _print_summary(chain_id: int, result: SyncResult) -> None:
    print(f"Sync for chainId {chain_id}: {'OK' if result.success else 'FAILED'}")
    print(f"  synced:  {result.synced}")
    print(f"  updated: {result.updated}")
    print(f"  skipped: {result.skipped}")
    print(f"  errors:  {result.errors}")
    if result.error:
        print(f"  error:   {result.error}")
    for detail in (result.errors_details or [])[:10]:
        print(f"    - {detail}")


async def run_sync_all(chain_id: int, status: str | None, limit: int, update_existing: bool) -> SyncResult:
    runtime = build_runtime(settings)
    request = SyncRequest(
        chain_id=chain_id,
        status=status,
        limit=limit,
        sync_all=True,
        update_existing=update_existing,
    )
    try:
        with bound_contextvars(trigger="cli"):
            return await runtime.pipeline.sync(request)
    finally:
        await runtime.shutdown()


async def run_workers(chain_ids: list[int], interval: float) -> None:
    runtime = build_runtime(settings)
    runtime.start_enabled_workers(chain_ids, interval)
    logger.info("workers_running", chains=chain_ids, poll_interval=interval)
    try:
        await asyncio.Event().wait()
    finally:
        await runtime.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coinleague-sync", description="CoinLeague game sync")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_all = subparsers.add_parser("sync-all", help="Sync every game of one chain from the indexer")
    sync_all.add_argument("chain_id", nargs="?", type=int, default=DEFAULT_CHAIN_ID)
    sync_all.add_argument(
        "status", nargs="?", default=DEFAULT_STATUS, help="Game status filter, or 'all'"
    )
    sync_all.add_argument("--limit", type=int, default=100, help="Page size")
    sync_all.add_argument("--update-existing", action="store_true", help="Refresh games already stored")

    workers = subparsers.add_parser("run-workers", help="Run periodic sync workers until interrupted")
    workers.add_argument(
        "--chains",
        type=_parse_chains,
        default=None,
        help="Comma-separated chain ids (default: SYNC_ENABLED_CHAINS)",
    )
    workers.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Poll interval in seconds (default: SYNC_POLL_INTERVAL_SECONDS)",
    )

    subparsers.add_parser("init-db", help="Create tables (development only)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "sync-all":
        if args.chain_id not in CHAIN_CONFIG:
            valid = ", ".join(f"{cid} ({cfg.display_name})" for cid, cfg in CHAIN_CONFIG.items())
            print(f"Invalid chainId: {args.chain_id}. Valid chainIds: {valid}", file=sys.stderr)
            return 1
        status = None if args.status.lower() == "all" else args.status
        print(f"Starting sync for chainId {args.chain_id}, status: {args.status}")
        result = asyncio.run(run_sync_all(args.chain_id, status, args.limit, args.update_existing))
        _print_summary(args.chain_id, result)
        return 0 if result.success else 1

    if args.command == "run-workers":
        chains = args.chains or settings.sync_enabled_chains
        interval = args.interval or settings.sync_poll_interval_seconds
        try:
            asyncio.run(run_workers(chains, interval))
        except KeyboardInterrupt:
            logger.info("workers_interrupted")
        return 0

    if args.command == "init-db":
        asyncio.run(init_db())
        print("Tables created")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
