"""Sync trigger and worker control endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from structlog.contextvars import bound_contextvars

from ...config_chains import CHAIN_CONFIG
from ...logging import logger
from ...models import SyncRequest, SyncResult
from ...runtime import SyncRuntime
from ...services.sync_worker import SyncWorkerState

router = APIRouter()

SYNC_PATH = "/sync"


def get_runtime(request: Request) -> SyncRuntime:
    return request.app.state.runtime


class WorkerStateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_running: bool = Field(alias="isRunning")
    last_sync_time: datetime | None = Field(None, alias="lastSyncTime")
    last_error: str | None = Field(None, alias="lastError")
    games_synced: int = Field(0, alias="gamesSynced")
    errors: int = 0
    start_time: datetime | None = Field(None, alias="startTime")

    @classmethod
    def from_state(cls, state: SyncWorkerState) -> "WorkerStateResponse":
        return cls(**state.as_dict())


class WorkerControlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    chain_id: int = Field(alias="chainId")
    state: WorkerStateResponse | None = None
    error: str | None = None


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _describe_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


async def sync_validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Invalid /sync bodies answer 200 with success=false; other routes keep the default 422."""
    if request.url.path != SYNC_PATH:
        return await request_validation_exception_handler(request, exc)
    message = _describe_errors(exc)
    logger.warning("sync_request_invalid", errors=message)
    result = SyncResult(success=False, error=f"Invalid request: {message}")
    return JSONResponse(result.to_response())


@router.post(SYNC_PATH)
async def trigger_sync(
    body: SyncRequest,
    runtime: SyncRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """Run one reconciliation pass. Always answers with an explicit success flag."""
    with bound_contextvars(trigger="api"):
        result = await runtime.pipeline.sync(body)
    return result.to_response()


@router.post("/workers/{chain_id}/start")
async def start_worker(
    chain_id: int,
    poll_interval_seconds: float | None = Query(None, alias="pollIntervalSeconds", gt=0),
    runtime: SyncRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    if chain_id not in CHAIN_CONFIG:
        return _dump(WorkerControlResponse(success=False, chain_id=chain_id, error="Unsupported chainId"))

    started = runtime.manager.start_worker(chain_id, poll_interval_seconds)
    state = runtime.manager.get_worker_state(chain_id)
    logger.info("worker_start_requested", chain_id=chain_id, started=started)
    return _dump(
        WorkerControlResponse(
            success=started,
            chain_id=chain_id,
            state=WorkerStateResponse.from_state(state) if state else None,
            error=None if started else "Worker already running",
        )
    )


@router.post("/workers/{chain_id}/stop")
async def stop_worker(
    chain_id: int,
    runtime: SyncRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    stopped = runtime.manager.stop_worker(chain_id)
    logger.info("worker_stop_requested", chain_id=chain_id, stopped=stopped)
    return _dump(
        WorkerControlResponse(
            success=stopped,
            chain_id=chain_id,
            error=None if stopped else "Worker not running",
        )
    )


@router.get("/workers/status")
async def workers_status(runtime: SyncRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return {
        str(chain_id): _dump(WorkerStateResponse.from_state(state))
        for chain_id, state in runtime.manager.get_all_workers_state().items()
    }
