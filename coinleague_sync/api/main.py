from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .. import __version__
from ..config import settings
from ..logging import logger
from ..runtime import build_runtime
from .middleware import StructuredLoggingMiddleware
from .routers import sync


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime = build_runtime(settings)
    app.state.runtime = runtime
    if settings.sync_workers_enabled:
        runtime.start_enabled_workers(settings.sync_enabled_chains)
        logger.info("workers_autostarted", chains=settings.sync_enabled_chains)
    try:
        yield
    finally:
        await runtime.shutdown()


app = FastAPI(title="coinleague-sync", version=__version__, lifespan=lifespan)

app.add_middleware(StructuredLoggingMiddleware)

app.include_router(sync.router)
app.add_exception_handler(RequestValidationError, sync.sync_validation_error_handler)


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
