"""Chain read errors and their classification.

Every failure seen by the reader is sorted into one of three buckets:
rate-limited (disable the endpoint and rotate), retryable (back off and
retry) or fatal (propagate immediately: reverts, bad ABI, decode errors).
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

import aiohttp

RATE_LIMIT_CODES = {-32090, 429}
RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "429", "retry in")
RETRYABLE_MARKERS = (
    "network_error",
    "server_error",
    "econnrefused",
    "etimedout",
    "enotfound",
    "timeout",
    "timed out",
)


class ChainReadError(RuntimeError):
    """Base class for reader errors."""


class NoRpcEndpointsError(ChainReadError):
    """No RPC endpoint is configured for the chain."""


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    RETRYABLE = "retryable"
    FATAL = "fatal"


def _collect(payload: Any, codes: list[int], messages: list[str]) -> None:
    """Pull codes and messages out of a JSON-RPC style error payload."""
    if not isinstance(payload, dict):
        return
    code = payload.get("code")
    if isinstance(code, int):
        codes.append(code)
    message = payload.get("message")
    if isinstance(message, str):
        messages.append(message)
    body = payload.get("body")
    if isinstance(body, str):
        messages.append(body)
    _collect(payload.get("error"), codes, messages)


def _inspect(exc: BaseException) -> tuple[list[int], list[str]]:
    codes: list[int] = []
    messages: list[str] = [str(exc)]

    for attr in ("code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            codes.append(value)

    # web3 raises with the JSON-RPC error dict as the first arg or on rpc_response
    if exc.args:
        _collect(exc.args[0], codes, messages)
    _collect(getattr(exc, "rpc_response", None), codes, messages)

    return codes, [m.lower() for m in messages]


def classify_error(exc: BaseException) -> ErrorKind:
    codes, messages = _inspect(exc)

    if any(code in RATE_LIMIT_CODES for code in codes):
        return ErrorKind.RATE_LIMITED
    if any(marker in message for message in messages for marker in RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError, aiohttp.ClientConnectionError)):
        return ErrorKind.RETRYABLE
    if any(500 <= code < 600 for code in codes):
        return ErrorKind.RETRYABLE
    if any(marker in message for message in messages for marker in RETRYABLE_MARKERS):
        return ErrorKind.RETRYABLE

    return ErrorKind.FATAL
