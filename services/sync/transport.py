"""
Transport utilities for target synchronization: per-call timeouts, classification of HTTP failures into transient and permanent target errors, and bounded exponential retry of transient failures.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import logging
from typing import Awaitable, Callable, Collection, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from services.alerting.errors import TargetError, TargetTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exc: BaseException) -> bool:
    return isinstance(exc, TargetError) and exc.transient


def check_response(response: httpx.Response, expected: Collection[int], action: str) -> httpx.Response:
    status = response.status_code
    if status in expected:
        return response
    body = (response.text or "").strip().replace("\n", " ")
    detail = f": {body[:200]}" if body else ""
    raise TargetError(
        f"{action} failed with HTTP {status}{detail}",
        transient=status in TRANSIENT_STATUS_CODES,
        status_code=status,
    )


async def call_with_timeout(operation: Callable[[], Awaitable[T]], timeout: float, action: str) -> T:
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise TargetTimeout(f"{action} timed out after {timeout:g}s") from exc
    except httpx.TimeoutException as exc:
        raise TargetTimeout(f"{action} timed out: {exc.__class__.__name__}") from exc
    except httpx.RequestError as exc:
        raise TargetError(f"{action} failed: {exc.__class__.__name__}: {exc}", transient=True) from exc


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    action: str,
    timeout: float,
    attempts: int,
    backoff: float,
    max_backoff: float,
) -> T:
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning("%s attempt %d/%d failed: %s; retrying", action, retry_state.attempt_number, attempts, exc)

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=backoff, max=max_backoff),
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await call_with_timeout(operation, timeout, action)
    raise RuntimeError(f"Retry loop for {action} exited without result")
