"""
Opt-in bounded retry for gateway calls.

The gateway never retries by itself. A caller that wants retries wraps
the call explicitly:

    rows = await retry_request(lambda: gateway.get("accounts", notify=False))

Only RequestError is retried; the last error is re-raised once the
attempts run out.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from finance_tracker.services.gateway.interface import RequestError


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.info(
        "request_retry",
        attempt=state.attempt_number,
        error=str(error) if error else None,
    )


async def retry_request(
    call: Callable[[], Awaitable[T]],
    attempts: int = 3,
    wait: Optional[wait_base] = None,
) -> T:
    """
    Run an async gateway call with exponential backoff.

    Args:
        call: Zero-argument callable returning a fresh awaitable per attempt
        attempts: Total attempts
        wait: tenacity wait strategy (default exponential, 1s to 8s)

    Raises:
        RequestError: The last failure, after the final attempt
    """
    if wait is None:
        wait = wait_exponential(multiplier=1, min=1, max=8)

    result: Any = None
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait,
        retry=retry_if_exception_type(RequestError),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            result = await call()
    return result
