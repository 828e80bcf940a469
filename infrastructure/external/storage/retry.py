"""Exponential backoff shared by every outbound drive call."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import BackendErrorKind, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCondition = Callable[[BaseException], bool]
Sleep = Callable[[float], Awaitable[None]]

# Graph 对分片上传只建议重试这些状态码
CHUNK_RETRY_STATUS_CODES = {500, 501, 502, 503, 504}


def _always(exc: BaseException) -> bool:
    return True


def _kind(exc: BaseException):
    return exc.kind if isinstance(exc, StorageError) else None


def is_transient_default(exc: BaseException) -> bool:
    """Connection failures and any 5xx."""
    return _kind(exc) in (BackendErrorKind.NETWORK, BackendErrorKind.SERVER_ERROR)


def is_transient_chunk(exc: BaseException) -> bool:
    """Connection failures, 429 and 500-504."""
    kind = _kind(exc)
    if kind in (BackendErrorKind.NETWORK, BackendErrorKind.RATE_LIMITED):
        return True
    if kind is BackendErrorKind.SERVER_ERROR:
        return exc.status_code in CHUNK_RETRY_STATUS_CODES
    return False


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 0.2,
    max_delay: float = 5.0,
    factor: float = 2.0,
    retry_condition: RetryCondition = _always,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or retries are exhausted.

    The n-th retry waits ``initial_delay * factor ** (n - 1)`` seconds, capped at
    ``max_delay``. Errors the predicate rejects, and the last error once the
    attempts are spent, propagate unchanged. Cancellation is never retried.
    """

    def _should_retry(exc: BaseException) -> bool:
        if isinstance(exc, asyncio.CancelledError):
            return False
        return retry_condition(exc)

    retrying = AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=initial_delay, exp_base=factor, max=max_delay),
        retry=retry_if_exception(_should_retry),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
    )

    async for attempt in retrying:
        with attempt:
            return await operation()
    raise RuntimeError("retry loop exited without result")  # pragma: no cover
