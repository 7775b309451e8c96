"""Bounded retries for the calls that initiate a lifecycle operation.

Create, modify and delete calls are retried here with exponential backoff
and jitter when the failure is transient. Validation errors and conflicts
surface on the first attempt. Status checks are not retried here: the poller
owns that policy.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .config import (
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_MAX_CALL_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_BASE_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
    Config,
)
from .errors import ErrorKind, RemoteError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy for initiating calls."""

    max_attempts: int = DEFAULT_MAX_CALL_ATTEMPTS
    backoff_base_seconds: float = DEFAULT_RETRY_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = RETRY_BACKOFF_MAX_SECONDS
    jitter: float = 0.2
    call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS

    @classmethod
    def from_config(cls, config: Config) -> RetryPolicy:
        return cls(
            max_attempts=config.max_call_attempts,
            backoff_base_seconds=config.retry_backoff_base_seconds,
            call_timeout_seconds=config.call_timeout_seconds,
        )

    def backoff(self, attempt: int, rng: random.Random | None = None) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        backoff = min(self.backoff_base_seconds * (2 ** (attempt - 1)), self.backoff_max_seconds)
        jitter = (rng or random).uniform(0, backoff * self.jitter)
        return backoff + jitter


def retry_when_message_contains(kind: ErrorKind, *fragments: str) -> RetryPredicate:
    """Build a predicate that also retries a specific non-transient failure.

    Some APIs reject a delete while a dependent object still references the
    resource; the reference goes away on its own shortly after.

    Example:
        retry_if = retry_when_message_contains(
            ErrorKind.CONFLICT, "still in use"
        )
    """

    def predicate(error: BaseException) -> bool:
        if is_retryable(error):
            return True
        if not isinstance(error, RemoteError) or error.kind is not kind:
            return False
        return any(fragment in error.message for fragment in fragments)

    return predicate


async def run_blocking(fn: Callable[..., T], *args: Any, timeout: float) -> T:
    """Run a blocking SDK call in the default executor with a timeout.

    A timeout is reported as RemoteError(TIMEOUT) so it classifies as
    transient like any other slow control-plane response.
    """
    loop = asyncio.get_event_loop()
    try:
        future = loop.run_in_executor(None, lambda: fn(*args))
        return await asyncio.wait_for(future, timeout=timeout)
    except TimeoutError as e:
        raise RemoteError(
            ErrorKind.TIMEOUT, f"remote call did not complete within {timeout}s"
        ) from e


async def call_with_retry(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy,
    operation: str,
    retry_if: RetryPredicate = is_retryable,
    cancel_event: asyncio.Event | None = None,
    rng: random.Random | None = None,
) -> T:
    """Call ``fn`` until it succeeds, a non-retryable error occurs or attempts run out.

    Args:
        fn: Zero-argument blocking callable issuing one remote request.
        policy: Attempts and backoff.
        operation: Name used in log records.
        retry_if: Decides whether a failure is worth another attempt.
        cancel_event: When set during a backoff wait, the last error is raised.
        rng: Random source for jitter.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        RemoteError: The last error, once retries are exhausted or the error
            is not retryable.
    """
    last_error: RemoteError | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await run_blocking(fn, timeout=policy.call_timeout_seconds)
        except RemoteError as e:
            last_error = e

            if attempt >= policy.max_attempts or not retry_if(e):
                raise

            wait_time = policy.backoff(attempt, rng)
            logger.warning(
                "Remote call failed, retrying",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "wait_seconds": wait_time,
                    "error_kind": e.kind.value,
                    "error": str(e),
                },
            )

            if cancel_event is None:
                await asyncio.sleep(wait_time)
                continue
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=wait_time)
            except TimeoutError:
                continue
            # Cancelled during backoff
            raise

    # Loop runs at least once (max_attempts >= 1), so last_error is set
    assert last_error is not None, "Retry loop completed without setting last_error"
    raise last_error
