"""Generic wait-for-state-transition loop.

One Poller replaces the per-resource waiters: it is parameterized by a
Finder, a StatusExtractor and, per call, the target and failure status sets.

LOOP (one tick per iteration, strictly sequential):
1. Stop with FAILED(CANCELLED) if the cancellation event is set
2. Stop with TIMED_OUT if the deadline (monotonic, from loop start) passed
3. Describe the resource via the Finder
   - NotFound: converge, fail or keep waiting, depending on NotFoundPolicy
   - transport error: retryable ones are counted; too many in a row, or a
     single non-retryable one, fails the poll early
   - success: classify the status against the failure and target sets
4. Sleep ``interval`` minus jitter, never past the deadline, waking early
   if the cancellation event fires

Because sleeps are clamped to the deadline, a poll that never reaches a
terminal status returns TIMED_OUT no later than ``timeout + interval``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import DEFAULT_MAX_CONSECUTIVE_TRANSIENT_ERRORS
from .errors import PollInProgressError, ResourceNotFoundError, TransportError
from .finder import Finder
from .status import ResourceStatus, StatusExtractor

logger = logging.getLogger(__name__)

# Consecutive NotFound answers tolerated under NotFoundPolicy.WAIT
DEFAULT_NOT_FOUND_CHECKS = 20

Clock = Callable[[], float]
Sleeper = Callable[[float, "asyncio.Event | None"], Awaitable[bool]]


class NotFoundPolicy(str, Enum):
    """How a NotFound answer is treated while polling."""

    FAIL = "fail"  # The resource must exist (create, update)
    CONVERGE = "converge"  # Absence is the goal (delete)
    WAIT = "wait"  # Eventual consistency right after create


class PollResult(str, Enum):
    """Terminal result of a polling cycle."""

    CONVERGED = "converged"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class FailureReason(str, Enum):
    """Why a polling cycle FAILED."""

    FAILURE_STATUS = "failure_status"
    NOT_FOUND = "not_found"
    TOO_MANY_TRANSIENT_ERRORS = "too_many_transient_errors"
    PERMANENT_ERROR = "permanent_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollOutcome:
    """Result of one polling cycle. Transient, never persisted."""

    result: PollResult
    state: dict[str, Any] | None = None
    status: ResourceStatus | None = None
    reason: FailureReason | None = None
    error: BaseException | None = None
    ticks: int = 0
    elapsed: float = 0.0

    @property
    def converged(self) -> bool:
        return self.result is PollResult.CONVERGED

    @property
    def failed(self) -> bool:
        return self.result is PollResult.FAILED

    @property
    def timed_out(self) -> bool:
        return self.result is PollResult.TIMED_OUT


async def wait_or_cancel(seconds: float, cancel_event: asyncio.Event | None) -> bool:
    """Sleep for ``seconds`` or until the event fires.

    Returns:
        True if the event fired (cancellation), False if the time elapsed.
    """
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return False
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True


class ActivePolls:
    """Tracks identifiers with a poll loop in flight.

    At most one poll per identifier may run at a time. A second claim for the
    same identifier fails fast instead of queueing, so duplicate polling is
    surfaced as an error rather than silently serialized.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def claim(self, identifier: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(identifier, asyncio.Lock())
        if lock.locked():
            raise PollInProgressError(f"a poll is already running for {identifier}")
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            # Drop idle locks
            if not lock.locked() and self._locks.get(identifier) is lock:
                del self._locks[identifier]


class Poller:
    """Polls one resource type until convergence, failure or timeout."""

    def __init__(
        self,
        finder: Finder,
        extractor: StatusExtractor,
        *,
        active: ActivePolls | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = wait_or_cancel,
        rng: random.Random | None = None,
    ) -> None:
        self._finder = finder
        self._extractor = extractor
        self._active = active if active is not None else ActivePolls()
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_interval(self, interval: float, jitter: float) -> float:
        """Sleep length for one tick: the interval shortened by up to ``jitter``."""
        if jitter <= 0:
            return interval
        return interval * (1 - jitter * self._rng.random())

    async def poll(
        self,
        identifier: str,
        *,
        target: Iterable[str],
        failure: Iterable[str] = (),
        timeout: float,
        interval: float,
        not_found: NotFoundPolicy = NotFoundPolicy.FAIL,
        delay: float = 0.0,
        jitter: float = 0.0,
        max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_TRANSIENT_ERRORS,
        not_found_checks: int = DEFAULT_NOT_FOUND_CHECKS,
        cancel_event: asyncio.Event | None = None,
    ) -> PollOutcome:
        """Poll until a target status, a failure status, or the deadline.

        Args:
            identifier: Remote identifier of the resource.
            target: Status values that mean converged.
            failure: Status values that mean the operation failed.
            timeout: Seconds from loop start before giving up.
            interval: Seconds between status checks.
            not_found: Treatment of NotFound answers.
            delay: Seconds to wait before the first check.
            jitter: Fraction (0..1) of the interval randomly shaved off each sleep.
            max_consecutive_errors: Retryable describe failures tolerated in a row.
            not_found_checks: NotFound answers tolerated in a row under WAIT.
            cancel_event: Cancels the loop at the next iteration boundary.

        Raises:
            ValueError: If timeout or interval is not positive.
            PollInProgressError: If the identifier is already being polled.
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if interval <= 0:
            raise ValueError("interval must be positive")

        target_set = frozenset(target)
        failure_set = frozenset(failure)
        overlap = target_set & failure_set
        if overlap:
            raise ValueError(f"status values both target and failure: {sorted(overlap)}")

        async with self._active.claim(identifier):
            return await self._loop(
                identifier,
                target=target_set,
                failure=failure_set,
                timeout=timeout,
                interval=interval,
                not_found=not_found,
                delay=delay,
                jitter=jitter,
                max_consecutive_errors=max(1, max_consecutive_errors),
                not_found_checks=max(1, not_found_checks),
                cancel_event=cancel_event,
            )

    async def _loop(
        self,
        identifier: str,
        *,
        target: frozenset[str],
        failure: frozenset[str],
        timeout: float,
        interval: float,
        not_found: NotFoundPolicy,
        delay: float,
        jitter: float,
        max_consecutive_errors: int,
        not_found_checks: int,
        cancel_event: asyncio.Event | None,
    ) -> PollOutcome:
        start = self._clock()
        deadline = start + timeout
        ticks = 0
        consecutive_errors = 0
        not_found_count = 0
        last_state: dict[str, Any] | None = None
        last_status: ResourceStatus | None = None

        def outcome(
            result: PollResult,
            *,
            reason: FailureReason | None = None,
            error: BaseException | None = None,
            state: dict[str, Any] | None = None,
        ) -> PollOutcome:
            return PollOutcome(
                result=result,
                state=state if state is not None else last_state,
                status=last_status,
                reason=reason,
                error=error,
                ticks=ticks,
                elapsed=self._clock() - start,
            )

        if delay > 0 and await self._sleep(min(delay, timeout), cancel_event):
            return outcome(PollResult.FAILED, reason=FailureReason.CANCELLED)

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return outcome(PollResult.FAILED, reason=FailureReason.CANCELLED)

            if self._clock() >= deadline:
                logger.warning(
                    "Timed out waiting for resource",
                    extra={
                        "type_name": self._finder.type_name,
                        "identifier": identifier,
                        "timeout_seconds": timeout,
                        "last_status": str(last_status) if last_status else None,
                        "ticks": ticks,
                    },
                )
                return outcome(PollResult.TIMED_OUT)

            ticks += 1
            try:
                state = await self._finder.find(identifier)

            except ResourceNotFoundError as e:
                consecutive_errors = 0
                match not_found:
                    case NotFoundPolicy.CONVERGE:
                        return PollOutcome(
                            result=PollResult.CONVERGED,
                            status=last_status,
                            ticks=ticks,
                            elapsed=self._clock() - start,
                        )
                    case NotFoundPolicy.FAIL:
                        return outcome(PollResult.FAILED, reason=FailureReason.NOT_FOUND, error=e)
                    case NotFoundPolicy.WAIT:
                        not_found_count += 1
                        if not_found_count >= not_found_checks:
                            return outcome(
                                PollResult.FAILED, reason=FailureReason.NOT_FOUND, error=e
                            )
                        logger.debug(
                            "Resource not visible yet",
                            extra={
                                "type_name": self._finder.type_name,
                                "identifier": identifier,
                                "not_found_count": not_found_count,
                            },
                        )

            except TransportError as e:
                if not e.retryable:
                    return outcome(PollResult.FAILED, reason=FailureReason.PERMANENT_ERROR, error=e)

                consecutive_errors += 1
                logger.warning(
                    "Transient error while polling",
                    extra={
                        "type_name": self._finder.type_name,
                        "identifier": identifier,
                        "consecutive_errors": consecutive_errors,
                        "max_consecutive_errors": max_consecutive_errors,
                        "error": str(e.cause),
                    },
                )
                if consecutive_errors >= max_consecutive_errors:
                    return outcome(
                        PollResult.FAILED,
                        reason=FailureReason.TOO_MANY_TRANSIENT_ERRORS,
                        error=e,
                    )

            else:
                consecutive_errors = 0
                not_found_count = 0
                last_state = state
                last_status = self._extractor.extract(state)

                if last_status.value in failure:
                    return outcome(PollResult.FAILED, reason=FailureReason.FAILURE_STATUS)
                if last_status.value in target:
                    return outcome(PollResult.CONVERGED)

                logger.debug(
                    "Waiting for resource",
                    extra={
                        "type_name": self._finder.type_name,
                        "identifier": identifier,
                        "status": last_status.value,
                        "status_kind": last_status.kind.value,
                        "tick": ticks,
                    },
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                continue
            pause = min(self.next_interval(interval, jitter), remaining)
            if await self._sleep(pause, cancel_event):
                return outcome(PollResult.FAILED, reason=FailureReason.CANCELLED)
