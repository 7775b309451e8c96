"""Lifecycle reconciler for descriptor-driven remote resources.

The reconciler issues the initiating remote call of each lifecycle
operation and then waits, through the Poller, until the remote system
reports the resource in the state that operation is waiting for:

- create: one create call, retried only while throttled (no identifier has
  been returned yet), then poll until a target status. Once an identifier
  exists no second create is ever issued; failures carry the identifier so
  the caller can import or clean up the partially created resource.
- update: replace-only changes are refused before any remote call; other
  changes are issued as one modify call per update group, then polled.
- delete: NotFound on the delete call is success; otherwise poll until the
  resource is gone.
- apply: drift-driven convergence of one declared resource.

Read-only types (lookups) are refused before any remote call.

Errors are raised as ReconcileError subclasses carrying the identifier
and the last observed status.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .clients.base import RemoteClient
from .config import Config
from .descriptors import Operation, ResourceDescriptor, ResourceRegistry
from .errors import (
    ErrorKind,
    OperationCancelledError,
    PollFailedError,
    PollInProgressError,
    ReconcileError,
    ReconcileTimeoutError,
    RemoteError,
    RemoteRejectedError,
    RequiresReplacementError,
    ResourceNotFoundError,
    TransientError,
    is_retryable,
)
from .finder import Finder
from .models import ResourceSpec, Timeouts
from .poller import ActivePolls, FailureReason, Poller, PollOutcome
from .retry import RetryPolicy, RetryPredicate, call_with_retry, retry_when_message_contains
from .status import StatusExtractor

logger = logging.getLogger(__name__)

PollerFactory = Callable[[Finder, StatusExtractor, ActivePolls], Poller]


def default_poller_factory(
    finder: Finder, extractor: StatusExtractor, active: ActivePolls
) -> Poller:
    return Poller(finder, extractor, active=active)


def _retry_create(error: BaseException) -> bool:
    # A throttled create was rejected before the resource existed
    return isinstance(error, RemoteError) and error.kind is ErrorKind.THROTTLED


class Action(str, Enum):
    """What apply did (or, in dry-run, would do) to a declared resource."""

    CREATED = "created"
    UPDATED = "updated"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass(frozen=True)
class CreateResult:
    """Identifier and converged remote state of a created resource."""

    identifier: str
    state: dict[str, Any]


@dataclass
class ApplyResult:
    """Result of applying one declared resource."""

    name: str
    type_name: str
    action: Action
    identifier: str | None = None
    drift: dict[str, tuple[Any, Any]] = field(default_factory=dict)
    state: dict[str, Any] | None = None
    planned: bool = False
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return self.action not in (Action.UNCHANGED, Action.FAILED)


class Reconciler:
    """Drives create, update, delete and read for every registered resource type.

    The Reconciler holds no per-resource state: identifiers come in with
    each call. A single ActivePolls tracker guarantees at most one poll loop
    per identifier across concurrent operations.
    """

    def __init__(
        self,
        client: RemoteClient,
        registry: ResourceRegistry,
        config: Config | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        poller_factory: PollerFactory = default_poller_factory,
        retry_policy: RetryPolicy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._config = config or Config()
        self._cancel_event = cancel_event if cancel_event is not None else asyncio.Event()
        self._poller_factory = poller_factory
        self._retry_policy = retry_policy or RetryPolicy.from_config(self._config)
        self._rng = rng
        self._active = ActivePolls()

    @property
    def registry(self) -> ResourceRegistry:
        return self._registry

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel_event

    def shutdown(self) -> None:
        """Signal in-flight operations to stop at their next boundary."""
        logger.info("Shutdown requested")
        self._cancel_event.set()

    # =========================================================================
    # Lifecycle operations
    # =========================================================================

    async def create(self, spec: ResourceSpec) -> CreateResult:
        """Create the declared resource and wait until it is ready.

        Raises:
            RemoteRejectedError: The create call was refused.
            TransientError: The create call kept failing transiently.
            PollFailedError: The resource reached a failure status.
            ReconcileTimeoutError: The resource did not become ready in time.
            OperationCancelledError: Cancelled before convergence.
        """
        descriptor = self._registry.get(spec.type)
        self._check_writable(descriptor, Operation.CREATE)
        self._check_cancelled(Operation.CREATE, spec.type)

        request = descriptor.field_map.expand(spec.properties)
        identifier = await self._call(
            functools.partial(self._client.create, spec.type, request),
            operation=Operation.CREATE,
            type_name=spec.type,
            retry_if=_retry_create,
        )
        logger.info(
            "Create issued",
            extra={"resource": spec.name, "type_name": spec.type, "identifier": identifier},
        )

        timeout = self._timeout(descriptor, Operation.CREATE, spec.timeouts)
        state = await self._wait(descriptor, Operation.CREATE, identifier, timeout)
        if state is None:
            state = await self._find_after(descriptor, Operation.CREATE, identifier)

        logger.info(
            "Resource created",
            extra={"resource": spec.name, "type_name": spec.type, "identifier": identifier},
        )
        return CreateResult(identifier=identifier, state=state)

    async def update(
        self,
        type_name: str,
        identifier: str,
        changes: Mapping[str, Any],
        *,
        timeouts: Timeouts | None = None,
    ) -> dict[str, Any]:
        """Apply changed attributes in place and wait for the update to settle.

        Args:
            type_name: Registered resource type.
            identifier: Remote identifier.
            changes: Changed attributes mapped to their desired values.
            timeouts: Per-resource timeout overrides.

        Returns:
            Remote state after convergence.

        Raises:
            RequiresReplacementError: A changed attribute cannot be updated in
                place. No remote call has been issued.
        """
        descriptor = self._registry.get(type_name)
        if not changes:
            return await self.find(type_name, identifier)

        self._check_writable(descriptor, Operation.UPDATE, identifier)
        replace = sorted(set(changes) & descriptor.replace_on_change)
        if replace:
            raise RequiresReplacementError(
                f"attributes {replace} cannot be updated in place",
                attributes=replace,
                operation=Operation.UPDATE.value,
                type_name=type_name,
                identifier=identifier,
            )

        self._check_cancelled(Operation.UPDATE, type_name, identifier)

        for group, attributes in descriptor.group_changes(changes).items():
            patch = descriptor.field_map.expand({name: changes[name] for name in attributes})
            await self._call(
                functools.partial(self._client.modify, type_name, identifier, patch, group=group),
                operation=Operation.UPDATE,
                type_name=type_name,
                identifier=identifier,
            )
            logger.info(
                "Modify issued",
                extra={
                    "type_name": type_name,
                    "identifier": identifier,
                    "group": group,
                    "attributes": attributes,
                },
            )

        timeout = self._timeout(descriptor, Operation.UPDATE, timeouts)
        state = await self._wait(descriptor, Operation.UPDATE, identifier, timeout)
        if state is None:
            state = await self._find_after(descriptor, Operation.UPDATE, identifier)
        return state

    async def delete(
        self, type_name: str, identifier: str, *, timeouts: Timeouts | None = None
    ) -> None:
        """Delete the resource and wait until it is gone.

        Deleting a resource that no longer exists succeeds.
        """
        descriptor = self._registry.get(type_name)
        self._check_writable(descriptor, Operation.DELETE, identifier)
        self._check_cancelled(Operation.DELETE, type_name, identifier)

        retry_if: RetryPredicate = is_retryable
        if descriptor.delete_retry_messages:
            retry_if = retry_when_message_contains(
                ErrorKind.CONFLICT, *descriptor.delete_retry_messages
            )

        try:
            await self._call(
                functools.partial(self._client.delete, type_name, identifier),
                operation=Operation.DELETE,
                type_name=type_name,
                identifier=identifier,
                retry_if=retry_if,
            )
        except RemoteRejectedError as e:
            if isinstance(e.cause, RemoteError) and e.cause.kind is ErrorKind.NOT_FOUND:
                logger.info(
                    "Resource already deleted",
                    extra={"type_name": type_name, "identifier": identifier},
                )
                return
            raise

        timeout = self._timeout(descriptor, Operation.DELETE, timeouts)
        await self._wait(descriptor, Operation.DELETE, identifier, timeout)
        logger.info("Resource deleted", extra={"type_name": type_name, "identifier": identifier})

    async def find(self, type_name: str, identifier: str) -> dict[str, Any]:
        """Raw remote state.

        Raises:
            ResourceNotFoundError: The resource does not exist.
            TransportError: The describe call failed.
        """
        descriptor = self._registry.get(type_name)
        return await self._finder(descriptor).find(identifier)

    async def read(self, type_name: str, identifier: str) -> dict[str, Any] | None:
        """Flattened attributes of the resource, or None if it is gone.

        Used by import and refresh, where absence is an expected answer.
        """
        descriptor = self._registry.get(type_name)
        try:
            state = await self._finder(descriptor).find(identifier)
        except ResourceNotFoundError:
            return None
        return descriptor.field_map.flatten(state)

    async def reconcile(self, operation: Operation, spec: ResourceSpec) -> Any:
        """Run one lifecycle operation for a declared resource.

        UPDATE computes the drift against the remote state first and only
        sends changed attributes.
        """
        if operation is Operation.CREATE:
            return await self.create(spec)

        if not spec.identifier:
            raise ValueError(f"{operation.value} requires an identifier for resource {spec.name}")

        match operation:
            case Operation.READ | Operation.IMPORT:
                return await self.read(spec.type, spec.identifier)
            case Operation.UPDATE:
                observed = await self.read(spec.type, spec.identifier)
                if observed is None:
                    raise ReconcileError(
                        "resource no longer exists",
                        operation=operation.value,
                        type_name=spec.type,
                        identifier=spec.identifier,
                    )
                drift = self._registry.get(spec.type).field_map.diff(spec.properties, observed)
                return await self.update(
                    spec.type,
                    spec.identifier,
                    {name: desired for name, (_, desired) in drift.items()},
                    timeouts=spec.timeouts,
                )
            case Operation.DELETE:
                return await self.delete(spec.type, spec.identifier, timeouts=spec.timeouts)
            case _:
                raise ValueError(f"unsupported operation: {operation}")

    async def apply(self, spec: ResourceSpec, *, dry_run: bool = False) -> ApplyResult:
        """Converge one declared resource.

        No identifier, or a resource that is gone, is created. Otherwise the
        desired attributes are diffed against the remote state; drift is
        updated in place, or the resource is replaced when a replace-only
        attribute changed. In dry-run mode the planned action is reported
        without any remote mutation.
        """
        descriptor = self._registry.get(spec.type)

        unmapped = descriptor.field_map.missing(spec.properties)
        if unmapped:
            logger.warning(
                "Properties without a field mapping are ignored",
                extra={"resource": spec.name, "type_name": spec.type, "attributes": unmapped},
            )

        observed = await self.read(spec.type, spec.identifier) if spec.identifier else None

        def result(action: Action, **kwargs: Any) -> ApplyResult:
            return ApplyResult(
                name=spec.name,
                type_name=spec.type,
                action=action,
                planned=dry_run,
                **kwargs,
            )

        if spec.absent:
            if observed is None:
                return result(Action.UNCHANGED, identifier=spec.identifier)
            if not dry_run:
                assert spec.identifier is not None
                await self.delete(spec.type, spec.identifier, timeouts=spec.timeouts)
            return result(Action.DELETED, identifier=spec.identifier)

        if observed is None:
            if dry_run:
                return result(Action.CREATED)
            created = await self.create(spec)
            return result(Action.CREATED, identifier=created.identifier, state=created.state)

        assert spec.identifier is not None
        drift = descriptor.field_map.diff(spec.properties, observed)
        if not drift:
            return result(Action.UNCHANGED, identifier=spec.identifier)

        logger.info(
            "Drift detected",
            extra={
                "resource": spec.name,
                "type_name": spec.type,
                "identifier": spec.identifier,
                "attributes": sorted(drift),
            },
        )

        if dry_run:
            replace = set(drift) & descriptor.replace_on_change
            action = Action.REPLACED if replace else Action.UPDATED
            return result(action, identifier=spec.identifier, drift=drift)

        changes = {name: desired for name, (_, desired) in drift.items()}
        try:
            state = await self.update(
                spec.type, spec.identifier, changes, timeouts=spec.timeouts
            )
        except RequiresReplacementError as e:
            logger.info(
                "Replacing resource",
                extra={
                    "resource": spec.name,
                    "type_name": spec.type,
                    "identifier": spec.identifier,
                    "attributes": e.attributes,
                },
            )
            await self.delete(spec.type, spec.identifier, timeouts=spec.timeouts)
            created = await self.create(spec)
            return result(
                Action.REPLACED, identifier=created.identifier, drift=drift, state=created.state
            )

        return result(Action.UPDATED, identifier=spec.identifier, drift=drift, state=state)

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_cancelled(
        self, operation: Operation, type_name: str, identifier: str | None = None
    ) -> None:
        if self._cancel_event.is_set():
            raise OperationCancelledError(
                "cancelled before the remote call",
                operation=operation.value,
                type_name=type_name,
                identifier=identifier,
            )

    def _check_writable(
        self, descriptor: ResourceDescriptor, operation: Operation, identifier: str | None = None
    ) -> None:
        if descriptor.read_only:
            raise RemoteRejectedError(
                "resource type is read-only",
                operation=operation.value,
                type_name=descriptor.type_name,
                identifier=identifier,
            )

    def _finder(self, descriptor: ResourceDescriptor) -> Finder:
        return Finder(
            self._client,
            descriptor.type_name,
            extractor=descriptor.extractor() if descriptor.gone_statuses else None,
            gone_statuses=descriptor.gone_statuses,
            call_timeout_seconds=self._config.call_timeout_seconds,
        )

    def _timeout(
        self, descriptor: ResourceDescriptor, operation: Operation, timeouts: Timeouts | None
    ) -> int:
        """Per-resource override, else descriptor default, else Config."""
        override = timeouts.get(operation.value) if timeouts is not None else None
        if override:
            return override
        if operation in descriptor.timeouts:
            return descriptor.timeouts[operation]
        return self._config.timeout_for(operation.value)

    async def _call(
        self,
        fn: Callable[[], Any],
        *,
        operation: Operation,
        type_name: str,
        identifier: str | None = None,
        retry_if: RetryPredicate = is_retryable,
    ) -> Any:
        """Issue one initiating call with retries, mapping RemoteError."""
        try:
            return await call_with_retry(
                fn,
                policy=self._retry_policy,
                operation=f"{operation.value} {type_name}",
                retry_if=retry_if,
                cancel_event=self._cancel_event,
                rng=self._rng,
            )
        except RemoteError as e:
            context: dict[str, Any] = {
                "operation": operation.value,
                "type_name": type_name,
                "identifier": identifier,
                "cause": e,
            }
            if self._cancel_event.is_set():
                raise OperationCancelledError("cancelled while retrying", **context) from e
            if e.retryable:
                raise TransientError("remote call kept failing", **context) from e
            raise RemoteRejectedError("rejected by remote API", **context) from e

    async def _find_after(
        self, descriptor: ResourceDescriptor, operation: Operation, identifier: str
    ) -> dict[str, Any]:
        """Describe once after an operation that has no wait condition."""
        try:
            return await self._finder(descriptor).find(identifier)
        except ResourceNotFoundError as e:
            raise PollFailedError(
                "resource not found after the remote call",
                reason=FailureReason.NOT_FOUND.value,
                operation=operation.value,
                type_name=descriptor.type_name,
                identifier=identifier,
                cause=e,
            ) from e

    async def _wait(
        self,
        descriptor: ResourceDescriptor,
        operation: Operation,
        identifier: str,
        timeout: int,
    ) -> dict[str, Any] | None:
        """Poll until the operation's wait condition holds.

        Returns:
            Last observed remote state; None when the operation has no wait
            condition or converged on absence.
        """
        wait = descriptor.wait_for(operation)
        if wait is None:
            return None

        poller = self._poller_factory(
            self._finder(descriptor), descriptor.extractor(operation), self._active
        )
        try:
            outcome = await poller.poll(
                identifier,
                target=wait.target,
                failure=wait.failure,
                timeout=timeout,
                interval=self._config.poll_interval_seconds,
                not_found=wait.not_found,
                delay=self._config.poll_delay_seconds,
                jitter=self._config.poll_jitter,
                max_consecutive_errors=self._config.max_consecutive_transient_errors,
                not_found_checks=descriptor.not_found_checks,
                cancel_event=self._cancel_event,
            )
        except PollInProgressError as e:
            raise ReconcileError(
                "another operation is already polling this resource",
                operation=operation.value,
                type_name=descriptor.type_name,
                identifier=identifier,
                cause=e,
            ) from e

        if outcome.converged:
            logger.info(
                "Resource converged",
                extra={
                    "operation": operation.value,
                    "type_name": descriptor.type_name,
                    "identifier": identifier,
                    "status": str(outcome.status) if outcome.status else None,
                    "ticks": outcome.ticks,
                    "elapsed_seconds": round(outcome.elapsed, 3),
                },
            )
            return outcome.state

        raise self._poll_error(descriptor, operation, identifier, timeout, outcome)

    def _poll_error(
        self,
        descriptor: ResourceDescriptor,
        operation: Operation,
        identifier: str,
        timeout: int,
        outcome: PollOutcome,
    ) -> ReconcileError:
        context: dict[str, Any] = {
            "operation": operation.value,
            "type_name": descriptor.type_name,
            "identifier": identifier,
            "last_status": outcome.status.value if outcome.status else None,
            "cause": outcome.error,
        }

        error: ReconcileError
        if outcome.timed_out:
            error = ReconcileTimeoutError(f"not converged within {timeout}s", **context)
        elif outcome.reason is FailureReason.CANCELLED:
            error = OperationCancelledError("cancelled while waiting", **context)
        else:
            reason = outcome.reason or FailureReason.PERMANENT_ERROR
            error = PollFailedError(
                f"waiting failed: {reason.value.replace('_', ' ')}",
                reason=reason.value,
                **context,
            )

        logger.error(
            "Reconciliation failed",
            extra={
                "operation": operation.value,
                "type_name": descriptor.type_name,
                "identifier": identifier,
                "error": str(error),
                "ticks": outcome.ticks,
            },
        )
        return error
