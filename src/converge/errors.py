"""Error taxonomy for remote calls, lookups and reconciliation.

Three layers of errors exist:

1. RemoteError - raised by Remote Client adapters. Carries an ErrorKind so
   that callers never have to inspect SDK-specific exception types.
2. FindError - raised by the Finder. NotFound is a first-class value so that
   delete confirmation and import/refresh can tolerate absence.
3. ReconcileError - raised by the Reconciler. Always carries the remote
   identifier (when one exists) and the last observed status so the caller
   can clean up or import a partially created resource.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failed remote call."""

    NOT_FOUND = "not_found"
    THROTTLED = "throttled"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    ACCESS_DENIED = "access_denied"
    UNKNOWN = "unknown"


# Kinds that indicate a propagation delay or overloaded control plane
RETRYABLE_KINDS = frozenset({ErrorKind.THROTTLED, ErrorKind.TIMEOUT, ErrorKind.SERVER_ERROR})


class RemoteError(Exception):
    """Raised by Remote Client adapters for any failed remote operation."""

    def __init__(self, kind: ErrorKind, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code

    @property
    def retryable(self) -> bool:
        """Whether the failure belongs to a known-transient class."""
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


def is_retryable(error: BaseException) -> bool:
    """Return True if the error is a transient remote failure."""
    return isinstance(error, RemoteError) and error.retryable


# =============================================================================
# Finder errors
# =============================================================================


class FindError(Exception):
    """Base class for Finder failures."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(message)
        self.identifier = identifier


class ResourceNotFoundError(FindError):
    """Raised when the remote system reports the resource does not exist."""

    def __init__(self, identifier: str, cause: BaseException | None = None) -> None:
        super().__init__(identifier, f"resource {identifier} not found")
        self.cause = cause


class TransportError(FindError):
    """Raised when a describe call fails for any reason other than NotFound."""

    def __init__(self, identifier: str, cause: BaseException) -> None:
        super().__init__(identifier, f"describing {identifier}: {cause}")
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return is_retryable(self.cause)


# =============================================================================
# Reconciler errors
# =============================================================================


class ReconcileError(Exception):
    """Base class for reconciliation failures.

    Attributes:
        operation: Lifecycle operation that failed (create, update, delete).
        type_name: Resource type being reconciled.
        identifier: Remote identifier, if one was obtained.
        last_status: Last observed remote status, if any.
        cause: Underlying error, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        type_name: str = "",
        identifier: str | None = None,
        last_status: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.type_name = type_name
        self.identifier = identifier
        self.last_status = last_status
        self.cause = cause

    def cause_chain(self) -> list[str]:
        """Render the chain of underlying causes, outermost first."""
        chain: list[str] = []
        seen: set[int] = set()
        current: BaseException | None = self.cause
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            chain.append(str(current) or type(current).__name__)
            current = getattr(current, "cause", None) or current.__cause__
        return chain

    def __str__(self) -> str:
        prefix = " ".join(p for p in (self.operation, self.type_name) if p)
        text = f"{prefix}: {self.message}" if prefix else self.message

        context = []
        if self.identifier:
            context.append(f"id={self.identifier}")
        if self.last_status:
            context.append(f"status={self.last_status}")
        if context:
            text += f" [{', '.join(context)}]"

        for cause in self.cause_chain():
            text += f": caused by {cause}"
        return text


class RemoteRejectedError(ReconcileError):
    """The remote API refused the request (validation, conflict, access)."""


class TransientError(ReconcileError):
    """Network or throttling failure persisted through every retry attempt.

    The whole operation is safe to retry.
    """


class ReconcileTimeoutError(ReconcileError):
    """Polling exceeded the operation deadline."""


class RequiresReplacementError(ReconcileError):
    """The diff touches attributes that cannot be updated in place."""

    def __init__(self, message: str, *, attributes: list[str], **kwargs: object) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
        self.attributes = attributes


class OperationCancelledError(ReconcileError):
    """The reconciliation was cancelled before convergence."""


class PollFailedError(ReconcileError):
    """Polling stopped on a failure status or an unrecoverable describe error."""

    def __init__(self, message: str, *, reason: str, **kwargs: object) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
        self.reason = reason


class PollInProgressError(Exception):
    """Raised when a second poll starts for an identifier already being polled."""


class UnknownResourceTypeError(KeyError):
    """Raised when a resource type has no registered descriptor."""

    def __str__(self) -> str:
        return f"unknown resource type: {self.args[0]!r}"
