"""Remote Client for AWS control-plane APIs via boto3.

The adapter is table driven: each resource type maps to an AwsOperations
entry naming the boto3 service, the method for every lifecycle call and where
identifiers live in requests and responses. Types whose lifecycle spans
several calls with no single describe (ELB listener policies, Cloud Control
lookups) plug in an AwsHandler instead. botocore failures are translated
into RemoteError at this boundary.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from ..errors import ErrorKind, RemoteError
from ..status import read_path

logger = logging.getLogger(__name__)

# One SDK attempt per call: retries happen in call_with_retry and the Poller
BOTO_MAX_ATTEMPTS = 1

NOT_FOUND_CODES = frozenset(
    {
        "ResourceNotFoundException",
        "ResourceNotFound",
        "NotFoundException",
        "NotFound",
        "NoSuchEntity",
    }
)

THROTTLING_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "SlowDown",
    }
)

VALIDATION_CODES = frozenset(
    {
        "ValidationException",
        "ValidationError",
        "InvalidRequestException",
        "InvalidParameterException",
        "InvalidParameterValue",
        "InvalidParameterValueException",
        "InvalidParameterCombination",
        "MissingParameter",
        "BadRequestException",
        "LimitExceededException",
    }
)

CONFLICT_CODES = frozenset(
    {
        "ConflictException",
        "InvalidOperationException",
        "ResourceInUseException",
        "ResourceConflictException",
        "IncorrectState",
        "ConcurrentModificationException",
    }
)

ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedOperation",
        "ForbiddenException",
        "UnrecognizedClientException",
    }
)

SERVER_ERROR_CODES = frozenset(
    {
        "InternalFailure",
        "InternalError",
        "InternalServerError",
        "InternalServerErrorException",
        "InternalErrorException",
        "ServiceUnavailable",
        "ServiceUnavailableException",
    }
)

# (patch, current remote state) -> request parameters. None skips the call;
# a list issues the call once per element.
PatchTransform = Callable[
    [dict[str, Any], dict[str, Any]], "dict[str, Any] | list[dict[str, Any]] | None"
]


@dataclass(frozen=True)
class AwsCall:
    """One boto3 method invocation.

    Attributes:
        method: boto3 client method name.
        id_param: Request parameter carrying the identifier.
        id_as_list: Wrap the identifier in a list (``FleetIds=[id]``).
        id_path: Take the identifier value from the describe result instead
            (an ARN where the resource is keyed by id).
        token_param: Optimistic-concurrency token parameter.
        token_path: Where the describe result carries the token.
        params: Static parameters added to every call.
        transform: Rewrites the patch using the current remote state.
        fallback_method: Issued with the same parameters when ``method``
            answers NotFound (update a sub-object, else create it).
    """

    method: str
    id_param: str | None = None
    id_as_list: bool = False
    id_path: str | None = None
    token_param: str | None = None
    token_path: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)
    transform: PatchTransform | None = None
    fallback_method: str | None = None

    @property
    def needs_state(self) -> bool:
        return bool(self.id_path or self.token_path or self.transform)


@dataclass(frozen=True)
class AwsOperations:
    """How one resource type maps onto a boto3 service.

    A modify entry is one call or a sequence of calls issued in order for
    the same attribute group (add tags, then remove the stale ones).
    """

    service: str
    create: AwsCall
    create_id_path: str
    describe: AwsCall
    delete: AwsCall
    modify: Mapping[str, AwsCall | tuple[AwsCall, ...]] = field(default_factory=dict)
    describe_result_path: str | None = None
    not_found_codes: frozenset[str] = frozenset()

    def modify_calls(self, group: str) -> tuple[AwsCall, ...]:
        calls = self.modify.get(group, ())
        return (calls,) if isinstance(calls, AwsCall) else calls


class AwsHandler:
    """Lifecycle of a type that one call per operation cannot express.

    Subclasses override the operations their type supports. Each receives
    the boto3 client for ``service``; botocore errors raised inside are
    translated by AwsClient like any other call.
    """

    service: str = ""
    not_found_codes: frozenset[str] = frozenset()

    def _unsupported(self, operation: str) -> RemoteError:
        return RemoteError(
            ErrorKind.VALIDATION_FAILED, f"{type(self).__name__} does not support {operation}"
        )

    def create(self, client: Any, request: dict[str, Any]) -> str:
        raise self._unsupported("create")

    def describe(self, client: Any, identifier: str) -> dict[str, Any]:
        raise self._unsupported("describe")

    def modify(self, client: Any, identifier: str, patch: dict[str, Any], group: str) -> None:
        raise self._unsupported("modify")

    def delete(self, client: Any, identifier: str) -> None:
        raise self._unsupported("delete")


def classify_client_error(
    error: ClientError, not_found_codes: frozenset[str] = frozenset()
) -> RemoteError:
    """Translate a botocore ClientError into a RemoteError."""
    details = error.response.get("Error", {})
    code = str(details.get("Code", ""))
    message = str(details.get("Message", "")) or str(error)
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if code in NOT_FOUND_CODES or code in not_found_codes or code.endswith(".NotFound"):
        kind = ErrorKind.NOT_FOUND
    elif code in THROTTLING_CODES or status == 429:
        kind = ErrorKind.THROTTLED
    elif code in SERVER_ERROR_CODES or (isinstance(status, int) and status >= 500):
        kind = ErrorKind.SERVER_ERROR
    elif code in CONFLICT_CODES or status == 409:
        kind = ErrorKind.CONFLICT
    elif code in ACCESS_DENIED_CODES or status == 403:
        kind = ErrorKind.ACCESS_DENIED
    elif code in VALIDATION_CODES or code.startswith("Invalid") or status == 400:
        kind = ErrorKind.VALIDATION_FAILED
    elif status == 404:
        kind = ErrorKind.NOT_FOUND
    else:
        kind = ErrorKind.UNKNOWN

    return RemoteError(kind, message, code=code or None)


@contextmanager
def translated_errors(not_found_codes: frozenset[str] = frozenset()) -> Iterator[None]:
    """Translate botocore failures raised inside the block into RemoteError."""
    try:
        yield
    except ClientError as e:
        raise classify_client_error(e, not_found_codes) from e
    except (HTTPClientError, BotoConnectionError) as e:
        # Connection failures and read timeouts
        raise RemoteError(ErrorKind.TIMEOUT, str(e), code=type(e).__name__) from e
    except BotoCoreError as e:
        raise RemoteError(ErrorKind.UNKNOWN, str(e), code=type(e).__name__) from e


def _strip_metadata(response: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in response.items() if k != "ResponseMetadata"}


class AwsClient:
    """RemoteClient backed by boto3 service clients.

    boto3 clients are thread-safe once created; creation itself is guarded by
    a lock because sessions are not.
    """

    def __init__(
        self,
        operations: Mapping[str, AwsOperations | AwsHandler],
        *,
        region: str | None = None,
        session: boto3.session.Session | None = None,
    ) -> None:
        self._operations = dict(operations)
        self._region = region
        self._session = session if session is not None else boto3.session.Session()
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _ops(self, type_name: str) -> AwsOperations | AwsHandler:
        ops = self._operations.get(type_name)
        if ops is None:
            raise RemoteError(
                ErrorKind.VALIDATION_FAILED,
                f"resource type {type_name} is not supported by the AWS client",
            )
        return ops

    def _client(self, service: str) -> Any:
        with self._lock:
            client = self._clients.get(service)
            if client is None:
                client = self._session.client(
                    service_name=service,
                    region_name=self._region,
                    config=BotoConfig(
                        retries={"max_attempts": BOTO_MAX_ATTEMPTS, "mode": "standard"}
                    ),
                )
                self._clients[service] = client
            return client

    def _invoke(self, ops: AwsOperations, method: str, params: dict[str, Any]) -> dict[str, Any]:
        with translated_errors(ops.not_found_codes):
            response = getattr(self._client(ops.service), method)(**params)
        return _strip_metadata(response or {})

    def _issue(self, ops: AwsOperations, call: AwsCall, params: dict[str, Any]) -> None:
        try:
            self._invoke(ops, call.method, params)
        except RemoteError as e:
            if call.fallback_method is None or e.kind is not ErrorKind.NOT_FOUND:
                raise
            logger.debug(
                "Falling back after NotFound",
                extra={"method": call.method, "fallback": call.fallback_method},
            )
            self._invoke(ops, call.fallback_method, params)

    def _params(
        self,
        call: AwsCall,
        identifier: str,
        body: Mapping[str, Any],
        state: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = dict(call.params)
        params.update(body)

        if call.id_param:
            value: Any = identifier
            if call.id_path:
                value = read_path(state, call.id_path)
                if not value:
                    raise RemoteError(
                        ErrorKind.UNKNOWN,
                        f"{call.id_path} missing from remote state of {identifier}",
                    )
            params[call.id_param] = [value] if call.id_as_list else value

        if call.token_param and call.token_path:
            params[call.token_param] = read_path(state, call.token_path)

        return params

    def create(self, type_name: str, request: dict[str, Any]) -> str:
        ops = self._ops(type_name)
        if isinstance(ops, AwsHandler):
            with translated_errors(ops.not_found_codes):
                identifier = ops.create(self._client(ops.service), request)
        else:
            body = ops.create.transform(request, {}) if ops.create.transform else request
            response = self._invoke(ops, ops.create.method, {**ops.create.params, **(body or {})})
            identifier = read_path(response, ops.create_id_path)
            if not identifier:
                raise RemoteError(
                    ErrorKind.UNKNOWN,
                    f"create response for {type_name} carries no {ops.create_id_path}",
                )
        logger.debug(
            "Create accepted",
            extra={"type_name": type_name, "identifier": identifier, "service": ops.service},
        )
        return str(identifier)

    def describe(self, type_name: str, identifier: str) -> dict[str, Any]:
        ops = self._ops(type_name)
        if isinstance(ops, AwsHandler):
            with translated_errors(ops.not_found_codes):
                return ops.describe(self._client(ops.service), identifier)

        params = self._params(ops.describe, identifier, {}, None)
        response = self._invoke(ops, ops.describe.method, params)
        if ops.describe_result_path:
            # List-shaped APIs answer an unknown id with an empty list
            return read_path(response, ops.describe_result_path) or {}
        return response

    def modify(
        self, type_name: str, identifier: str, patch: dict[str, Any], *, group: str
    ) -> None:
        ops = self._ops(type_name)
        if isinstance(ops, AwsHandler):
            with translated_errors(ops.not_found_codes):
                ops.modify(self._client(ops.service), identifier, patch, group)
            return

        calls = ops.modify_calls(group)
        if not calls:
            raise RemoteError(
                ErrorKind.VALIDATION_FAILED,
                f"{type_name} has no modify call for attribute group '{group}'",
            )

        # One describe serves every call of the group
        state = self.describe(type_name, identifier) if any(c.needs_state for c in calls) else None
        for call in calls:
            body = call.transform(patch, state or {}) if call.transform else patch
            if body is None:
                continue
            for request in body if isinstance(body, list) else [body]:
                self._issue(ops, call, self._params(call, identifier, request, state))

    def delete(self, type_name: str, identifier: str) -> None:
        ops = self._ops(type_name)
        if isinstance(ops, AwsHandler):
            with translated_errors(ops.not_found_codes):
                ops.delete(self._client(ops.service), identifier)
            return
        self._invoke(ops, ops.delete.method, self._params(ops.delete, identifier, {}, None))
