"""Describe-by-identifier with NotFound normalized into a typed error."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .clients.base import RemoteClient
from .config import DEFAULT_CALL_TIMEOUT_SECONDS
from .errors import ErrorKind, RemoteError, ResourceNotFoundError, TransportError
from .retry import run_blocking
from .status import StatusExtractor

logger = logging.getLogger(__name__)


class Finder:
    """Looks up the remote state of one resource type.

    A single describe call per ``find``; no retries. Outcomes:

    - remote state (non-empty mapping) is returned
    - NotFound from the API, an empty result, or a status listed in
      ``gone_statuses`` raise ResourceNotFoundError
    - everything else raises TransportError wrapping the RemoteError

    ``gone_statuses`` covers APIs that keep returning deleted resources for a
    while (an EC2 Fleet stays visible in state ``deleted``).
    """

    def __init__(
        self,
        client: RemoteClient,
        type_name: str,
        *,
        extractor: StatusExtractor | None = None,
        gone_statuses: Iterable[str] = (),
        call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._type_name = type_name
        self._extractor = extractor
        self._gone_statuses = frozenset(gone_statuses)
        self._call_timeout_seconds = call_timeout_seconds

        if self._gone_statuses and extractor is None:
            raise ValueError("gone_statuses requires a status extractor")

    @property
    def type_name(self) -> str:
        return self._type_name

    async def find(self, identifier: str) -> dict[str, Any]:
        """Describe the resource.

        Raises:
            ValueError: If identifier is empty.
            ResourceNotFoundError: If the resource does not exist.
            TransportError: If the describe call failed for another reason.
        """
        if not identifier:
            raise ValueError("identifier cannot be empty")

        try:
            state = await run_blocking(
                self._client.describe,
                self._type_name,
                identifier,
                timeout=self._call_timeout_seconds,
            )
        except RemoteError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                raise ResourceNotFoundError(identifier, e) from e
            raise TransportError(identifier, e) from e

        if not state:
            raise ResourceNotFoundError(identifier)

        if self._gone_statuses and self._extractor is not None:
            status = self._extractor.extract(state)
            if status.value in self._gone_statuses:
                logger.debug(
                    "Resource reported in a gone status",
                    extra={
                        "type_name": self._type_name,
                        "identifier": identifier,
                        "status": status.value,
                    },
                )
                raise ResourceNotFoundError(identifier)

        return state
