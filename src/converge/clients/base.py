"""Remote Client contract and type-prefix routing."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..errors import ErrorKind, RemoteError


@runtime_checkable
class RemoteClient(Protocol):
    """Issues single control-plane operations against a cloud provider.

    Implementations are synchronous (the SDKs are) and must be safe for
    concurrent use from executor threads. Every failure is raised as a
    RemoteError with its ErrorKind set.
    """

    def create(self, type_name: str, request: dict[str, Any]) -> str:
        """Create a resource and return its remote identifier."""
        ...

    def describe(self, type_name: str, identifier: str) -> dict[str, Any]:
        """Return the raw remote state of a resource."""
        ...

    def modify(
        self, type_name: str, identifier: str, patch: dict[str, Any], *, group: str
    ) -> None:
        """Apply one independently mutable attribute group."""
        ...

    def delete(self, type_name: str, identifier: str) -> None:
        """Request deletion of a resource."""
        ...


class CompositeClient:
    """Routes each call to the client registered for the type name prefix.

    Example:
        client = CompositeClient({"aws_": aws_client, "azurerm_": arm_client})
        client.describe("aws_ec2_fleet", "fleet-123")  # -> aws_client
    """

    def __init__(self, routes: Mapping[str, RemoteClient]) -> None:
        # Longest prefix wins
        self._routes = sorted(routes.items(), key=lambda item: len(item[0]), reverse=True)

    def client_for(self, type_name: str) -> RemoteClient:
        for prefix, client in self._routes:
            if type_name.startswith(prefix):
                return client
        raise RemoteError(
            ErrorKind.VALIDATION_FAILED,
            f"no remote client configured for resource type {type_name}",
        )

    def create(self, type_name: str, request: dict[str, Any]) -> str:
        return self.client_for(type_name).create(type_name, request)

    def describe(self, type_name: str, identifier: str) -> dict[str, Any]:
        return self.client_for(type_name).describe(type_name, identifier)

    def modify(
        self, type_name: str, identifier: str, patch: dict[str, Any], *, group: str
    ) -> None:
        self.client_for(type_name).modify(type_name, identifier, patch, group=group)

    def delete(self, type_name: str, identifier: str) -> None:
        self.client_for(type_name).delete(type_name, identifier)
