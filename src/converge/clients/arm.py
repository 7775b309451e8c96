"""Remote Client for Azure Resource Manager generic resources.

Resources are addressed by their full ARM resource ID, which the caller
chooses, so the identifier is known as soon as the PUT is accepted. Long-running
operations are started with ``polling=False`` so the SDK runs no poller
thread of its own: convergence is observed through
``properties.provisioningState`` by the reconciliation Poller like for
every other resource type.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resource.resources.models import GenericResource, Sku

from ..errors import ErrorKind, RemoteError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2023-07-01"

# Request keys accepted on the generic resource body
_BODY_KEYS = ("location", "properties", "tags", "kind", "sku")


def parse_resource_type_from_id(resource_id: str | None) -> str:
    """Extract resource type from Azure resource ID.

    Azure resource IDs follow the pattern:
    /subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}

    Args:
        resource_id: Azure resource ID.

    Returns:
        Resource type (e.g., "Microsoft.Network/virtualNetworks") or "unknown".
    """
    if not resource_id:
        return "unknown"

    parts = resource_id.split("/providers/")
    if len(parts) < 2:
        return "unknown"

    # Microsoft.Network/virtualNetworks/myVnet -> Microsoft.Network/virtualNetworks
    segments = parts[-1].split("/")
    if len(segments) < 2:
        return "unknown"
    return f"{segments[0]}/{segments[1]}"


def classify_azure_error(error: AzureError) -> RemoteError:
    """Translate an azure-core exception into a RemoteError."""
    message = getattr(error, "message", None) or str(error)
    status = getattr(error, "status_code", None)
    code = getattr(getattr(error, "error", None), "code", None)

    if isinstance(error, ResourceNotFoundError) or status == 404:
        kind = ErrorKind.NOT_FOUND
    elif isinstance(error, ClientAuthenticationError) or status in (401, 403):
        kind = ErrorKind.ACCESS_DENIED
    elif isinstance(error, ResourceExistsError) or status == 409:
        kind = ErrorKind.CONFLICT
    elif status == 429:
        kind = ErrorKind.THROTTLED
    elif isinstance(status, int) and status >= 500:
        kind = ErrorKind.SERVER_ERROR
    elif status in (400, 422):
        kind = ErrorKind.VALIDATION_FAILED
    elif isinstance(error, (ServiceRequestError, ServiceResponseError)):
        # Connection failures before or while reading the response
        kind = ErrorKind.TIMEOUT
    else:
        kind = ErrorKind.UNKNOWN

    return RemoteError(kind, message, code=code)


def _build_body(request: Mapping[str, Any]) -> GenericResource:
    body = {key: request[key] for key in _BODY_KEYS if request.get(key) is not None}
    if isinstance(body.get("sku"), Mapping):
        body["sku"] = Sku(**body["sku"])
    return GenericResource(**body)


class ArmClient:
    """RemoteClient over ``ResourceManagementClient.resources``."""

    def __init__(
        self,
        credential: TokenCredential,
        subscription_id: str,
        *,
        api_versions: Mapping[str, str] | None = None,
        default_api_version: str = DEFAULT_API_VERSION,
        client: ResourceManagementClient | None = None,
    ) -> None:
        self._client = client or ResourceManagementClient(
            credential=credential,
            subscription_id=subscription_id,
        )
        # Keys are lower-cased provider types
        self._api_versions = {k.lower(): v for k, v in (api_versions or {}).items()}
        self._default_api_version = default_api_version

    def api_version_for(self, resource_id: str) -> str:
        resource_type = parse_resource_type_from_id(resource_id).lower()
        return self._api_versions.get(resource_type, self._default_api_version)

    def create(self, type_name: str, request: dict[str, Any]) -> str:
        resource_id = request.get("id")
        if not resource_id:
            raise RemoteError(ErrorKind.VALIDATION_FAILED, f"{type_name} request requires an id")

        try:
            self._client.resources.begin_create_or_update_by_id(
                resource_id,
                self.api_version_for(resource_id),
                _build_body(request),
                polling=False,
            )
        except AzureError as e:
            raise classify_azure_error(e) from e

        logger.debug(
            "Create accepted",
            extra={"type_name": type_name, "identifier": resource_id},
        )
        return resource_id

    def describe(self, type_name: str, identifier: str) -> dict[str, Any]:
        try:
            resource = self._client.resources.get_by_id(
                identifier,
                self.api_version_for(identifier),
            )
        except AzureError as e:
            raise classify_azure_error(e) from e

        if resource is None:
            return {}
        return resource.as_dict()

    def modify(
        self, type_name: str, identifier: str, patch: dict[str, Any], *, group: str
    ) -> None:
        try:
            self._client.resources.begin_update_by_id(
                identifier,
                self.api_version_for(identifier),
                _build_body(patch),
                polling=False,
            )
        except AzureError as e:
            raise classify_azure_error(e) from e

    def delete(self, type_name: str, identifier: str) -> None:
        try:
            self._client.resources.begin_delete_by_id(
                identifier,
                self.api_version_for(identifier),
                polling=False,
            )
        except AzureError as e:
            raise classify_azure_error(e) from e
