"""Resource type descriptors and the explicit registry that holds them.

A descriptor is everything the reconciliation core needs to know about one
resource type: where its status lives, which status values each lifecycle
operation waits for, how its attributes map onto the remote API, and which
attribute changes force replacement. The registry is built once at startup
and passed to the Reconciler; nothing registers itself as an import side
effect.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .errors import UnknownResourceTypeError
from .mapping import FieldMap
from .poller import DEFAULT_NOT_FOUND_CHECKS, NotFoundPolicy
from .status import StatusExtractor, StatusReader

# Attributes not listed in any update group are modified together
DEFAULT_UPDATE_GROUP = "default"


class Operation(str, Enum):
    """Lifecycle operations."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


@dataclass(frozen=True)
class WaitCondition:
    """What a lifecycle operation waits for after its initiating call."""

    target: frozenset[str] = frozenset()
    failure: frozenset[str] = frozenset()
    not_found: NotFoundPolicy = NotFoundPolicy.FAIL

    def __post_init__(self) -> None:
        overlap = self.target & self.failure
        if overlap:
            raise ValueError(f"status values both target and failure: {sorted(overlap)}")


def _no_status(state: object) -> None:
    return None


def _frozen_mapping(value: Mapping) -> Mapping:  # type: ignore[type-arg]
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class ResourceDescriptor:
    """Static description of one resource type.

    Attributes:
        type_name: Resource type name (e.g. "aws_networkfirewall_rule_group").
        status_path: Dotted path (or callable) to the status in a describe
            result. None for types without a status field: they exist or not.
        statuses: Every status value the remote API is known to return.
        waits: WaitCondition per operation. Operations without an entry do
            not poll after their initiating call.
        field_map: Attribute <-> remote payload mapping.
        replace_on_change: Attributes that cannot be updated in place.
        update_groups: Independently mutable attribute groups, in the order
            their modify calls are issued.
        gone_statuses: Statuses in which a still-visible resource counts as deleted.
        delete_retry_messages: Conflict messages on delete that are retried
            (dependent objects still referencing the resource).
        timeouts: Default timeout in seconds per operation.
        not_found_checks: NotFound answers tolerated right after create.
        read_only: Looked up only; create, update and delete are refused.
    """

    type_name: str
    status_path: str | StatusReader | None = None
    statuses: frozenset[str] = frozenset()
    waits: Mapping[Operation, WaitCondition] = field(default_factory=dict)
    field_map: FieldMap = field(default_factory=FieldMap)
    replace_on_change: frozenset[str] = frozenset()
    update_groups: Mapping[str, frozenset[str]] = field(default_factory=dict)
    gone_statuses: frozenset[str] = frozenset()
    delete_retry_messages: tuple[str, ...] = ()
    timeouts: Mapping[Operation, int] = field(default_factory=dict)
    not_found_checks: int = DEFAULT_NOT_FOUND_CHECKS
    read_only: bool = False

    def __post_init__(self) -> None:
        if not self.type_name:
            raise ValueError("type_name cannot be empty")

        # Freeze mappings
        object.__setattr__(self, "waits", _frozen_mapping(self.waits))
        object.__setattr__(self, "update_groups", _frozen_mapping(self.update_groups))
        object.__setattr__(self, "timeouts", _frozen_mapping(self.timeouts))

        grouped: set[str] = set()
        for name, attributes in self.update_groups.items():
            duplicated = grouped & attributes
            if duplicated:
                raise ValueError(
                    f"{self.type_name}: attributes in more than one update group: "
                    f"{sorted(duplicated)}"
                )
            if attributes & self.replace_on_change:
                raise ValueError(
                    f"{self.type_name}: update group '{name}' contains replace-only attributes"
                )
            grouped |= attributes

    def wait_for(self, operation: Operation) -> WaitCondition | None:
        return self.waits.get(operation)

    def extractor(self, operation: Operation | None = None) -> StatusExtractor:
        """Status extractor classified against one operation's wait condition.

        Without an operation, every known status is transient: the extractor
        then only reads values (used by the Finder for gone statuses).
        """
        wait = self.waits.get(operation) if operation is not None else None
        target = wait.target if wait else frozenset()
        failure = wait.failure if wait else frozenset()
        return StatusExtractor(
            self.status_path if self.status_path is not None else _no_status,
            success=target,
            failure=failure,
            transient=self.statuses - target - failure,
        )

    def group_changes(self, attributes: Iterable[str]) -> dict[str, list[str]]:
        """Split changed attributes into update groups, in issue order."""
        remaining = set(attributes)
        groups: dict[str, list[str]] = {}
        for name, members in self.update_groups.items():
            changed = sorted(remaining & members)
            if changed:
                groups[name] = changed
                remaining -= members
        if remaining:
            groups[DEFAULT_UPDATE_GROUP] = sorted(remaining)
        return groups


class ResourceRegistry:
    """Immutable lookup table of resource type descriptors."""

    def __init__(self, descriptors: Iterable[ResourceDescriptor] = ()) -> None:
        table: dict[str, ResourceDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.type_name in table:
                raise ValueError(f"duplicate resource type: {descriptor.type_name}")
            table[descriptor.type_name] = descriptor
        self._descriptors: Mapping[str, ResourceDescriptor] = MappingProxyType(table)

    def get(self, type_name: str) -> ResourceDescriptor:
        try:
            return self._descriptors[type_name]
        except KeyError:
            raise UnknownResourceTypeError(type_name) from None

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._descriptors

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def type_names(self) -> list[str]:
        return sorted(self._descriptors)


def build_registry(*descriptors: ResourceDescriptor) -> ResourceRegistry:
    """Build a registry from explicit descriptors."""
    return ResourceRegistry(descriptors)
