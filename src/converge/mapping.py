"""Declarative bidirectional mapping between attributes and remote payloads.

A FieldMap replaces hand-written expand/flatten pairs: each FieldMapping
names a flat attribute, the dotted path it occupies in the remote request or
describe result, and the conversions in each direction. The same table
drives request building, state flattening, drift detection and the
completeness check against a resource schema.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .status import read_path

Converter = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


def _equal(observed: Any, desired: Any) -> bool:
    return observed == desired


def subset_of(observed: Any, desired: Any) -> bool:
    """True if every key the desired mapping sets matches the observed one.

    For free-form payloads (ARM ``properties``) and option blocks the remote
    side fills with defaults, the observed value carries keys that the
    configuration never sets. Lists are compared element by element and
    must have the same length.
    """
    if isinstance(desired, Mapping):
        if not isinstance(observed, Mapping):
            return False
        return all(subset_of(observed.get(key), value) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(observed, list) or len(observed) != len(desired):
            return False
        return all(subset_of(o, d) for o, d in zip(observed, desired))
    return observed == desired


def tags_equal(observed: Any, desired: Any) -> bool:
    """Tag maps compare equal when missing and empty (APIs omit empty tags)."""
    return (observed or {}) == (desired or {})


def tags_to_list(tags: Mapping[str, str]) -> list[dict[str, str]]:
    """{"k": "v"} -> [{"Key": "k", "Value": "v"}] (AWS tag list shape)."""
    return [{"Key": key, "Value": value} for key, value in sorted(tags.items())]


def tags_from_list(tags: Iterable[Mapping[str, str]]) -> dict[str, str]:
    """[{"Key": "k", "Value": "v"}] -> {"k": "v"}."""
    return {tag["Key"]: tag.get("Value", "") for tag in tags}


def _set_path(target: dict[str, Any], path: str, value: Any) -> None:
    segments = path.split(".")
    current = target
    for segment in segments[:-1]:
        nested = current.get(segment)
        if not isinstance(nested, dict):
            nested = {}
            current[segment] = nested
        current = nested
    current[segments[-1]] = value


@dataclass(frozen=True)
class FieldMapping:
    """One attribute <-> remote path pairing.

    Attributes:
        attribute: Flat attribute name in the declarative configuration.
        remote_path: Dotted path in the remote request (expand) or in the
            describe result (flatten). ``state_path`` overrides the latter
            when the API echoes the field somewhere else.
        expand: Converts the attribute value into its remote form.
        flatten: Converts the remote value back into its attribute form.
        computed: Set by the remote system; never sent, never drifts.
        write_only: Sent to the API but never echoed back (secrets, inline
            rule text); never read, never drifts.
        state_path: Where the describe result carries the value, when that
            differs from the request path.
        compare: Drift predicate (observed, desired) -> equal. Defaults to ==.
    """

    attribute: str
    remote_path: str
    expand: Converter = _identity
    flatten: Converter = _identity
    computed: bool = False
    write_only: bool = False
    state_path: str | None = None
    compare: Callable[[Any, Any], bool] | None = None

    @property
    def read_path(self) -> str:
        return self.state_path or self.remote_path


class FieldMap:
    """Ordered collection of FieldMappings for one resource type."""

    def __init__(self, mappings: Iterable[FieldMapping] = ()) -> None:
        self._mappings: dict[str, FieldMapping] = {}
        for mapping in mappings:
            if mapping.attribute in self._mappings:
                raise ValueError(f"duplicate attribute mapping: {mapping.attribute}")
            self._mappings[mapping.attribute] = mapping

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[FieldMapping]:
        return iter(self._mappings.values())

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._mappings

    @property
    def attributes(self) -> frozenset[str]:
        return frozenset(self._mappings)

    @property
    def computed(self) -> frozenset[str]:
        return frozenset(m.attribute for m in self._mappings.values() if m.computed)

    def expand(self, attributes: Mapping[str, Any]) -> dict[str, Any]:
        """Build a remote request payload from flat attributes.

        Attributes without a mapping, computed attributes and None values
        are left out of the request.
        """
        request: dict[str, Any] = {}
        for name, value in attributes.items():
            mapping = self._mappings.get(name)
            if mapping is None or mapping.computed or value is None:
                continue
            _set_path(request, mapping.remote_path, mapping.expand(copy.deepcopy(value)))
        return request

    def flatten(self, remote_state: Any) -> dict[str, Any]:
        """Read every mapped attribute out of a describe result."""
        attributes: dict[str, Any] = {}
        for mapping in self._mappings.values():
            if mapping.write_only:
                continue
            value = read_path(remote_state, mapping.read_path)
            if value is None:
                continue
            attributes[mapping.attribute] = mapping.flatten(value)
        return attributes

    def missing(self, schema_fields: Iterable[str]) -> list[str]:
        """Schema fields that have no mapping, sorted."""
        return sorted(set(schema_fields) - self.attributes)

    def diff(
        self, desired: Mapping[str, Any], observed: Mapping[str, Any]
    ) -> dict[str, tuple[Any, Any]]:
        """Attributes whose desired value differs from the observed one.

        Only attributes present in ``desired`` are compared: an attribute the
        configuration does not set cannot drift. Unmapped, computed and
        write-only attributes are ignored.

        Returns:
            Mapping of attribute -> (observed, desired).
        """
        changes: dict[str, tuple[Any, Any]] = {}
        for name, wanted in desired.items():
            mapping = self._mappings.get(name)
            if mapping is None or mapping.computed or mapping.write_only:
                continue
            current = observed.get(name)
            equal = mapping.compare or _equal
            if not equal(current, wanted):
                changes[name] = (current, wanted)
        return changes
