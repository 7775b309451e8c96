"""Status extraction: remote describe result -> classified ResourceStatus.

Every resource type reports its lifecycle through some status field
(``RuleGroupStatus``, ``FleetState``, ``provisioningState``...). The
extractor reads that field and places the value in exactly one of three
classes. Values the table does not know about are TRANSIENT: a status added
by the provider later must never be mistaken for convergence or for a
permanent failure. The poller's deadline bounds how long an unknown status
can keep us waiting.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class StatusKind(str, Enum):
    """Classes of remote status."""

    TRANSIENT = "transient"  # Keep polling
    SUCCESS = "success"  # Terminal, converged
    FAILURE = "failure"  # Terminal, report error


@dataclass(frozen=True)
class ResourceStatus:
    """A status value observed on one poll tick."""

    value: str
    kind: StatusKind = StatusKind.TRANSIENT

    @property
    def is_terminal(self) -> bool:
        return self.kind is not StatusKind.TRANSIENT

    def __str__(self) -> str:
        return self.value or "<none>"


StatusReader = Callable[[Any], Any]


def read_path(state: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings, sequences and attributes.

    Integer segments index into sequences (``Fleets.0.FleetState``). Returns
    None as soon as a segment is missing.
    """
    current = state
    for segment in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(segment)
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return None
        else:
            current = getattr(current, segment, None)
    return current


def _normalize(values: Iterable[str]) -> frozenset[str]:
    return frozenset(str(v) for v in values)


class StatusExtractor:
    """Pure, total mapping from remote state to ResourceStatus.

    Args:
        read: Dotted path or callable yielding the raw status value.
        success: Values that mean the resource is ready.
        failure: Values that mean the resource will not become ready
            without external action.
        transient: Values known to be in-flight. Optional: anything not in
            success or failure is transient anyway, but declaring them
            documents the table and catches overlaps.

    Raises:
        ValueError: If the declared classes overlap.
    """

    def __init__(
        self,
        read: str | StatusReader,
        *,
        success: Iterable[str],
        failure: Iterable[str] = (),
        transient: Iterable[str] = (),
    ) -> None:
        self._success = _normalize(success)
        self._failure = _normalize(failure)
        self._transient = _normalize(transient)

        overlap = (
            (self._success & self._failure)
            | (self._success & self._transient)
            | (self._failure & self._transient)
        )
        if overlap:
            raise ValueError(f"status values declared in more than one class: {sorted(overlap)}")

        if isinstance(read, str):
            path = read
            self._read: StatusReader = lambda state: read_path(state, path)
        else:
            self._read = read

    def classify(self, value: str) -> StatusKind:
        if value in self._success:
            return StatusKind.SUCCESS
        if value in self._failure:
            return StatusKind.FAILURE
        return StatusKind.TRANSIENT

    def extract(self, state: Any) -> ResourceStatus:
        """Classify the status carried by a describe result. Never raises."""
        try:
            raw = self._read(state)
        except Exception:  # noqa: BLE001
            # Caller-supplied readers may trip over unexpected shapes
            return ResourceStatus(value="")

        if raw is None:
            return ResourceStatus(value="")
        if isinstance(raw, Enum):
            raw = raw.value
        value = raw if isinstance(raw, str) else str(raw)
        return ResourceStatus(value=value, kind=self.classify(value))
