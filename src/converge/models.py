"""Pydantic models for declared resource specifications.

These models provide:
1. Type-safe YAML parsing
2. Validation at the boundary (fail fast, fail loudly)
3. Per-operation timeout overrides resolved against descriptor and Config
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

from .config import MAX_TIMEOUT_SECONDS, MIN_TIMEOUT_SECONDS

TimeoutSeconds = Annotated[int, Field(ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS)]


class Ensure(str, Enum):
    """Desired existence of a declared resource."""

    PRESENT = "present"
    ABSENT = "absent"


class Timeouts(BaseModel):
    """Per-operation timeout overrides in seconds."""

    model_config = {"extra": "ignore"}

    create: TimeoutSeconds | None = None
    update: TimeoutSeconds | None = None
    delete: TimeoutSeconds | None = None

    def get(self, operation: str) -> int | None:
        return getattr(self, operation, None)


class ResourceSpec(BaseModel):
    """One declared resource.

    Example:
        name: inspection-rules
        type: aws_networkfirewall_rule_group
        identifier: arn:aws:network-firewall:eu-west-1:123:stateful-rulegroup/inspection
        properties:
          name: inspection
          type: STATEFUL
          capacity: 100
        timeouts:
          create: 600
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1, max_length=128)]
    type: Annotated[str, Field(min_length=1)]
    identifier: str | None = None
    ensure: Ensure = Ensure.PRESENT
    properties: dict[str, Any] = Field(default_factory=dict)
    timeouts: Timeouts = Field(default_factory=Timeouts)

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("identifier cannot be blank")
        return v

    @property
    def absent(self) -> bool:
        return self.ensure is Ensure.ABSENT
