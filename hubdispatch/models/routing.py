"""Routing models — routing keys, batch options and the three routing modes.

Exactly one routing mode is active for the lifetime of a dispatcher:

* ``PartitionIdRouting``  — every event goes to one explicit partition id.
* ``PartitionKeyRouting`` — every event carries one sticky partition key.
* ``FanOutRouting``       — one batch per partition the transport knows about.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RoutingSlot(str, Enum):
    """Reserved registry slots that are not literal partition ids."""

    NO_PARTITION = "no_partition"
    PARTITION_KEY = "partition_key"


# A literal (non-negative) partition id, or one of the reserved slots.
RoutingKey = Union[int, RoutingSlot]


def routing_key_label(key: RoutingKey) -> str:
    """Human-readable label for a routing key (used in logs and results)."""
    if isinstance(key, RoutingSlot):
        return key.value
    return f"partition-{key}"


class BatchOptions(BaseModel):
    """Immutable batch-creation options for one registry key.

    ``max_size_in_bytes`` of ``None`` means "use the transport default".
    """

    model_config = ConfigDict(frozen=True)

    partition_id: str | None = None
    partition_key: str | None = None
    max_size_in_bytes: int | None = Field(default=None, gt=0)


class PartitionIdRouting(BaseModel):
    """All events are sent to one explicit partition."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["partition_id"] = "partition_id"
    partition_id: str

    @field_validator("partition_id")
    @classmethod
    def _must_be_partition_number(cls, v: str) -> str:
        if not v.strip().isdigit():
            raise ValueError(
                f"partition id must be a non-negative integer, got {v!r}"
            )
        return v.strip()

    @property
    def routing_key(self) -> int:
        return int(self.partition_id)


class PartitionKeyRouting(BaseModel):
    """All events carry the same partition key; the transport picks the partition."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["partition_key"] = "partition_key"
    partition_key: str

    @property
    def routing_key(self) -> RoutingSlot:
        return RoutingSlot.PARTITION_KEY


class FanOutRouting(BaseModel):
    """No partition configured: keep one batch per known partition."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fan_out"] = "fan_out"


RoutingMode = Annotated[
    Union[PartitionIdRouting, PartitionKeyRouting, FanOutRouting],
    Field(discriminator="kind"),
]


def resolve_routing_mode(
    partition_id: str | None = None,
    partition_key: str | None = None,
) -> PartitionIdRouting | PartitionKeyRouting | FanOutRouting:
    """Resolve the active routing mode from the configured id and key.

    An explicit partition id always wins over a partition key.  Empty
    strings count as "not configured".

    Raises
    ------
    ValueError
        If a partition id is configured but is not a non-negative integer.
    """
    if partition_id:
        return PartitionIdRouting(partition_id=partition_id)
    if partition_key:
        return PartitionKeyRouting(partition_key=partition_key)
    return FanOutRouting()
