"""hubdispatch data models — all Pydantic v2, all frozen (immutable)."""

from hubdispatch.models.events import EventData
from hubdispatch.models.records import ChangeRecord, RecordCommitter
from hubdispatch.models.results import DispatchSummary, FlushResult
from hubdispatch.models.routing import (
    BatchOptions,
    FanOutRouting,
    PartitionIdRouting,
    PartitionKeyRouting,
    RoutingKey,
    RoutingMode,
    RoutingSlot,
    resolve_routing_mode,
    routing_key_label,
)

__all__ = [
    # events
    "EventData",
    # records
    "ChangeRecord",
    "RecordCommitter",
    # results
    "FlushResult",
    "DispatchSummary",
    # routing
    "RoutingKey",
    "RoutingSlot",
    "RoutingMode",
    "BatchOptions",
    "PartitionIdRouting",
    "PartitionKeyRouting",
    "FanOutRouting",
    "resolve_routing_mode",
    "routing_key_label",
]
