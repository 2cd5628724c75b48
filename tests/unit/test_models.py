"""Tests for hubdispatch data models — routing modes, options, events and records."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from hubdispatch.models import (
    BatchOptions,
    ChangeRecord,
    DispatchSummary,
    EventData,
    FanOutRouting,
    FlushResult,
    PartitionIdRouting,
    PartitionKeyRouting,
    RoutingMode,
    RoutingSlot,
    resolve_routing_mode,
    routing_key_label,
)


class TestResolveRoutingMode:
    def test_partition_id(self):
        mode = resolve_routing_mode("3", "")
        assert isinstance(mode, PartitionIdRouting)
        assert mode.routing_key == 3

    def test_partition_key(self):
        mode = resolve_routing_mode("", "orders")
        assert isinstance(mode, PartitionKeyRouting)
        assert mode.routing_key is RoutingSlot.PARTITION_KEY

    def test_id_preferred_over_key(self):
        assert isinstance(resolve_routing_mode("0", "orders"), PartitionIdRouting)

    def test_neither_is_fan_out(self):
        assert isinstance(resolve_routing_mode("", ""), FanOutRouting)
        assert isinstance(resolve_routing_mode(None, None), FanOutRouting)

    @pytest.mark.parametrize("bad", ["abc", "-1", "1.5"])
    def test_non_numeric_partition_id_rejected(self, bad: str):
        with pytest.raises(ValueError):
            resolve_routing_mode(bad, "")

    def test_discriminated_union_round_trip(self):
        adapter = TypeAdapter(RoutingMode)
        mode = adapter.validate_python({"kind": "partition_key", "partition_key": "k"})
        assert isinstance(mode, PartitionKeyRouting)


class TestRoutingKeyLabel:
    def test_labels(self):
        assert routing_key_label(4) == "partition-4"
        assert routing_key_label(RoutingSlot.NO_PARTITION) == "no_partition"
        assert routing_key_label(RoutingSlot.PARTITION_KEY) == "partition_key"


class TestBatchOptions:
    def test_frozen(self):
        options = BatchOptions(partition_id="1")
        with pytest.raises(ValidationError):
            options.partition_id = "2"

    def test_max_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            BatchOptions(max_size_in_bytes=0)


class TestEventData:
    def test_size_is_canonical_encoding_length(self):
        event = EventData(body="v0")
        assert event.to_bytes() == b'{"body":"v0","properties":{}}'
        assert event.size_in_bytes == len(event.to_bytes())

    def test_properties_count_towards_size(self):
        plain = EventData(body="v0")
        with_props = EventData(body="v0", properties={"source": "demo"})
        assert with_props.size_in_bytes > plain.size_in_bytes


class TestChangeRecord:
    def test_tombstone(self):
        assert ChangeRecord(destination="t", value=None).is_tombstone
        assert not ChangeRecord(destination="t", value="x").is_tombstone

    def test_negative_partition_rejected(self):
        with pytest.raises(ValidationError):
            ChangeRecord(destination="t", value="x", partition=-1)


class TestDispatchSummary:
    def test_batches_sent(self):
        summary = DispatchSummary(
            records_seen=3,
            records_dispatched=3,
            records_skipped=0,
            flushes=[
                FlushResult(routing_key="partition-0", event_count=2, size_in_bytes=10),
                FlushResult(routing_key="partition-0", event_count=1, size_in_bytes=5),
            ],
        )
        assert summary.batches_sent == 2
