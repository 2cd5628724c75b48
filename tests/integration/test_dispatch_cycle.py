"""End-to-end dispatch cycles: ChangeConsumer, BatchManager and LocalProducer together."""

from __future__ import annotations

import json
from pathlib import Path

from hubdispatch.bridge.committer import OffsetCommitter
from hubdispatch.bridge.local_producer import LocalProducer
from hubdispatch.config import DispatchSettings
from hubdispatch.core.change_consumer import ChangeConsumer
from hubdispatch.models.records import ChangeRecord


class TestFixedPartitionCycle:
    """Five records, three per batch, all sent to partition 0."""

    def test_two_sends_then_commits_in_order(
        self, producer, committer, timeline, make_records, event_size
    ):
        records = make_records(5)
        settings = DispatchSettings(partition_id="0", max_batch_size=event_size * 3)
        consumer = ChangeConsumer.from_settings(producer, settings)

        summary = consumer.handle_batch(records, committer)

        assert timeline == [
            ("send", ["v0", "v1", "v2"]),
            ("commit", "v0"),
            ("commit", "v1"),
            ("commit", "v2"),
            ("send", ["v3", "v4"]),
            ("commit", "v3"),
            ("commit", "v4"),
        ]
        assert [b.count for b in producer.sent_batches] == [3, 2]
        assert producer.partition_depths() == {"0": 5, "1": 0, "2": 0}
        assert summary.records_dispatched == 5
        assert committer.batches_finished == 1


class TestFanOutCycle:
    def test_records_land_on_their_partitions(self, timeline, committer):
        producer = LocalProducer(3)
        records = [
            ChangeRecord(destination="t", value="a", partition=2),
            ChangeRecord(destination="t", value="b", partition=0),
            ChangeRecord(destination="t", value="c"),
            ChangeRecord(destination="t", value="d", partition=2),
        ]

        summary = ChangeConsumer.from_settings(
            producer, DispatchSettings()
        ).handle_batch(records, committer)

        bodies = {
            pid: [json.loads(p)["body"] for p in producer.received(pid)]
            for pid in producer.list_partition_ids()
        }
        assert bodies["2"][:2] == ["a", "d"]
        assert bodies["0"][0] == "b"
        assert sum(len(v) for v in bodies.values()) == 4
        assert sorted(r.value for r in committer.processed) == ["a", "b", "c", "d"]
        assert {f.routing_key for f in summary.flushes} == {
            "partition-0",
            "partition-2",
            "no_partition",
        }

    def test_commits_within_partition_follow_record_order(self, committer):
        producer = LocalProducer(2)
        records = [
            ChangeRecord(destination="t", value=f"v{i}", partition=i % 2)
            for i in range(6)
        ]

        summary = ChangeConsumer.from_settings(
            producer, DispatchSettings()
        ).handle_batch(records, committer)

        for flush in summary.flushes:
            assert flush.committed_indices == sorted(flush.committed_indices)
        assert len(committer.processed) == 6


class TestSqliteBackedCycle:
    def test_events_survive_producer_restart(self, tmp_path: Path, make_records):
        db_path = tmp_path / "events.db"
        settings = DispatchSettings(partition_key="orders", queue_db_path=db_path)
        committer = OffsetCommitter()

        with LocalProducer(2, queue_db_path=settings.queue_db_path) as producer:
            ChangeConsumer.from_settings(producer, settings).handle_batch(
                make_records(4), committer
            )

        with LocalProducer(2, queue_db_path=db_path) as reopened:
            depths = reopened.partition_depths()

        assert sum(depths.values()) == 4
        assert sorted(depths.values()) == [0, 4]
        assert [r.value for r in committer.processed] == ["v0", "v1", "v2", "v3"]
