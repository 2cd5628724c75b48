"""Shared test fixtures for hubdispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from hubdispatch.bridge.local_producer import LocalEventBatch, LocalProducer
from hubdispatch.logging_config import ROOT_LOGGER_NAME
from hubdispatch.models.events import EventData
from hubdispatch.models.records import ChangeRecord


class RecordingProducer(LocalProducer):
    """LocalProducer that logs sends to a shared timeline and can fail on demand."""

    def __init__(
        self,
        partition_count: int = 3,
        *,
        timeline: list[tuple[str, Any]] | None = None,
        send_error: Exception | None = None,
        fail_after: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(partition_count, **kwargs)
        self.timeline = timeline if timeline is not None else []
        self.send_error = send_error
        self.fail_after = fail_after
        self.send_attempts = 0
        self.created_options = []

    def create_batch(self, options):
        self.created_options.append(options)
        return super().create_batch(options)

    def send(self, batch: LocalEventBatch) -> None:
        self.send_attempts += 1
        if self.send_error is not None and self.send_attempts > self.fail_after:
            raise self.send_error
        super().send(batch)
        self.timeline.append(("send", [e.body for e in batch.events]))


class RecordingCommitter:
    """Commit handle that logs commits to a shared timeline and can fail on demand."""

    def __init__(
        self,
        timeline: list[tuple[str, Any]] | None = None,
        *,
        fail_on_commit: int | None = None,
        fail_on_finish: bool = False,
    ) -> None:
        self.timeline = timeline if timeline is not None else []
        self.fail_on_commit = fail_on_commit
        self.fail_on_finish = fail_on_finish
        self.processed: list[ChangeRecord] = []
        self.batches_finished = 0

    def mark_processed(self, record: ChangeRecord) -> None:
        if self.fail_on_commit is not None and len(self.processed) == self.fail_on_commit:
            raise RuntimeError("offset store unavailable")
        self.processed.append(record)
        self.timeline.append(("commit", record.value))

    def mark_batch_finished(self) -> None:
        if self.fail_on_finish:
            raise RuntimeError("offset flush failed")
        self.batches_finished += 1


@pytest.fixture
def timeline() -> list[tuple[str, Any]]:
    """Ordered log of sends and commits shared by producer and committer."""
    return []


@pytest.fixture
def producer(timeline: list[tuple[str, Any]]) -> RecordingProducer:
    """A three-partition recording producer."""
    return RecordingProducer(3, timeline=timeline)


@pytest.fixture
def committer(timeline: list[tuple[str, Any]]) -> RecordingCommitter:
    """A recording committer sharing the producer's timeline."""
    return RecordingCommitter(timeline)


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_records() -> Callable[..., list[ChangeRecord]]:
    """Factory fixture: ``n`` equally sized change records ``v0``, ``v1``, ..."""

    def _factory(n: int, **overrides: Any) -> list[ChangeRecord]:
        records = []
        for i in range(n):
            defaults: dict[str, Any] = {
                "key": f"k{i}",
                "value": f"v{i}",
                "destination": "inventory.orders",
            }
            defaults.update(overrides)
            records.append(ChangeRecord(**defaults))
        return records

    return _factory


@pytest.fixture
def event_of() -> Callable[[ChangeRecord], EventData]:
    """Build the EventData that ChangeConsumer would produce for a record."""

    def _convert(record: ChangeRecord) -> EventData:
        return EventData(body=record.value, properties=record.headers)

    return _convert


@pytest.fixture
def event_size() -> int:
    """Size in bytes of one event built from a ``v<digit>`` record."""
    return EventData(body="v0").size_in_bytes


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo any setup_logging() call (CLI runs, logging tests) after each test."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
