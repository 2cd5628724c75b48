"""Change consumer — runs one dispatch cycle over a list of change records.

The outer polling loop hands each record list and its commit handle to
``ChangeConsumer.handle_batch``, which:

1. initializes the ``BatchManager`` for the cycle,
2. converts every non-tombstone record to ``EventData`` and appends it
   under the routing key implied by the routing mode,
3. flushes whatever is left in the batches,
4. tells the committer the record list is finished.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from hubdispatch.bridge.transport import ProducerClient
from hubdispatch.core.batch_manager import BatchManager, CommitError
from hubdispatch.models.events import EventData
from hubdispatch.models.records import ChangeRecord, RecordCommitter
from hubdispatch.models.results import DispatchSummary, FlushResult
from hubdispatch.models.routing import (
    FanOutRouting,
    PartitionIdRouting,
    RoutingKey,
    RoutingSlot,
)

if TYPE_CHECKING:
    from hubdispatch.config import DispatchSettings

logger = logging.getLogger(__name__)


class ChangeConsumer:
    """Feeds change records through a ``BatchManager``.

    Parameters
    ----------
    manager:
        The batch manager that owns routing and batch state.
    """

    def __init__(self, manager: BatchManager) -> None:
        self._manager = manager

    @classmethod
    def from_settings(
        cls, producer: ProducerClient, settings: DispatchSettings
    ) -> ChangeConsumer:
        """Build a consumer whose manager is configured from *settings*."""
        return cls(BatchManager.from_settings(producer, settings))

    @property
    def manager(self) -> BatchManager:
        return self._manager

    def resolve_routing_key(self, record: ChangeRecord) -> RoutingKey:
        """Return the registry key *record* is appended under."""
        routing = self._manager.routing
        if isinstance(routing, PartitionIdRouting):
            return routing.routing_key
        if isinstance(routing, FanOutRouting):
            if record.partition is not None:
                return record.partition
            return RoutingSlot.NO_PARTITION
        return routing.routing_key

    def handle_batch(
        self, records: Sequence[ChangeRecord], committer: RecordCommitter
    ) -> DispatchSummary:
        """Dispatch *records* and acknowledge each one once it has been sent.

        Tombstones are skipped: they are neither sent nor committed.

        Raises
        ------
        DispatchError
            Any fatal error from the batch manager, or a ``CommitError``
            when the committer cannot finish the record list.
        """
        self._manager.initialize(records, committer)

        dispatched = 0
        skipped = 0
        flushes: list[FlushResult] = []
        for index, record in enumerate(records):
            if record.is_tombstone:
                logger.debug(
                    "Skipping tombstone record %d for %s.", index, record.destination
                )
                skipped += 1
                continue

            event = EventData(body=record.value, properties=record.headers)
            key = self.resolve_routing_key(record)
            result = self._manager.append(event, index, key)
            if result is not None:
                flushes.append(result)
            dispatched += 1

        flushes.extend(self._manager.close_and_flush_all())

        try:
            committer.mark_batch_finished()
        except Exception as exc:
            logger.error("Finishing record batch failed: %s", exc)
            raise CommitError(f"Failed to mark record batch finished: {exc}") from exc

        summary = DispatchSummary(
            records_seen=len(records),
            records_dispatched=dispatched,
            records_skipped=skipped,
            flushes=flushes,
        )
        logger.info(
            "Dispatched %d of %d records in %d batch(es) (%d skipped).",
            summary.records_dispatched,
            summary.records_seen,
            summary.batches_sent,
            summary.records_skipped,
        )
        return summary
