"""Batch dispatcher — accumulates events per partition and commits on send.

Lifecycle of one dispatch cycle::

    manager.initialize(records, committer)
    for index, event, key in ...:
        manager.append(event, index, key)
    manager.close_and_flush_all()

Guarantees:

- A record index is committed only after the batch holding its event was
  transmitted successfully; transmission always precedes the commits of
  that batch, which run in append order.
- An event that cannot fit into an empty batch aborts the cycle with
  ``OversizedEventError``.
- Transport and commit failures are wrapped and raised, never retried and
  never swallowed.  Commits already issued before a failure stand.
- A sent batch is removed from its slot before its records are committed.
  After a failed flush every call except ``initialize`` raises
  ``DispatcherStateError``, so nothing is sent or committed twice.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from hubdispatch.bridge.transport import ProducerClient
from hubdispatch.core.registry import PartitionBatchRegistry, PartitionState, PendingBatch
from hubdispatch.models.events import EventData
from hubdispatch.models.records import ChangeRecord, RecordCommitter
from hubdispatch.models.results import FlushResult
from hubdispatch.models.routing import (
    BatchOptions,
    FanOutRouting,
    PartitionIdRouting,
    PartitionKeyRouting,
    RoutingKey,
    RoutingSlot,
    resolve_routing_mode,
    routing_key_label,
)

if TYPE_CHECKING:
    from hubdispatch.config import DispatchSettings

logger = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    """Base class for fatal dispatch-cycle errors."""


class OversizedEventError(DispatchError):
    """Raised when a single event does not fit into an empty batch."""


class TransmissionError(DispatchError):
    """Raised when the transport fails to send a batch."""


class CommitError(DispatchError):
    """Raised when the commit handle fails for a transmitted record."""


class UnknownRoutingKeyError(DispatchError):
    """Raised when an event targets a key with no registry entry."""


class DispatcherStateError(DispatchError):
    """Raised when the dispatcher is used before ``initialize`` or after a failed flush."""


class BatchManager:
    """Per-partition batch accumulator and flush engine.

    Parameters
    ----------
    producer:
        The partitioned transport client.
    partition_id:
        Explicit target partition id; empty means "not configured".
    partition_key:
        Explicit partition key; ignored when ``partition_id`` is set.
    max_batch_size:
        Maximum batch size in bytes; ``0`` means the transport default.
    """

    def __init__(
        self,
        producer: ProducerClient,
        partition_id: str = "",
        partition_key: str = "",
        max_batch_size: int = 0,
    ) -> None:
        if max_batch_size < 0:
            raise ValueError("max_batch_size must be >= 0")
        self._producer = producer
        self._routing = resolve_routing_mode(partition_id, partition_key)
        self._max_batch_size = max_batch_size
        self._registry = PartitionBatchRegistry(producer)
        self._template: BatchOptions | None = None
        self._records: Sequence[ChangeRecord] | None = None
        self._committer: RecordCommitter | None = None
        self._failed = False

    @classmethod
    def from_settings(
        cls, producer: ProducerClient, settings: DispatchSettings
    ) -> BatchManager:
        """Build a manager from the routing fields of *settings*."""
        return cls(
            producer,
            partition_id=settings.partition_id,
            partition_key=settings.partition_key,
            max_batch_size=settings.max_batch_size,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def routing(self) -> PartitionIdRouting | PartitionKeyRouting | FanOutRouting:
        """The routing mode resolved at construction."""
        return self._routing

    @property
    def registry(self) -> PartitionBatchRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self, records: Sequence[ChangeRecord], committer: RecordCommitter
    ) -> None:
        """Bind the cycle's records and committer and rebuild the registry.

        Any state left from a previous cycle is discarded.
        """
        # Cleared once the registry has been rebuilt.
        self._failed = True
        self._records = records
        self._committer = committer
        self._registry.clear()
        self._template = None

        max_size = self._max_batch_size or None
        routing = self._routing

        if isinstance(routing, PartitionIdRouting):
            self._registry.register(
                routing.routing_key,
                BatchOptions(
                    partition_id=routing.partition_id, max_size_in_bytes=max_size
                ),
            )
        elif isinstance(routing, PartitionKeyRouting):
            self._registry.register(
                routing.routing_key,
                BatchOptions(
                    partition_key=routing.partition_key, max_size_in_bytes=max_size
                ),
            )
        else:
            # Template for events that arrive without a partition; its
            # slot is only created on first use.
            self._template = BatchOptions(max_size_in_bytes=max_size)
            for partition_id in self._producer.list_partition_ids():
                self._registry.register(
                    int(partition_id),
                    BatchOptions(
                        partition_id=partition_id, max_size_in_bytes=max_size
                    ),
                )

        self._failed = False
        logger.debug(
            "Initialized %s routing with %d batch slot(s) for %d record(s).",
            routing.kind,
            len(self._registry),
            len(records),
        )

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def append(
        self, event: EventData, record_index: int, routing_key: RoutingKey
    ) -> FlushResult | None:
        """Append *event* (record *record_index*) to *routing_key*'s batch.

        When the batch is full it is flushed, replaced by a fresh batch and
        the append is retried once.  Returns the result of that overflow
        flush, or ``None`` when the event fit without one.

        Raises
        ------
        OversizedEventError
            If the event does not fit into an empty batch.
        UnknownRoutingKeyError
            If *routing_key* has no registry entry.
        TransmissionError, CommitError
            If the overflow flush fails.
        """
        self._ensure_initialized()
        pending = self._slot_for(routing_key).pending

        if pending.try_append(event, record_index):
            return None

        if pending.count == 0:
            raise OversizedEventError(
                f"Event for record {record_index} ({event.size_in_bytes} bytes) "
                f"is too large to fit into a batch for "
                f"{routing_key_label(routing_key)}"
            )

        logger.debug(
            "Maximum batch size reached for %s, dispatching %d events.",
            routing_key_label(routing_key),
            pending.count,
        )
        result = self._flush_key(routing_key)
        pending = self._registry.get(routing_key).pending

        if not pending.try_append(event, record_index):
            raise OversizedEventError(
                f"Event for record {record_index} ({event.size_in_bytes} bytes) "
                f"does not fit into a fresh batch for "
                f"{routing_key_label(routing_key)}"
            )
        return result

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self, routing_key: RoutingKey) -> FlushResult | None:
        """Transmit *routing_key*'s batch, then commit its records in order.

        Once the batch has been sent the slot holds a fresh, empty batch
        built from the same options, as after an overflow flush, so the
        key can keep accumulating.  Returns ``None`` when the batch is empty.

        Raises
        ------
        UnknownRoutingKeyError
            If *routing_key* has no registry entry.
        TransmissionError, CommitError
            If sending or committing fails.  The manager then refuses
            further calls until it is initialized again.
        """
        self._ensure_initialized()
        if routing_key not in self._registry:
            raise UnknownRoutingKeyError(
                f"No batch registered for {routing_key_label(routing_key)}"
            )
        return self._flush_key(routing_key)

    def close_and_flush_all(self) -> list[FlushResult]:
        """Flush every non-empty batch.  Keys are independent; order is unspecified."""
        self._ensure_initialized()
        results: list[FlushResult] = []
        for key in self._registry:
            result = self._flush_key(key)
            if result is not None:
                results.append(result)
        return results

    def _flush_key(self, key: RoutingKey) -> FlushResult | None:
        pending = self._registry.get(key).pending
        count = pending.count
        if count == 0:
            return None

        label = routing_key_label(key)
        indices = pending.processed_indices
        try:
            self._send(pending, label)
            # The sent batch leaves the slot before any of its records is
            # committed, so the slot never holds a committed index.
            self._registry.renew(key)
            self._commit(indices)
        except Exception:
            self._failed = True
            raise

        return FlushResult(
            routing_key=label,
            event_count=count,
            size_in_bytes=pending.size_in_bytes,
            committed_indices=indices,
        )

    def _send(self, pending: PendingBatch, label: str) -> None:
        try:
            logger.debug("Sending batch of %d events for %s.", pending.count, label)
            self._producer.send(pending.batch)
        except Exception as exc:
            logger.error("Sending batch for %s failed: %s", label, exc)
            raise TransmissionError(
                f"Failed to send batch of {pending.count} events for {label}: {exc}"
            ) from exc

    def _commit(self, indices: list[int]) -> None:
        logger.debug(
            "Marking records as processed: %s", "; ".join(str(i) for i in indices)
        )
        for index in indices:
            record = self._records[index]
            try:
                self._committer.mark_processed(record)
            except Exception as exc:
                logger.error("Committing record %d failed: %s", index, exc)
                raise CommitError(
                    f"Failed to mark record {index} as processed: {exc}"
                ) from exc

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if self._records is None or self._committer is None:
            raise DispatcherStateError(
                "BatchManager.initialize() must be called before dispatching"
            )
        if self._failed:
            raise DispatcherStateError(
                "A previous flush or initialization failed; call "
                "BatchManager.initialize() to start a new cycle"
            )

    def _slot_for(self, key: RoutingKey) -> PartitionState:
        if key in self._registry:
            return self._registry.get(key)
        if key == RoutingSlot.NO_PARTITION and self._template is not None:
            return self._registry.register(RoutingSlot.NO_PARTITION, self._template)
        raise UnknownRoutingKeyError(
            f"No batch registered for {routing_key_label(key)} "
            f"under {self._routing.kind} routing"
        )
