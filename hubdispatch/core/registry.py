"""Partition batch registry — per-routing-key batch state.

Each registry entry is a frozen ``PartitionState`` pairing the key's
``BatchOptions`` with its current ``PendingBatch``.  A batch is never
reset in place: when it has been flushed, a new ``PendingBatch`` is built
from the same options and a new ``PartitionState`` is swapped into the
slot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict

from hubdispatch.bridge.transport import EventBatch, ProducerClient
from hubdispatch.models.events import EventData
from hubdispatch.models.routing import BatchOptions, RoutingKey, routing_key_label

logger = logging.getLogger(__name__)


class PendingBatch:
    """A transport batch together with the record indices appended to it.

    The indices are kept in append order and always describe exactly the
    events inside ``batch``.
    """

    def __init__(self, batch: EventBatch) -> None:
        self._batch = batch
        self._indices: list[int] = []

    @property
    def batch(self) -> EventBatch:
        return self._batch

    @property
    def count(self) -> int:
        return self._batch.count

    @property
    def size_in_bytes(self) -> int:
        return self._batch.size_in_bytes

    @property
    def processed_indices(self) -> list[int]:
        """Return a copy of the appended record indices, in append order."""
        return list(self._indices)

    def try_append(self, event: EventData, record_index: int) -> bool:
        """Append *event* and remember *record_index* if the batch accepts it."""
        if not self._batch.try_add(event):
            return False
        self._indices.append(record_index)
        return True

    def __repr__(self) -> str:
        return f"PendingBatch(count={self.count}, indices={self._indices})"


class PartitionState(BaseModel):
    """Registry entry: creation options plus the batch currently open."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    options: BatchOptions
    pending: PendingBatch


class PartitionBatchRegistry:
    """Owns one ``PartitionState`` per routing key.

    Parameters
    ----------
    producer:
        The transport used to allocate new batches.
    """

    def __init__(self, producer: ProducerClient) -> None:
        self._producer = producer
        self._slots: dict[RoutingKey, PartitionState] = {}

    # ------------------------------------------------------------------
    # Slot management
    # ------------------------------------------------------------------

    def register(self, key: RoutingKey, options: BatchOptions) -> PartitionState:
        """Create the slot for *key* with an empty batch built from *options*."""
        state = PartitionState(
            options=options,
            pending=PendingBatch(self._producer.create_batch(options)),
        )
        self._slots[key] = state
        logger.debug(
            "Registered batch slot %s (partition_id=%s, partition_key=%s, max=%s).",
            routing_key_label(key),
            options.partition_id,
            options.partition_key,
            options.max_size_in_bytes,
        )
        return state

    def renew(self, key: RoutingKey) -> PartitionState:
        """Swap a fresh, empty batch into *key*'s slot, reusing its options."""
        current = self._slots[key]
        state = current.model_copy(
            update={
                "pending": PendingBatch(self._producer.create_batch(current.options))
            }
        )
        self._slots[key] = state
        return state

    def clear(self) -> None:
        """Drop every slot."""
        self._slots.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, key: RoutingKey) -> PartitionState:
        """Return the state registered under *key* (``KeyError`` if absent)."""
        return self._slots[key]

    def keys(self) -> list[RoutingKey]:
        return list(self._slots)

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[RoutingKey]:
        return iter(list(self._slots))
