"""Transport protocols consumed by the batch dispatcher.

The dispatcher never imports a concrete client.  Anything that provides
``list_partition_ids`` / ``create_batch`` / ``send`` and hands out batches
with ``try_add`` / ``count`` can sit behind it: the bundled
``LocalProducer`` or an adapter around a networked partitioned broker.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hubdispatch.models.events import EventData
from hubdispatch.models.routing import BatchOptions


@runtime_checkable
class EventBatch(Protocol):
    """A transport-provided, size-bounded buffer of events.

    Append-only: events are only ever added through ``try_add`` and the
    batch is discarded after it has been sent.
    """

    @property
    def options(self) -> BatchOptions:
        """The options this batch was created with."""
        ...

    @property
    def count(self) -> int:
        """Number of events currently in the batch."""
        ...

    @property
    def size_in_bytes(self) -> int:
        """Bytes currently occupied by the batch."""
        ...

    def try_add(self, event: EventData) -> bool:
        """Add *event* if it fits; return ``False`` when the batch is full."""
        ...


@runtime_checkable
class ProducerClient(Protocol):
    """A partitioned producer.

    ``send`` blocks until the batch is acknowledged and raises on any
    failure (network, authentication, rejected batch).
    """

    def list_partition_ids(self) -> list[str]:
        """Return every partition id known to the transport."""
        ...

    def create_batch(self, options: BatchOptions) -> EventBatch:
        """Allocate a new empty batch bound to *options*."""
        ...

    def send(self, batch: EventBatch) -> None:
        """Transmit *batch*."""
        ...
