"""Local partitioned producer — an in-process stand-in for a networked broker.

``LocalProducer`` implements the ``ProducerClient`` protocol with two
storage backends:

1. **SQLite** (``queue_db_path`` provided): persistent, survives restart.
2. **In-memory deques** (``queue_db_path`` is None): volatile, suitable
   for tests and the CLI demo.

Partition placement on ``send``:

* explicit ``partition_id`` in the batch options → that partition
* ``partition_key`` → stable SHA-256 bucket of the key
* neither → round-robin across partitions
"""

from __future__ import annotations

import collections
import itertools
import logging
import sqlite3
from pathlib import Path
from typing import Any

from hubdispatch.core.hasher import stable_bucket
from hubdispatch.models.events import EventData
from hubdispatch.models.routing import BatchOptions

logger = logging.getLogger(__name__)

# Default upper bound for a batch when the options do not set one.
DEFAULT_MAX_BATCH_SIZE_BYTES = 1_048_576


class TransportError(RuntimeError):
    """Raised when a local transport operation fails."""


class LocalEventBatch:
    """Size-bounded event batch handed out by ``LocalProducer``."""

    def __init__(self, options: BatchOptions, max_size_in_bytes: int) -> None:
        self._options = options
        self._max_size = max_size_in_bytes
        self._events: list[EventData] = []
        self._size = 0

    @property
    def options(self) -> BatchOptions:
        return self._options

    @property
    def max_size_in_bytes(self) -> int:
        return self._max_size

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def size_in_bytes(self) -> int:
        return self._size

    @property
    def events(self) -> list[EventData]:
        """Return a copy of the events in append order."""
        return list(self._events)

    def try_add(self, event: EventData) -> bool:
        event_size = event.size_in_bytes
        if self._size + event_size > self._max_size:
            return False
        self._events.append(event)
        self._size += event_size
        return True

    def __repr__(self) -> str:
        return (
            f"LocalEventBatch(count={self.count}, size={self._size}/"
            f"{self._max_size}, partition_id={self._options.partition_id!r}, "
            f"partition_key={self._options.partition_key!r})"
        )


class LocalProducer:
    """Partitioned producer storing sent events locally.

    Parameters
    ----------
    partition_count:
        Number of partitions, ids ``"0"`` .. ``str(partition_count - 1)``.
    default_max_batch_size:
        Batch size limit used when ``BatchOptions.max_size_in_bytes`` is None.
    queue_db_path:
        Path to a SQLite database file for persistent storage.  When
        ``None``, in-memory deques are used.
    """

    def __init__(
        self,
        partition_count: int = 4,
        *,
        default_max_batch_size: int = DEFAULT_MAX_BATCH_SIZE_BYTES,
        queue_db_path: Path | None = None,
    ) -> None:
        if partition_count < 1:
            raise ValueError("partition_count must be >= 1")
        if default_max_batch_size < 1:
            raise ValueError("default_max_batch_size must be >= 1")

        self._partition_ids = [str(i) for i in range(partition_count)]
        self._default_max_batch_size = default_max_batch_size
        self._round_robin = itertools.cycle(self._partition_ids)
        self._closed = False
        self._sent_batches: list[LocalEventBatch] = []

        self._db: sqlite3.Connection | None = None
        if queue_db_path is not None:
            self._db = sqlite3.connect(str(queue_db_path))
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS events ("
                "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
                "  partition_id TEXT NOT NULL,"
                "  payload BLOB NOT NULL,"
                "  created_at TEXT DEFAULT (datetime('now'))"
                ")"
            )
            self._db.commit()
            logger.info(
                "LocalProducer: using SQLite storage at %s (partitions=%d).",
                queue_db_path,
                partition_count,
            )
        else:
            logger.info(
                "LocalProducer: using in-memory storage (partitions=%d).",
                partition_count,
            )

        self._partitions: dict[str, collections.deque[bytes]] = {
            pid: collections.deque() for pid in self._partition_ids
        }

    # ------------------------------------------------------------------
    # ProducerClient protocol
    # ------------------------------------------------------------------

    def list_partition_ids(self) -> list[str]:
        self._ensure_open()
        return list(self._partition_ids)

    def create_batch(self, options: BatchOptions) -> LocalEventBatch:
        self._ensure_open()
        if (
            options.partition_id is not None
            and options.partition_id not in self._partitions
        ):
            raise TransportError(
                f"Unknown partition id {options.partition_id!r}; "
                f"known: {self._partition_ids}"
            )
        max_size = options.max_size_in_bytes or self._default_max_batch_size
        return LocalEventBatch(options, max_size)

    def send(self, batch: LocalEventBatch) -> None:
        """Store every event of *batch* under its target partition.

        Raises
        ------
        TransportError
            If the producer is closed or the batch targets an unknown partition.
        """
        self._ensure_open()
        partition_id = self._place(batch.options)
        payloads = [event.to_bytes() for event in batch.events]

        if self._db is not None:
            self._db.executemany(
                "INSERT INTO events (partition_id, payload) VALUES (?, ?)",
                [(partition_id, payload) for payload in payloads],
            )
            self._db.commit()
        else:
            self._partitions[partition_id].extend(payloads)

        self._sent_batches.append(batch)
        logger.debug(
            "LocalProducer.send: stored %d events (%d bytes) in partition %s.",
            batch.count,
            batch.size_in_bytes,
            partition_id,
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def sent_batches(self) -> list[LocalEventBatch]:
        """Every batch accepted by ``send``, in send order."""
        return list(self._sent_batches)

    def received(self, partition_id: str) -> list[bytes]:
        """Return the raw payloads stored in *partition_id*, oldest first."""
        if partition_id not in self._partitions:
            raise TransportError(f"Unknown partition id {partition_id!r}")
        if self._db is not None:
            rows = self._db.execute(
                "SELECT payload FROM events WHERE partition_id = ? ORDER BY id",
                (partition_id,),
            ).fetchall()
            return [bytes(row[0]) for row in rows]
        return list(self._partitions[partition_id])

    def partition_depths(self) -> dict[str, int]:
        """Number of stored events per partition id."""
        return {pid: len(self.received(pid)) for pid in self._partition_ids}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release storage; further calls raise ``TransportError``."""
        if self._db is not None:
            self._db.close()
            self._db = None
        self._closed = True
        logger.info("LocalProducer: closed.")

    def __enter__(self) -> LocalProducer:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        backend = "sqlite" if self._db is not None else "memory"
        return (
            f"LocalProducer(partitions={len(self._partition_ids)}, "
            f"backend={backend})"
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransportError("LocalProducer is closed")

    def _place(self, options: BatchOptions) -> str:
        if options.partition_id is not None:
            if options.partition_id not in self._partitions:
                raise TransportError(
                    f"Unknown partition id {options.partition_id!r}"
                )
            return options.partition_id
        if options.partition_key is not None:
            index = stable_bucket(options.partition_key, len(self._partition_ids))
            return self._partition_ids[index]
        return next(self._round_robin)
