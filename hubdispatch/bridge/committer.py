"""In-memory commit handle.

``OffsetCommitter`` records every record marked as processed, in call
order, and counts finished cycles.  The CLI demo and the tests use it in
place of the source connector's offset tracker.
"""

from __future__ import annotations

import logging

from hubdispatch.models.records import ChangeRecord

logger = logging.getLogger(__name__)


class OffsetCommitter:
    """Collects processed records in the order they were committed."""

    def __init__(self) -> None:
        self._processed: list[ChangeRecord] = []
        self._batches_finished = 0

    def mark_processed(self, record: ChangeRecord) -> None:
        self._processed.append(record)
        logger.debug(
            "OffsetCommitter: processed record for %s (total=%d).",
            record.destination,
            len(self._processed),
        )

    def mark_batch_finished(self) -> None:
        self._batches_finished += 1
        logger.debug(
            "OffsetCommitter: batch finished (%d so far).", self._batches_finished
        )

    @property
    def processed(self) -> list[ChangeRecord]:
        """Return a copy of the committed records in commit order."""
        return list(self._processed)

    @property
    def batches_finished(self) -> int:
        return self._batches_finished
