"""Outcome models returned by the dispatcher and the change consumer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FlushResult(BaseModel):
    """One batch that was transmitted and whose records were committed."""

    model_config = ConfigDict(frozen=True)

    routing_key: str  # label, see routing_key_label()
    event_count: int
    size_in_bytes: int
    committed_indices: list[int] = []


class DispatchSummary(BaseModel):
    """Totals for one ``ChangeConsumer.handle_batch`` cycle."""

    model_config = ConfigDict(frozen=True)

    records_seen: int
    records_dispatched: int
    records_skipped: int
    flushes: list[FlushResult] = []

    @property
    def batches_sent(self) -> int:
        return len(self.flushes)
