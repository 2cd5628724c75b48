"""Source change records and the commit handle that acknowledges them."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class ChangeRecord(BaseModel):
    """One change event as delivered by the source connector.

    A record whose ``value`` is ``None`` is a tombstone.
    """

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    value: str | None = None
    destination: str
    partition: int | None = Field(default=None, ge=0)
    headers: dict[str, str] = {}

    @property
    def is_tombstone(self) -> bool:
        return self.value is None


@runtime_checkable
class RecordCommitter(Protocol):
    """Commit handle supplied by the outer polling loop for one cycle.

    Both methods signal failure by raising.
    """

    def mark_processed(self, record: ChangeRecord) -> None:
        """Mark *record* as durably processed."""
        ...

    def mark_batch_finished(self) -> None:
        """Signal that the whole record list of this cycle is done."""
        ...
