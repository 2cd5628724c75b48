"""Transport event payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from hubdispatch.core.hasher import canonical_json_bytes


class EventData(BaseModel):
    """A single event as handed to the transport.

    ``body`` is the serialized change value; ``properties`` carries
    application headers alongside it.
    """

    model_config = ConfigDict(frozen=True)

    body: str
    properties: dict[str, str] = {}

    def to_bytes(self) -> bytes:
        """Canonical wire encoding of this event."""
        return canonical_json_bytes(
            {"body": self.body, "properties": self.properties}
        )

    @property
    def size_in_bytes(self) -> int:
        """Number of bytes this event occupies inside a batch."""
        return len(self.to_bytes())
