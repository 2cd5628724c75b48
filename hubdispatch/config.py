"""Dispatcher configuration — env-driven via pydantic-settings.

Reads from a .env file and HUBDISPATCH_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hubdispatch.models.routing import (
    FanOutRouting,
    PartitionIdRouting,
    PartitionKeyRouting,
    resolve_routing_mode,
)


class DispatchSettings(BaseSettings):
    """Settings for the batch dispatcher and the local producer.

    Examples
    --------
    Override via environment::

        export HUBDISPATCH_PARTITION_ID=2
        export HUBDISPATCH_MAX_BATCH_SIZE=262144
        export HUBDISPATCH_LOG_LEVEL=DEBUG

    Or via .env file::

        HUBDISPATCH_PARTITION_KEY=orders
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="HUBDISPATCH_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Routing: a partition id wins over a partition key; neither means fan-out
    partition_id: str = ""
    partition_key: str = ""
    max_batch_size: int = Field(default=0, ge=0)  # bytes, 0 = transport default

    # Local producer
    partition_count: int = Field(default=4, ge=1)
    queue_db_path: Path | None = None

    @property
    def routing_mode(self) -> PartitionIdRouting | PartitionKeyRouting | FanOutRouting:
        """The routing mode these settings resolve to."""
        return resolve_routing_mode(self.partition_id, self.partition_key)

