"""hubdispatch: batching and dispatch core of a change-data-capture sink.

Accumulates change events into size-bounded batches keyed by destination
partition, sends each batch through a partitioned producer, and commits
only the records whose batch was confirmed sent.

  - Three routing modes: explicit partition id, explicit partition key,
    or fan-out across every partition the producer knows about
  - Overflow detection: a full batch is flushed and replaced mid-stream
  - Oversized events, transport failures and commit failures are fatal
  - Local partitioned producer (in-memory or SQLite) for demos and tests
"""

import logging

__version__ = "0.2.0"
__description__ = "Partitioned batch dispatcher for change-data-capture sinks"

from hubdispatch.core.batch_manager import BatchManager
from hubdispatch.core.change_consumer import ChangeConsumer
from hubdispatch.cli.app import app as cli

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["BatchManager", "ChangeConsumer", "cli", "__version__"]
