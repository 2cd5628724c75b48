"""``hubdispatch demo`` — run one dispatch cycle over synthetic change records.

Generates change records, pushes them through a ``ChangeConsumer`` backed
by a ``LocalProducer`` and shows every flushed batch and the resulting
partition depths.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hubdispatch.bridge.committer import OffsetCommitter
from hubdispatch.bridge.local_producer import LocalProducer, TransportError
from hubdispatch.config import DispatchSettings
from hubdispatch.core.batch_manager import DispatchError
from hubdispatch.core.change_consumer import ChangeConsumer
from hubdispatch.logging_config import setup_logging
from hubdispatch.models.records import ChangeRecord

console = Console()


def make_sample_records(
    count: int, partitions: int, destination: str = "inventory.orders"
) -> list[ChangeRecord]:
    """Build *count* synthetic change records.

    Every seventh record is a tombstone and every fifth carries no
    partition, so all code paths of a fan-out cycle are exercised.
    """
    records: list[ChangeRecord] = []
    for i in range(count):
        value = None
        if i % 7 != 6:
            value = json.dumps({"id": i, "op": "c", "after": {"qty": i * 3}})
        records.append(
            ChangeRecord(
                key=f"order-{i}",
                value=value,
                destination=destination,
                partition=None if i % 5 == 4 else i % partitions,
                headers={"source": "demo"},
            )
        )
    return records


def demo_cmd(
    records: int = typer.Option(25, "--records", "-n", min=0, help="Number of change records."),
    max_batch_size: int = typer.Option(
        512, "--max-batch-size", min=0, help="Maximum batch size in bytes (0 = producer default)."
    ),
    partition_id: str = typer.Option("", "--partition-id", help="Send everything to this partition."),
    partition_key: str = typer.Option("", "--partition-key", help="Send everything with this partition key."),
    partitions: int = typer.Option(4, "--partitions", min=1, help="Partitions of the local producer."),
    queue_db: Path = typer.Option(None, "--queue-db", help="Store sent events in this SQLite file."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level."),
) -> None:
    """Run one dispatch cycle against a local partitioned producer."""
    setup_logging(log_level, pretty=True)

    try:
        settings = DispatchSettings(
            partition_id=partition_id,
            partition_key=partition_key,
            max_batch_size=max_batch_size,
            partition_count=partitions,
            queue_db_path=queue_db,
        )
        routing = settings.routing_mode
    except ValueError as exc:
        console.print(f"[bold red]Invalid settings:[/bold red] {exc}")
        raise typer.Exit(code=2)
    sample = make_sample_records(records, partitions)

    console.print(
        Panel(
            f"[bold]Routing:[/bold] {routing.kind}\n"
            f"[bold]Records:[/bold] {len(sample)}\n"
            f"[bold]Max batch size:[/bold] {max_batch_size or 'producer default'}",
            title="[bold]hubdispatch demo[/bold]",
            border_style="cyan",
        )
    )

    committer = OffsetCommitter()
    with LocalProducer(partitions, queue_db_path=settings.queue_db_path) as producer:
        consumer = ChangeConsumer.from_settings(producer, settings)
        try:
            summary = consumer.handle_batch(sample, committer)
        except (DispatchError, TransportError) as exc:
            console.print(f"[bold red]Dispatch failed:[/bold red] {exc}")
            raise typer.Exit(code=1)

        table = Table(title="Flushed batches")
        table.add_column("#", justify="right")
        table.add_column("Routing key", style="cyan")
        table.add_column("Events", justify="right")
        table.add_column("Bytes", justify="right")
        table.add_column("Committed indices")
        for n, flush in enumerate(summary.flushes, start=1):
            table.add_row(
                str(n),
                flush.routing_key,
                str(flush.event_count),
                str(flush.size_in_bytes),
                ", ".join(str(i) for i in flush.committed_indices),
            )
        console.print(table)

        depths = Table(title="Partition depths")
        depths.add_column("Partition", style="cyan")
        depths.add_column("Events", justify="right")
        for pid, depth in producer.partition_depths().items():
            depths.add_row(pid, str(depth))
        console.print(depths)

    console.print(
        f"[bold green]Dispatched {summary.records_dispatched}[/bold green] "
        f"of {summary.records_seen} records in {summary.batches_sent} batch(es); "
        f"{summary.records_skipped} tombstone(s) skipped; "
        f"{len(committer.processed)} committed."
    )
