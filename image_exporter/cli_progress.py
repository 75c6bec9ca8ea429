"""Console rendering and progress helpers for the export CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .models import BatchExportResult, ProgressEvent, ProgressStatus

console = Console()


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]image-export[/bold green]",
        subtitle="[dim]entity image exporter[/dim]",
        border_style="blue",
    )
    out.print(panel)


def render_batch_summary(result: BatchExportResult, out: Optional[Console] = None) -> None:
    """Render final statistics and the per-entity errors."""
    out = out or console
    table = Table(title="Export summary", show_header=False, border_style="blue")
    table.add_column(style="bold cyan", justify="right")
    table.add_column(justify="right")
    table.add_row("Entities", f"{result.processed_entities}/{result.total_entities}")
    table.add_row("Uploaded", f"[green]{result.total_uploaded}[/green]")
    table.add_row("Skipped", str(result.total_skipped))
    table.add_row("Not found", f"[yellow]{result.total_not_found}[/yellow]")
    table.add_row("Errors", f"[red]{result.total_errors}[/red]" if result.total_errors else "0")
    table.add_row("Duration", f"{result.duration_ms / 1000:.1f}s")
    out.print(table)

    for error in result.errors:
        out.print(f"[red]✗[/red] {error}")

    if result.success:
        out.print("[bold green]✓ Export completed without errors[/bold green]")
    else:
        out.print("[bold red]Export finished with errors[/bold red]")


class BatchProgressDisplay:
    """Progress bar driven by ProgressEvent values."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[status]:<10}"),
            BarColumn(bar_width=42),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[dim]{task.fields[message]}"),
            console=self._console,
            transient=False,
        )
        self._task_id: Optional[TaskID] = None
        self._started = False

    def start(self, total: int) -> None:
        if self._started:
            return
        self._progress.start()
        self._task_id = self._progress.add_task(
            "export", total=max(total, 1), status="preparing", message=""
        )
        self._started = True

    def on_event(self, event: ProgressEvent) -> None:
        """Progress sink callback."""
        if not self._started:
            self.start(event.total)
        assert self._task_id is not None
        self._progress.update(
            self._task_id,
            completed=event.processed,
            total=max(event.total, 1),
            status=event.status.value,
            message=event.message,
        )
        if event.status is ProgressStatus.ERROR:
            self._console.print(f"[red]✗[/red] {event.message}")

    def stop(self) -> None:
        if self._started:
            self._progress.stop()
            self._started = False
