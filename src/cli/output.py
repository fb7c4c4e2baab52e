"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich library for progress bars, spinners, tables and colored output.
Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator, List

from rich.console import Console
from rich.live import Live
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.spinner import Spinner
from rich.table import Table

from src.space_sync.models import HydrationStats, ItemState, PreflightItem
from src.space_sync.preflight import item_type

from .models import SyncSummary


class OutputHandler:
    """Handles all terminal output using Rich library.

    Provides methods for displaying messages, progress bars, spinners,
    plans and summaries with color coding and verbosity level control.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
        >>> with handler.spinner("Loading stories..."):
        ...     # Do work
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Args:
            message: Message to display with spinner

        Yields:
            None
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10):
            yield

    @contextmanager
    def progress_bar(self, total: int, description: str = "Processing") -> Iterator[Progress]:
        """Display progress bar for multi-item operations.

        Args:
            total: Total number of items to process
            description: Description text for progress bar

        Yields:
            Progress instance for updating progress

        Example:
            >>> with handler.progress_bar(10, "Syncing stories") as progress:
            ...     task = progress.add_task("Syncing stories", total=10)
            ...     progress.update(task, advance=1)
        """
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        with progress:
            yield progress

    def print_plan(self, items: List[PreflightItem]) -> None:
        """Display the ordered sync plan as a table."""
        if not items:
            self.console.print("\n[yellow]Nothing to sync[/yellow]")
            return

        table = Table(title="Sync Plan", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Action")
        table.add_column("Type")
        table.add_column("Full slug")
        table.add_column("Name")

        for index, item in enumerate(items, start=1):
            if item.state == ItemState.UPDATE:
                action = "[blue]update[/blue]"
            elif item.state == ItemState.SKIP:
                action = "[dim]skip[/dim]"
            else:
                action = "[green]create[/green]"
            table.add_row(str(index), action, item_type(item.story), item.story.full_slug, item.story.name)

        self.console.print(table)
        creates = sum(1 for it in items if it.state == ItemState.CREATE)
        updates = sum(1 for it in items if it.state == ItemState.UPDATE)
        self.console.print(f"{len(items)} item(s): {creates} to create, {updates} to update")

    def print_hydration(self, stats: HydrationStats) -> None:
        self.info(
            f"Prefetched content for {stats.total} stories "
            f"({stats.drafts} drafts, {stats.published} published, {stats.misses} misses)"
        )

    def print_summary(self, summary: SyncSummary) -> None:
        """Display sync summary with color coding."""
        self.console.print("\n[bold]Sync Summary:[/bold]")

        if summary.created_count > 0:
            self.console.print(f"  [green]+[/green] Created: {summary.created_count} item(s)")

        if summary.updated_count > 0:
            self.console.print(f"  [blue]↻[/blue] Updated: {summary.updated_count} item(s)")

        if summary.warning_count > 0:
            self.console.print(f"  [yellow]⚠[/yellow] Warnings: {summary.warning_count} item(s)")

        if summary.failed_count > 0:
            self.console.print(f"  [red]✗[/red] Failed: {summary.failed_count} item(s)")

        if summary.cancelled_count > 0:
            self.console.print(f"  [dim]─[/dim] Cancelled: {summary.cancelled_count} item(s)")

        total = summary.created_count + summary.updated_count + summary.failed_count
        if total == 0 and summary.cancelled_count == 0:
            self.console.print("\n[yellow]No items synced[/yellow]")
        elif summary.failed_count > 0:
            self.console.print("\n[red]Sync completed with failures[/red]")
        elif summary.cancelled_count > 0:
            self.console.print("\n[yellow]Sync cancelled[/yellow]")
        else:
            self.console.print("\n[green]Sync completed successfully[/green]")
