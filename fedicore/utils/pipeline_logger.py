"""Shared rich output for pipeline loggers.

A pipeline logger does two kinds of output:
- log records (info/warning/error/debug) through Python logging, so they
  reach RichHandler and the optional log file set up by setup_logging()
- console-only output: per-item blocks, progress bars, the final summary

Pipeline-specific loggers subclass BasePipelineLogger and add one method per
event they report, plus summary().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from fedicore.utils.logging import console

if TYPE_CHECKING:
    from typing import Self


class StructuredBlock:
    """Indented key/value output for one item, closed by a result line.

    Usage:
        with logger.block("photo.jpg") as block:
            block.field("kind", "image")
            block.field("id", attachment_id, color="cyan")
            block.result("processed")

    Output:
        photo.jpg
            kind: image
            id: 3f2a...
            ✓ processed

    If the body raises before result() is called, the exception message is
    shown as a failed result and the exception propagates.
    """

    def __init__(self, title: str, console: Console) -> None:
        self.title = title
        self.console = console
        self.finished = False

    def __enter__(self) -> "Self":
        self.console.print(f"\n[bold]{self.title}[/bold]")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_val is not None and not self.finished:
            self.result(str(exc_val) or exc_type.__name__, success=False)

    def field(self, key: str, value: Any, color: str | None = None) -> None:
        text = f"[{color}]{value}[/{color}]" if color else str(value)
        self.console.print(f"    [dim]{key}:[/dim] {text}")

    def result(self, message: str, success: bool = True) -> None:
        icon = "[green]✓[/green]" if success else "[red]✗[/red]"
        self.console.print(f"    {icon} {message}")
        self.finished = True


class BasePipelineLogger(ABC):
    """Base class for pipeline loggers.

    Args:
        logger_name: Name of the underlying Python logger. Defaults to the
            subclass's module.
    """

    def __init__(self, logger_name: str | None = None) -> None:
        self.console: Console = console
        self._logger = logging.getLogger(logger_name or self.__class__.__module__)

    # -------------------------------------------------------------------------
    # Log records
    # -------------------------------------------------------------------------

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def debug(self, message: str) -> None:
        self._logger.debug(message)

    def success(self, message: str) -> None:
        """Print a green check line (console only)."""
        self.console.print(f"[green]✓[/green] {message}")

    # -------------------------------------------------------------------------
    # Console output
    # -------------------------------------------------------------------------

    @contextmanager
    def block(self, title: str) -> Generator[StructuredBlock, None, None]:
        """Open a StructuredBlock titled `title`."""
        with StructuredBlock(title, self.console) as block:
            yield block

    @contextmanager
    def progress_context(self) -> Generator[Progress, None, None]:
        """Progress bar on the shared console; callers add their own tasks."""
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )
        with progress:
            yield progress

    def print_summary(
        self,
        pipeline_name: str,
        *,
        elapsed: float,
        stats: dict[str, int | str],
        throughput: int | None = None,
        style: str = "cyan",
    ) -> None:
        """Print the end-of-run panel.

        Args:
            pipeline_name: Shown as "<pipeline_name> Complete"
            elapsed: Run time in seconds
            stats: Rows as {label: value}; ints get thousands separators
            throughput: Item count to report per second of elapsed time
            style: Border colour
        """
        table = Table.grid(padding=(0, 2))
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right", style="green")

        for label, value in stats.items():
            table.add_row(label, f"{value:,}" if isinstance(value, int) else str(value))
        table.add_row("Time elapsed", f"{elapsed:.1f}s")
        if throughput is not None and elapsed > 0:
            table.add_row("Throughput", f"{throughput / elapsed:.1f}/s")

        self.console.print()
        self.console.print(
            Panel(
                table,
                title=f"[bold]{pipeline_name} Complete[/bold]",
                border_style=style,
                padding=(1, 2),
            )
        )

    @abstractmethod
    def summary(self, **kwargs: Any) -> None:
        """Print the final summary for this pipeline."""
        ...
