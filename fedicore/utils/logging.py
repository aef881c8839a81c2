"""Logging setup for fedicore entry points.

All rich output (RichHandler, progress bars, summary panels) goes through the
one `console` defined here; pipeline code logs with logging.getLogger(__name__)
or a BasePipelineLogger subclass and never builds its own Console.

Call setup_logging() once from a CLI main(), never at import time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


console = Console()

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Levels for libraries we depend on: (normal, at verbosity 2).
# sqlalchemy.engine at INFO echoes every SQL statement.
THIRD_PARTY_LEVELS: dict[str, tuple[int, int]] = {
    "PIL": (logging.WARNING, logging.DEBUG),
    "asyncio": (logging.WARNING, logging.DEBUG),
    "sqlalchemy.engine": (logging.WARNING, logging.INFO),
}


def setup_logging(verbosity: int = 0, log_file: str | Path | None = None) -> None:
    """Configure the root logger.

    Args:
        verbosity: 0 logs INFO and up. 1 adds DEBUG from fedicore. 2 also
            lets Pillow, asyncio and SQLAlchemy log at their verbose levels.
        log_file: Also append plain-text records to this file
    """
    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handlers.append(file_handler)

    # force=True so a second call replaces handlers instead of stacking them
    logging.basicConfig(
        level=logging.DEBUG if verbosity >= 1 else logging.INFO,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    for name, (normal, verbose) in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(verbose if verbosity >= 2 else normal)
