"""Logging setup built on ``rich``."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(*, verbose: bool = False) -> logging.Logger:
    """Configure and return the package root logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    # urllib3 logs every connection at DEBUG; keep it quiet unless asked.
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger = logging.getLogger("index_duplicator")
    logger.setLevel(level)
    return logger
