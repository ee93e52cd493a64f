"""Logging setup for the CLI.

Library modules only create module loggers; handlers are installed here,
once, when the CLI starts.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Route log records through a Rich handler on stderr."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # The SDK and HTTP client are chatty at DEBUG.
    for name in ("databricks.sdk", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
