"""Logging setup — one RichHandler on stderr for the whole package."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(*, verbose: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        show_time=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    root = logging.getLogger("scangate")
    root.handlers[:] = [handler]
    root.setLevel(level)
