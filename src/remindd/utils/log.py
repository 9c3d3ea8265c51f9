"""Logging setup for the daemon.

stdout carries protocol frames, so every handler installed here writes to
stderr.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_FORMAT = "%(name)s: %(message)s"


def configure_logging(level: str = "INFO", *, console: Console | None = None) -> logging.Handler:
    """Route the ``remindd`` logger hierarchy to a stderr rich handler.

    Calling it again replaces the previously installed handler.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger("remindd")
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
    root.propagate = False
    return handler
