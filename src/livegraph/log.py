import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "info", console: Optional[Console] = None) -> None:
    """Route library logging through rich. Safe to call more than once."""
    root = logging.getLogger("livegraph")
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(RichHandler(console=console or Console(stderr=True),
                                rich_tracebacks=True, show_path=False))
    root.propagate = False
