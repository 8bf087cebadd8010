"""
Logging setup for Anna AI.
Routes the standard logging module through a rich handler on stderr.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logger(level: str) -> int:
    """
    Configure the root logger.

    Args:
        level: Level name from the configuration (DEBUG, INFO, WARN, ERROR).
            Unknown names fall back to INFO.

    Returns:
        The numeric level that was applied
    """
    numeric = LEVELS.get((level or "").upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))
    return numeric
