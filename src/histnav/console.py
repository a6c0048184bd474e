"""Log output setup for entry points."""

import sys

from loguru import logger


def configure_logging(level: str) -> None:
    """
    Routes histnav's log records to stderr at the given level.

    The library stays silent until this is called; it is meant for entry
    points such as the CLI, not for embedding applications.
    """
    logger.remove()
    _ = logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> <level>{level: <8}</level> {name}: {message}",
        colorize=sys.stderr.isatty(),
    )
    logger.enable("histnav")
