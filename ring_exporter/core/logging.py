"""
Logging setup shared by the CLI commands and the metrics server.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# These log one line per HTTP exchange at INFO, which buries the per-device
# readings of a poll cycle.
HTTP_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(
    level: str = "INFO",
    *,
    stream: TextIO | None = None,
    quiet: Iterable[str] = HTTP_LOGGERS,
) -> None:
    """Send records to stdout in the exporter format.

    Loggers named in ``quiet`` are held at WARNING unless ``level`` is stricter.
    """
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        raise ValueError(f"Unknown log level: {level!r}")
    logging.basicConfig(
        level=threshold, format=LOG_FORMAT, stream=stream or sys.stdout
    )
    for name in quiet:
        logging.getLogger(name).setLevel(max(threshold, logging.WARNING))


__all__ = ["HTTP_LOGGERS", "LOG_FORMAT", "configure_logging"]
