"""Logging setup for command line runs."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(elapsed)s] [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


class ElapsedFormatter(logging.Formatter):
    """Adds seconds since process start as ``%(elapsed)s``."""

    def format(self, record: logging.LogRecord) -> str:
        record.elapsed = f"{record.relativeCreated / 1000:.1f}s"
        return super().format(record)


def configure_logging(level: str = "INFO") -> None:
    """Send assetflow logs to stdout with timestamps and elapsed time."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ElapsedFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
