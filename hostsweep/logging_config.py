"""Application-wide logging configuration using rich handlers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os

from rich.logging import RichHandler

LOG_FILE_ENV = "HOSTSWEEP_LOG_FILE"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """Configure standard logging with RichHandler and optional file output.

    When ``log_file`` is ``None`` the ``HOSTSWEEP_LOG_FILE`` environment
    variable is consulted; without either no file handler is attached.
    """
    if log_file is None:
        log_file = os.getenv(LOG_FILE_ENV)

    handlers: list[logging.Handler] = [RichHandler(rich_tracebacks=True, markup=False)]

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)


__all__ = ["setup_logging"]
