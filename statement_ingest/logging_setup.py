"""
Logging for Statement Ingest.

Modules log through ``get_logger("<component>")``, which hangs every
logger under the ``statement_ingest`` namespace.  The import audit trail
(rows detected, rows skipped, duplicates) is written at INFO; per-row skip
reasons go to DEBUG.

``configure_logging`` attaches the handlers once per process.  Later calls
only move the level, so an API server and a batch job sharing the package
can each pick their own verbosity.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional


ROOT_LOGGER_NAME = "statement_ingest"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-34s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so repeated calls don't stack duplicates.
_HANDLER_FLAG = "_statement_ingest_handler"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``statement_ingest`` logger and return it.

    Parameters
    ----------
    level:
        Minimum severity for the namespace and its handlers.
    log_file:
        Optional path for an extra ``FileHandler``; added at most once per
        path.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False

    owned = [h for h in root.handlers if getattr(h, _HANDLER_FLAG, False)]
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    has_console = any(not isinstance(h, logging.FileHandler) for h in owned)
    if not has_console:
        _attach(root, logging.StreamHandler(sys.stdout), formatter)

    if log_file and not any(
        isinstance(h, logging.FileHandler)
        and h.baseFilename == os.path.abspath(log_file)
        for h in owned
    ):
        _attach(root, logging.FileHandler(log_file, encoding="utf-8"), formatter)

    for handler in root.handlers:
        if getattr(handler, _HANDLER_FLAG, False):
            handler.setLevel(level)
    return root


def _attach(
    root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter
) -> None:
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_FLAG, True)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return ``statement_ingest.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
