"""
Logging setup for the print pipeline.

Modules log through ``logging.getLogger(__name__)``; callers that own the
process (scripts, workers) call ``setup_logging`` once.
"""

from __future__ import annotations

import logging
import sys

from dtfprint.config import settings


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure the root logger with a single stdout handler.

    Repeated calls replace the previous handlers instead of stacking them.

    Args:
        log_level: Override ``settings.log_level`` (DEBUG, INFO, WARNING, ...)
        log_format: Override ``settings.log_format``
    """
    level = (log_level or settings.log_level).upper()
    formatter = logging.Formatter(log_format or settings.log_format, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger(__name__).debug("logging initialized: level=%s", level)
