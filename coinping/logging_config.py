"""Logging setup shared by the GUI entry point and scripts."""

from __future__ import annotations

import logging
import sys
from typing import Optional

# Log levels for the package and noisy third-party modules
MODULE_LOG_LEVELS: dict[str, int] = {
    "coinping": logging.INFO,
    "coinping.spectrum": logging.INFO,
    "coinping.detector": logging.INFO,
    "coinping.session": logging.INFO,
    "coinping.database": logging.INFO,
    "coinping.gui": logging.WARNING,
}

_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Attach one stdout handler to the package loggers.

    Args:
        level: If provided, override every ``coinping`` level with this one
            (e.g. ``"DEBUG"``).
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            levels = {name: numeric_level for name in levels}
        else:
            logging.getLogger(__name__).error("Invalid log level: %s", level)

    for name, module_level in levels.items():
        logger = logging.getLogger(name)
        logger.setLevel(module_level)

    root = logging.getLogger("coinping")
    if _console_handler not in root.handlers:
        root.addHandler(_console_handler)
    root.propagate = False
    root.info("Logging configuration complete")


__all__ = ["MODULE_LOG_LEVELS", "setup_logging"]
