"""Logging configuration."""

import logging
import os
import sys


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole service.

    Args:
        level: Log level name (default: LOG_LEVEL env var, or INFO)
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
