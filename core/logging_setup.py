"""Logger configuration for taskgate."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "taskgate",
    level: int | str = logging.INFO,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the ``taskgate`` logger tree.

    Child loggers (``taskgate.propagation``, ``taskgate.runner`` ...)
    inherit these handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def configure_from_config(root: Path, config: dict[str, Any]) -> logging.Logger:
    """Apply the ``logging`` section of the effective config."""
    log_cfg = config.get("logging", {})
    level = str(log_cfg.get("level", "WARNING")).upper()
    log_file = log_cfg.get("file")
    return setup_logger(
        level=level,
        log_file=(root / log_file).resolve() if log_file else None,
    )
