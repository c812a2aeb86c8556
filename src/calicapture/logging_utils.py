"""Logging setup for calicapture."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(debug_mode: bool = False, log_dir: Path | str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        debug_mode: Log DEBUG and above if True, INFO otherwise
        log_dir: Also write calicapture.log here when given
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO

    # Clear existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(exist_ok=True, parents=True)

        file_handler = logging.FileHandler(log_dir / "calicapture.log", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level)
