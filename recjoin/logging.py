"""Centralized logging configuration for recjoin"""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from . import config
from .formatting import console
from .utils import get_timestamp

def configure_logging(log_level: Optional[str] = None, file_logging: bool = True) -> Optional[Path]:
    """Central logging configuration for all modules

    Args:
        log_level: Level name; falls back to config.LOG_LEVEL
        file_logging: Whether to also write a per-run log file

    Returns:
        Path of the log file, if one was opened
    """
    level = (log_level or config.LOG_LEVEL).upper()
    logger = logging.getLogger("recjoin")
    logger.setLevel(logging._nameToLevel.get(level, logging.INFO))

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    # Rich console handler shares the console used for status lines
    console_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    log_file = None
    if file_logging:
        config.LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = config.LOG_DIR / f"recjoin_{get_timestamp()}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        logger.addHandler(file_handler)

    # Capture warnings
    logging.captureWarnings(True)
    logger.info("Started new logging session")
    if log_file:
        logger.info("Log file: %s", log_file)
    return log_file
