"""Logging setup for console processes and test runs."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .configuration import LoggingConfig

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _level(name: str, default: int) -> int:
    return _LEVELS.get(name.upper(), default)


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Install console and optional rotating file handlers on the root logger.

    Existing root handlers are replaced so repeated calls do not duplicate
    output.

    Args:
        config: Logging section of the console configuration

    Returns:
        The root logger
    """
    config = config or LoggingConfig()

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(config.level, logging.INFO))
    root_logger.handlers.clear()

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(_level(config.level, logging.INFO))
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(_level(config.console_level, logging.WARNING))
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: file={config.log_file or 'disabled'}, console={config.console_level.upper()}+"
    )
    return root_logger
