"""
Logging configuration for the API server.

Stdout output with optional file output. Level comes from settings.log_level
(LOG_LEVEL env var); DEBUG for verbose output, WARNING for quiet production.
"""

import logging
import sys
from pathlib import Path

from buffet_ledger.app.core.config import settings

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """Resolve the configured level name, falling back to INFO."""
    return LOG_LEVEL_MAP.get(settings.log_level.upper(), logging.INFO)


def setup_logging(log_file: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        log_file: Optional path to a log file. Defaults to settings.log_file;
            an empty value disables file output.

    Calling this twice replaces the handlers instead of stacking them.
    """
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(get_log_level())

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    target = log_file if log_file is not None else settings.log_file
    if target:
        log_path = Path(target)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
