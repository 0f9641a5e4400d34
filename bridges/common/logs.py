"""
Logging setup shared by the runner CLIs and the relay server.

Each process logs to stderr and to ~/.bridges/logs/<name>.log.
"""

import logging
from pathlib import Path

from . import config

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"


def configure_logging(name: str, verbose: bool = False) -> Path:
    """
    Configure root logging for a process.

    Args:
        name: Log file stem ("archive", "calendar", "relay")
        verbose: Enable debug logging

    Returns:
        Path of the log file
    """
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    log_file = config.LOGS_DIR / f"{name}.log"

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    return log_file
