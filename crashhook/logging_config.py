"""
Centralized logging configuration for Crashhook.

Log output goes to stderr (and optionally a rotating file). Stdout belongs
to the supervisord eventlistener protocol and must never carry log text.
"""

import logging
import logging.handlers
import sys


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB default
    backup_count: int = 5
) -> None:
    """
    Configure logging for Crashhook.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file in addition to stderr
        max_bytes: Maximum bytes per log file before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    package_logger = logging.getLogger("crashhook")
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    # supervisord captures stderr into the listener's stderr_logfile
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    if name.startswith("crashhook."):
        name = name[len("crashhook."):]

    return logging.getLogger(f"crashhook.{name}")
