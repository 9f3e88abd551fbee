"""
Logging configuration for the Todo application.

Sets up console + rotating file logging on the ``todoapp`` logger and
routes uvicorn's own loggers through the same handlers. All modules
should use:
    import logging
    logger = logging.getLogger(__name__)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

# Loggers that share the application's handlers
_MANAGED_LOGGERS = ("todoapp", "uvicorn")


def setup_logging(
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
    log_file: str = "todoapp.log",
) -> None:
    """
    Configure logging for the entire application.

    Args:
        log_dir: Directory for log files. If None, only console logging is set up.
        level: Minimum log level, as a number or a name such as "DEBUG".
        log_file: Name of the log file.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    app_logger = logging.getLogger("todoapp")
    app_logger.setLevel(level)

    # Prevent duplicate handlers on repeated calls
    if app_logger.handlers:
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_dir / log_file,
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            app_logger.warning("Could not set up file logging: %s", e)

    for name in _MANAGED_LOGGERS:
        managed = logging.getLogger(name)
        for handler in handlers:
            handler.setLevel(level)
            managed.addHandler(handler)
        if name != "todoapp":
            managed.propagate = False
