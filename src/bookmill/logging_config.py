"""Logging configuration for bookmill."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Package-level logger name
LOGGER_NAME = "bookmill"


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger for a bookmill module.

    Args:
        name: Module name (e.g., __name__). If None, returns root bookmill logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


class ConsoleFormatter(logging.Formatter):
    """Level-prefixed console output.

    INFO is printed bare so stage progress reads like plain CLI output.
    """

    PREFIXES = {
        logging.DEBUG: "[debug] ",
        logging.WARNING: "Warning: ",
        logging.ERROR: "Error: ",
        logging.CRITICAL: "Error: ",
    }

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.PREFIXES.get(record.levelno, "")
        job = getattr(record, "project_id", "")
        if job and record.levelno >= logging.WARNING:
            return f"{prefix}[{job}] {record.getMessage()}"
        return f"{prefix}{record.getMessage()}"


class InfoFilter(logging.Filter):
    """Filter that only allows records below WARNING level."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


class JobContextFilter(logging.Filter):
    """Stamp every record with the project id of the job being produced.

    Installed on handlers, since logger-level filters do not see records
    propagated from child loggers.
    """

    def __init__(self, project_id: str = ""):
        super().__init__()
        self.project_id = project_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "project_id", ""):
            record.project_id = self.project_id
        return True


def setup_logging(
    verbosity: int = 0,
    quiet: bool = False,
    log_file: Path | None = None,
    project_id: str = "",
) -> None:
    """Configure logging for the bookm CLI.

    Args:
        verbosity: 0=normal, 1=verbose (-v), 2=debug (-vv)
        quiet: If True, suppress all output except errors
        log_file: Optional file path for logging
        project_id: Project tag added to warnings and file log lines
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    if quiet:
        console_level = logging.ERROR
    elif verbosity >= 2:
        console_level = logging.DEBUG
    else:
        console_level = logging.INFO

    # Capture everything at logger level, filter at handlers
    logger.setLevel(logging.DEBUG)
    context = JobContextFilter(project_id)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(console_level)
    stdout_handler.setFormatter(ConsoleFormatter())
    stdout_handler.addFilter(InfoFilter())
    stdout_handler.addFilter(context)
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(ConsoleFormatter())
    stderr_handler.addFilter(context)
    logger.addHandler(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(project_id)s - %(message)s")
        )
        file_handler.addFilter(context)
        logger.addHandler(file_handler)


def set_job_context(project_id: str) -> None:
    """Retag the handlers installed by setup_logging with a new project id."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        for flt in handler.filters:
            if isinstance(flt, JobContextFilter):
                flt.project_id = project_id
