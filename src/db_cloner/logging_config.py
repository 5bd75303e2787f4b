"""Logging setup for db-cloner.

All modules log through ``logging.getLogger(__name__)`` under the
``db_cloner`` namespace.  Insertion failures that abort a run are written to
the ``db_cloner.failures`` logger, which ``configure_logging()`` backs with a
file so the messages survive the process.

Example:
    >>> from db_cloner.logging_config import configure_logging
    >>> configure_logging(level=logging.INFO, failure_log="clone-db.log")
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "db_cloner"
FAILURE_LOGGER_NAME = "db_cloner.failures"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty libraries kept at WARNING unless the caller asks otherwise
RELATED_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "asyncpg",
    "aiomysql",
]


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the package logger, or a child of it.

    Args:
        name: Optional child name (``"clone"`` -> ``db_cloner.clone``).

    Returns:
        Logger instance.
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def get_failure_logger() -> logging.Logger:
    """Logger that receives every recorded insertion failure on abort."""
    return logging.getLogger(FAILURE_LOGGER_NAME)


def attach_failure_log(failure_log: str | Path) -> logging.Logger:
    """Back the failure logger with a file, once per path.

    Called by ``configure_logging()`` and again by the runner before it
    writes abort messages, so library callers get the file too.

    Args:
        failure_log: Path of the durable failure log.

    Returns:
        The ``db_cloner.failures`` logger.
    """
    failure_logger = get_failure_logger()
    failure_logger.setLevel(logging.ERROR)
    path = Path(failure_log).resolve()
    existing = [
        h for h in failure_logger.handlers
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path
    ]
    if not existing:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        failure_logger.addHandler(file_handler)
    return failure_logger


def configure_logging(
    level: int = logging.WARNING,
    failure_log: str | Path | None = None,
    console: Console | None = None,
    library_level: int = logging.WARNING,
) -> logging.Logger:
    """Configure console and failure-log handlers.

    Safe to call more than once: handlers are only added if the logger
    has none of that kind yet.

    Args:
        level: Level for the ``db_cloner`` logger.
        failure_log: Path of the durable failure log.  ``None`` disables
            the file handler.
        console: Rich console to render log records on (stderr if ``None``).
        library_level: Level for SQLAlchemy and driver loggers.

    Returns:
        The configured ``db_cloner`` logger.
    """
    logger = get_logger()
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    if failure_log is not None:
        failure_logger = attach_failure_log(failure_log)
        # Each failure was already shown on the console when it happened
        failure_logger.propagate = False

    for name in RELATED_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return logger
