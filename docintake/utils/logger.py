"""
Logging Configuration Module.

All docintake modules log through children of the ``docintake`` logger.
Messages about a particular upload carry an ``[Import <id>]`` prefix so
one batch can be followed through the pipeline, worker and storage logs.

Features:
    - Colored console output (colorama)
    - Optional rotating log file
    - Noisy PDF/Excel library loggers held at a separate level

Usage:
    from docintake.utils.logger import get_logger, import_prefix

    logger = get_logger(__name__)
    logger.info(f"{import_prefix('imp-1')}Stored invoice.pdf")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Iterable, Optional

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "docintake"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# pdfminer logs every parsed object at DEBUG
LIBRARY_LOGGERS = ("pdfminer", "pdfplumber", "fitz", "openpyxl", "sqlalchemy.engine")


class ColoredFormatter(logging.Formatter):
    """Console formatter coloring each line by level."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, '')
        return f"{color}{super().format(record)}{Style.RESET_ALL}"


def import_prefix(import_id: Optional[str]) -> str:
    """
    Log prefix for messages about one import session.

    Example:
        >>> import_prefix("imp-1")
        '[Import imp-1] '
        >>> import_prefix(None)
        ''
    """
    return f"[Import {import_id}] " if import_id else ""


def _console_handler(level: int, log_format: str, date_format: str, colorize: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter_class = ColoredFormatter if colorize else logging.Formatter
    handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    return handler


def _file_handler(
    log_file: str,
    level: int,
    log_format: str,
    date_format: str,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    return handler


def quiet_libraries(level: str = "WARNING", names: Iterable[str] = LIBRARY_LOGGERS) -> None:
    """Hold third-party loggers at ``level`` regardless of the app level."""
    numeric_level = getattr(logging, level.upper())
    for name in names:
        logging.getLogger(name).setLevel(numeric_level)


def setup_logger(
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,  # 10 MB
    backup_count: int = 5,
    colorize: bool = True,
    library_level: str = "WARNING"
) -> logging.Logger:
    """
    Configure the ``docintake`` logger.

    Call once at startup; calling again replaces the handlers instead of
    stacking them.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Custom log format string.
        date_format: Custom date format string.
        log_file: Path to log file. If None, file logging is disabled.
        max_bytes: Maximum log file size before rotation.
        backup_count: Number of backup files to keep.
        colorize: Whether to colorize console output.
        library_level: Level for pdfminer, openpyxl and the other
            third-party loggers.

    Returns:
        Configured application logger.

    Example:
        >>> setup_logger(level="DEBUG", log_file="logs/docintake.log")
    """
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT
    numeric_level = getattr(logging, level.upper())

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    app_logger.addHandler(_console_handler(numeric_level, log_format, date_format, colorize))
    if log_file:
        app_logger.addHandler(
            _file_handler(log_file, numeric_level, log_format, date_format, max_bytes, backup_count)
        )

    app_logger.propagate = False
    quiet_libraries(library_level)

    app_logger.debug(f"Logging initialized at {level.upper()}" + (f", file {log_file}" if log_file else ""))
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the ``docintake`` namespace.

    Module names already inside the package are used as they are, so
    ``get_logger(__name__)`` in ``docintake.jobs.worker`` gives
    ``docintake.jobs.worker`` rather than a doubled prefix.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Initialize logging from the ``logging`` section of the configuration."""
    from config import get_config

    log_file = None
    if get_config("logging.file.enabled", False):
        log_file = get_config("logging.file.path")

    return setup_logger(
        level=get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", 10485760),
        backup_count=get_config("logging.file.backup_count", 5),
        colorize=get_config("logging.console.colorize", True),
        library_level=get_config("logging.library_level", "WARNING")
    )


__all__ = [
    'ROOT_LOGGER_NAME',
    'ColoredFormatter',
    'import_prefix',
    'quiet_libraries',
    'setup_logger',
    'get_logger',
    'setup_logger_from_config',
]
