"""Logging configuration for hosts embedding the localization layer."""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import settings

# Log levels for different components
LOGGING_CONFIG = {
    "l10n": logging.INFO,
    "l10n.core": logging.INFO,
    "l10n.infra": logging.WARNING,

    # Reduce noise from libraries
    "sqlalchemy": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.ERROR,
}


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        result = super().format(record)

        # Reset levelname for other handlers
        record.levelname = levelname

        return result


def setup_logging(log_file: Optional[bool] = None, debug: Optional[bool] = None) -> None:
    """Configure root logging with a console handler and an optional rotating file.

    Unset arguments come from the LOG_FILE and DEBUG settings.
    """
    log_file = settings.LOG_FILE if log_file is None else log_file
    debug = settings.DEBUG if debug is None else debug

    if log_file:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_format = "%(asctime)s %(levelname)-8s %(name)s - %(message)s"
    console_handler.setFormatter(ColoredFormatter(console_format, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_filename = log_dir / f"l10n_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_format = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d) - %(message)s"
        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    for logger_name, level in LOGGING_CONFIG.items():
        logging.getLogger(logger_name).setLevel(logging.DEBUG if debug and logger_name.startswith("l10n") else level)

    logging.getLogger(__name__).info(
        f"Logging configured (console={'DEBUG' if debug else 'INFO'}, "
        f"file={'ENABLED' if log_file else 'DISABLED'})"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with proper configuration."""
    return logging.getLogger(name)
