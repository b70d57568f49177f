"""
Logging Configuration

Structured logging with optional JSON output.
Supports:
- Multiple log levels
- JSON and text formats
- File and console output
- Per-session context (remote address)
"""

import logging
import sys
from typing import Optional

import structlog
from pythonjsonlogger import jsonlogger

from mailsink.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None):
    """
    Configure application logging.

    Sets up:
    - Log level from settings
    - JSON or text format
    - Console and file handlers
    - Structlog processors
    """
    settings = settings or get_settings()

    # Get log level
    log_level = getattr(logging, settings.LOG_LEVEL.upper())

    # Configure root logger
    logging.root.setLevel(log_level)
    logging.root.handlers = []

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    # Format
    if settings.LOG_FORMAT == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(remote)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    logging.root.addHandler(console_handler)

    # File handler (if configured)
    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logging.root.addHandler(file_handler)
        except OSError as e:
            logging.error(f"Failed to setup file logging: {e}")

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Suppress noisy loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)


class SessionLogger:
    """
    Logger adapter with session context.

    Adds the remote address of the connection to all log messages.
    """

    def __init__(self, logger: logging.Logger, remote: Optional[str] = None):
        self.logger = logger
        self.remote = remote
        self.extra = {}

        if remote:
            self.extra["remote"] = remote

    def _log(self, level: int, msg: str, **kwargs):
        extra = {**self.extra, **kwargs.pop("extra", {})}
        self.logger.log(level, msg, extra=extra, **kwargs)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)
