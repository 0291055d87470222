"""
Logging configuration for the Best6 prediction game
Provides structured logging with different levels and formatters
"""

import logging
import logging.handlers
import os
from logging import Filter

from flask import has_request_context, request

SYNC_LOGGERS = (
    "best6.services.scheduler_service",
    "best6.services.sync_service",
)

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RequestContextFilter(Filter):
    """Add request context to log records"""

    def filter(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
            record.method = request.method
        else:
            record.url = "N/A"
            record.remote_addr = "N/A"
            record.method = "N/A"
        return True


def _rotating_handler(path, level, fmt, max_mb=5, backups=3, request_context=True):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    if request_context:
        handler.addFilter(RequestContextFilter())
    return handler


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset_color = self.COLORS["RESET"]

        # Color a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{log_color}{record.levelname}{reset_color}"

        return super().format(record)


def setup_logging(config, debug=False):
    """
    Setup logging for the backend server or a client process

    Args:
        config: mapping with the LOG_* settings (Flask app.config works)
        debug: use the colored, file/line annotated console format
    """

    # Determine log level from config
    log_level = getattr(logging, str(config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Console handler with colors (for development)
    if config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        if debug:
            console_formatter = ColoredFormatter(
                PLAIN_FORMAT + " [%(filename)s:%(lineno)d]",
                datefmt="%H:%M:%S",
            )
        else:
            console_formatter = logging.Formatter(
                PLAIN_FORMAT,
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if config.get("LOG_TO_FILE", True):
        log_dir = config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "best6.log"),
                log_level,
                PLAIN_FORMAT + " [%(url)s] [%(remote_addr)s] [%(method)s]",
                max_mb=10,
                backups=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"),
                logging.ERROR,
                PLAIN_FORMAT + " [%(pathname)s:%(lineno)d] [%(url)s] [%(remote_addr)s]",
            )
        )

        # Reconciler and spawner output also lands in sync.log
        sync_handler = _rotating_handler(
            os.path.join(log_dir, "sync.log"), logging.INFO, PLAIN_FORMAT, request_context=False
        )
        for name in SYNC_LOGGERS:
            sync_logger = logging.getLogger(name)
            for handler in sync_logger.handlers[:]:
                sync_logger.removeHandler(handler)
            sync_logger.addHandler(sync_handler)

    # Configure third-party loggers
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    # Set APScheduler logging to WARNING to reduce verbosity (change to INFO for debugging)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    root_logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")


def get_logger(name):
    """
    Get a logger instance with the specified name

    Args:
        name: Logger name (usually __name__)

    Returns:
        logging.Logger: Configured logger instance
    """
    return logging.getLogger(name)
