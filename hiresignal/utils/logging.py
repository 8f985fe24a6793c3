"""
HireSignal - Logging Setup
Configures the root logger once at application start.
"""

import logging
import logging.config
import sys

from ..config import AppConfig


def setup_logging(config: AppConfig) -> None:
    """
    Configure console and rotating file logging.

    Should be called only once, from the application factory.

    Args:
        config: Application configuration (uses the ``logging`` section).
    """
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    level = config.logging.level.upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(levelname)s - %(name)s - %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "simple",
                "stream": sys.stdout,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "filename": str(log_dir / "hiresignal.log"),
                "maxBytes": 15 * 1024 * 1024,
                "backupCount": 5,
                "encoding": "utf8",
            },
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console", "file"],
        },
    })
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
