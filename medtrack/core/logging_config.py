from __future__ import annotations

import logging
import logging.config
from pathlib import Path

from medtrack.core.config import settings

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR = PROJECT_ROOT / "logs"


def configure_logging(log_dir: Path | None = None) -> None:
    """Configure application-wide logging with a rotating file handler."""

    target_dir = log_dir or LOG_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    logging.captureWarnings(True)

    console_level = "DEBUG" if settings.MEDTRACK_DEBUG else settings.LOG_LEVEL.upper()
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": console_level,
                "formatter": "verbose",
            },
            "medtrack_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "verbose",
                "filename": str(target_dir / "medtrack.log"),
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 5,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "": {
                "handlers": ["console", "medtrack_file"],
                "level": "DEBUG",
            },
            "uvicorn": {
                "handlers": ["console", "medtrack_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "medtrack_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console", "medtrack_file"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)


__all__ = ["configure_logging", "LOG_DIR"]
