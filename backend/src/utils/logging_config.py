"""
Logging setup for the FamilyHub backend.

Three named loggers are handed out by ``get_logger``:

- ``api``: request handling and feed downloads
- ``services``: occurrence expansion, overrides, feeds and imports
- ``db``: database failures

Development logs go to stdout in a readable line format. With
``FAMHUB_ENV=production`` each logger writes JSON lines to its own rotating
file under ``FAMHUB_LOG_DIR``.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER_NAMES = ("api", "services", "db")
ROOT_NAMESPACE = "familyhub"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Attribute names every LogRecord has; anything else arrived via extra={...}
_STANDARD_ATTRS = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime"}


class LoggingSettings(BaseSettings):
    """
    Logging options read from the environment.

    Environment Variables:
        FAMHUB_ENV: production, development or test (default: development)
        FAMHUB_LOG_LEVEL: standard level name (default: INFO)
        FAMHUB_LOG_DIR: directory for production log files (default: logs)
    """

    model_config = SettingsConfigDict(env_prefix="FAMHUB_", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"
    log_dir: Path = Field(default=Path("logs"))

    @field_validator("env", "log_level")
    @classmethod
    def normalize(cls, v: str) -> str:
        return v.strip()

    @property
    def level(self) -> int:
        # Unknown names fall back to INFO rather than failing startup
        value = logging.getLevelName(self.log_level.upper())
        return value if isinstance(value, int) else logging.INFO

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Carries timestamp, level, logger, message and call site, the formatted
    exception when present, and every field passed through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                payload.setdefault(key, value)

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[2026-03-02 10:30:45] INFO - familyhub.api - Served calendar feed``"""

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _build_handler(name: str, settings: LoggingSettings) -> logging.Handler:
    if settings.is_production:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            settings.log_dir / f"{name}.log",
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter())
    handler.setLevel(settings.level)
    return handler


def configure_logging(settings: Optional[LoggingSettings] = None) -> Dict[str, logging.Logger]:
    """
    (Re)build the ``familyhub.*`` loggers.

    Existing handlers are replaced, so calling this twice does not duplicate
    output.

    Returns:
        Mapping of short name ("api", "services", "db") to Logger
    """
    settings = settings or LoggingSettings()
    configured = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(f"{ROOT_NAMESPACE}.{name}")
        logger.setLevel(settings.level)
        logger.propagate = False
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        logger.addHandler(_build_handler(name, settings))
        configured[name] = logger
    return configured


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Return one of the configured loggers, configuring on first use.

    Raises:
        ValueError: If name is not one of LOGGER_NAMES

    Example:
        >>> get_logger("services").warning("Skipping slot", extra={"event_id": "evt_..."})
    """
    global _loggers
    if _loggers is None:
        _loggers = configure_logging()
    try:
        return _loggers[name]
    except KeyError:
        raise ValueError(
            f"Unknown logger name: {name}. Valid names: {', '.join(LOGGER_NAMES)}"
        ) from None


def init_logging(settings: Optional[LoggingSettings] = None) -> Dict[str, logging.Logger]:
    """Configure logging at application startup."""
    global _loggers
    _loggers = configure_logging(settings)
    return _loggers
