# tpl_app/utils/logging_config.py
"""
Logging setup for the TPL application.

Handlers are attached to the root logger so module loggers
(``logging.getLogger(__name__)``) and ``app.logger`` share one destination.
Structured context passed through ``extra=`` is kept by the JSON formatter.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from flask.logging import default_handler

_RESERVED_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}
_HANDLER_MARKER = "_tpl_handler"

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra`` fields."""

    def format(self, record):
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human readable lines with ``extra`` fields appended as key=value."""

    def __init__(self):
        super().__init__(TEXT_FORMAT)

    def format(self, record):
        line = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
        }
        if extras:
            line += " " + " ".join(f"{key}={value!r}" for key, value in extras.items())
        return line


def _build_formatter(log_format):
    return JsonFormatter() if str(log_format).lower() == "json" else TextFormatter()


def setup_logging(app):
    """Configure console and rotating file logging from ``app.config``."""
    config = app.config
    level = getattr(logging, str(config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(config.get("LOG_FORMAT", "json"))

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    handlers = []
    if config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if config.get("ENABLE_FILE_LOGGING", True):
        log_dir = config.get("LOG_DIR", "logs")
        log_path = os.path.join(log_dir, config.get("LOG_FILE_NAME", "tpl.log"))
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    log_path,
                    maxBytes=int(config.get("LOG_FILE_MAX_BYTES", 10485760)),
                    backupCount=int(config.get("LOG_FILE_BACKUP_COUNT", 10)),
                    encoding="utf-8",
                )
            )
        except OSError as exc:
            app.logger.error("Failed to log to file, using console only: %s", exc)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARKER, True)
        root_logger.addHandler(handler)

    root_logger.setLevel(level)
    app.logger.removeHandler(default_handler)
    app.logger.setLevel(level)
    for name in config.get("QUIET_LOGGERS", ("urllib3",)):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.captureWarnings(True)
