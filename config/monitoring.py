# config/monitoring.py

import os

from .base import _coerce_bool, _coerce_int


def _split_names(value, default):
    if not value:
        return default
    return tuple(name.strip() for name in value.split(",") if name.strip())


class MonitoringConfig:
    """Logging and metrics settings shared by every environment"""

    # Prometheus exposition and health
    MONITORING_ENABLED = _coerce_bool(os.environ.get("MONITORING_ENABLED"), default=False)
    METRICS_ENDPOINT = os.environ.get("METRICS_ENDPOINT", "/metrics")
    HEALTH_CHECK_ENDPOINT = os.environ.get("HEALTH_CHECK_ENDPOINT", "/health")

    # Log output
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # 'json' or 'text'
    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=True)
    ENABLE_FILE_LOGGING = _coerce_bool(os.environ.get("ENABLE_FILE_LOGGING"), default=True)
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "tpl.log")
    LOG_FILE_MAX_BYTES = _coerce_int(os.environ.get("LOG_FILE_MAX_BYTES"), 10 * 1024 * 1024)
    LOG_FILE_BACKUP_COUNT = _coerce_int(os.environ.get("LOG_FILE_BACKUP_COUNT"), 10)

    # Third-party loggers held at WARNING or above
    QUIET_LOGGERS = _split_names(os.environ.get("QUIET_LOGGERS"), ("urllib3", "requests"))


class DevelopmentMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"


class ProductionMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = "json"
    # The process supervisor captures stdout; the rotating file is the record
    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=False)


class TestingMonitoringConfig(MonitoringConfig):
    MONITORING_ENABLED = False
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False
