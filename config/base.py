# config.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default):
    """Parse an integer setting, falling back to ``default`` when invalid."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _coerce_optional_float(value):
    """
    Parse an optional positive float (seconds).

    Returns:
        float | None: ``None`` when unset, blank, invalid, or not positive.
    """
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if number > 0 else None


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # Store and catalog export
    TPL_DATABASE_PATH = os.environ.get("TPL_DATABASE_PATH", os.path.join("db", "tpl.db"))
    TPL_OPDB_EXPORT_PATH = os.environ.get("TPL_OPDB_EXPORT_PATH", os.path.join("db", "opdb.json"))
    SQLALCHEMY_ECHO = False

    # Venue whose Pinball Map listing drives the active flag
    TPL_LOCATION_ID = _coerce_int(os.environ.get("TPL_LOCATION_ID"), 4907)  # The Pinball Lounge
    PINBALL_MAP_API_BASE = os.environ.get("PINBALL_MAP_API_BASE", "https://pinballmap.com/api/v1")
    # No timeout unless configured; a hung feed blocks startup.
    PINBALL_MAP_TIMEOUT = _coerce_optional_float(os.environ.get("PINBALL_MAP_TIMEOUT"))

    # Startup behaviour
    TPL_BOOTSTRAP_ON_STARTUP = _coerce_bool(os.environ.get("TPL_BOOTSTRAP_ON_STARTUP"), default=not _is_testing)
    TPL_SYNC_ON_STARTUP = _coerce_bool(os.environ.get("TPL_SYNC_ON_STARTUP"), default=not _is_testing)

    # Presentation
    OPDB_IMAGE_BASE_URL = os.environ.get("OPDB_IMAGE_BASE_URL", "https://img.opdb.org")
    MACHINE_PLACEHOLDER_IMAGE_URL = os.environ.get(
        "MACHINE_PLACEHOLDER_IMAGE_URL",
        "http://www.thepinballlounge.com/pb/wp_0fa0cf0b/images/img165275761bbe29f98e.gif",
    )


class DevelopmentConfig(Config):
    DEBUG = True
    # Use instance folder for the database to avoid clobbering a deployed store
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    TPL_DATABASE_PATH = os.environ.get("TPL_DATABASE_PATH", os.path.join(instance_path, "tpl_dev.db"))
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_ECHO = False
    TPL_BOOTSTRAP_ON_STARTUP = False
    TPL_SYNC_ON_STARTUP = False
    PINBALL_MAP_API_BASE = "http://pinballmap.test/api/v1"


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_ECHO = False
