# config/validation.py

"""
Environment variable validation for the TPL application.
Validates catalog and feed settings at startup.
"""

import os
import sys
from typing import List, Tuple


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Validate catalog-related environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    errors = []

    if flask_env == "testing":
        return True, []

    location_id = os.environ.get("TPL_LOCATION_ID")
    if location_id is not None and not location_id.strip().isdigit():
        errors.append(f"TPL_LOCATION_ID must be a positive integer Pinball Map location id (got {location_id!r}).")

    timeout = os.environ.get("PINBALL_MAP_TIMEOUT")
    if timeout:
        try:
            if float(timeout) <= 0:
                raise ValueError
        except ValueError:
            errors.append(f"PINBALL_MAP_TIMEOUT must be a positive number of seconds (got {timeout!r}).")

    api_base = os.environ.get("PINBALL_MAP_API_BASE")
    if api_base and not api_base.startswith(("http://", "https://")):
        errors.append("PINBALL_MAP_API_BASE must be an http(s) URL.")

    # A store that does not exist yet will be seeded from the export on startup
    if flask_env == "production":
        database_path = os.environ.get("TPL_DATABASE_PATH", os.path.join("db", "tpl.db"))
        export_path = os.environ.get("TPL_OPDB_EXPORT_PATH", os.path.join("db", "opdb.json"))
        if not os.path.exists(database_path) and not os.path.exists(export_path):
            errors.append(
                f"TPL database '{database_path}' does not exist and the Open Pinball Database export "
                f"'{export_path}' needed to create it was not found. Set TPL_OPDB_EXPORT_PATH."
            )

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Print every validation error to stderr and exit with status 1 if any."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    banner = "=" * 80
    lines = [banner, "TPL ENVIRONMENT VALIDATION FAILED", banner, ""]
    lines.extend(f"{number}. {error}" for number, error in enumerate(errors, 1))
    lines.extend(["", "Fix the settings above in .env or the process environment.", banner])
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
