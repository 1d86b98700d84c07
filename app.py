# app.py

import logging
import os
import sys

from dotenv import load_dotenv
from flask import Flask, jsonify

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from tpl_app.catalog import StoreBootstrapError, init_catalog  # noqa: E402
from tpl_app.routes import init_routes  # noqa: E402
from tpl_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8989


def _load_config(app, flask_env):
    if flask_env == "production":
        app.config.from_object(ProductionConfig)
        app.config.from_object(ProductionMonitoringConfig)
    elif flask_env == "testing":
        app.config.from_object(TestingConfig)
        app.config.from_object(TestingMonitoringConfig)
    else:
        app.config.from_object(DevelopmentConfig)
        app.config.from_object(DevelopmentMonitoringConfig)


def _register_error_handlers(app):
    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error("Unhandled error while serving request", exc_info=error)
        return jsonify({"error": "Internal server error"}), 500


def create_app(config_overrides=None):
    """
    Build the application.

    Raises ``StoreBootstrapError`` when the catalog store cannot be created
    or opened; the process is expected to stop in that case.
    """
    flask_env = os.environ.get("FLASK_ENV", "development")

    # Validate environment variables (only in production)
    if flask_env == "production":
        validate_and_exit(flask_env)

    app = Flask(__name__)
    _load_config(app, flask_env)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize logging before the catalog so bootstrap output is captured
    setup_logging(app)
    init_catalog(app)
    init_routes(app)
    _register_error_handlers(app)
    return app


if __name__ == "__main__":
    try:
        application = create_app()
    except StoreBootstrapError as exc:
        logger.critical("Unable to set up the TPL database", extra={"path": exc.path, "error": str(exc)})
        sys.exit(1)

    port = int(os.environ.get("PORT", DEFAULT_PORT))
    application.run(host="0.0.0.0", port=port)
