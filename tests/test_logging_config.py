"""Tests for logging setup"""

import json
import logging

from flask import Flask

from tpl_app.utils.logging_config import JsonFormatter, TextFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("tpl_app.catalog.sync", logging.WARNING, __file__, 1, "Sync aborted", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_formatter_keeps_extra_fields(self):
        payload = json.loads(JsonFormatter().format(_record(location_id=4907, opdb_id="GrdNZ-MQo1Z")))

        assert payload["level"] == "warning"
        assert payload["logger"] == "tpl_app.catalog.sync"
        assert payload["msg"] == "Sync aborted"
        assert payload["location_id"] == 4907
        assert payload["opdb_id"] == "GrdNZ-MQo1Z"

    def test_text_formatter_appends_extra_fields(self):
        line = TextFormatter().format(_record(location_id=4907))

        assert "WARNING [tpl_app.catalog.sync] Sync aborted" in line
        assert line.endswith("location_id=4907")


class TestSetupLogging:
    def _app(self, tmp_path, **config):
        app = Flask(__name__)
        app.config.update(
            {
                "LOG_LEVEL": "INFO",
                "LOG_FORMAT": "json",
                "LOG_DIR": str(tmp_path / "logs"),
                "LOG_FILE_NAME": "tpl.log",
                "ENABLE_FILE_LOGGING": True,
                "ENABLE_CONSOLE_LOGGING": False,
            }
        )
        app.config.update(config)
        return app

    def _owned_handlers(self):
        return [handler for handler in logging.getLogger().handlers if getattr(handler, "_tpl_handler", False)]

    def test_file_logging_writes_json(self, tmp_path):
        app = self._app(tmp_path)
        setup_logging(app)
        try:
            logging.getLogger("tpl_app.catalog.importer").info("Catalog import committed", extra={"machines_created": 3})
            for handler in self._owned_handlers():
                handler.flush()

            lines = (tmp_path / "logs" / "tpl.log").read_text(encoding="utf-8").strip().splitlines()
            payload = json.loads(lines[-1])
            assert payload["msg"] == "Catalog import committed"
            assert payload["machines_created"] == 3
        finally:
            setup_logging(self._app(tmp_path, ENABLE_FILE_LOGGING=False))

    def test_setup_is_idempotent(self, tmp_path):
        app = self._app(tmp_path)
        setup_logging(app)
        setup_logging(app)
        try:
            assert len(self._owned_handlers()) == 1
        finally:
            setup_logging(self._app(tmp_path, ENABLE_FILE_LOGGING=False))
