# conftest.py

import json
import os

import pytest
import requests

# Set testing environment BEFORE importing app so TestingConfig is selected
os.environ["FLASK_ENV"] = "testing"

from app import create_app  # noqa: E402
from tpl_app.catalog import attach_store, ensure_schema_and_seed  # noqa: E402

BACKGLASS_UUID = "3f9e4567-e89b-12d3-a456-426614174000"


def _machine(opdb_id, name, *, manufacturer_id=1, features=None, **overrides):
    record = {
        "opdb_id": opdb_id,
        "name": name,
        "ipdb_id": 1000 + len(opdb_id),
        "manufacture_date": "2021-07-04",
        "updated_at": "2023-01-15",
        "features": features if features is not None else [],
        "images": [],
        "manufacturer": {
            "manufacturer_id": manufacturer_id,
            "name": "Stern" if manufacturer_id == 1 else "Williams",
            "full_name": "Stern Pinball" if manufacturer_id == 1 else "Williams Electronics",
            "updated_at": "2020-02-01",
        },
    }
    record.update(overrides)
    return record


def sample_catalog_records():
    """Small catalog export covering feature dedup and the presence rules."""
    return [
        _machine(
            "GrdNZ-MQo1Z",
            "Godzilla (Pro)",
            features=["Pro"],
            images=[
                {"type": "playfield", "urls": {"large": "https://img.opdb.org/11111111-2222-3333-4444-555555555555-large.jpg"}},
                {"type": "backglass", "urls": {"large": f"https://img.opdb.org/{BACKGLASS_UUID}-large.jpg"}},
            ],
        ),
        _machine("GrdNZ-MQo1Z-A", "Godzilla (Premium)", features=["Pro", "LE"]),
        _machine("G5vOd-MyX3b", "Jurassic Park (Premium)", features=["Pro", "LE"]),
        _machine("G5vOd-MyX3b-B", "Jurassic Park (LE)", features=["LE", "Pro"]),
        _machine("GR8dK-MLq0z", "The Addams Family", manufacturer_id=2, ipdb_id=None),
        _machine("G4ODR-MDXEy", "Medieval Madness", manufacturer_id=2, manufacture_date=None),
    ]


def write_export(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, text: str = "", json_error=None):
        self.status_code = status_code
        self._json_data = json_data
        self._json_error = json_error
        self.text = text
        self.ok = status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}")

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._json_data


class FakeSession:
    """Stands in for ``requests.Session``; replays queued responses or errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.get_calls = []

    def get(self, url, timeout=None):
        self.get_calls.append((url, timeout))
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def pinball_map_response(*opdb_ids, errors=None):
    payload = {"machines": [{"id": index, "name": opdb_id, "opdb_id": opdb_id} for index, opdb_id in enumerate(opdb_ids)]}
    if errors is not None:
        payload["errors"] = errors
    return FakeResponse(json_data=payload)


@pytest.fixture
def export_path(tmp_path):
    return write_export(tmp_path / "opdb.json", sample_catalog_records())


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "db" / "tpl.db"


@pytest.fixture
def store(store_path, export_path):
    """Bootstrapped store seeded with ``sample_catalog_records``."""
    catalog_store = ensure_schema_and_seed(store_path, export_path=export_path)
    try:
        yield catalog_store
    finally:
        catalog_store.close()


@pytest.fixture
def app(store_path, export_path):
    """Flask application without a store; CLI commands open their own."""
    flask_app = create_app(
        {
            "TESTING": True,
            "TPL_DATABASE_PATH": str(store_path),
            "TPL_OPDB_EXPORT_PATH": str(export_path),
            "TPL_BOOTSTRAP_ON_STARTUP": False,
            "TPL_SYNC_ON_STARTUP": False,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
        }
    )
    yield flask_app


@pytest.fixture
def app_with_store(app, store):
    attach_store(app, store)
    return app


@pytest.fixture
def client(app_with_store):
    return app_with_store.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()
