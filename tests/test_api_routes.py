from unittest.mock import patch

from conftest import BACKGLASS_UUID, FakeSession, pinball_map_response
from tpl_app.catalog import attach_store, get_store, sync_active_machines
from tpl_app.catalog.sync import PinballMapClient


def _activate(app, *opdb_ids):
    client = PinballMapClient("http://pinballmap.test/api/v1", session=FakeSession(pinball_map_response(*opdb_ids)))
    with app.app_context():
        assert sync_active_machines(get_store(), 4907, client=client).committed


def test_active_machines_endpoint(app_with_store, client):
    _activate(app_with_store, "GrdNZ-MQo1Z", "GR8dK-MLq0z")

    response = client.get("/api/machines/active")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["count"] == 2
    godzilla, addams = payload["machines"]
    assert godzilla["opdb_id"] == "GrdNZ-MQo1Z"
    assert godzilla["display_name"] == "Godzilla"
    assert godzilla["features"] == "Pro"
    assert godzilla["image_url"] == f"https://img.opdb.org/{BACKGLASS_UUID}-medium.jpg"
    assert addams["opdb_id"] == "GR8dK-MLq0z"
    assert addams["ipdb_id"] is None
    assert addams["features"] == ""
    assert addams["image_url"] == app_with_store.config["MACHINE_PLACEHOLDER_IMAGE_URL"]


def test_active_machines_endpoint_empty(client):
    response = client.get("/api/machines/active")

    assert response.status_code == 200
    assert response.get_json() == {"machines": [], "count": 0}


def test_features_endpoint(client):
    response = client.get("/api/features/2")

    assert response.status_code == 200
    assert response.get_json() == {"id": 2, "features": "Pro,LE", "tags": ["Pro", "LE"]}


def test_features_endpoint_not_found(client):
    response = client.get("/api/features/999")

    assert response.status_code == 404
    assert "error" in response.get_json()


def test_endpoints_without_store_return_503(app):
    test_client = app.test_client()

    assert test_client.get("/api/machines/active").status_code == 503
    assert test_client.get("/api/features/1").status_code == 503
    assert test_client.get("/health").status_code == 503


def test_health_reports_store(app_with_store, client, store):
    _activate(app_with_store, "GrdNZ-MQo1Z")

    response = client.get("/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["store"] == store.path
    assert payload["active_machines"] == 1


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


def test_metrics_endpoint_when_monitoring_enabled(store_path, export_path):
    from app import create_app

    monitored = create_app(
        {
            "TPL_DATABASE_PATH": str(store_path),
            "TPL_OPDB_EXPORT_PATH": str(export_path),
            "MONITORING_ENABLED": True,
        }
    )

    response = monitored.test_client().get("/metrics")

    assert response.status_code == 200
    assert b"tpl_catalog_active_machines" in response.data


def test_startup_bootstraps_and_syncs(store_path, export_path):
    from app import create_app

    client = PinballMapClient("http://pinballmap.test/api/v1", session=FakeSession(pinball_map_response("G4ODR-MDXEy")))
    with patch("tpl_app.catalog.build_pinball_map_client", return_value=client):
        started = create_app(
            {
                "TPL_DATABASE_PATH": str(store_path),
                "TPL_OPDB_EXPORT_PATH": str(export_path),
                "TPL_BOOTSTRAP_ON_STARTUP": True,
                "TPL_SYNC_ON_STARTUP": True,
            }
        )

    try:
        assert store_path.exists()
        assert started.extensions["catalog"]["last_sync"]["state"] == "committed"
        response = started.test_client().get("/api/machines/active")
        assert [machine["opdb_id"] for machine in response.get_json()["machines"]] == ["G4ODR-MDXEy"]
    finally:
        get_store(started).close()


def test_attach_store_registers_one_exit_hook(app, store):
    with patch("tpl_app.catalog.atexit.register") as register:
        attach_store(app, store)
        attach_store(app, store)

    assert register.call_count == 1
    hook, state = register.call_args.args
    hook(state)
    assert store.closed
