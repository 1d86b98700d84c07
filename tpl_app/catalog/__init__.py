"""
Machine catalog feature package.

Owns the startup sequence for the catalog: bootstrap the store (schema and
initial OPDB import) on first run, then reconcile the active machines
against Pinball Map. The resulting store handle is kept on
``app.extensions['catalog']`` for the routes and closed at process exit.
"""

from __future__ import annotations

import atexit
from typing import Any

from flask import Flask, current_app

from tpl_app.store import CatalogStore

from .cli import catalog_cli
from .errors import (
    CatalogError,
    CatalogImportError,
    CatalogRecordError,
    InventoryFeedError,
    StoreBootstrapError,
)
from .importer import CatalogImporter, ImportSummary, import_catalog
from .schema import ensure_schema_and_seed
from .service import MachineCatalogService
from .sync import (
    PinballMapClient,
    SyncState,
    SyncSummary,
    build_pinball_map_client,
    sync_active_machines,
)

CATALOG_EXTENSION_KEY = "catalog"

__all__ = [
    "init_catalog",
    "attach_store",
    "get_store",
    "get_catalog_service",
    "build_pinball_map_client",
    "CATALOG_EXTENSION_KEY",
    "CatalogImporter",
    "ImportSummary",
    "import_catalog",
    "ensure_schema_and_seed",
    "MachineCatalogService",
    "PinballMapClient",
    "SyncState",
    "SyncSummary",
    "sync_active_machines",
    "CatalogError",
    "CatalogImportError",
    "CatalogRecordError",
    "InventoryFeedError",
    "StoreBootstrapError",
]


def _ensure_extension_state(app: Flask) -> dict[str, Any]:
    return app.extensions.setdefault(
        CATALOG_EXTENSION_KEY,
        {
            "store": None,
            "service": None,
            "last_sync": None,
            "exit_hook_registered": False,
        },
    )


def _set_cli(app: Flask) -> None:
    # Avoid duplicate registrations when running tests
    if catalog_cli.name in app.cli.commands:
        app.cli.commands.pop(catalog_cli.name)
    app.cli.add_command(catalog_cli)


def attach_store(app: Flask, store: CatalogStore) -> None:
    """Make ``store`` the application's catalog store and close it at exit."""
    state = _ensure_extension_state(app)
    state["store"] = store
    state["service"] = MachineCatalogService(store)
    # One hook per app; it closes whichever store is attached at exit
    if not state["exit_hook_registered"]:
        atexit.register(_close_attached_store, state)
        state["exit_hook_registered"] = True


def _close_attached_store(state: dict[str, Any]) -> None:
    store = state.get("store")
    if store is not None:
        store.close()


def get_store(app: Flask | None = None) -> CatalogStore | None:
    app = app or current_app
    return _ensure_extension_state(app).get("store")


def get_catalog_service(app: Flask | None = None) -> MachineCatalogService | None:
    app = app or current_app
    return _ensure_extension_state(app).get("service")


def init_catalog(app: Flask) -> None:
    """
    Bootstrap the catalog store and run the startup sync.

    ``StoreBootstrapError`` propagates to the caller, which decides whether
    the process can continue. Sync failures are logged and never raised.
    """
    state = _ensure_extension_state(app)
    _set_cli(app)

    if not app.config.get("TPL_BOOTSTRAP_ON_STARTUP", True):
        app.logger.info("Catalog bootstrap disabled via TPL_BOOTSTRAP_ON_STARTUP; skipping store setup.")
        return

    store = ensure_schema_and_seed(
        app.config["TPL_DATABASE_PATH"],
        export_path=app.config["TPL_OPDB_EXPORT_PATH"],
        echo=bool(app.config.get("SQLALCHEMY_ECHO", False)),
    )
    attach_store(app, store)

    if app.config.get("TPL_SYNC_ON_STARTUP", True):
        summary = sync_active_machines(
            store,
            int(app.config["TPL_LOCATION_ID"]),
            client=build_pinball_map_client(app.config),
        )
        state["last_sync"] = summary.as_dict()

    app.logger.info("Catalog initialized", extra={"path": store.path})
