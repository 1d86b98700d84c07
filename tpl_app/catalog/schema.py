"""
First-run creation of the TPL store.

A store is considered bootstrapped only once its tables exist and the
catalog export has been loaded. Both happen in one transaction with
foreign-key enforcement suspended so load order inside the export does not
matter.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from tpl_app.models import BaseModel
from tpl_app.store import CatalogStore

from .errors import CatalogImportError, StoreBootstrapError
from .importer import CatalogImporter, ImportSummary, load_catalog_export, report_import_summary

logger = logging.getLogger(__name__)

_SQLITE_SIDE_FILES = ("-journal", "-wal", "-shm")


def create_schema(connection: Connection) -> None:
    """Create every TPL table on ``connection``."""
    BaseModel.metadata.create_all(connection)
    logger.debug("TPL tables created", extra={"tables": sorted(BaseModel.metadata.tables)})


def ensure_schema_and_seed(
    store_path: str | Path,
    *,
    export_path: str | Path,
    echo: bool = False,
) -> CatalogStore:
    """
    Open the store at ``store_path``, creating and seeding it on first run.

    An existing file is opened as-is with no schema work. Otherwise the
    tables are created and the catalog export at ``export_path`` is loaded
    in a single transaction.

    Raises:
        StoreBootstrapError: the store cannot be opened, or creation or
            seeding failed. A partially-created file is removed so the next
            start retries the bootstrap.
    """
    path = Path(store_path)
    if path.exists():
        try:
            store = CatalogStore.open(path, echo=echo)
        except SQLAlchemyError as exc:
            raise StoreBootstrapError(str(path), str(exc)) from exc
        logger.debug("TPL database already exists; skipping schema creation", extra={"path": str(path)})
        return store

    logger.info("Creating TPL database", extra={"path": str(path), "export_path": str(export_path)})
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        store = CatalogStore.open(path, echo=echo)
    except (OSError, SQLAlchemyError) as exc:
        _discard_partial_store(path)
        raise StoreBootstrapError(str(path), str(exc)) from exc

    try:
        summary = _create_and_seed(store, export_path)
    except (CatalogImportError, SQLAlchemyError) as exc:
        store.close()
        _discard_partial_store(path)
        raise StoreBootstrapError(str(path), str(exc)) from exc

    report_import_summary(summary, export_path=export_path)
    violations = store.foreign_key_violations()
    if violations:
        logger.warning(
            "Foreign key violations found after catalog load",
            extra={"path": str(path), "violations": violations[:20], "violation_count": len(violations)},
        )
    logger.info("TPL database created", extra={"path": str(path)})
    return store


def _create_and_seed(store: CatalogStore, export_path: str | Path) -> ImportSummary:
    raw_records = load_catalog_export(export_path)
    with store.foreign_keys_suspended() as connection:
        with connection.begin():
            create_schema(connection)
            session = store.bind_session(connection)
            try:
                summary = CatalogImporter(session).load(raw_records)
                session.flush()
            finally:
                session.close()
    return summary


def _discard_partial_store(path: Path) -> None:
    for candidate in (str(path), *(f"{path}{suffix}" for suffix in _SQLITE_SIDE_FILES)):
        if not os.path.exists(candidate):
            continue
        try:
            os.unlink(candidate)
            logger.info("Removed partially-created TPL database file", extra={"path": candidate})
        except OSError as exc:
            logger.error(
                "Unable to remove partially-created TPL database file",
                extra={"path": candidate, "error": str(exc)},
            )
