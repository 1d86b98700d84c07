"""
Catalog management commands, registered as ``flask catalog``.

Each command opens its own store handle from ``--database`` (or
``TPL_DATABASE_PATH``) and closes it before returning.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from flask.cli import ScriptInfo
from sqlalchemy.exc import SQLAlchemyError

from tpl_app.store import CatalogStore

from .errors import CatalogImportError, StoreBootstrapError
from .importer import ImportSummary, import_catalog
from .schema import ensure_schema_and_seed
from .service import MachineCatalogService
from .sync import SyncSummary, build_pinball_map_client, sync_active_machines

SUMMARY_FORMATS = ("text", "json")

_database_option = click.option(
    "--database",
    "database_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="TPL database file (defaults to TPL_DATABASE_PATH).",
)
_summary_format_option = click.option(
    "--summary-format",
    type=click.Choice(SUMMARY_FORMATS),
    default="text",
    show_default=True,
    help="Output format for the run summary.",
)


@click.group(name="catalog")
def catalog_cli():
    """Machine catalog management commands."""


def _load_app(ctx: click.Context):
    info = ctx.ensure_object(ScriptInfo)
    return info.load_app()


def _resolve_database_path(app, database_path: Optional[Path]) -> Path:
    return Path(database_path or app.config["TPL_DATABASE_PATH"])


def _open_existing_store(app, database_path: Path) -> CatalogStore:
    if not database_path.exists():
        raise click.ClickException(
            f"TPL database '{database_path}' does not exist. Run `flask catalog bootstrap` first."
        )
    try:
        return CatalogStore.open(database_path, echo=bool(app.config.get("SQLALCHEMY_ECHO", False)))
    except SQLAlchemyError as exc:
        raise click.ClickException(f"Unable to open TPL database '{database_path}': {exc}") from exc


def _format_import_summary(summary: ImportSummary) -> str:
    return (
        "Catalog import finished.\n"
        f"  records_processed        : {summary.records_processed}\n"
        f"  machines_created         : {summary.machines_created}\n"
        f"  machines_skipped_existing: {summary.machines_skipped_existing}\n"
        f"  records_skipped_invalid  : {summary.records_skipped_invalid}\n"
        f"  records_failed_insert    : {summary.records_failed_insert}\n"
        f"  manufacturers_created    : {summary.manufacturers_created}\n"
        f"  feature_sets_created     : {summary.feature_sets_created}"
    )


def _format_sync_summary(summary: SyncSummary) -> str:
    unknown = ", ".join(summary.unknown_opdb_ids) if summary.unknown_opdb_ids else "none"
    lines = [
        f"Sync for location {summary.venue_id} finished with state {summary.state.value}.",
        f"  machines_listed   : {summary.machines_listed}",
        f"  machines_activated: {summary.machines_activated}",
        f"  unknown_opdb_ids  : {unknown}",
    ]
    if summary.error:
        lines.append(f"  error             : {summary.error}")
    return "\n".join(lines)


@catalog_cli.command("bootstrap")
@_database_option
@click.option(
    "--export",
    "export_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Open Pinball Database export used to seed a new store (defaults to TPL_OPDB_EXPORT_PATH).",
)
@click.pass_context
def catalog_bootstrap(ctx, database_path: Optional[Path], export_path: Optional[Path]):
    """Create and seed the TPL database if it does not exist yet."""
    app = _load_app(ctx)
    path = _resolve_database_path(app, database_path)
    export = export_path or app.config["TPL_OPDB_EXPORT_PATH"]
    existed = path.exists()

    try:
        store = ensure_schema_and_seed(path, export_path=export, echo=bool(app.config.get("SQLALCHEMY_ECHO", False)))
    except StoreBootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    with store:
        machines = MachineCatalogService(store).count_machines()

    if existed:
        click.echo(f"TPL database '{path}' already exists ({machines} machines); nothing to do.")
    else:
        click.echo(f"Created TPL database '{path}' with {machines} machines from '{export}'.")


@catalog_cli.command("import")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Open Pinball Database export to load.",
)
@_database_option
@_summary_format_option
@click.pass_context
def catalog_import(ctx, file_path: Path, database_path: Optional[Path], summary_format: str):
    """Load an export into an existing database. Existing rows are never changed."""
    app = _load_app(ctx)
    path = _resolve_database_path(app, database_path)

    with _open_existing_store(app, path) as store:
        try:
            summary = import_catalog(store, file_path)
        except CatalogImportError as exc:
            raise click.ClickException(f"Catalog import failed: {exc}") from exc

    if summary_format == "json":
        click.echo(json.dumps(summary.as_dict(), indent=2, sort_keys=True))
    else:
        click.echo(_format_import_summary(summary))


@catalog_cli.command("sync")
@click.option("--location-id", type=int, help="Pinball Map location id (defaults to TPL_LOCATION_ID).")
@_database_option
@_summary_format_option
@click.pass_context
def catalog_sync(ctx, location_id: Optional[int], database_path: Optional[Path], summary_format: str):
    """
    Reconcile active machines against Pinball Map.

    An aborted sync is reported in the summary but still exits 0; the
    previous active set is left in place.
    """
    app = _load_app(ctx)
    path = _resolve_database_path(app, database_path)
    venue_id = location_id if location_id is not None else int(app.config["TPL_LOCATION_ID"])

    with _open_existing_store(app, path) as store:
        summary = sync_active_machines(store, venue_id, client=build_pinball_map_client(app.config))

    if summary_format == "json":
        click.echo(json.dumps(summary.as_dict(), indent=2, sort_keys=True))
    else:
        click.echo(_format_sync_summary(summary))


@catalog_cli.command("active")
@_database_option
@click.pass_context
def catalog_active(ctx, database_path: Optional[Path]):
    """List the machines currently marked active."""
    app = _load_app(ctx)
    path = _resolve_database_path(app, database_path)

    with _open_existing_store(app, path) as store:
        service = MachineCatalogService(store)
        machines = sorted(service.get_all_active_machines(), key=lambda machine: machine.name)
        if not machines:
            click.echo("No active machines.")
            return
        for machine in machines:
            features = service.get_features(machine.features_id) if machine.features_id is not None else ""
            suffix = f" [{features}]" if features else ""
            click.echo(f"{machine.opdb_id}  {machine.display_name}{suffix}")
