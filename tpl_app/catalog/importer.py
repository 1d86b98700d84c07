"""
Create-only loader for the Open Pinball Database catalog export.

Every record resolves its manufacturer and feature set through get-or-create
lookups keyed by the manufacturer id and the canonical feature string, then
inserts the machine unless its OPDB id already exists. Nothing that already
exists is ever updated, so re-importing an export is a no-op.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tpl_app.models import FeatureSet, Machine, MachineManufacturer
from tpl_app.store import CatalogStore

from .errors import CatalogImportError
from .metrics import record_import_summary
from .records import CatalogRecord, InvalidRecord, ManufacturerPayload, parse_catalog_record

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Aggregate results from one catalog import run."""

    records_processed: int = 0
    machines_created: int = 0
    machines_skipped_existing: int = 0
    records_skipped_invalid: int = 0
    records_failed_insert: int = 0
    manufacturers_created: int = 0
    feature_sets_created: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def load_catalog_export(export_path: str | Path) -> list[Any]:
    """
    Read the export file and return its top-level array.

    Raises ``CatalogImportError`` when the file cannot be read or is not a
    JSON array.
    """
    path = Path(export_path)
    logger.debug("Reading Open Pinball Database export", extra={"path": str(path)})
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise CatalogImportError(f"Failed reading Open Pinball Database export '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogImportError(f"Open Pinball Database export '{path}' is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CatalogImportError(
            f"Open Pinball Database export '{path}' must contain a JSON array, got {type(data).__name__}."
        )
    return data


class CatalogImporter:
    """Loads catalog records through a caller-owned session and transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.summary = ImportSummary()
        self._feature_set_ids: dict[str, int] = {}
        self._manufacturer_ids: set[int] = set()

    def load(self, raw_records: Iterable[Any]) -> ImportSummary:
        """
        Load every record of the export.

        Records without an OPDB id or manufacturer id are skipped. A record
        whose mandatory ``updated_at`` is invalid raises ``CatalogRecordError``
        and the caller's transaction must be rolled back.
        """
        for position, raw in enumerate(raw_records):
            self.summary.records_processed += 1
            try:
                record = parse_catalog_record(raw)
            except InvalidRecord as exc:
                self.summary.records_skipped_invalid += 1
                logger.warning(
                    "Skipping invalid catalog record",
                    extra={"position": position, "error": str(exc)},
                )
                continue
            self._load_record(record)
        return self.summary

    # Per-record work ------------------------------------------------------------

    def _load_record(self, record: CatalogRecord) -> None:
        new_feature_sets: dict[str, int] = {}
        new_manufacturer_ids: set[int] = set()
        try:
            with self.session.begin_nested():
                features_id = self._get_or_create_feature_set(record.feature_key, new_feature_sets)
                self._get_or_create_manufacturer(record.manufacturer, new_manufacturer_ids)
                created = self._create_machine_if_missing(record, features_id)
        except IntegrityError as exc:
            self.summary.records_failed_insert += 1
            logger.warning(
                "Unable to insert catalog record; skipping",
                extra={"opdb_id": record.opdb_id, "error": str(exc.orig)},
            )
            return
        except SQLAlchemyError as exc:
            raise CatalogImportError(f"Database error while importing {record.opdb_id}: {exc}") from exc

        # Only cache rows whose savepoint was released.
        self._feature_set_ids.update(new_feature_sets)
        self._manufacturer_ids.update(new_manufacturer_ids)
        self.summary.feature_sets_created += len(new_feature_sets)
        self.summary.manufacturers_created += len(new_manufacturer_ids)
        if created:
            self.summary.machines_created += 1
        else:
            self.summary.machines_skipped_existing += 1

    def _get_or_create_feature_set(self, feature_key: str | None, created: dict[str, int]) -> int | None:
        if feature_key is None:
            return None
        cached = self._feature_set_ids.get(feature_key)
        if cached is not None:
            return cached

        existing_id = self.session.execute(
            select(FeatureSet.id).where(FeatureSet.features == feature_key)
        ).scalar_one_or_none()
        if existing_id is not None:
            self._feature_set_ids[feature_key] = existing_id
            return existing_id

        feature_set = FeatureSet(features=feature_key)
        self.session.add(feature_set)
        self.session.flush()
        created[feature_key] = feature_set.id
        logger.debug("Created feature set", extra={"features_id": feature_set.id, "features": feature_key})
        return feature_set.id

    def _get_or_create_manufacturer(self, payload: ManufacturerPayload, created: set[int]) -> None:
        if payload.manufacturer_id in self._manufacturer_ids:
            return
        if self.session.get(MachineManufacturer, payload.manufacturer_id) is not None:
            self._manufacturer_ids.add(payload.manufacturer_id)
            return

        self.session.add(
            MachineManufacturer(
                id=payload.manufacturer_id,
                name=payload.name,
                full_name=payload.full_name,
                updated_at=payload.updated_at,
            )
        )
        self.session.flush()
        created.add(payload.manufacturer_id)
        logger.debug(
            "Created machine manufacturer",
            extra={"manufacturer_id": payload.manufacturer_id, "manufacturer_name": payload.name},
        )

    def _create_machine_if_missing(self, record: CatalogRecord, features_id: int | None) -> bool:
        if self.session.get(Machine, record.opdb_id) is not None:
            logger.debug("Machine already present; first import wins", extra={"opdb_id": record.opdb_id})
            return False

        self.session.add(
            Machine(
                opdb_id=record.opdb_id,
                manufacturer_id=record.manufacturer.manufacturer_id,
                ipdb_id=record.ipdb_id,
                features_id=features_id,
                name=record.name,
                manufacture_date=record.manufacture_date,
                backglass_image_uuid=record.backglass_image_uuid,
                updated_at=record.updated_at,
                active=False,
            )
        )
        self.session.flush()
        logger.debug(
            "Inserted machine",
            extra={
                "opdb_id": record.opdb_id,
                "manufacturer_id": record.manufacturer.manufacturer_id,
                "ipdb_id": record.ipdb_id,
                "features_id": features_id,
                "machine_name": record.name,
                "manufacture_date": record.manufacture_date,
                "backglass_image_uuid": record.backglass_image_uuid,
                "updated_at": record.updated_at,
            },
        )
        return True


def report_import_summary(summary: ImportSummary, *, export_path: str | Path) -> None:
    """Log and publish metrics for a committed import."""
    record_import_summary(summary)
    logger.info(
        "Catalog import committed",
        extra={"path": str(export_path), **summary.as_dict()},
    )


def import_catalog(store: CatalogStore, export_path: str | Path) -> ImportSummary:
    """
    Import the catalog export into ``store`` inside a single transaction.

    Raises ``CatalogImportError`` (including ``CatalogRecordError``) when the
    import cannot complete; nothing is committed in that case.
    """
    raw_records = load_catalog_export(export_path)
    logger.debug(
        "Importing machine catalog",
        extra={"path": str(export_path), "records": len(raw_records)},
    )
    try:
        with store.transaction() as session:
            summary = CatalogImporter(session).load(raw_records)
    except CatalogImportError:
        raise
    except SQLAlchemyError as exc:
        raise CatalogImportError(f"Unable to commit catalog import from '{export_path}': {exc}") from exc

    report_import_summary(summary, export_path=export_path)
    return summary
