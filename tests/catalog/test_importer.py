from __future__ import annotations

import pytest
from sqlalchemy import func, select

from conftest import BACKGLASS_UUID, sample_catalog_records, write_export
from tpl_app.catalog.errors import CatalogImportError, CatalogRecordError
from tpl_app.catalog.importer import import_catalog, load_catalog_export
from tpl_app.models import FeatureSet, Machine, MachineManufacturer


def _count(store, model):
    with store.session() as session:
        return session.scalar(select(func.count()).select_from(model))


def _machine(store, opdb_id):
    with store.session() as session:
        return session.get(Machine, opdb_id)


def test_bootstrap_loads_sample_catalog(store):
    assert _count(store, Machine) == 6
    assert _count(store, MachineManufacturer) == 2
    assert _count(store, FeatureSet) == 3


def test_identical_feature_lists_share_one_row(store):
    godzilla = _machine(store, "GrdNZ-MQo1Z-A")
    jurassic = _machine(store, "G5vOd-MyX3b")
    reversed_order = _machine(store, "G5vOd-MyX3b-B")

    assert godzilla.features_id == jurassic.features_id
    assert reversed_order.features_id != jurassic.features_id

    with store.session() as session:
        keys = set(session.scalars(select(FeatureSet.features)))
    assert keys == {"Pro", "Pro,LE", "LE,Pro"}


def test_untagged_machine_has_no_feature_set(store):
    assert _machine(store, "GR8dK-MLq0z").features_id is None


def test_presence_rules_applied_on_insert(store):
    addams = _machine(store, "GR8dK-MLq0z")
    madness = _machine(store, "G4ODR-MDXEy")
    godzilla = _machine(store, "GrdNZ-MQo1Z")

    assert addams.ipdb_id is None
    assert madness.manufacture_date is None
    assert godzilla.manufacture_date == 1625356800
    assert godzilla.backglass_image_uuid == BACKGLASS_UUID
    assert addams.backglass_image_uuid is None
    assert all(not _machine(store, record["opdb_id"]).active for record in sample_catalog_records())


def test_reimport_is_idempotent(store, export_path):
    summary = import_catalog(store, export_path)

    assert summary.records_processed == 6
    assert summary.machines_created == 0
    assert summary.machines_skipped_existing == 6
    assert summary.feature_sets_created == 0
    assert summary.manufacturers_created == 0
    assert _count(store, Machine) == 6
    assert _count(store, FeatureSet) == 3


def test_first_import_wins_for_existing_rows(store, tmp_path):
    records = sample_catalog_records()
    records[0]["name"] = "Renamed"
    records[0]["manufacturer"]["name"] = "Renamed Manufacturer"
    import_catalog(store, write_export(tmp_path / "second.json", records))

    assert _machine(store, "GrdNZ-MQo1Z").name == "Godzilla (Pro)"
    with store.session() as session:
        assert session.get(MachineManufacturer, 1).name == "Stern"


def test_import_adds_new_machines_and_reuses_references(store, tmp_path):
    new_record = dict(sample_catalog_records()[1], opdb_id="GrdNZ-MQo1Z-C", name="Godzilla (70th Anniversary)")
    summary = import_catalog(store, write_export(tmp_path / "new.json", [new_record]))

    assert summary.machines_created == 1
    assert summary.feature_sets_created == 0
    assert _machine(store, "GrdNZ-MQo1Z-C").features_id == _machine(store, "GrdNZ-MQo1Z-A").features_id


def test_invalid_records_are_skipped(store, tmp_path):
    records = [
        {"name": "No id", "updated_at": "2023-01-01"},
        dict(sample_catalog_records()[0], opdb_id="Gxxxx-NoMfr", manufacturer=None),
        dict(sample_catalog_records()[0], opdb_id="Gxxxx-Valid"),
    ]
    summary = import_catalog(store, write_export(tmp_path / "partial.json", records))

    assert summary.records_skipped_invalid == 2
    assert summary.machines_created == 1
    assert _machine(store, "Gxxxx-NoMfr") is None


def test_failed_insert_skips_record_and_discards_its_feature_set(store, tmp_path):
    with store.engine.begin() as connection:
        connection.exec_driver_sql(
            "CREATE TRIGGER reject_machine BEFORE INSERT ON machines "
            "WHEN NEW.opdb_id = 'Gbad1-Record' "
            "BEGIN SELECT RAISE(ABORT, 'machine rejected'); END"
        )
    records = [
        dict(sample_catalog_records()[0], opdb_id="Gbad1-Record", features=["Premium"]),
        dict(sample_catalog_records()[0], opdb_id="Gnext-Record", features=["Premium"]),
    ]

    summary = import_catalog(store, write_export(tmp_path / "rejected.json", records))

    assert summary.records_failed_insert == 1
    assert summary.machines_created == 1
    assert summary.feature_sets_created == 1
    assert _machine(store, "Gbad1-Record") is None
    with store.session() as session:
        created = session.get(Machine, "Gnext-Record")
        assert session.get(FeatureSet, created.features_id).features == "Premium"
        assert session.scalar(select(func.count()).select_from(FeatureSet).where(FeatureSet.features == "Premium")) == 1


def test_invalid_updated_at_aborts_whole_import(store, tmp_path):
    records = [
        dict(sample_catalog_records()[0], opdb_id="Gaaaa-First"),
        dict(sample_catalog_records()[0], opdb_id="Gbbbb-Broken", updated_at="not-a-date"),
    ]

    with pytest.raises(CatalogRecordError):
        import_catalog(store, write_export(tmp_path / "broken.json", records))

    assert _machine(store, "Gaaaa-First") is None
    assert _count(store, Machine) == 6


def test_import_keeps_active_flags(store, tmp_path):
    with store.transaction() as session:
        session.get(Machine, "GrdNZ-MQo1Z").active = True

    import_catalog(store, write_export(tmp_path / "again.json", sample_catalog_records()))

    assert _machine(store, "GrdNZ-MQo1Z").active is True


@pytest.mark.parametrize(
    "content",
    ["{not json", '{"opdb_id": "GrdNZ-MQo1Z"}'],
)
def test_load_catalog_export_rejects_bad_files(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CatalogImportError):
        load_catalog_export(path)


def test_load_catalog_export_missing_file(tmp_path):
    with pytest.raises(CatalogImportError):
        load_catalog_export(tmp_path / "missing.json")
