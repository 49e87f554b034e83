from __future__ import annotations

import json
import logging

import pytest

from shelters.errors import ConfigError
from shelters.services.config import (
    CURRENT_VERSION,
    FURNACE_TEMPLATE,
    WOODBOX_TEMPLATE,
    config_to_document,
    default_config,
    load_shelter_config,
    migrate_document,
    parse_document,
)


def _write(path, doc) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc), encoding="utf-8")


def test_missing_file_writes_defaults(tmp_path, caplog) -> None:
    path = tmp_path / "config" / "RaidableShelters.json"

    config = load_shelter_config(path)

    assert path.exists()
    assert config.source_path == path
    assert config.lifetime_seconds == 600.0
    assert config.spawn_attempts == 5
    assert [entry.prefab for entry in config.interior_entities] == [WOODBOX_TEMPLATE, FURNACE_TEMPLATE]
    assert len(config.items) == 18
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["Version"] == CURRENT_VERSION
    assert on_disk["Shelter Lifetime Seconds"] == 600.0
    assert any("shelter config missing" in record.message for record in caplog.records)


def test_document_round_trip_keeps_values() -> None:
    config = default_config()
    assert parse_document(config_to_document(config)) == config


def test_migration_from_1_1_0_adds_door_and_new_sections(tmp_path) -> None:
    doc = config_to_document(default_config())
    doc["Version"] = "1.1.0"
    for key in ("Door", "Perimeter Hazards", "Defense", "Shelter Health"):
        doc.pop(key)
    for entry in doc["Interior Entities"]:
        entry.pop("Spawn Chance Percentage")
    doc["Shelter Lifetime Seconds"] = 900
    path = tmp_path / "RaidableShelters.json"
    _write(path, doc)

    config = load_shelter_config(path)

    assert config.version == CURRENT_VERSION
    assert config.lifetime_seconds == 900.0
    assert config.door.skin_ids == default_config().door.skin_ids
    assert not config.hazards.enabled
    assert all(entry.spawn_chance_pct == 100 for entry in config.interior_entities)
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["Version"] == CURRENT_VERSION
    assert "Door" in saved and "Defense" in saved


def test_migration_from_1_0_5_clears_interior_skins() -> None:
    doc = config_to_document(default_config())
    doc["Version"] = "1.0.5"
    doc["Interior Entities"][0]["Skin Ids"] = [123]
    doc.pop("Notification")

    assert migrate_document(doc)
    assert doc["Interior Entities"][0]["Skin Ids"] == []
    assert doc["Notification"]["Radius For Notifying Nearby Players"] == 40.0


def test_documents_before_1_0_0_reset_to_defaults(caplog) -> None:
    doc = {"Version": "0.9.0", "Shelter Lifetime Seconds": 5}

    with caplog.at_level(logging.WARNING, logger="shelters.services.config"):
        assert migrate_document(doc)

    assert doc == config_to_document(default_config())
    assert [entry["Skin Ids"] for entry in doc["Interior Entities"]] == [[0], [0]]
    messages = [record.message for record in caplog.records]
    assert "shelter config update starting from=0.9.0" in messages
    assert f"shelter config update complete from=0.9.0 to={CURRENT_VERSION}" in messages


def test_current_document_is_not_touched() -> None:
    doc = config_to_document(default_config())
    assert not migrate_document(doc)


@pytest.mark.parametrize("missing", ["Interior Entities", "Items To Spawn Inside Entity Containers"])
def test_missing_tables_raise(tmp_path, missing) -> None:
    doc = config_to_document(default_config())
    doc.pop(missing)
    path = tmp_path / "RaidableShelters.json"
    _write(path, doc)

    with pytest.raises(ConfigError):
        load_shelter_config(path)


def test_non_object_document_raises(tmp_path) -> None:
    path = tmp_path / "RaidableShelters.json"
    _write(path, [1, 2, 3])
    with pytest.raises(ConfigError):
        load_shelter_config(path)


def test_inverted_range_raises() -> None:
    doc = config_to_document(default_config())
    doc["Items To Spawn Inside Entity Containers"][0]["Minimum Amount"] = 99
    doc["Items To Spawn Inside Entity Containers"][0]["Maximum Amount"] = 1
    with pytest.raises(ConfigError):
        parse_document(doc)


@pytest.mark.parametrize(
    "key, value",
    [
        ("Shelters Respawn Frequency Minutes", 0),
        ("Shelters Respawn Frequency Minutes", -5),
        ("Number Of Attempts To Find Shelter Position Near Players", -1),
        ("Shelter Lifetime Seconds", -600),
        ("Delay Between Each Shelter Spawn Seconds", -1),
    ],
)
def test_out_of_range_settings_raise(key, value) -> None:
    doc = config_to_document(default_config())
    doc[key] = value
    with pytest.raises(ConfigError, match=key):
        parse_document(doc)


def test_bad_scalar_falls_back_with_warning(caplog) -> None:
    doc = config_to_document(default_config())
    doc["Rocks Avoidance Radius"] = "wide"
    doc["Notification"]["Send As Toast"] = "yes"

    config = parse_document(doc)

    assert config.rocks_avoidance_radius == 5.0
    assert config.notification.send_as_toast is True
    messages = " ".join(record.message for record in caplog.records)
    assert "Rocks Avoidance Radius is not a number" in messages
    assert "Notification.Send As Toast is not a bool" in messages
