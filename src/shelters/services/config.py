"""Shelter configuration loader, defaults and version migration.

The configuration lives in ``state/config/RaidableShelters.json`` and uses the
human readable keys server operators already know.  :func:`load_shelter_config`
returns a frozen :class:`ShelterConfig`; reloading produces a new snapshot that
callers swap in by reference, so a scan that is already running keeps the
values it started with.

Older documents are upgraded in place: each release that introduced new
settings owns a patch in :data:`_MIGRATIONS`, patches run in version order and
the upgraded document (with the new ``Version`` tag) is written back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Tuple

from shelters.constants import DEFENSE_TEMPLATE, HAZARD_TEMPLATE, PLUGIN_VERSION
from shelters.errors import ConfigError
from shelters.io.atomic import atomic_write_json, read_json
from shelters.util import parse_version

LOG = logging.getLogger(__name__)

CURRENT_VERSION = PLUGIN_VERSION

WOODBOX_TEMPLATE = "assets/prefabs/deployable/woodenbox/woodbox_deployed.prefab"
FURNACE_TEMPLATE = "assets/prefabs/deployable/furnace/furnace.prefab"

_DEFAULT_DOOR_SKINS = (809253752, 2246937402, 2483070538, 3076134051)

_DEFAULT_ITEMS: Tuple[Tuple[str, int, int], ...] = (
    ("fat.animal", 10, 25),
    ("cloth", 20, 30),
    ("wood", 200, 400),
    ("syringe.medical", 1, 2),
    ("rope", 1, 3),
    ("cctv.camera", 1, 1),
    ("roadsigns", 1, 2),
    ("stones", 150, 350),
    ("metal.fragments", 30, 90),
    ("ammo.grenadelauncher.he", 1, 2),
    ("coffeecan.helmet", 1, 1),
    ("scrap", 10, 25),
    ("icepick.salvaged", 1, 1),
    ("ptz.cctv.camera", 1, 1),
    ("corn", 3, 5),
    ("ammo.rocket.mlrs", 1, 1),
    ("wall.frame.garagedoor", 1, 1),
    ("pistol.revolver", 1, 1),
)


@dataclass(frozen=True)
class ItemEntry:
    shortname: str
    skin_id: int = 0
    min_amount: int = 1
    max_amount: int = 1


@dataclass(frozen=True)
class WeaponEntry:
    """Weapon loaded into a defensive object's primary slot."""

    shortname: str = "rifle.ak"
    skin_id: int = 0
    min_ammo: int = 30
    max_ammo: int = 30
    magazine_capacity: int = 30
    ammo_type: str = "ammo.rifle"


@dataclass(frozen=True)
class DoorConfig:
    skin_ids: Tuple[int, ...] = _DEFAULT_DOOR_SKINS


@dataclass(frozen=True)
class NotificationConfig:
    notify_surrounding_players: bool = False
    radius: float = 40.0
    send_as_toast: bool = True


@dataclass(frozen=True)
class InteriorEntityConfig:
    prefab: str
    skin_ids: Tuple[int, ...] = (0,)
    min_count: int = 1
    max_count: int = 1
    fill_percentage: int = 0
    spawn_chance_pct: int = 100


@dataclass(frozen=True)
class HazardConfig:
    enabled: bool = False
    prefab: str = HAZARD_TEMPLATE
    min_count: int = 2
    max_count: int = 4
    min_radius: float = 3.0
    max_radius: float = 6.0


@dataclass(frozen=True)
class DefenseConfig:
    enabled: bool = False
    prefab: str = DEFENSE_TEMPLATE
    offset: Tuple[float, float, float] = (0.0, 0.0, 1.2)
    yaw_degrees: float = 0.0
    hostile: bool = True
    weapon: WeaponEntry = field(default_factory=WeaponEntry)
    ammo: Tuple[ItemEntry, ...] = (ItemEntry("ammo.rifle", 0, 64, 128),)


def _default_interior() -> Tuple[InteriorEntityConfig, ...]:
    return (
        InteriorEntityConfig(WOODBOX_TEMPLATE, (0,), 1, 3, 20),
        InteriorEntityConfig(FURNACE_TEMPLATE, (0,), 1, 1, 0),
    )


def _default_items() -> Tuple[ItemEntry, ...]:
    return tuple(ItemEntry(name, 0, low, high) for name, low, high in _DEFAULT_ITEMS)


@dataclass(frozen=True)
class ShelterConfig:
    """Immutable snapshot of every shelter tunable."""

    version: str = CURRENT_VERSION
    spawn_attempts: int = 5
    min_search_radius: float = 20.0
    max_search_radius: float = 50.0
    respawn_frequency_minutes: float = 60.0
    delay_between_spawns_seconds: float = 5.0
    nearby_entities_avoidance_radius: float = 6.0
    rocks_avoidance_radius: float = 5.0
    distance_from_no_build_zones: float = 10.0
    lifetime_seconds: float = 600.0
    entity_position_attempts: int = 30
    entity_rotation_attempts: int = 30
    structure_health: Optional[float] = None
    door: DoorConfig = field(default_factory=DoorConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    interior_entities: Tuple[InteriorEntityConfig, ...] = field(default_factory=_default_interior)
    items: Tuple[ItemEntry, ...] = field(default_factory=_default_items)
    hazards: HazardConfig = field(default_factory=HazardConfig)
    defense: DefenseConfig = field(default_factory=DefenseConfig)
    source_path: Path | None = None


__all__ = [
    "CURRENT_VERSION",
    "DefenseConfig",
    "DoorConfig",
    "HazardConfig",
    "InteriorEntityConfig",
    "ItemEntry",
    "NotificationConfig",
    "ShelterConfig",
    "WeaponEntry",
    "config_to_document",
    "default_config",
    "load_shelter_config",
    "migrate_document",
    "parse_document",
]


# Top-level scalar settings: (json key, attribute, coercion).
_SCALARS: Tuple[Tuple[str, str, Callable[[Any], Any]], ...] = (
    ("Number Of Attempts To Find Shelter Position Near Players", "spawn_attempts", int),
    ("Minimum Search Radius For Shelter Position Around Player", "min_search_radius", float),
    ("Maximum Search Radius For Shelter Position Around Player", "max_search_radius", float),
    ("Shelters Respawn Frequency Minutes", "respawn_frequency_minutes", float),
    ("Delay Between Each Shelter Spawn Seconds", "delay_between_spawns_seconds", float),
    ("Nearby Entities Avoidance Radius", "nearby_entities_avoidance_radius", float),
    ("Rocks Avoidance Radius", "rocks_avoidance_radius", float),
    ("Distance From No Build Zones", "distance_from_no_build_zones", float),
    ("Shelter Lifetime Seconds", "lifetime_seconds", float),
    ("Number Of Attempts For Determining Entity Position Inside Shelter", "entity_position_attempts", int),
    ("Number Of Attempts For Determining Entity Rotation Inside Shelter", "entity_rotation_attempts", int),
)

_INTERIOR_KEY = "Interior Entities"
_ITEMS_KEY = "Items To Spawn Inside Entity Containers"


def default_config() -> ShelterConfig:
    return ShelterConfig()


# ---------------------------------------------------------------------------
# Serialisation


def _item_to_document(entry: ItemEntry) -> Dict[str, Any]:
    return {
        "Shortname": entry.shortname,
        "Skin Id": entry.skin_id,
        "Minimum Amount": entry.min_amount,
        "Maximum Amount": entry.max_amount,
    }


def _hazards_to_document(cfg: HazardConfig) -> Dict[str, Any]:
    return {
        "Enabled": cfg.enabled,
        "Prefab Name": cfg.prefab,
        "Minimum Number To Spawn": cfg.min_count,
        "Maximum Number To Spawn": cfg.max_count,
        "Minimum Radius": cfg.min_radius,
        "Maximum Radius": cfg.max_radius,
    }


def _defense_to_document(cfg: DefenseConfig) -> Dict[str, Any]:
    weapon = cfg.weapon
    return {
        "Enabled": cfg.enabled,
        "Prefab Name": cfg.prefab,
        "Local Position": list(cfg.offset),
        "Local Yaw": cfg.yaw_degrees,
        "Hostile": cfg.hostile,
        "Weapon": {
            "Shortname": weapon.shortname,
            "Skin Id": weapon.skin_id,
            "Minimum Loaded Ammo": weapon.min_ammo,
            "Maximum Loaded Ammo": weapon.max_ammo,
            "Magazine Capacity": weapon.magazine_capacity,
            "Ammo Type": weapon.ammo_type,
        },
        "Reserve Ammo": [_item_to_document(entry) for entry in cfg.ammo],
    }


def config_to_document(config: ShelterConfig) -> Dict[str, Any]:
    """Return the JSON document for ``config`` using the on-disk key names."""

    doc: Dict[str, Any] = {"Version": config.version}
    for key, attr, _ in _SCALARS:
        doc[key] = getattr(config, attr)
    doc["Shelter Health"] = config.structure_health
    doc["Door"] = {"Skin Ids": list(config.door.skin_ids)}
    doc["Notification"] = {
        "Notify Surrounding Players Of Shelter Spawn": config.notification.notify_surrounding_players,
        "Radius For Notifying Nearby Players": config.notification.radius,
        "Send As Toast": config.notification.send_as_toast,
    }
    doc[_INTERIOR_KEY] = [
        {
            "Prefab Name": entry.prefab,
            "Skin Ids": list(entry.skin_ids),
            "Minimum Number To Spawn": entry.min_count,
            "Maximum Number To Spawn": entry.max_count,
            "Percentage To Fill Container With Items If Present": entry.fill_percentage,
            "Spawn Chance Percentage": entry.spawn_chance_pct,
        }
        for entry in config.interior_entities
    ]
    doc[_ITEMS_KEY] = [_item_to_document(entry) for entry in config.items]
    doc["Perimeter Hazards"] = _hazards_to_document(config.hazards)
    doc["Defense"] = _defense_to_document(config.defense)
    return doc


# ---------------------------------------------------------------------------
# Parsing


def _coerce(raw: Mapping[str, Any], key: str, cast: Callable[[Any], Any], default: Any, *, where: str) -> Any:
    if key not in raw:
        return default
    value = raw[key]
    if cast is bool:
        if isinstance(value, bool):
            return value
        LOG.warning("shelter config %s%s is not a bool: %r", where, key, value)
        return default
    if isinstance(value, bool):
        LOG.warning("shelter config %s%s is not a number: %r", where, key, value)
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        LOG.warning("shelter config %s%s is not a number: %r", where, key, value)
        return default


def _coerce_skins(raw: Any, default: Tuple[int, ...], *, where: str) -> Tuple[int, ...]:
    if raw is None:
        return default
    if not isinstance(raw, list):
        LOG.warning("shelter config %sSkin Ids must be a list: %r", where, raw)
        return default
    skins: List[int] = []
    for value in raw:
        try:
            skins.append(int(value))
        except (TypeError, ValueError):
            LOG.warning("shelter config %sskin id ignored: %r", where, value)
    return tuple(skins)


def _check_range(low: float, high: float, *, label: str) -> None:
    if low > high:
        raise ConfigError(f"{label}: minimum {low!r} exceeds maximum {high!r}")


_NON_NEGATIVE = (
    "spawn_attempts",
    "min_search_radius",
    "delay_between_spawns_seconds",
    "nearby_entities_avoidance_radius",
    "rocks_avoidance_radius",
    "distance_from_no_build_zones",
    "lifetime_seconds",
    "entity_position_attempts",
    "entity_rotation_attempts",
)


def _check_scalars(values: Mapping[str, Any]) -> None:
    labels = {attr: key for key, attr, _ in _SCALARS}
    frequency = values["respawn_frequency_minutes"]
    if frequency <= 0:
        raise ConfigError(f"{labels['respawn_frequency_minutes']} must be positive, got {frequency!r}")
    for attr in _NON_NEGATIVE:
        if values[attr] < 0:
            raise ConfigError(f"{labels[attr]} must not be negative, got {values[attr]!r}")


def _parse_item(raw: Any, *, where: str) -> ItemEntry:
    if not isinstance(raw, Mapping) or not isinstance(raw.get("Shortname"), str):
        raise ConfigError(f"{where}: item entries need a Shortname")
    entry = ItemEntry(
        shortname=raw["Shortname"],
        skin_id=_coerce(raw, "Skin Id", int, 0, where=where),
        min_amount=_coerce(raw, "Minimum Amount", int, 1, where=where),
        max_amount=_coerce(raw, "Maximum Amount", int, 1, where=where),
    )
    _check_range(entry.min_amount, entry.max_amount, label=f"{where}{entry.shortname}")
    return entry


def _parse_interior(raw: Any) -> InteriorEntityConfig:
    where = f"{_INTERIOR_KEY}."
    if not isinstance(raw, Mapping) or not isinstance(raw.get("Prefab Name"), str):
        raise ConfigError("interior entity entries need a Prefab Name")
    entry = InteriorEntityConfig(
        prefab=raw["Prefab Name"],
        skin_ids=_coerce_skins(raw.get("Skin Ids"), (), where=where),
        min_count=_coerce(raw, "Minimum Number To Spawn", int, 1, where=where),
        max_count=_coerce(raw, "Maximum Number To Spawn", int, 1, where=where),
        fill_percentage=_coerce(raw, "Percentage To Fill Container With Items If Present", int, 0, where=where),
        spawn_chance_pct=_coerce(raw, "Spawn Chance Percentage", int, 100, where=where),
    )
    _check_range(entry.min_count, entry.max_count, label=entry.prefab)
    return entry


def _parse_hazards(raw: Any) -> HazardConfig:
    base = HazardConfig()
    if not isinstance(raw, Mapping):
        return base
    where = "Perimeter Hazards."
    cfg = HazardConfig(
        enabled=_coerce(raw, "Enabled", bool, base.enabled, where=where),
        prefab=str(raw.get("Prefab Name") or base.prefab),
        min_count=_coerce(raw, "Minimum Number To Spawn", int, base.min_count, where=where),
        max_count=_coerce(raw, "Maximum Number To Spawn", int, base.max_count, where=where),
        min_radius=_coerce(raw, "Minimum Radius", float, base.min_radius, where=where),
        max_radius=_coerce(raw, "Maximum Radius", float, base.max_radius, where=where),
    )
    _check_range(cfg.min_count, cfg.max_count, label="Perimeter Hazards count")
    _check_range(cfg.min_radius, cfg.max_radius, label="Perimeter Hazards radius")
    return cfg


def _parse_offset(raw: Any, default: Tuple[float, float, float]) -> Tuple[float, float, float]:
    if not isinstance(raw, list) or len(raw) != 3:
        return default
    try:
        return (float(raw[0]), float(raw[1]), float(raw[2]))
    except (TypeError, ValueError):
        LOG.warning("shelter config Defense.Local Position is not a vector: %r", raw)
        return default


def _parse_defense(raw: Any) -> DefenseConfig:
    base = DefenseConfig()
    if not isinstance(raw, Mapping):
        return base
    where = "Defense."
    weapon_raw = raw.get("Weapon")
    weapon = base.weapon
    if isinstance(weapon_raw, Mapping):
        wwhere = "Defense.Weapon."
        weapon = WeaponEntry(
            shortname=str(weapon_raw.get("Shortname") or base.weapon.shortname),
            skin_id=_coerce(weapon_raw, "Skin Id", int, 0, where=wwhere),
            min_ammo=_coerce(weapon_raw, "Minimum Loaded Ammo", int, base.weapon.min_ammo, where=wwhere),
            max_ammo=_coerce(weapon_raw, "Maximum Loaded Ammo", int, base.weapon.max_ammo, where=wwhere),
            magazine_capacity=_coerce(
                weapon_raw, "Magazine Capacity", int, base.weapon.magazine_capacity, where=wwhere
            ),
            ammo_type=str(weapon_raw.get("Ammo Type") or base.weapon.ammo_type),
        )
        _check_range(weapon.min_ammo, weapon.max_ammo, label="Defense.Weapon ammo")
    ammo_raw = raw.get("Reserve Ammo")
    ammo = base.ammo
    if isinstance(ammo_raw, list):
        ammo = tuple(_parse_item(entry, where="Defense.Reserve Ammo.") for entry in ammo_raw)
    return DefenseConfig(
        enabled=_coerce(raw, "Enabled", bool, base.enabled, where=where),
        prefab=str(raw.get("Prefab Name") or base.prefab),
        offset=_parse_offset(raw.get("Local Position"), base.offset),
        yaw_degrees=_coerce(raw, "Local Yaw", float, base.yaw_degrees, where=where),
        hostile=_coerce(raw, "Hostile", bool, base.hostile, where=where),
        weapon=weapon,
        ammo=ammo,
    )


def parse_document(doc: Mapping[str, Any], *, source_path: Path | None = None) -> ShelterConfig:
    """Build a :class:`ShelterConfig` from an already migrated document.

    Raises
    ------
    ConfigError
        If the interior entity or item tables are missing, or a configured
        range has its minimum above its maximum.
    """

    if not isinstance(doc.get(_INTERIOR_KEY), list):
        raise ConfigError(f"shelter config is missing the {_INTERIOR_KEY!r} table")
    if not isinstance(doc.get(_ITEMS_KEY), list):
        raise ConfigError(f"shelter config is missing the {_ITEMS_KEY!r} table")

    base = ShelterConfig()
    values: Dict[str, Any] = {}
    for key, attr, cast in _SCALARS:
        values[attr] = _coerce(doc, key, cast, getattr(base, attr), where="")
    _check_range(values["min_search_radius"], values["max_search_radius"], label="search radius")
    _check_scalars(values)

    health = doc.get("Shelter Health")
    if health is not None:
        health = _coerce(doc, "Shelter Health", float, None, where="")

    door_raw = doc.get("Door") if isinstance(doc.get("Door"), Mapping) else {}
    notif_raw = doc.get("Notification") if isinstance(doc.get("Notification"), Mapping) else {}
    notif_base = NotificationConfig()

    return replace(
        base,
        version=str(doc.get("Version") or CURRENT_VERSION),
        structure_health=health,
        door=DoorConfig(skin_ids=_coerce_skins(door_raw.get("Skin Ids"), (), where="Door.")),
        notification=NotificationConfig(
            notify_surrounding_players=_coerce(
                notif_raw,
                "Notify Surrounding Players Of Shelter Spawn",
                bool,
                notif_base.notify_surrounding_players,
                where="Notification.",
            ),
            radius=_coerce(
                notif_raw, "Radius For Notifying Nearby Players", float, notif_base.radius, where="Notification."
            ),
            send_as_toast=_coerce(notif_raw, "Send As Toast", bool, notif_base.send_as_toast, where="Notification."),
        ),
        interior_entities=tuple(_parse_interior(entry) for entry in doc[_INTERIOR_KEY]),
        items=tuple(_parse_item(entry, where=f"{_ITEMS_KEY}.") for entry in doc[_ITEMS_KEY]),
        hazards=_parse_hazards(doc.get("Perimeter Hazards")),
        defense=_parse_defense(doc.get("Defense")),
        source_path=source_path,
        **values,
    )


# ---------------------------------------------------------------------------
# Migration


def _patch_1_0_0(doc: MutableMapping[str, Any]) -> None:
    # Documents predating 1.0.0 are not upgradable; start over from defaults.
    doc.clear()
    doc.update(config_to_document(default_config()))


def _patch_1_1_0(doc: MutableMapping[str, Any]) -> None:
    doc["Notification"] = config_to_document(default_config())["Notification"]
    for entry in doc.get(_INTERIOR_KEY) or []:
        if isinstance(entry, MutableMapping):
            entry["Skin Ids"] = []


def _patch_1_2_0(doc: MutableMapping[str, Any]) -> None:
    doc["Door"] = {"Skin Ids": list(_DEFAULT_DOOR_SKINS)}


def _patch_1_3_0(doc: MutableMapping[str, Any]) -> None:
    defaults = default_config()
    doc.setdefault("Shelter Health", defaults.structure_health)
    doc.setdefault("Perimeter Hazards", _hazards_to_document(defaults.hazards))
    doc.setdefault("Defense", _defense_to_document(defaults.defense))
    for entry in doc.get(_INTERIOR_KEY) or []:
        if isinstance(entry, MutableMapping):
            entry.setdefault("Spawn Chance Percentage", 100)


_MIGRATIONS: Tuple[Tuple[str, Callable[[MutableMapping[str, Any]], None]], ...] = (
    ("1.0.0", _patch_1_0_0),
    ("1.1.0", _patch_1_1_0),
    ("1.2.0", _patch_1_2_0),
    ("1.3.0", _patch_1_3_0),
)


def migrate_document(doc: MutableMapping[str, Any]) -> bool:
    """Upgrade ``doc`` in place to :data:`CURRENT_VERSION`.

    Returns ``True`` when anything changed.
    """

    start = doc.get("Version")
    current = parse_version(start)
    if current >= parse_version(CURRENT_VERSION):
        return False

    LOG.warning("shelter config update starting from=%s", start)
    for version, patch in _MIGRATIONS:
        if current < parse_version(version):
            patch(doc)
            # The reset patch writes a current document; later patches must see it.
            current = parse_version(doc.get("Version"))
    LOG.warning("shelter config update complete from=%s to=%s", start, CURRENT_VERSION)
    doc["Version"] = CURRENT_VERSION
    return True


def load_shelter_config(path: str | Path) -> ShelterConfig:
    """Load, migrate and validate the configuration at ``path``.

    A missing file is created with defaults.  An unreadable document is
    treated as missing its tables and raises :class:`ConfigError`.
    """

    p = Path(path)
    if not p.exists():
        LOG.warning("shelter config missing, writing defaults path=%s", p)
        config = replace(default_config(), source_path=p)
        atomic_write_json(p, config_to_document(config))
        return config

    raw = read_json(p, default=None)
    if not isinstance(raw, MutableMapping):
        raise ConfigError(f"shelter config at {p} is not a JSON object")

    if migrate_document(raw):
        atomic_write_json(p, raw)

    config = parse_document(raw, source_path=p)
    LOG.info(
        "shelter config loaded path=%s version=%s interior=%d items=%d",
        p,
        config.version,
        len(config.interior_entities),
        len(config.items),
    )
    return config
