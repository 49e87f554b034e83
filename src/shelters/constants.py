"""Static identifiers shared across the shelter services."""

from __future__ import annotations

from enum import Enum
from typing import Final

PLUGIN_VERSION: Final[str] = "1.3.0"

SHELTER_TEMPLATE: Final[str] = (
    "assets/prefabs/building/legacy.shelter.wood/legacy.shelter.wood.deployed.prefab"
)
HAZARD_TEMPLATE: Final[str] = "assets/prefabs/deployable/landmine/landmine.prefab"
DEFENSE_TEMPLATE: Final[str] = "assets/prefabs/npc/autoturret/autoturret_deployed.prefab"

# Radius of the floor area usable for interior objects, measured from the
# shelter origin.
INTERIOR_RADIUS: Final[float] = 1.7

SHELTER_GROUND_PROBE_RANGE: Final[float] = 5.0
INTERIOR_GROUND_PROBE_RANGE: Final[float] = 2.0
HAZARD_GROUND_PROBE_RANGE: Final[float] = 3.0
TERRAIN_CHECK_RADIUS: Final[float] = 4.0

# Lock owner id meaning "owned by nobody".
SYSTEM_OWNER_ID: Final[int] = 0

MSG_SHELTER_SPAWNED: Final[str] = "RaidableShelterSpawned"

DEFAULT_MESSAGES: Final[dict[str, str]] = {
    MSG_SHELTER_SPAWNED: "A raidable shelter has spawned nearby!",
}


class Layer(str, Enum):
    """Collision layers understood by the geometry provider."""

    TERRAIN = "terrain"
    ENTITIES = "entities"
    PLAYERS = "players"
    WORLD = "world"


class ZoneKind(str, Enum):
    RESTRICTED = "restricted"
    NO_BUILD = "no_build"
    WATER = "water"
    ROAD = "road"
    RAIL = "rail"


# Mount modes that disqualify a player as a spawn anchor.
RESTRICTED_MOUNT_MODES: Final[frozenset[str]] = frozenset({"boating", "flying"})
