"""Collaborator protocols consumed by the shelter services.

The host world (terrain, physics layers, entity creation, item definitions,
chat delivery) is reached only through these narrow interfaces so the
services can be driven by in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from shelters.constants import Layer, ZoneKind
from shelters.geometry import GroundHit, LocalBounds, OrientedBox, Pose, Vec3


@dataclass
class ItemStack:
    shortname: str
    amount: int
    skin_id: int = 0
    # Only meaningful for weapons placed into a defensive object.
    ammo_type: Optional[str] = None
    loaded_ammo: int = 0


class GeometryProvider(Protocol):
    def height_at(self, point: Vec3) -> float:  # pragma: no cover - protocol
        ...

    def ground_probe(self, point: Vec3, max_range: float, layer: Layer) -> Optional[GroundHit]:  # pragma: no cover - protocol
        ...

    def overlap(self, box: OrientedBox, layer: Layer) -> set[int]:  # pragma: no cover - protocol
        ...

    def in_zone(self, point: Vec3, kind: ZoneKind, radius: float = 0.0) -> bool:  # pragma: no cover - protocol
        ...

    def entity_nearby(self, point: Vec3, radius: float) -> bool:  # pragma: no cover - protocol
        ...

    def player_nearby(self, point: Vec3, radius: float) -> bool:  # pragma: no cover - protocol
        ...

    def inside_obstruction(self, point: Vec3, radius: float) -> bool:  # pragma: no cover - protocol
        ...

    def on_terrain(self, point: Vec3, radius: float) -> bool:  # pragma: no cover - protocol
        ...

    def bounds_for(self, template: str) -> LocalBounds:  # pragma: no cover - protocol
        ...


class ItemContainer(Protocol):
    capacity: int

    def insert(self, stack: ItemStack, slot: Optional[int] = None) -> bool:  # pragma: no cover - protocol
        ...

    def free_slots(self) -> int:  # pragma: no cover - protocol
        ...


class DoorHandle(Protocol):
    lock_owner_id: int
    skin_id: int


class EntityHandle(Protocol):
    entity_id: int
    template: str
    pose: Pose
    skin_id: int

    @property
    def container(self) -> Optional[ItemContainer]:  # pragma: no cover - protocol
        ...

    @property
    def door(self) -> Optional[DoorHandle]:  # pragma: no cover - protocol
        ...

    def set_health(self, value: float) -> None:  # pragma: no cover - protocol
        ...

    def clear_authorizations(self) -> None:  # pragma: no cover - protocol
        ...

    def arm(self, hostile: bool) -> None:  # pragma: no cover - protocol
        ...


class EntityFactory(Protocol):
    def create(
        self,
        template: str,
        pose: Pose,
        *,
        parent: Optional[EntityHandle] = None,
    ) -> Optional[EntityHandle]:  # pragma: no cover - protocol
        ...

    def find(self, entity_id: int) -> Optional[EntityHandle]:  # pragma: no cover - protocol
        ...

    def destroy(self, handle: EntityHandle) -> None:  # pragma: no cover - protocol
        ...


class ItemCatalog(Protocol):
    def resolve(self, shortname: str) -> bool:  # pragma: no cover - protocol
        ...

    def create_stack(self, shortname: str, amount: int, skin_id: int = 0) -> Optional[ItemStack]:  # pragma: no cover - protocol
        ...

    def discard(self, stack: ItemStack) -> None:  # pragma: no cover - protocol
        ...


class Persistence(Protocol):
    """Best-effort storage for lifecycle records keyed by structure id."""

    def load(self) -> dict[int, Mapping[str, Any]]:  # pragma: no cover - protocol
        ...

    def save(self, records: Mapping[int, Mapping[str, Any]]) -> None:  # pragma: no cover - protocol
        ...


class Notifier(Protocol):
    """Delivers player messages; hosts localize by ``message_key`` and may fall back to ``text``."""

    def notify(self, anchor: "Anchor", message_key: str, *, text: str, toast: bool) -> None:  # pragma: no cover - protocol
        ...

    def broadcast(
        self, point: Vec3, radius: float, message_key: str, *, text: str, toast: bool
    ) -> None:  # pragma: no cover - protocol
        ...


class SpawnHooks(Protocol):
    def pre_spawn(self, structure: EntityHandle, template: str, pose: Pose) -> bool:  # pragma: no cover - protocol
        ...

    def post_spawn(self, structure: EntityHandle, sub_object: EntityHandle) -> None:  # pragma: no cover - protocol
        ...


class AllowAllHooks:
    """Default hooks: never veto, ignore notifications."""

    def pre_spawn(self, structure: EntityHandle, template: str, pose: Pose) -> bool:
        return True

    def post_spawn(self, structure: EntityHandle, sub_object: EntityHandle) -> None:
        return None


class Anchor(Protocol):
    anchor_id: str
    position: Vec3
    is_connected: bool
    is_wounded: bool
    is_sleeping: bool
    is_swimming: bool
    is_on_ground: bool
    mount_mode: Optional[str]

    def in_own_territory(self) -> bool:  # pragma: no cover - protocol
        ...

    def near_enemy_base(self) -> bool:  # pragma: no cover - protocol
        ...
