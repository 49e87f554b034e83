"""Placement of interior objects inside a freshly spawned shelter."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from shelters.constants import INTERIOR_GROUND_PROBE_RANGE, INTERIOR_RADIUS, Layer
from shelters.geometry import Pose, random_position_around, surface_rotation, world_box
from shelters.interfaces import (
    AllowAllHooks,
    EntityFactory,
    EntityHandle,
    GeometryProvider,
    ItemCatalog,
    SpawnHooks,
)
from shelters.services.config import InteriorEntityConfig, ShelterConfig
from shelters.services.container_fill import fill_container
from shelters.services.lifecycle import LifecycleStore

LOG = logging.getLogger(__name__)


class InteriorPopulator:
    """Place the configured interior objects on the shelter floor.

    Every unit runs a nested search: the outer loop picks a floor position,
    the inner loop tries orientations at that position.  A pose is accepted
    when the object's bounds overlap nothing but the shelter itself.
    """

    def __init__(
        self,
        geometry: GeometryProvider,
        factory: EntityFactory,
        catalog: ItemCatalog,
        lifecycle: LifecycleStore,
        *,
        config: ShelterConfig,
        rng: Optional[random.Random] = None,
        hooks: Optional[SpawnHooks] = None,
        radius: float = INTERIOR_RADIUS,
    ) -> None:
        self._geometry = geometry
        self._factory = factory
        self._catalog = catalog
        self._lifecycle = lifecycle
        self._config = config
        self._rng = rng or random.Random()
        self._hooks = hooks or AllowAllHooks()
        self._radius = radius

    def populate(self, structure: EntityHandle) -> List[EntityHandle]:
        spawned: List[EntityHandle] = []
        for entry in self._config.interior_entities:
            count = self._rng.randint(entry.min_count, entry.max_count)
            for _ in range(count):
                if entry.spawn_chance_pct < 100 and self._rng.random() * 100.0 >= entry.spawn_chance_pct:
                    continue
                handle = self._place_unit(structure, entry)
                if handle is not None:
                    spawned.append(handle)
        LOG.debug("interior populated structure=%s count=%d", structure.entity_id, len(spawned))
        return spawned

    def fits(self, structure: EntityHandle, template: str, pose: Pose) -> bool:
        """Return ``True`` when ``template`` at ``pose`` touches only the shelter."""

        box = world_box(pose, self._geometry.bounds_for(template))
        hits = self._geometry.overlap(box, Layer.ENTITIES)
        return not (set(hits) - {structure.entity_id})

    def _place_unit(self, structure: EntityHandle, entry: InteriorEntityConfig) -> Optional[EntityHandle]:
        center = structure.pose.position
        for _ in range(self._config.entity_position_attempts):
            point = random_position_around(center, 0.0, self._radius, self._rng, self._geometry.height_at)
            hit = self._geometry.ground_probe(point, INTERIOR_GROUND_PROBE_RANGE, Layer.TERRAIN)
            if hit is None:
                continue

            for _ in range(self._config.entity_rotation_attempts):
                pose = Pose(position=hit.point, rotation=surface_rotation(hit.normal, self._rng.randrange(360)))
                if not self.fits(structure, entry.prefab, pose):
                    continue
                if not self._allowed(structure, entry.prefab, pose):
                    LOG.debug("interior spawn vetoed structure=%s template=%s", structure.entity_id, entry.prefab)
                    continue

                handle = self._commit(structure, entry, pose)
                if handle is None:
                    continue
                return handle

        LOG.debug("interior placement exhausted structure=%s template=%s", structure.entity_id, entry.prefab)
        return None

    def _commit(self, structure: EntityHandle, entry: InteriorEntityConfig, pose: Pose) -> Optional[EntityHandle]:
        handle = self._factory.create(entry.prefab, pose)
        if handle is None:
            LOG.warning("interior create failed structure=%s template=%s", structure.entity_id, entry.prefab)
            return None

        if entry.skin_ids:
            handle.skin_id = entry.skin_ids[self._rng.randrange(len(entry.skin_ids))]

        container = handle.container
        if container is not None and entry.fill_percentage > 0:
            fill_container(
                container,
                self._config.items,
                entry.fill_percentage,
                catalog=self._catalog,
                rng=self._rng,
            )

        self._lifecycle.append(structure.entity_id, handle.entity_id)
        try:
            self._hooks.post_spawn(structure, handle)
        except Exception:
            LOG.exception(
                "interior post_spawn hook failed structure=%s sub=%s", structure.entity_id, handle.entity_id
            )
        return handle

    def _allowed(self, structure: EntityHandle, template: str, pose: Pose) -> bool:
        # A failing hook counts as no answer, which allows the spawn.
        try:
            return bool(self._hooks.pre_spawn(structure, template, pose))
        except Exception:
            LOG.exception("interior pre_spawn hook failed structure=%s template=%s", structure.entity_id, template)
            return True
