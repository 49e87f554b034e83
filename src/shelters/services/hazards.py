"""Optional ring of hazards planted around a shelter."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from shelters.constants import HAZARD_GROUND_PROBE_RANGE, Layer
from shelters.geometry import Pose, random_position_around, surface_rotation
from shelters.interfaces import EntityFactory, EntityHandle, GeometryProvider
from shelters.services.config import HazardConfig
from shelters.services.lifecycle import LifecycleStore

LOG = logging.getLogger(__name__)


class HazardPlanter:
    def __init__(
        self,
        geometry: GeometryProvider,
        factory: EntityFactory,
        lifecycle: LifecycleStore,
        *,
        config: HazardConfig,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._geometry = geometry
        self._factory = factory
        self._lifecycle = lifecycle
        self._config = config
        self._rng = rng or random.Random()

    def plant(self, structure: EntityHandle) -> List[EntityHandle]:
        """Plant hazards in the annulus around ``structure``.

        Hazards are not fit-checked against each other; a missed ground probe
        or a failed create just drops that hazard.
        """

        cfg = self._config
        if not cfg.enabled:
            return []

        planted: List[EntityHandle] = []
        count = self._rng.randint(cfg.min_count, cfg.max_count)
        for _ in range(count):
            point = random_position_around(
                structure.pose.position,
                cfg.min_radius,
                cfg.max_radius,
                self._rng,
                self._geometry.height_at,
            )
            hit = self._geometry.ground_probe(point, HAZARD_GROUND_PROBE_RANGE, Layer.TERRAIN)
            if hit is None:
                continue
            pose = Pose(position=hit.point, rotation=surface_rotation(hit.normal, self._rng.randrange(360)))
            handle = self._factory.create(cfg.prefab, pose, parent=structure)
            if handle is None:
                LOG.warning("hazard create failed structure=%s template=%s", structure.entity_id, cfg.prefab)
                continue
            self._lifecycle.append(structure.entity_id, handle.entity_id)
            planted.append(handle)

        LOG.debug("hazards planted structure=%s count=%d/%d", structure.entity_id, len(planted), count)
        return planted
