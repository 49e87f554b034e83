"""Rejection-sampling search for a shelter placement near an anchor."""

from __future__ import annotations

import logging
import random
from typing import Optional

from shelters.constants import SHELTER_GROUND_PROBE_RANGE, TERRAIN_CHECK_RADIUS, Layer, ZoneKind
from shelters.geometry import Pose, Vec3, random_position_around, surface_rotation
from shelters.interfaces import GeometryProvider
from shelters.services.config import ShelterConfig

LOG = logging.getLogger(__name__)


class SpawnPointSearch:
    """Find a grounded, unobstructed pose for a new shelter.

    Candidates are drawn by annulus sampling around the anchor and run through
    the placement predicates in a fixed order; the first candidate that passes
    is ground-probed for its exact contact point and surface normal.
    """

    def __init__(
        self,
        geometry: GeometryProvider,
        *,
        config: ShelterConfig,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._geometry = geometry
        self._config = config
        self._rng = rng or random.Random()

    def rejection_reason(self, point: Vec3) -> Optional[str]:
        """Return the name of the first failing predicate, or ``None``."""

        geo = self._geometry
        cfg = self._config
        if geo.inside_obstruction(point, cfg.rocks_avoidance_radius):
            return "obstruction"
        if geo.in_zone(point, ZoneKind.RESTRICTED):
            return "restricted_zone"
        if geo.entity_nearby(point, cfg.nearby_entities_avoidance_radius):
            return "entity_nearby"
        if geo.player_nearby(point, cfg.nearby_entities_avoidance_radius):
            return "player_nearby"
        if geo.in_zone(point, ZoneKind.WATER):
            return "water"
        if geo.in_zone(point, ZoneKind.ROAD) or geo.in_zone(point, ZoneKind.RAIL):
            return "road_or_rail"
        if not geo.on_terrain(point, TERRAIN_CHECK_RADIUS):
            return "off_terrain"
        if geo.in_zone(point, ZoneKind.NO_BUILD, cfg.distance_from_no_build_zones):
            return "no_build_zone"
        return None

    def candidate_passes(self, point: Vec3) -> bool:
        return self.rejection_reason(point) is None

    def find_spawn_point(
        self,
        center: Vec3,
        min_radius: float,
        max_radius: float,
        max_attempts: int,
    ) -> Optional[Pose]:
        """Return a placement pose, or ``None`` once ``max_attempts`` are spent."""

        for attempt in range(max(0, int(max_attempts))):
            point = random_position_around(
                center, min_radius, max_radius, self._rng, self._geometry.height_at
            )
            reason = self.rejection_reason(point)
            if reason is not None:
                LOG.debug("spawn point rejected attempt=%d reason=%s point=%s", attempt, reason, point)
                continue

            hit = self._geometry.ground_probe(point, SHELTER_GROUND_PROBE_RANGE, Layer.TERRAIN)
            if hit is None:
                LOG.debug("spawn point rejected attempt=%d reason=no_ground point=%s", attempt, point)
                continue

            yaw = self._rng.randrange(360)
            return Pose(position=hit.point, rotation=surface_rotation(hit.normal, yaw))

        LOG.debug("spawn point not found center=%s attempts=%d", center, max_attempts)
        return None

    def find_for(self, center: Vec3) -> Optional[Pose]:
        cfg = self._config
        return self.find_spawn_point(center, cfg.min_search_radius, cfg.max_search_radius, cfg.spawn_attempts)
