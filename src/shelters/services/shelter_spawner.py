"""One placement attempt: search, create, register, furnish, announce."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from shelters.interfaces import Anchor, EntityFactory, GeometryProvider, ItemCatalog, Notifier, SpawnHooks
from shelters.services.config import ShelterConfig
from shelters.services.defenses import DefenseRigger
from shelters.services.hazards import HazardPlanter
from shelters.services.interior import InteriorPopulator
from shelters.services.lifecycle import LifecycleStore
from shelters.services.notifications import SpawnNotifier
from shelters.services.spawn_point import SpawnPointSearch
from shelters.services.structure_factory import StructureFactory

LOG = logging.getLogger(__name__)

OUTCOME_SPAWNED = "spawned"
OUTCOME_PLACEMENT_NOT_FOUND = "placement_not_found"
OUTCOME_CREATE_FAILED = "create_failed"


@dataclass
class SpawnOutcome:
    anchor_id: Optional[str]
    reason: str
    structure_id: Optional[int] = None
    sub_objects: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.reason == OUTCOME_SPAWNED


class ShelterSpawner:
    """Wire the placement services together for a single anchor.

    A spawner is built from one configuration snapshot; reloading the
    configuration builds a new spawner rather than mutating this one.
    """

    def __init__(
        self,
        *,
        config: ShelterConfig,
        geometry: GeometryProvider,
        factory: EntityFactory,
        catalog: ItemCatalog,
        lifecycle: LifecycleStore,
        notifier: Optional[Notifier] = None,
        hooks: Optional[SpawnHooks] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        rng = rng or random.Random()
        self.config = config
        self._lifecycle = lifecycle
        self.search = SpawnPointSearch(geometry, config=config, rng=rng)
        self.structures = StructureFactory(factory, config=config, rng=rng)
        self.interior = InteriorPopulator(
            geometry, factory, catalog, lifecycle, config=config, rng=rng, hooks=hooks
        )
        self.hazards = HazardPlanter(geometry, factory, lifecycle, config=config.hazards, rng=rng)
        self.defenses = DefenseRigger(factory, catalog, lifecycle, config=config.defense, rng=rng)
        self._announcer = (
            SpawnNotifier(notifier, config=config.notification) if notifier is not None else None
        )

    def attempt(self, anchor: Anchor) -> SpawnOutcome:
        anchor_id = getattr(anchor, "anchor_id", None)
        pose = self.search.find_for(anchor.position)
        if pose is None:
            LOG.debug("shelter placement not found anchor=%s", anchor_id)
            return SpawnOutcome(anchor_id, OUTCOME_PLACEMENT_NOT_FOUND)

        structure = self.structures.spawn_structure(pose, anchor)
        if structure is None:
            return SpawnOutcome(anchor_id, OUTCOME_CREATE_FAILED)

        self._lifecycle.register(structure.entity_id, self.config.lifetime_seconds)
        self.interior.populate(structure)
        self.hazards.plant(structure)
        self.defenses.rig(structure)

        if self._announcer is not None:
            self._announcer.announce(structure, anchor)

        record = self._lifecycle.record(structure.entity_id)
        subs = list(record.sub_object_ids) if record is not None else []
        LOG.info(
            "shelter spawn ok id=%s anchor=%s position=%s sub_objects=%d",
            structure.entity_id,
            anchor_id,
            pose.position,
            len(subs),
        )
        return SpawnOutcome(anchor_id, OUTCOME_SPAWNED, structure.entity_id, subs)
