"""Optional defensive object rigged next to a shelter."""

from __future__ import annotations

import logging
import random
from typing import Optional

from shelters.geometry import local_to_world
from shelters.interfaces import EntityFactory, EntityHandle, ItemCatalog
from shelters.services.config import DefenseConfig
from shelters.services.lifecycle import LifecycleStore
from shelters.util import clamp

LOG = logging.getLogger(__name__)

PRIMARY_SLOT = 0


class DefenseRigger:
    def __init__(
        self,
        factory: EntityFactory,
        catalog: ItemCatalog,
        lifecycle: LifecycleStore,
        *,
        config: DefenseConfig,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._factory = factory
        self._catalog = catalog
        self._lifecycle = lifecycle
        self._config = config
        self._rng = rng or random.Random()

    def loaded_ammo(self) -> int:
        weapon = self._config.weapon
        drawn = self._rng.randint(weapon.min_ammo, weapon.max_ammo)
        return int(clamp(drawn, 0, max(0, weapon.magazine_capacity)))

    def rig(self, structure: EntityHandle) -> Optional[EntityHandle]:
        cfg = self._config
        if not cfg.enabled:
            return None

        pose = local_to_world(structure.pose, cfg.offset, cfg.yaw_degrees)
        defense = self._factory.create(cfg.prefab, pose, parent=structure)
        if defense is None:
            LOG.warning("defense create failed structure=%s template=%s", structure.entity_id, cfg.prefab)
            return None

        container = defense.container
        if container is not None:
            self._load(container)

        defense.arm(cfg.hostile)
        self._lifecycle.append(structure.entity_id, defense.entity_id)
        LOG.debug("defense rigged structure=%s defense=%s hostile=%s", structure.entity_id, defense.entity_id, cfg.hostile)
        return defense

    def _load(self, container) -> None:
        weapon = self._config.weapon
        stack = self._catalog.create_stack(weapon.shortname, 1, weapon.skin_id)
        if stack is None:
            LOG.warning("defense weapon unresolved item=%s", weapon.shortname)
        else:
            stack.ammo_type = weapon.ammo_type
            stack.loaded_ammo = self.loaded_ammo()
            if not container.insert(stack, PRIMARY_SLOT):
                self._catalog.discard(stack)

        for entry in self._config.ammo:
            if entry.max_amount <= 0:
                continue
            if container.free_slots() <= 0:
                break
            amount = self._rng.randint(max(0, entry.min_amount), entry.max_amount)
            if amount <= 0:
                continue
            reserve = self._catalog.create_stack(entry.shortname, amount, entry.skin_id)
            if reserve is None:
                continue
            if not container.insert(reserve):
                self._catalog.discard(reserve)
