"""Creation of the shelter structure and its door fixtures."""

from __future__ import annotations

import logging
import random
from typing import Optional

from shelters.constants import SHELTER_TEMPLATE, SYSTEM_OWNER_ID
from shelters.geometry import Pose
from shelters.interfaces import Anchor, EntityFactory, EntityHandle
from shelters.services.config import ShelterConfig

LOG = logging.getLogger(__name__)


class StructureFactory:
    def __init__(
        self,
        factory: EntityFactory,
        *,
        config: ShelterConfig,
        rng: Optional[random.Random] = None,
        template: str = SHELTER_TEMPLATE,
    ) -> None:
        self._factory = factory
        self._config = config
        self._rng = rng or random.Random()
        self._template = template

    def spawn_structure(self, pose: Pose, anchor: Optional[Anchor] = None) -> Optional[EntityHandle]:
        """Create the shelter at ``pose``.

        The door lock is handed to the system owner so the anchor who caused
        the spawn cannot simply walk in, and any authorization inherited from
        placement is cleared.  Returns ``None`` when the factory fails.
        """

        structure = self._factory.create(self._template, pose)
        if structure is None:
            LOG.warning(
                "shelter create failed template=%s pose=%s anchor=%s",
                self._template,
                pose,
                getattr(anchor, "anchor_id", None),
            )
            return None

        if self._config.structure_health is not None:
            structure.set_health(self._config.structure_health)

        door = structure.door
        if door is not None:
            door.lock_owner_id = SYSTEM_OWNER_ID
            skins = self._config.door.skin_ids
            if skins:
                door.skin_id = skins[self._rng.randrange(len(skins))]

        structure.clear_authorizations()
        return structure
