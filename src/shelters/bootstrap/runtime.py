"""Runtime wiring for the shelter subsystem.

The host drives a :class:`ShelterRuntime` through four entry points that match
its own lifecycle:

* :meth:`ShelterRuntime.init` when the subsystem is loaded: read (and
  migrate) the configuration, load persisted records.
* :meth:`ShelterRuntime.on_server_initialized` once the world is ready:
  resolve removals that came due while the server was down, then arm the
  periodic scan trigger.
* :meth:`ShelterRuntime.tick` from the host's frame/tick loop.
* :meth:`ShelterRuntime.unload` on shutdown: stop everything and remove every
  shelter still standing.
"""

from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Callable, Optional, Union

from shelters import env
from shelters.interfaces import (
    EntityFactory,
    EntityHandle,
    GeometryProvider,
    ItemCatalog,
    Notifier,
    Persistence,
    SpawnHooks,
)
from shelters.registries.storage import get_persistence
from shelters.services.anchor_scanner import AnchorScanner, AnchorSource
from shelters.services.config import ShelterConfig, load_shelter_config
from shelters.services.lifecycle import LifecycleStore, RemovalListener
from shelters.services.shelter_spawner import ShelterSpawner, SpawnOutcome
from shelters.services.timers import TimerHandle, TimerQueue
from shelters.util import derive_seed_value

LOG = logging.getLogger(__name__)


def make_rng(seed: Optional[str] = None) -> random.Random:
    """Return the subsystem RNG, seeded from ``SHELTERS_RNG_SEED`` when set."""

    seed = seed if seed is not None else env.get_runtime_seed()
    if seed is None:
        return random.Random()
    return random.Random(derive_seed_value("shelters", seed))


class ShelterRuntime:
    def __init__(
        self,
        *,
        geometry: GeometryProvider,
        factory: EntityFactory,
        catalog: ItemCatalog,
        anchors: AnchorSource,
        notifier: Optional[Notifier] = None,
        hooks: Optional[SpawnHooks] = None,
        persistence: Optional[Persistence] = None,
        config_path: Optional[Union[str, Path]] = None,
        time_func: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        on_removed: Optional[RemovalListener] = None,
    ) -> None:
        self._geometry = geometry
        self._factory = factory
        self._catalog = catalog
        self._anchors = anchors
        self._notifier = notifier
        self._hooks = hooks
        self._persistence = persistence
        self._config_path = Path(config_path) if config_path is not None else env.get_config_path()
        self._time = time_func or time.time
        self._rng = rng or make_rng()
        self._on_removed = on_removed

        self.timers = TimerQueue(self._time)
        self.config: Optional[ShelterConfig] = None
        self.lifecycle: Optional[LifecycleStore] = None
        self.spawner: Optional[ShelterSpawner] = None
        self.scanner: Optional[AnchorScanner] = None
        self._periodic: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # Host lifecycle

    def init(self) -> ShelterConfig:
        """Load configuration and records.

        :class:`~shelters.errors.ConfigError` propagates so a broken
        configuration stops the subsystem from starting.
        """

        config = load_shelter_config(self._config_path)
        persistence = self._persistence or get_persistence()
        self.lifecycle = LifecycleStore(
            persistence,
            self._factory,
            self.timers,
            time_func=self._time,
            on_removed=self._on_removed,
        )
        self.lifecycle.load()
        self._install(config)
        self.scanner = AnchorScanner(
            self._anchors,
            self._attempt,
            self._geometry,
            delay_seconds=config.delay_between_spawns_seconds,
            time_func=self._time,
        )
        return config

    def on_server_initialized(self) -> None:
        lifecycle = self._require_lifecycle()
        lifecycle.resume()
        self._arm_periodic()

    def tick(self) -> None:
        self.timers.run_due()
        if self.scanner is not None:
            self.scanner.tick()

    def unload(self) -> int:
        if self._periodic is not None:
            self._periodic.cancel()
            self._periodic = None
        if self.scanner is not None:
            self.scanner.cancel()
        removed = self.lifecycle.sweep() if self.lifecycle is not None else 0
        self.timers.cancel_all()
        LOG.info("shelter runtime unloaded removed=%d", removed)
        return removed

    # ------------------------------------------------------------------
    # Operations

    def reload_config(self) -> ShelterConfig:
        """Load a fresh configuration snapshot and swap it in.

        A scan already in progress finishes its current anchor with the old
        snapshot; the next anchor uses the new one.
        """

        previous = self.config
        config = load_shelter_config(self._config_path)
        self._install(config)
        if self.scanner is not None:
            self.scanner.delay_seconds = config.delay_between_spawns_seconds
        if (
            self._periodic is not None
            and previous is not None
            and previous.respawn_frequency_minutes != config.respawn_frequency_minutes
        ):
            self._arm_periodic()
        return config

    def trigger_scan(self) -> None:
        if self.scanner is None:
            raise RuntimeError("shelter runtime not initialised")
        self.scanner.start()

    def is_tracked(self, structure: Union[int, EntityHandle, None]) -> bool:
        return self.lifecycle is not None and self.lifecycle.is_tracked(structure)

    # ------------------------------------------------------------------
    # Internals

    def _install(self, config: ShelterConfig) -> None:
        self.spawner = ShelterSpawner(
            config=config,
            geometry=self._geometry,
            factory=self._factory,
            catalog=self._catalog,
            lifecycle=self._require_lifecycle(),
            notifier=self._notifier,
            hooks=self._hooks,
            rng=self._rng,
        )
        self.config = config

    def _arm_periodic(self) -> None:
        if self._periodic is not None:
            self._periodic.cancel()
        config = self.config
        if config is None:
            raise RuntimeError("shelter runtime not initialised")
        self._periodic = self.timers.call_every(
            config.respawn_frequency_minutes * 60.0,
            self.trigger_scan,
            name="shelter-respawn",
        )

    def _attempt(self, anchor) -> Optional[SpawnOutcome]:
        spawner = self.spawner
        if spawner is None:
            return None
        return spawner.attempt(anchor)

    def _require_lifecycle(self) -> LifecycleStore:
        if self.lifecycle is None:
            raise RuntimeError("shelter runtime not initialised")
        return self.lifecycle
