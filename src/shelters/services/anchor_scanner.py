"""Cooperative, rate-limited scan over candidate anchors.

A scan walks a snapshot of the live anchors one at a time.  After every
anchor, whether or not a shelter was placed, the scan suspends for
``delay_seconds``; :meth:`AnchorScanner.tick` resumes it once the delay has
elapsed.  Starting a new scan discards the one in flight, and cancellation
lands at the next suspension point since ``tick`` never stops mid-anchor.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, List, Optional

from shelters.constants import RESTRICTED_MOUNT_MODES, ZoneKind
from shelters.interfaces import Anchor, GeometryProvider

LOG = logging.getLogger(__name__)

AnchorSource = Callable[[], Iterable[Anchor]]
AttemptFunc = Callable[[Anchor], object]


def anchor_ineligibility(anchor: Optional[Anchor], geometry: GeometryProvider) -> Optional[str]:
    """Return why ``anchor`` cannot host a shelter right now, or ``None``."""

    if anchor is None or not getattr(anchor, "is_connected", True):
        return "disconnected"
    if anchor.is_wounded:
        return "wounded"
    if anchor.is_sleeping:
        return "sleeping"
    if anchor.in_own_territory():
        return "in_own_territory"
    if anchor.is_swimming:
        return "swimming"
    if anchor.mount_mode in RESTRICTED_MOUNT_MODES:
        return anchor.mount_mode
    if not anchor.is_on_ground:
        return "airborne"
    if anchor.near_enemy_base():
        return "near_enemy_base"
    if geometry.in_zone(anchor.position, ZoneKind.RESTRICTED):
        return "restricted_zone"
    return None


def _default_time() -> float:
    return time.monotonic()


class AnchorScanner:
    def __init__(
        self,
        anchors: AnchorSource,
        attempt: AttemptFunc,
        geometry: GeometryProvider,
        *,
        delay_seconds: float,
        time_func: Optional[Callable[[], float]] = None,
    ) -> None:
        self._anchors = anchors
        self._attempt = attempt
        self._geometry = geometry
        self._delay = max(0.0, float(delay_seconds))
        self._time = time_func or _default_time
        self._queue: List[Anchor] = []
        self._resume_at: Optional[float] = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._resume_at is not None

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @delay_seconds.setter
    def delay_seconds(self, value: float) -> None:
        self._delay = max(0.0, float(value))

    @property
    def remaining(self) -> int:
        return len(self._queue)

    def start(self) -> None:
        """Begin a new scan, dropping any scan still in progress."""

        if self.running:
            LOG.info("anchor scan restarted generation=%d remaining=%d", self._generation, len(self._queue))
        self._generation += 1
        self._queue = list(self._anchors())
        self._resume_at = self._time()
        LOG.debug("anchor scan started generation=%d anchors=%d", self._generation, len(self._queue))
        if not self._queue:
            self._resume_at = None

    def cancel(self) -> None:
        if self.running:
            LOG.info("anchor scan cancelled generation=%d remaining=%d", self._generation, len(self._queue))
        self._queue = []
        self._resume_at = None

    def tick(self) -> bool:
        """Process at most one anchor if the scan is due; return whether it did."""

        if self._resume_at is None or self._time() < self._resume_at:
            return False

        anchor = self._queue.pop(0)
        reason = anchor_ineligibility(anchor, self._geometry)
        if reason is None:
            try:
                self._attempt(anchor)
            except Exception:
                LOG.exception("shelter attempt failed anchor=%s", getattr(anchor, "anchor_id", None))
        else:
            LOG.debug("anchor skipped anchor=%s reason=%s", getattr(anchor, "anchor_id", None), reason)

        if self._queue:
            self._resume_at = self._time() + self._delay
        else:
            self._resume_at = None
            LOG.debug("anchor scan finished generation=%d", self._generation)
        return True
