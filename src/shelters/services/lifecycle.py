"""Persisted registry of live shelters and their scheduled removal.

Every shelter the spawner creates gets a :class:`LifecycleRecord` holding the
ids of the objects spawned for it and an absolute removal deadline (epoch
seconds).  Records are written through the configured persistence backend on
every mutation so a restart can pick up where the previous process left off:
:meth:`LifecycleStore.resume` removes anything whose deadline passed while the
server was down and re-arms a timer for the rest.

Sub-object ids are plain integers looked up through the entity factory on
removal.  Objects can vanish without notice (decay, another plugin, an admin
kill), so a lookup that comes back empty just means there is nothing left to
destroy.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from shelters.errors import PersistenceWriteFailed
from shelters.interfaces import EntityFactory, EntityHandle, Persistence
from shelters.services.timers import TimerHandle, TimerQueue

LOG = logging.getLogger(__name__)

RemovalListener = Callable[[int, str], None]

REASON_EXPIRED = "expired"
REASON_RESTART = "expired_at_restart"
REASON_SWEEP = "sweep"
REASON_STALE = "stale"


class RecordState(str, Enum):
    ACTIVE = "active"
    EXPIRING = "expiring"
    REMOVED = "removed"


@dataclass
class LifecycleRecord:
    structure_id: int
    removal_deadline: float
    created_at: float
    sub_object_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Interior Entities": list(self.sub_object_ids),
            "Removal Timer": self.removal_deadline,
            "Created At": self.created_at,
        }

    @classmethod
    def from_dict(cls, structure_id: int, payload: Mapping[str, Any]) -> "LifecycleRecord":
        deadline = float(payload.get("Removal Timer", 0.0))
        subs: List[int] = []
        for raw in payload.get("Interior Entities") or []:
            try:
                value = int(raw)
            except (TypeError, ValueError):
                LOG.warning("shelter record dropped bad sub-object id=%r structure=%s", raw, structure_id)
                continue
            if value not in subs:
                subs.append(value)
        created = payload.get("Created At")
        return cls(
            structure_id=int(structure_id),
            removal_deadline=deadline,
            created_at=float(created) if created is not None else deadline,
            sub_object_ids=subs,
        )


def _default_time() -> float:
    return time.time()


class LifecycleStore:
    """Track shelters from creation to removal.

    All mutations run under one re-entrant lock so removal timers fired from
    another thread cannot interleave with a spawn that is still appending
    sub-objects.
    """

    def __init__(
        self,
        persistence: Persistence,
        factory: EntityFactory,
        timers: TimerQueue,
        *,
        time_func: Optional[Callable[[], float]] = None,
        on_removed: Optional[RemovalListener] = None,
    ) -> None:
        self._persistence = persistence
        self._factory = factory
        self._timers = timers
        self._time = time_func or _default_time
        self._on_removed = on_removed
        self._lock = threading.RLock()
        self._records: Dict[int, LifecycleRecord] = {}
        self._states: Dict[int, RecordState] = {}
        self._pending: Dict[int, TimerHandle] = {}

    # ------------------------------------------------------------------
    # Loading and persistence

    def load(self) -> int:
        """Replace in-memory records with the persisted ones; nothing is scheduled."""

        raw = self._persistence.load() or {}
        with self._lock:
            self._cancel_pending_locked()
            self._records.clear()
            self._states.clear()
            for key, payload in raw.items():
                try:
                    record = LifecycleRecord.from_dict(int(key), payload)
                except (TypeError, ValueError):
                    LOG.warning("shelter record skipped key=%r payload=%r", key, payload)
                    continue
                self._records[record.structure_id] = record
                self._states[record.structure_id] = RecordState.ACTIVE
        LOG.info("shelter records loaded count=%d", len(self._records))
        return len(self._records)

    def _persist_locked(self) -> None:
        snapshot = {sid: rec.to_dict() for sid, rec in self._records.items()}
        try:
            self._persistence.save(snapshot)
        except PersistenceWriteFailed:
            LOG.error("shelter records save failed count=%d", len(snapshot), exc_info=True)

    # ------------------------------------------------------------------
    # Queries

    def is_tracked(self, structure: Union[int, EntityHandle, None]) -> bool:
        if structure is None:
            return False
        sid = structure if isinstance(structure, int) else getattr(structure, "entity_id", None)
        with self._lock:
            return sid in self._records

    def state_of(self, structure_id: int) -> Optional[RecordState]:
        with self._lock:
            return self._states.get(structure_id)

    def record(self, structure_id: int) -> Optional[LifecycleRecord]:
        with self._lock:
            rec = self._records.get(structure_id)
            return None if rec is None else replace(rec, sub_object_ids=list(rec.sub_object_ids))

    def records(self) -> List[LifecycleRecord]:
        with self._lock:
            return [replace(rec, sub_object_ids=list(rec.sub_object_ids)) for rec in self._records.values()]

    def pending_removals(self) -> int:
        with self._lock:
            return sum(1 for handle in self._pending.values() if not handle.cancelled)

    # ------------------------------------------------------------------
    # Mutations

    def register(self, structure_id: int, lifetime: float) -> LifecycleRecord:
        """Track a freshly created structure and arm its removal timer."""

        with self._lock:
            now = self._time()
            lifetime = max(0.0, float(lifetime))
            record = LifecycleRecord(
                structure_id=int(structure_id),
                removal_deadline=now + lifetime,
                created_at=now,
            )
            self._records[record.structure_id] = record
            self._states[record.structure_id] = RecordState.ACTIVE
            self._persist_locked()
            self._schedule_locked(record.structure_id, lifetime)
        LOG.info("shelter registered id=%s deadline=%.3f", structure_id, record.removal_deadline)
        return record

    def append(self, structure_id: int, sub_object_id: int) -> bool:
        with self._lock:
            record = self._records.get(structure_id)
            if record is None or self._states.get(structure_id) is not RecordState.ACTIVE:
                LOG.warning("shelter append ignored id=%s sub=%s", structure_id, sub_object_id)
                return False
            if sub_object_id not in record.sub_object_ids:
                record.sub_object_ids.append(int(sub_object_id))
                self._persist_locked()
        return True

    def reschedule(self, structure_id: int, deadline: float) -> bool:
        """Push a record's deadline later; earlier deadlines are refused."""

        with self._lock:
            record = self._records.get(structure_id)
            if record is None or deadline <= record.removal_deadline:
                return False
            record.removal_deadline = float(deadline)
            self._persist_locked()
            self._schedule_locked(structure_id, record.removal_deadline - self._time())
        return True

    def remove(self, structure_id: int, *, reason: str = REASON_EXPIRED) -> bool:
        with self._lock:
            removed = self._remove_locked(structure_id, reason)
        if removed is None:
            return False
        self._notify_removed([removed])
        return True

    def resume(self) -> Dict[str, int]:
        """Re-arm removal after a restart.

        Records whose deadline already passed are removed right away, before
        any timer is scheduled; the remainder get a one-shot timer for the
        time they have left.  A record whose removal fails is skipped.
        """

        removed: List[Tuple[int, str]] = []
        with self._lock:
            self._cancel_pending_locked()
            now = self._time()
            expired: List[int] = []
            waiting: List[int] = []
            for sid, record in self._records.items():
                if record.removal_deadline - now <= 0:
                    expired.append(sid)
                else:
                    waiting.append(sid)

            for sid in expired:
                try:
                    outcome = self._remove_locked(sid, REASON_RESTART)
                except Exception:
                    LOG.exception("shelter restart removal failed id=%s", sid)
                    continue
                if outcome is not None:
                    removed.append(outcome)

        self._notify_removed(removed)

        scheduled = 0
        with self._lock:
            now = self._time()
            for sid in waiting:
                record = self._records.get(sid)
                if record is None or sid in self._pending:
                    continue
                self._schedule_locked(sid, record.removal_deadline - now)
                scheduled += 1

        LOG.info("shelter resume removed=%d scheduled=%d", len(removed), scheduled)
        return {"removed": len(removed), "scheduled": scheduled}

    def sweep(self) -> int:
        """Remove every tracked shelter now, ignoring remaining lifetime."""

        removed: List[Tuple[int, str]] = []
        with self._lock:
            self._cancel_pending_locked()
            for sid in list(self._records):
                try:
                    outcome = self._remove_locked(sid, REASON_SWEEP)
                except Exception:
                    LOG.exception("shelter sweep removal failed id=%s", sid)
                    continue
                if outcome is not None:
                    removed.append(outcome)
        self._notify_removed(removed)
        LOG.info("shelter sweep removed=%d", len(removed))
        return len(removed)

    def purge_records(self) -> int:
        """Forget every record without touching the world (wiped maps)."""

        with self._lock:
            self._cancel_pending_locked()
            count = len(self._records)
            for sid in self._records:
                self._states[sid] = RecordState.REMOVED
            self._records.clear()
            self._persist_locked()
        LOG.warning("shelter records purged count=%d", count)
        return count

    # ------------------------------------------------------------------
    # Internals

    def _schedule_locked(self, structure_id: int, delay: float) -> None:
        previous = self._pending.pop(structure_id, None)
        if previous is not None:
            previous.cancel()
        self._pending[structure_id] = self._timers.call_later(
            delay,
            partial(self._on_timer, structure_id),
            name=f"shelter-removal:{structure_id}",
        )

    def _cancel_pending_locked(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _on_timer(self, structure_id: int) -> None:
        with self._lock:
            self._pending.pop(structure_id, None)
            removed = self._remove_locked(structure_id, REASON_EXPIRED)
        if removed is not None:
            self._notify_removed([removed])

    def _remove_locked(self, structure_id: int, reason: str) -> Optional[Tuple[int, str]]:
        """Destroy a shelter and drop its record; listeners are notified by the caller.

        Host errors while destroying objects are logged and do not keep the
        record alive.
        """

        record = self._records.get(structure_id)
        if record is None:
            return None

        self._states[structure_id] = RecordState.EXPIRING
        handle = self._pending.pop(structure_id, None)
        if handle is not None:
            handle.cancel()

        structure = self._factory.find(structure_id)
        if structure is None:
            # Already gone; its sub-objects went with it or were cleaned up.
            reason = REASON_STALE
            destroyed = 0
        else:
            destroyed = self._destroy_sub_objects(structure_id, record.sub_object_ids)
            self._destroy_quietly(structure_id, structure)

        del self._records[structure_id]
        self._states[structure_id] = RecordState.REMOVED
        self._persist_locked()
        LOG.info(
            "shelter removed id=%s reason=%s sub_objects=%d/%d",
            structure_id,
            reason,
            destroyed,
            len(record.sub_object_ids),
        )
        return structure_id, reason

    def _notify_removed(self, removed: List[Tuple[int, str]]) -> None:
        if self._on_removed is None:
            return
        for structure_id, reason in removed:
            try:
                self._on_removed(structure_id, reason)
            except Exception:
                LOG.exception("shelter removal listener failed id=%s", structure_id)

    def _destroy_quietly(self, structure_id: int, handle: EntityHandle) -> bool:
        try:
            self._factory.destroy(handle)
        except Exception:
            LOG.exception(
                "shelter destroy failed id=%s entity=%s", structure_id, getattr(handle, "entity_id", None)
            )
            return False
        return True

    def _destroy_sub_objects(self, structure_id: int, ids: List[int]) -> int:
        destroyed = 0
        seen: Set[int] = set()
        for sub_id in ids:
            if sub_id in seen:
                continue
            seen.add(sub_id)
            handle = self._factory.find(sub_id)
            if handle is None:
                continue
            if self._destroy_quietly(structure_id, handle):
                destroyed += 1
        return destroyed
