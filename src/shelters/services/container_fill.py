"""Probabilistic item distribution into storage containers."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import List, MutableSequence, Sequence, TypeVar

from shelters.interfaces import ItemCatalog, ItemContainer
from shelters.services.config import ItemEntry
from shelters.util import clamp

LOG = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FillReport:
    slots_to_fill: int = 0
    attempted: List[str] = field(default_factory=list)
    inserted: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    discarded: List[str] = field(default_factory=list)


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Return a Fisher-Yates permutation of a copy of ``items``."""

    out: MutableSequence[T] = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return list(out)


def slots_to_fill(capacity: int, pct: float) -> int:
    capacity = max(0, int(capacity))
    return int(clamp(math.ceil(capacity * float(pct) / 100.0), 0, capacity))


def fill_container(
    container: ItemContainer,
    entries: Sequence[ItemEntry],
    pct: float,
    *,
    catalog: ItemCatalog,
    rng: random.Random,
) -> FillReport:
    """Fill ``container`` from a random selection of ``entries``.

    Each entry is used at most once per pass.  Entries whose shortname the
    catalog does not know are skipped but still occupy their slot in the
    selection, and a stack the container rejects is discarded.
    """

    report = FillReport(slots_to_fill=slots_to_fill(container.capacity, pct))
    if report.slots_to_fill <= 0 or not entries:
        return report

    for entry in shuffled(entries, rng)[: report.slots_to_fill]:
        if not catalog.resolve(entry.shortname):
            report.unresolved.append(entry.shortname)
            LOG.debug("container fill unresolved item=%s", entry.shortname)
            continue

        amount = rng.randint(entry.min_amount, entry.max_amount)
        stack = catalog.create_stack(entry.shortname, amount, entry.skin_id)
        if stack is None:
            report.unresolved.append(entry.shortname)
            continue

        report.attempted.append(entry.shortname)
        if container.insert(stack):
            report.inserted.append(entry.shortname)
        else:
            catalog.discard(stack)
            report.discarded.append(entry.shortname)
            LOG.debug("container fill insert rejected item=%s amount=%d", entry.shortname, amount)

    return report
