from __future__ import annotations

import itertools
import random
from collections import Counter

import pytest

from fakes import FakeCatalog, FakeContainer
from shelters.services.config import ItemEntry, default_config
from shelters.services.container_fill import fill_container, shuffled, slots_to_fill


@pytest.mark.parametrize(
    "capacity, pct, expected",
    [
        (36, 20, 8),
        (12, 20, 3),
        (10, 0, 0),
        (10, 100, 10),
        (10, 150, 10),
        (12, -5, 0),
        (0, 50, 0),
    ],
)
def test_slots_to_fill(capacity, pct, expected) -> None:
    assert slots_to_fill(capacity, pct) == expected


def test_zero_percent_makes_no_insert_attempts() -> None:
    container = FakeContainer(12)
    catalog = FakeCatalog()
    report = fill_container(container, default_config().items, 0, catalog=catalog, rng=random.Random(1))

    assert container.insert_calls == 0
    assert catalog.created == []
    assert report.slots_to_fill == 0


@pytest.mark.parametrize("capacity", [6, 12, 30])
def test_full_percent_attempts_min_of_capacity_and_entries(capacity) -> None:
    entries = default_config().items
    container = FakeContainer(capacity)
    report = fill_container(container, entries, 100, catalog=FakeCatalog(), rng=random.Random(2))

    assert container.insert_calls == min(capacity, len(entries))
    assert len(report.attempted) == min(capacity, len(entries))
    assert len(set(report.attempted)) == len(report.attempted)


def test_amounts_within_range_and_config_not_mutated() -> None:
    entries = default_config().items
    before = list(entries)
    container = FakeContainer(30)
    fill_container(container, entries, 100, catalog=FakeCatalog(), rng=random.Random(3))

    assert list(entries) == before
    by_name = {entry.shortname: entry for entry in entries}
    for stack in container.stacks:
        entry = by_name[stack.shortname]
        assert entry.min_amount <= stack.amount <= entry.max_amount


def test_unresolved_entries_skipped_and_rejected_stacks_discarded() -> None:
    entries = [ItemEntry("scrap", 0, 5, 5), ItemEntry("ghost.item", 0, 1, 1), ItemEntry("rope", 0, 1, 1)]
    container = FakeContainer(3, reject={"rope"})
    catalog = FakeCatalog(unknown={"ghost.item"})

    report = fill_container(container, entries, 100, catalog=catalog, rng=random.Random(4))

    assert report.unresolved == ["ghost.item"]
    assert report.inserted == ["scrap"]
    assert report.discarded == ["rope"]
    assert [stack.shortname for stack in catalog.discarded] == ["rope"]
    assert [stack.shortname for stack in container.stacks] == ["scrap"]


def test_shuffle_then_take_k_is_uniform_without_replacement() -> None:
    items = list("abcdef")
    k = 2
    trials = 6_000
    rng = random.Random(20240611)
    singles: Counter[str] = Counter()
    pairs: Counter[frozenset[str]] = Counter()

    for _ in range(trials):
        picked = shuffled(items, rng)[:k]
        assert len(set(picked)) == k
        singles.update(picked)
        pairs[frozenset(picked)] += 1

    expected_single = trials * k / len(items)
    chi_single = sum((singles[i] - expected_single) ** 2 / expected_single for i in items)
    # 5 degrees of freedom, p = 0.001
    assert chi_single < 20.52

    combos = [frozenset(c) for c in itertools.combinations(items, k)]
    expected_pair = trials / len(combos)
    chi_pair = sum((pairs[c] - expected_pair) ** 2 / expected_pair for c in combos)
    # 14 degrees of freedom, p = 0.001
    assert chi_pair < 36.12
