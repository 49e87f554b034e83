from __future__ import annotations

import random

import pytest

from fakes import FakeCatalog, FakeClock, FakeFactory, FakeGeometry, InMemoryPersistence
from shelters.services.lifecycle import LifecycleStore
from shelters.services.timers import TimerQueue


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def geometry() -> FakeGeometry:
    return FakeGeometry()


@pytest.fixture
def factory(geometry: FakeGeometry) -> FakeFactory:
    return FakeFactory(geometry)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def timers(clock: FakeClock) -> TimerQueue:
    return TimerQueue(clock)


@pytest.fixture
def lifecycle(persistence, factory, timers, clock) -> LifecycleStore:
    return LifecycleStore(persistence, factory, timers, time_func=clock)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1337)
