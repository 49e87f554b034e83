from __future__ import annotations

import logging

import pytest

from fakes import FakeAnchor, FakeClock, FakeGeometry
from shelters.constants import ZoneKind
from shelters.services.anchor_scanner import AnchorScanner, anchor_ineligibility


@pytest.mark.parametrize(
    "anchor, reason",
    [
        (FakeAnchor("a", is_connected=False), "disconnected"),
        (FakeAnchor("a", is_wounded=True), "wounded"),
        (FakeAnchor("a", is_sleeping=True), "sleeping"),
        (FakeAnchor("a", in_base=True), "in_own_territory"),
        (FakeAnchor("a", is_swimming=True), "swimming"),
        (FakeAnchor("a", mount_mode="boating"), "boating"),
        (FakeAnchor("a", mount_mode="flying"), "flying"),
        (FakeAnchor("a", is_on_ground=False), "airborne"),
        (FakeAnchor("a", enemy_base=True), "near_enemy_base"),
        (FakeAnchor("a", mount_mode="riding"), None),
        (FakeAnchor("a"), None),
    ],
)
def test_anchor_ineligibility(anchor, reason) -> None:
    assert anchor_ineligibility(anchor, FakeGeometry()) == reason


def test_anchor_in_restricted_zone_is_skipped() -> None:
    geometry = FakeGeometry()
    geometry.zones[ZoneKind.RESTRICTED] = lambda p, r: True
    assert anchor_ineligibility(FakeAnchor("a"), geometry) == "restricted_zone"
    assert anchor_ineligibility(None, geometry) == "disconnected"


def _scanner(anchors, clock: FakeClock, attempts: list, delay: float = 5.0) -> AnchorScanner:
    return AnchorScanner(
        lambda: list(anchors),
        lambda anchor: attempts.append((anchor.anchor_id, clock())),
        FakeGeometry(),
        delay_seconds=delay,
        time_func=clock,
    )


def test_one_anchor_per_delay_including_skipped_ones(clock) -> None:
    anchors = [FakeAnchor("p1"), FakeAnchor("p2", is_sleeping=True), FakeAnchor("p3")]
    attempts: list = []
    scanner = _scanner(anchors, clock, attempts)

    scanner.start()
    assert scanner.running
    assert scanner.tick()
    assert not scanner.tick()

    clock.advance(4.9)
    assert not scanner.tick()
    clock.advance(0.1)
    assert scanner.tick()  # p2, skipped
    clock.advance(5)
    assert scanner.tick()

    assert attempts == [("p1", 1000.0), ("p3", 1010.0)]
    assert not scanner.running
    assert scanner.remaining == 0


def test_restart_discards_scan_in_flight(clock, caplog) -> None:
    anchors = [FakeAnchor("p1"), FakeAnchor("p2")]
    attempts: list = []
    scanner = _scanner(anchors, clock, attempts)

    scanner.start()
    scanner.tick()
    with caplog.at_level(logging.INFO, logger="shelters.services.anchor_scanner"):
        scanner.start()
    assert any("anchor scan restarted" in record.message for record in caplog.records)

    assert scanner.remaining == 2
    assert scanner.tick()
    assert [anchor_id for anchor_id, _ in attempts] == ["p1", "p1"]


def test_cancel_stops_at_next_suspension(clock) -> None:
    attempts: list = []
    scanner = _scanner([FakeAnchor("p1"), FakeAnchor("p2")], clock, attempts)
    scanner.start()
    scanner.tick()
    scanner.cancel()

    clock.advance(60)
    assert not scanner.tick()
    assert attempts == [("p1", 1000.0)]


def test_empty_snapshot_finishes_immediately(clock) -> None:
    scanner = _scanner([], clock, [])
    scanner.start()
    assert not scanner.running
    assert not scanner.tick()


def test_attempt_errors_are_logged_and_scan_continues(clock, caplog) -> None:
    seen = []

    def attempt(anchor):
        seen.append(anchor.anchor_id)
        if anchor.anchor_id == "p1":
            raise RuntimeError("host fell over")

    scanner = AnchorScanner(
        lambda: [FakeAnchor("p1"), FakeAnchor("p2")],
        attempt,
        FakeGeometry(),
        delay_seconds=0,
        time_func=clock,
    )
    scanner.start()
    scanner.tick()
    scanner.tick()

    assert seen == ["p1", "p2"]
    assert any("shelter attempt failed anchor=p1" in record.message for record in caplog.records)


def test_delay_change_applies_after_current_suspension(clock) -> None:
    attempts: list = []
    scanner = _scanner([FakeAnchor("p1"), FakeAnchor("p2"), FakeAnchor("p3")], clock, attempts, delay=5)
    scanner.start()
    scanner.tick()
    scanner.delay_seconds = 30

    clock.advance(5)
    assert scanner.tick()
    clock.advance(5)
    assert not scanner.tick()
    clock.advance(25)
    assert scanner.tick()
