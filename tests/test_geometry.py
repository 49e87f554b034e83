from __future__ import annotations

import math
import random

import numpy as np
import pytest

from shelters import geometry as geo


def _close(a, b, tol: float = 1e-6) -> bool:
    return bool(np.allclose(np.asarray(a, dtype=float), np.asarray(b, dtype=float), atol=tol))


@pytest.mark.parametrize(
    "normal",
    [
        (0.0, 1.0, 0.0),
        (0.3, 0.9, 0.1),
        (1.0, 0.0, 0.0),
        (0.0, -1.0, 0.0),
    ],
)
def test_from_to_maps_up_onto_normal(normal) -> None:
    q = geo.quat_from_to(geo.UP, normal)
    assert _close(geo.rotate(q, geo.UP), geo.normalize(normal))


def test_yaw_turns_forward_about_up_axis() -> None:
    q = geo.quat_from_yaw(90)
    assert _close(geo.rotate(q, (0.0, 0.0, 1.0)), (1.0, 0.0, 0.0))
    assert _close(geo.rotate(q, geo.UP), geo.UP)


def test_surface_rotation_keeps_normal_after_yaw() -> None:
    normal = geo.as_vec3(geo.normalize((0.2, 1.0, -0.1)))
    for yaw in (0, 45, 133, 359):
        q = geo.surface_rotation(normal, yaw)
        assert _close(geo.rotate(q, geo.UP), normal)


def test_random_position_around_respects_radii_and_height() -> None:
    rng = random.Random(7)
    center = (100.0, 5.0, -40.0)
    for _ in range(500):
        point = geo.random_position_around(center, 20.0, 50.0, rng, lambda p: 12.5)
        assert point[1] == 12.5
        horizontal = math.hypot(point[0] - center[0], point[2] - center[2])
        assert horizontal <= 50.0 + 1e-9


def test_boxes_overlap_axis_aligned_and_rotated() -> None:
    a = geo.OrientedBox(center=(0.0, 0.0, 0.0), half_extents=(1.0, 1.0, 1.0))
    touching = geo.OrientedBox(center=(1.9, 0.0, 0.0), half_extents=(1.0, 1.0, 1.0))
    apart = geo.OrientedBox(center=(2.5, 0.0, 0.0), half_extents=(1.0, 1.0, 1.0))
    assert geo.boxes_overlap(a, touching)
    assert not geo.boxes_overlap(a, apart)

    # A 45 degree spin pushes the corner of a box out to ~1.41 along x.
    spun = geo.OrientedBox(center=(2.3, 0.0, 0.0), half_extents=(1.0, 1.0, 1.0), rotation=geo.quat_from_yaw(45))
    assert geo.boxes_overlap(a, spun)
    far_spun = geo.OrientedBox(center=(2.5, 0.0, 0.0), half_extents=(1.0, 1.0, 1.0), rotation=geo.quat_from_yaw(45))
    assert not geo.boxes_overlap(a, far_spun)


def test_world_box_offsets_by_rotation() -> None:
    pose = geo.Pose(position=(10.0, 0.0, 10.0), rotation=geo.quat_from_yaw(90))
    bounds = geo.LocalBounds(center=(0.0, 0.5, 1.0), half_extents=(0.5, 0.5, 0.5))
    box = geo.world_box(pose, bounds)
    assert _close(box.center, (11.0, 0.5, 10.0))
