"""Vector and orientation helpers for shelter placement.

The world is y-up. Quaternions are stored as ``(w, x, y, z)`` tuples so poses
stay hashable and JSON friendly; the math runs on numpy arrays.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

import numpy as np

Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]

UP: Vec3 = (0.0, 1.0, 0.0)
IDENTITY: Quat = (1.0, 0.0, 0.0, 0.0)

_EPS = 1e-9


@dataclass(frozen=True)
class Pose:
    position: Vec3
    rotation: Quat = IDENTITY


@dataclass(frozen=True)
class GroundHit:
    point: Vec3
    normal: Vec3 = UP


@dataclass(frozen=True)
class LocalBounds:
    """Template bounds relative to the object's origin."""

    center: Vec3
    half_extents: Vec3


@dataclass(frozen=True)
class OrientedBox:
    center: Vec3
    half_extents: Vec3
    rotation: Quat = IDENTITY


def as_vec3(values: Sequence[float] | np.ndarray) -> Vec3:
    arr = np.asarray(values, dtype=float)
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def _as_quat(values: Sequence[float] | np.ndarray) -> Quat:
    arr = np.asarray(values, dtype=float)
    return (float(arr[0]), float(arr[1]), float(arr[2]), float(arr[3]))


def normalize(v: Sequence[float] | np.ndarray) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    length = float(np.linalg.norm(arr))
    if length < _EPS:
        return np.zeros_like(arr)
    return arr / length


def quat_multiply(a: Sequence[float], b: Sequence[float]) -> Quat:
    """Hamilton product ``a * b`` (apply ``b`` first, then ``a``)."""

    w1, x1, y1, z1 = (float(c) for c in a)
    w2, x2, y2, z2 = (float(c) for c in b)
    return (
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
    )


def quat_conjugate(q: Sequence[float]) -> Quat:
    w, x, y, z = (float(c) for c in q)
    return (w, -x, -y, -z)


def quat_to_matrix(q: Sequence[float]) -> np.ndarray:
    w, x, y, z = normalize(q)
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def rotate(q: Sequence[float], v: Sequence[float]) -> Vec3:
    return as_vec3(quat_to_matrix(q) @ np.asarray(v, dtype=float))


def quat_from_yaw(degrees: float) -> Quat:
    """Rotation of ``degrees`` about the world up axis."""

    half = math.radians(float(degrees)) / 2.0
    return (math.cos(half), 0.0, math.sin(half), 0.0)


def quat_from_to(source: Sequence[float], target: Sequence[float]) -> Quat:
    """Shortest rotation taking direction ``source`` onto ``target``."""

    a = normalize(source)
    b = normalize(target)
    if not a.any() or not b.any():
        return IDENTITY
    dot = float(np.dot(a, b))
    if dot >= 1.0 - _EPS:
        return IDENTITY
    if dot <= -1.0 + _EPS:
        # Opposite vectors: half turn about any axis perpendicular to source.
        axis = np.cross(a, (1.0, 0.0, 0.0))
        if np.linalg.norm(axis) < 1e-6:
            axis = np.cross(a, (0.0, 0.0, 1.0))
        axis = normalize(axis)
        return (0.0, float(axis[0]), float(axis[1]), float(axis[2]))
    axis = np.cross(a, b)
    return _as_quat(normalize((1.0 + dot, axis[0], axis[1], axis[2])))


def surface_rotation(normal: Sequence[float], yaw_degrees: float) -> Quat:
    """Align the up axis with ``normal``, then spin by ``yaw_degrees``."""

    return quat_multiply(quat_from_to(UP, normal), quat_from_yaw(yaw_degrees))


def random_on_unit_sphere(rng: random.Random) -> np.ndarray:
    direction = normalize((rng.gauss(0.0, 1.0), rng.gauss(0.0, 1.0), rng.gauss(0.0, 1.0)))
    if not direction.any():
        return np.asarray(UP, dtype=float)
    return direction


def random_position_around(
    center: Sequence[float],
    min_radius: float,
    max_radius: float,
    rng: random.Random,
    height_at: Callable[[Vec3], float],
) -> Vec3:
    """Annulus sample: uniform direction on the sphere, uniform distance.

    The sampled point is then projected onto the terrain via ``height_at``.
    """

    low, high = sorted((float(min_radius), float(max_radius)))
    distance = rng.uniform(low, high)
    point = np.asarray(center, dtype=float) + random_on_unit_sphere(rng) * distance
    point[1] = float(height_at(as_vec3(point)))
    return as_vec3(point)


def world_box(pose: Pose, bounds: LocalBounds) -> OrientedBox:
    offset = np.asarray(rotate(pose.rotation, bounds.center))
    center = np.asarray(pose.position, dtype=float) + offset
    return OrientedBox(center=as_vec3(center), half_extents=bounds.half_extents, rotation=pose.rotation)


def local_to_world(pose: Pose, offset: Sequence[float], yaw_degrees: float = 0.0) -> Pose:
    """Return the pose at ``offset`` in ``pose``'s frame, spun by ``yaw_degrees``."""

    position = np.asarray(pose.position, dtype=float) + np.asarray(rotate(pose.rotation, offset))
    rotation = quat_multiply(pose.rotation, quat_from_yaw(yaw_degrees))
    return Pose(position=as_vec3(position), rotation=rotation)


def boxes_overlap(a: OrientedBox, b: OrientedBox) -> bool:
    """Separating-axis test for two oriented boxes; touching counts as overlap."""

    ra_axes = quat_to_matrix(a.rotation)
    rb_axes = quat_to_matrix(b.rotation)
    ea = np.asarray(a.half_extents, dtype=float)
    eb = np.asarray(b.half_extents, dtype=float)
    t = np.asarray(b.center, dtype=float) - np.asarray(a.center, dtype=float)

    axes = [ra_axes[:, i] for i in range(3)] + [rb_axes[:, i] for i in range(3)]
    for i in range(3):
        for j in range(3):
            cross = np.cross(ra_axes[:, i], rb_axes[:, j])
            length = float(np.linalg.norm(cross))
            if length > 1e-6:
                axes.append(cross / length)

    for axis in axes:
        reach_a = float(np.sum(ea * np.abs(ra_axes.T @ axis)))
        reach_b = float(np.sum(eb * np.abs(rb_axes.T @ axis)))
        if abs(float(np.dot(t, axis))) > reach_a + reach_b + _EPS:
            return False
    return True
