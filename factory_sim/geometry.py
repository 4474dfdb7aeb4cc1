"""Vector helpers, axis-aligned boxes and ray casting on the factory floor.

Positions are ``(x, y, z)`` tuples; ``y`` is up and the floor is the x/z plane.
"""

from __future__ import annotations

import math
from typing import Iterable

Vec3 = tuple[float, float, float]


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def add_scaled(a: Vec3, d: Vec3, s: float) -> Vec3:
    return (a[0] + d[0] * s, a[1] + d[1] * s, a[2] + d[2] * s)


def length(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(a, b))


def normalize(v: Vec3) -> Vec3:
    """Return *v* scaled to unit length; the zero vector is returned unchanged."""
    n = length(v)
    if n == 0.0:
        return v
    return (v[0] / n, v[1] / n, v[2] / n)


class Box:
    """Axis-aligned bounding box."""

    __slots__ = ("min", "max")

    def __init__(self, lo: Vec3, hi: Vec3) -> None:
        self.min: Vec3 = (min(lo[0], hi[0]), min(lo[1], hi[1]), min(lo[2], hi[2]))
        self.max: Vec3 = (max(lo[0], hi[0]), max(lo[1], hi[1]), max(lo[2], hi[2]))

    @classmethod
    def from_center(cls, center: Vec3, size: Vec3) -> Box:
        hx, hy, hz = size[0] / 2, size[1] / 2, size[2] / 2
        cx, cy, cz = center
        return cls((cx - hx, cy - hy, cz - hz), (cx + hx, cy + hy, cz + hz))

    @property
    def center(self) -> Vec3:
        return (
            (self.min[0] + self.max[0]) / 2,
            (self.min[1] + self.max[1]) / 2,
            (self.min[2] + self.max[2]) / 2,
        )

    @property
    def size(self) -> Vec3:
        return sub(self.max, self.min)

    def expanded(self, margin: float) -> Box:
        """Return a copy grown by *margin* on every side."""
        m = (margin, margin, margin)
        return Box(sub(self.min, m), add_scaled(self.max, m, 1.0))

    def intersects(self, other: Box) -> bool:
        return all(
            self.min[k] <= other.max[k] and self.max[k] >= other.min[k]
            for k in range(3)
        )

    def contains(self, point: Vec3) -> bool:
        return all(self.min[k] <= point[k] <= self.max[k] for k in range(3))

    def __repr__(self) -> str:
        return f"Box(min={self.min}, max={self.max})"


def ray_box_distance(origin: Vec3, direction: Vec3, box: Box) -> float | None:
    """Slab test. Returns the distance along unit *direction* to the first
    surface of *box* at or ahead of *origin*, or ``None`` if the ray misses.

    A ray starting inside the box reports the exit distance.
    """
    t_near = -math.inf
    t_far = math.inf
    for k in range(3):
        o, d = origin[k], direction[k]
        lo, hi = box.min[k], box.max[k]
        if d == 0.0:
            if o < lo or o > hi:
                return None
            continue
        t1 = (lo - o) / d
        t2 = (hi - o) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_near = max(t_near, t1)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return None
    if t_far < 0.0:
        return None
    return t_near if t_near >= 0.0 else t_far


def raycast(origin: Vec3, direction: Vec3, boxes: Iterable[Box]) -> float | None:
    """Nearest hit distance of a ray against *boxes*, or ``None``."""
    d = normalize(direction)
    if d == (0.0, 0.0, 0.0):
        return None
    nearest: float | None = None
    for box in boxes:
        hit = ray_box_distance(origin, d, box)
        if hit is not None and (nearest is None or hit < nearest):
            nearest = hit
    return nearest
