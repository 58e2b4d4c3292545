"""Aiming Bounded Context - Dispersion geometry.

Shot scatter is modeled as a uniform ellipse around the aim point: the
semi-major axis lies along the line of play (distance error), the
semi-minor axis across it (offline error). Points are generated from a
Halton (2, 3) sequence so any prefix of the cloud is already spread over
the whole ellipse, which is what lets the evaluator stop early.
"""

from __future__ import annotations

import math
from functools import lru_cache

import numpy as np
from numpy.typing import NDArray

from domain.aiming.value_objects import SkillPreset
from domain.terrain.services import yards_to_meters
from domain.terrain.value_objects import GeoPoint, LocalFrame


def ellipse_axes(distance_yds: float, offline_deg: float, dist_pct: float) -> tuple[float, float]:
    """Semi-axes (a along aim, b across aim) in yards for a shot of distance_yds."""
    a = (dist_pct / 100.0) * distance_yds
    b = distance_yds * math.tan(math.radians(offline_deg))
    return a, b


def axes_for_skill(skill: SkillPreset, distance_yds: float) -> tuple[float, float]:
    return ellipse_axes(distance_yds, skill.offline_deg, skill.dist_pct)


def halton(index: int, base: int) -> float:
    """Radical inverse of index in the given base (index 0 -> 0.0)."""
    result = 0.0
    f = 1.0
    i = index
    while i > 0:
        f /= base
        result += f * (i % base)
        i //= base
    return result


@lru_cache(maxsize=16)
def unit_disk_sequence(n: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """First n Halton points (1-indexed) mapped uniformly onto the unit disk."""
    u1 = np.array([halton(i, 2) for i in range(1, n + 1)], dtype=np.float64)
    u2 = np.array([halton(i, 3) for i in range(1, n + 1)], dtype=np.float64)
    r = np.sqrt(u1)
    th = 2.0 * np.pi * u2
    xd = r * np.cos(th)
    yd = r * np.sin(th)
    xd.flags.writeable = False
    yd.flags.writeable = False
    return xd, yd


def make_ellipse_points(
    frame: LocalFrame,
    center: GeoPoint,
    a_yds: float,
    b_yds: float,
    n: int,
    heading_rad: float,
) -> list[GeoPoint]:
    """Deterministic n-point dispersion cloud around center.

    heading_rad is the line of play, clockwise from north; the ellipse's
    a-axis is laid along it. Offsets are applied in the local frame.
    """
    if n <= 0:
        return []
    xd, yd = unit_disk_sequence(n)
    along = xd * yards_to_meters(a_yds)
    across = yd * yards_to_meters(b_yds)

    # Unit vectors in (east, north): forward and to the right of the heading
    fx, fy = math.sin(heading_rad), math.cos(heading_rad)
    rx, ry = fy, -fx

    cx, cy = frame.to_meters(center)
    xs = cx + along * fx + across * rx
    ys = cy + along * fy + across * ry
    return [frame.to_geo(float(x), float(y)) for x, y in zip(xs, ys)]
