"""Tests for dispersion ellipse geometry and the Halton point cloud."""

from __future__ import annotations

import math

import numpy as np
import pytest

from domain.aiming.dispersion import (
    axes_for_skill,
    ellipse_axes,
    halton,
    make_ellipse_points,
    unit_disk_sequence,
)
from domain.aiming.value_objects import skill_preset
from domain.terrain.services import yards_to_meters
from domain.terrain.value_objects import GeoPoint, LocalFrame

ORIGIN = GeoPoint(latitude=0.0, longitude=0.0)


@pytest.mark.parametrize(
    ("index", "base", "expected"),
    [
        (0, 2, 0.0),
        (1, 2, 0.5),
        (2, 2, 0.25),
        (3, 2, 0.75),
        (1, 3, 1 / 3),
        (2, 3, 2 / 3),
        (4, 3, 1 / 9 + 1 / 3),
    ],
)
def test_halton_radical_inverse(index, base, expected):
    assert halton(index, base) == pytest.approx(expected)


def test_ellipse_axes():
    a, b = ellipse_axes(200.0, offline_deg=5.9, dist_pct=6.75)
    assert a == pytest.approx(13.5)
    assert b == pytest.approx(200.0 * math.tan(math.radians(5.9)))


def test_axes_for_skill_scale_with_distance():
    pro = skill_preset("Pro")
    near = axes_for_skill(pro, 100.0)
    far = axes_for_skill(pro, 200.0)
    assert far[0] == pytest.approx(2 * near[0])
    assert far[1] == pytest.approx(2 * near[1])


def test_unit_disk_sequence_is_read_only_and_inside_disk():
    xd, yd = unit_disk_sequence(500)
    assert np.all(xd**2 + yd**2 <= 1.0 + 1e-12)
    with pytest.raises(ValueError):
        xd[0] = 0.0


def test_unit_disk_follows_halton_2_3():
    xd, yd = unit_disk_sequence(20)
    for i in range(20):
        r = math.sqrt(halton(i + 1, 2))
        th = 2.0 * math.pi * halton(i + 1, 3)
        assert (xd[i], yd[i]) == pytest.approx((r * math.cos(th), r * math.sin(th)))


def _local_offsets(points, center, heading_rad):
    """Project points back onto (along, across) meters relative to center."""
    frame = LocalFrame(origin=ORIGIN)
    cx, cy = frame.to_meters(center)
    fx, fy = math.sin(heading_rad), math.cos(heading_rad)
    out = []
    for p in points:
        x, y = frame.to_meters(p)
        dx, dy = x - cx, y - cy
        out.append((dx * fx + dy * fy, dx * fy - dy * fx))
    return out


@pytest.mark.parametrize("heading_deg", [0.0, 37.0, 90.0, 200.0])
def test_points_fill_the_rotated_ellipse(heading_deg):
    frame = LocalFrame(origin=ORIGIN)
    center = GeoPoint(latitude=0.001, longitude=0.0005)
    heading = math.radians(heading_deg)
    a_yds, b_yds = 12.0, 25.0

    points = make_ellipse_points(frame, center, a_yds, b_yds, 400, heading)

    a_m, b_m = yards_to_meters(a_yds), yards_to_meters(b_yds)
    offsets = _local_offsets(points, center, heading)
    assert len(points) == 400
    assert all((u / a_m) ** 2 + (v / b_m) ** 2 <= 1.0 + 1e-6 for u, v in offsets)
    # The cloud actually reaches out along both axes
    assert max(abs(u) for u, _ in offsets) > 0.9 * a_m
    assert max(abs(v) for _, v in offsets) > 0.9 * b_m
    # ...and is centred on the aim point
    assert np.mean([u for u, _ in offsets]) == pytest.approx(0.0, abs=0.05 * a_m)
    assert np.mean([v for _, v in offsets]) == pytest.approx(0.0, abs=0.05 * b_m)


def test_prefix_of_longer_cloud_is_shorter_cloud():
    frame = LocalFrame(origin=ORIGIN)
    center = GeoPoint(latitude=0.0008, longitude=0.0)

    short = make_ellipse_points(frame, center, 10.0, 20.0, 16, 0.3)
    long = make_ellipse_points(frame, center, 10.0, 20.0, 256, 0.3)

    assert long[:16] == short


def test_zero_points():
    frame = LocalFrame(origin=ORIGIN)
    assert make_ellipse_points(frame, ORIGIN, 10.0, 20.0, 0, 0.0) == []
