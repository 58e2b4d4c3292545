"""Aiming Bounded Context - Collaborator interface for the optimizer.

The optimizer never reaches for globals: everything it needs to know about
the hole (where a polar offset lands, how big the dispersion ellipse is,
what terrain is under a point, which aims are allowed) arrives as plain
callables bundled in AimFeeds.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from typing import Union

from pydantic import BaseModel, ConfigDict

from domain.aiming.dispersion import axes_for_skill, make_ellipse_points
from domain.aiming.value_objects import SkillPreset
from domain.terrain.sampler import TerrainSampler
from domain.terrain.services import (
    geodesic_azimuth,
    geodesic_distance,
    meters_to_yards,
    yards_to_meters,
)
from domain.terrain.value_objects import GeoPoint, LocalFrame, TerrainClass

logger = logging.getLogger(__name__)

ClassBatch = Union[Sequence[int], Awaitable[Sequence[int]]]

# Landing in these ends the hole's plan: stroke-and-distance or a drop.
DEFAULT_BLOCKED_CLASSES: frozenset[TerrainClass] = frozenset(
    {TerrainClass.WATER, TerrainClass.OB}
)


class AimFeeds(BaseModel):
    """Pure-function collaborators consumed by optimize_aim.

    Fields:
        feasible: (radius_yds, bearing_rad) -> bool
        to_lat_lon: (radius_yds, bearing_rad) -> GeoPoint
        axes_for: distance_yds -> (a_yds, b_yds)
        make_ellipse_points: (center, a_yds, b_yds, n) -> list[GeoPoint]
        sample_classes: points -> class ids, or an awaitable of them
    """

    feasible: Callable[[float, float], bool]
    to_lat_lon: Callable[[float, float], GeoPoint]
    axes_for: Callable[[float], tuple[float, float]]
    make_ellipse_points: Callable[[GeoPoint, float, float, int], list[GeoPoint]]
    sample_classes: Callable[[list[GeoPoint]], ClassBatch]

    model_config = ConfigDict(frozen=True)


def build_hole_feeds(
    start: GeoPoint,
    pin: GeoPoint,
    sampler: TerrainSampler,
    skill: SkillPreset,
    *,
    forward_progress: bool = True,
    inflation: float = 1.0,
    blocked_classes: frozenset[TerrainClass] = DEFAULT_BLOCKED_CLASSES,
) -> AimFeeds:
    """Default feeds for one shot from start toward pin.

    Bearings are relative to the start->pin line: 0 aims straight at the
    pin, positive bearings rotate clockwise (to the right).

    Feasibility combines two rules:
        forward progress - the aim may not be farther from the pin than the
            start is (disabled with forward_progress=False)
        hazard inflation - the aim point and four check points at `inflation`
            times the ellipse semi-axes around it must all stay out of
            blocked_classes (inflation=0 checks the aim point alone)
    """
    frame = LocalFrame(origin=start)
    pin_azimuth = geodesic_azimuth(start, pin)
    hole_distance_m = geodesic_distance(start, pin)

    def to_lat_lon(radius_yds: float, bearing_rad: float) -> GeoPoint:
        azimuth = pin_azimuth + bearing_rad
        meters = yards_to_meters(radius_yds)
        return frame.to_geo(meters * math.sin(azimuth), meters * math.cos(azimuth))

    def axes_for(distance_yds: float) -> tuple[float, float]:
        return axes_for_skill(skill, distance_yds)

    def heading_to(center: GeoPoint) -> float:
        x, y = frame.to_meters(center)
        if x == 0.0 and y == 0.0:
            return pin_azimuth
        return math.atan2(x, y)

    def ellipse_points(center: GeoPoint, a_yds: float, b_yds: float, n: int) -> list[GeoPoint]:
        return make_ellipse_points(frame, center, a_yds, b_yds, n, heading_to(center))

    def feasible(radius_yds: float, bearing_rad: float) -> bool:
        aim = to_lat_lon(radius_yds, bearing_rad)
        if forward_progress and geodesic_distance(aim, pin) > hole_distance_m:
            return False
        if not blocked_classes:
            return True

        checks = [aim]
        if inflation > 0:
            a_yds, b_yds = axes_for(radius_yds)
            a_m = yards_to_meters(a_yds) * inflation
            b_m = yards_to_meters(b_yds) * inflation
            heading = heading_to(aim)
            fx, fy = math.sin(heading), math.cos(heading)
            rx, ry = fy, -fx
            cx, cy = frame.to_meters(aim)
            checks += [
                frame.to_geo(cx + a_m * fx, cy + a_m * fy),
                frame.to_geo(cx - a_m * fx, cy - a_m * fy),
                frame.to_geo(cx + b_m * rx, cy + b_m * ry),
                frame.to_geo(cx - b_m * rx, cy - b_m * ry),
            ]
        return not any(k in blocked_classes for k in sampler.sample_many(checks))

    logger.debug(
        "Hole feeds: %.1f yd to pin, azimuth %.1f deg, skill %s",
        meters_to_yards(hole_distance_m),
        math.degrees(pin_azimuth),
        skill.name,
    )
    return AimFeeds(
        feasible=feasible,
        to_lat_lon=to_lat_lon,
        axes_for=axes_for,
        make_ellipse_points=ellipse_points,
        sample_classes=sampler.sample_many,
    )
