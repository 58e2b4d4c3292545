"""Terrain Bounded Context - Domain Services.

Pure geometric helpers shared by the strokes and aiming contexts.
NO I/O operations - mask loading is implemented by infrastructure adapters
under `src/infrastructure/terrain/mask_adapter.py` via domain ports.
"""

from __future__ import annotations

import math

from pyproj import Geod

from domain.terrain.value_objects import GeoPoint

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
EARTH_RADIUS_M = 6_371_000.0  # Mean radius for the spherical approximation
YARDS_PER_METER = 1.09361

# Shared WGS84 ellipsoid; bearings toward the pin and progress checks use it
_geod = Geod(ellps="WGS84")


def meters_to_yards(meters: float) -> float:
    return meters * YARDS_PER_METER


def yards_to_meters(yards: float) -> float:
    return yards / YARDS_PER_METER


# ---------------------------------------------------------------------------
# Spherical (great-circle) distance
# ---------------------------------------------------------------------------
def great_circle_distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance in meters on a sphere of radius EARTH_RADIUS_M."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = phi2 - phi1
    dlam = math.radians(b.longitude - a.longitude)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def great_circle_distance_yds(a: GeoPoint, b: GeoPoint) -> float:
    return meters_to_yards(great_circle_distance_m(a, b))


# ---------------------------------------------------------------------------
# Geodesic Distance / Azimuth
# ---------------------------------------------------------------------------
def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Ellipsoidal (WGS84) distance in meters; used for feasibility checks."""
    _, _, distance = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))


def geodesic_azimuth(start: GeoPoint, end: GeoPoint) -> float:
    """Forward azimuth from start to end in radians, clockwise from north.

    Returns 0.0 when the points coincide.
    """
    if start == end:
        return 0.0
    azimuth, _, _ = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return math.radians(float(azimuth))
