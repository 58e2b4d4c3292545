"""Terrain Bounded Context - Value Objects.

Immutable data structures representing geographic concepts and the baked
terrain-class mask.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import math
from enum import IntEnum

import numpy as np
from affine import Affine
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
METERS_PER_DEG_LAT = 111_320.0  # Equirectangular approximation near the course


# ---------------------------------------------------------------------------
# TerrainClass
# ---------------------------------------------------------------------------
class TerrainClass(IntEnum):
    """Course condition encoded in the mask palette (red channel / band 1)."""

    UNKNOWN = 0
    OB = 1
    WATER = 2
    HAZARD = 3
    BUNKER = 4
    GREEN = 5
    FAIRWAY = 6
    RECOVERY = 7
    ROUGH = 8
    TEE = 9

    @classmethod
    def coerce(cls, value: int) -> "TerrainClass":
        """Map a raw palette value to a class; unknown and invalid ids fail closed to ROUGH."""
        try:
            klass = cls(int(value))
        except (TypeError, ValueError):
            return cls.ROUGH
        if klass is cls.UNKNOWN:
            return cls.ROUGH
        return klass


# Lookup table indexed by raw uint8 value (0-255) -> coerced class id.
# Used for vectorized sampling; same semantics as TerrainClass.coerce.
CLASS_LOOKUP: NDArray[np.uint8] = np.array(
    [int(TerrainClass.coerce(v)) for v in range(256)], dtype=np.uint8
)
CLASS_LOOKUP.flags.writeable = False


class BoundingBox(BaseModel):
    """Geographic extent in EPSG:4326 (Value Object).

    Invariants are enforced at construction time - invalid BoundingBox
    cannot be instantiated.
    """

    west: float  # Western boundary (longitude)
    south: float  # Southern boundary (latitude)
    east: float  # Eastern boundary (longitude)
    north: float  # Northern boundary (latitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        # Longitude range
        if not (-180 <= self.west <= 180):
            raise ValueError(f"west longitude out of range: {self.west}")
        if not (-180 <= self.east <= 180):
            raise ValueError(f"east longitude out of range: {self.east}")
        # Latitude range
        if not (-90 <= self.south <= 90):
            raise ValueError(f"south latitude out of range: {self.south}")
        if not (-90 <= self.north <= 90):
            raise ValueError(f"north latitude out of range: {self.north}")
        # Positive extent
        if not (self.west < self.east):
            raise ValueError(
                f"Invalid x ordering: west={self.west} >= east={self.east}"
            )
        if not (self.south < self.north):
            raise ValueError(
                f"Invalid y ordering: south={self.south} >= north={self.north}"
            )
        return self

    def contains(self, point: "GeoPoint") -> bool:
        """Check if point is within bounds (inclusive)."""
        return (
            self.west <= point.longitude <= self.east
            and self.south <= point.latitude <= self.north
        )


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Invariants:
        latitude in [-90, 90]
        longitude in [-180, 180]

    Pydantic frozen models compare by value, so two GeoPoints with the
    same coordinates are equal and hash alike.
    """

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# MaskDescriptor
# ---------------------------------------------------------------------------
# Class id layouts this sampler can decode; bumped when the baker changes ids
SUPPORTED_PALETTE_VERSIONS = frozenset({1})


class MaskDescriptor(BaseModel):
    """Where a baked class mask lives and what it covers (Value Object).

    `url` is handed verbatim to the mask repository (local path or URL).
    `palette_version` names the class id layout the mask was baked with;
    only layouts in SUPPORTED_PALETTE_VERSIONS are accepted.
    """

    url: str = Field(min_length=1)
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bbox: BoundingBox
    palette_version: int = Field(default=1, ge=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_palette(self) -> "MaskDescriptor":
        if self.palette_version not in SUPPORTED_PALETTE_VERSIONS:
            raise ValueError(
                f"Unsupported palette version {self.palette_version}; "
                f"expected one of {sorted(SUPPORTED_PALETTE_VERSIONS)}"
            )
        return self


# ---------------------------------------------------------------------------
# ClassGrid
# ---------------------------------------------------------------------------
class ClassGrid(BaseModel):
    """Immutable terrain-class raster with geographic metadata (Value Object).

    Row 0 is the northern edge. The data array is made read-only at
    construction time, so a ready grid can be sampled from any number of
    workers without synchronization.
    """

    data: NDArray[np.uint8]  # 2D uint8 array (height x width), read-only
    bounds: BoundingBox
    is_fallback: bool = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "ClassGrid":
        data = np.asarray(self.data)
        if data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {data.ndim}D")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {data.shape}")
        if not np.issubdtype(data.dtype, np.integer):
            raise ValueError(f"Data must hold integer class ids, got {data.dtype}")
        if data.min() < 0 or data.max() > 255:
            raise ValueError("Class ids must fit in uint8")

        # Owned, contiguous copy so caller arrays are never frozen in place.
        immutable = np.array(data, dtype=np.uint8, copy=True, order="C")
        immutable.flags.writeable = False
        object.__setattr__(self, "data", immutable)
        return self

    @classmethod
    def fallback(cls, bounds: BoundingBox) -> "ClassGrid":
        """1x1 all-rough grid used when the real mask cannot be loaded."""
        return cls(
            data=np.full((1, 1), int(TerrainClass.ROUGH), dtype=np.uint8),
            bounds=bounds,
            is_fallback=True,
        )

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def transform(self) -> Affine:
        """Pixel (col, row) -> (lon, lat) geotransform, north-up."""
        x_res = (self.bounds.east - self.bounds.west) / self.width
        y_res = (self.bounds.north - self.bounds.south) / self.height
        return Affine.translation(self.bounds.west, self.bounds.north) * Affine.scale(
            x_res, -y_res
        )

    def pixel_indices(
        self, lons: NDArray[np.float64], lats: NDArray[np.float64]
    ) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
        """Project coordinates to clamped (row, col) pixel indices.

        u = (lon - west) / (east - west), v = 1 - (lat - south) / (north - south);
        the v-axis is inverted so north maps to row 0.
        """
        b = self.bounds
        u = (np.asarray(lons, dtype=np.float64) - b.west) / (b.east - b.west)
        v = 1.0 - (np.asarray(lats, dtype=np.float64) - b.south) / (b.north - b.south)
        cols = np.clip(np.floor(u * self.width), 0, self.width - 1).astype(np.intp)
        rows = np.clip(np.floor(v * self.height), 0, self.height - 1).astype(np.intp)
        return rows, cols

    def pixel_index(self, point: GeoPoint) -> tuple[int, int]:
        """Return the clamped (col, row) pixel a point falls in."""
        rows, cols = self.pixel_indices(
            np.array([point.longitude]), np.array([point.latitude])
        )
        return int(cols[0]), int(rows[0])

    def classes_at(
        self, lons: NDArray[np.float64], lats: NDArray[np.float64]
    ) -> NDArray[np.uint8]:
        """Vectorized class lookup; unknown ids come back as ROUGH."""
        rows, cols = self.pixel_indices(lons, lats)
        return CLASS_LOOKUP[self.data[rows, cols]]

    def class_counts(self) -> dict[TerrainClass, int]:
        """Histogram of coerced classes over the whole grid."""
        values, counts = np.unique(CLASS_LOOKUP[self.data], return_counts=True)
        return {TerrainClass(int(v)): int(c) for v, c in zip(values, counts)}


# ---------------------------------------------------------------------------
# LocalFrame
# ---------------------------------------------------------------------------
class LocalFrame(BaseModel):
    """Local equirectangular tangent plane anchored at a reference point.

    x grows east, y grows north, both in meters. Accurate to well under a
    meter over the extent of a golf hole.
    """

    origin: GeoPoint

    model_config = ConfigDict(frozen=True)

    @property
    def meters_per_deg_lon(self) -> float:
        return METERS_PER_DEG_LAT * math.cos(math.radians(self.origin.latitude))

    def to_meters(self, point: GeoPoint) -> tuple[float, float]:
        x = (point.longitude - self.origin.longitude) * self.meters_per_deg_lon
        y = (point.latitude - self.origin.latitude) * METERS_PER_DEG_LAT
        return x, y

    def to_geo(self, x: float, y: float) -> GeoPoint:
        return GeoPoint(
            latitude=self.origin.latitude + y / METERS_PER_DEG_LAT,
            longitude=self.origin.longitude + x / self.meters_per_deg_lon,
        )
