"""Rasterio adapter for MaskRepository.

Implements loading of baked terrain-class masks (single-band GeoTIFF, or a
palette/RGB(A) PNG whose red channel carries the class id) and returns the
raw class ids as a uint8 array for the domain ClassGrid.

Lifecycle (to avoid resource leaks):
1) Resolve the descriptor url to a local path and run pre-flight checks
2) Enter rasterio.Env for GDAL configuration
3) Open dataset with context manager (rasterio.open)
4) Validate band count and dimensions against the descriptor
5) Read band 1 as uint8
6) Exit contexts to release GDAL handles
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from urllib.parse import urlparse

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray
from rasterio.transform import array_bounds

from domain.terrain.errors import InvalidRasterError
from domain.terrain.value_objects import MaskDescriptor

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

_ALLOWED_SUFFIXES = (".tif", ".tiff", ".png")
# RGB / RGBA PNG masks: class id lives in the red channel
_COLOR_BAND_COUNTS = (3, 4)
_BOUNDS_TOLERANCE_DEG = 1e-6


def _local_path(url: str) -> Path | None:
    """Return a filesystem path for file:// or bare paths, None for remote URLs."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(parsed.path)
    if len(parsed.scheme) <= 1:
        # Bare path (a single-letter scheme is a Windows drive letter)
        return Path(url)
    return None


class RasterioMaskAdapter:
    """Infrastructure adapter for loading class masks with rasterio.

    Parameters
    ----------
    max_bytes: int | None
        Optional memory budget for the resulting uint8 grid (height*width).
        If specified and exceeded, InvalidRasterError is raised before
        any pixels are read.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes

    def load_classes(self, descriptor: MaskDescriptor) -> NDArray[np.uint8]:
        """Load mask pixels for descriptor as a (height x width) uint8 array."""
        path = _local_path(descriptor.url)
        source: str | Path = descriptor.url

        if path is not None:
            # Missing files surface as FileNotFoundError
            if not path.exists():
                raise FileNotFoundError(path.name)
            if path.suffix.lower() not in _ALLOWED_SUFFIXES:
                raise InvalidRasterError(f"Unsupported file extension: {path.suffix}")
            if path.stat().st_size == 0:
                raise InvalidRasterError("Empty file")
            source = path

        if self.max_bytes is not None:
            est_bytes = descriptor.width * descriptor.height
            if est_bytes > self.max_bytes:
                raise InvalidRasterError(
                    f"Estimated mask size {est_bytes}B exceeds budget {self.max_bytes}B"
                )

        name = path.name if path is not None else urlparse(descriptor.url).path
        try:
            with rasterio.Env():
                with rasterio.open(source) as src:
                    if src.count == 0:
                        raise InvalidRasterError("Empty or bandless file")
                    if src.count != 1 and src.count not in _COLOR_BAND_COUNTS:
                        raise InvalidRasterError(
                            f"Expected 1 band (or RGB/RGBA), got {src.count}"
                        )
                    if (src.width, src.height) != (descriptor.width, descriptor.height):
                        raise InvalidRasterError(
                            f"Mask is {src.width}x{src.height}, descriptor says "
                            f"{descriptor.width}x{descriptor.height}"
                        )

                    self._check_georeference(src, descriptor, name)

                    data = np.asarray(src.read(1, out_dtype="uint8"), dtype=np.uint8)
        except PermissionError as e:
            # Re-raise with filename only to avoid leaking full path in logs
            raise PermissionError(name) from e
        except (rasterio.errors.RasterioIOError, rasterio.errors.RasterioError) as e:
            raise InvalidRasterError(f"Corrupted or invalid raster: {e}") from e

        logger.debug(
            "Mask %s: Loaded %dx%d class grid",
            name,
            descriptor.width,
            descriptor.height,
        )
        return data

    @staticmethod
    def _check_georeference(src, descriptor: MaskDescriptor, name: str) -> None:
        """Warn when an embedded geotransform disagrees with the descriptor bbox.

        The descriptor is authoritative; PNG masks carry no georeferencing
        and are skipped.
        """
        transform = getattr(src, "transform", None)
        if not isinstance(transform, Affine) or transform.is_identity:
            return
        if any(math.isnan(v) or math.isinf(v) for v in transform[:6]):
            logger.warning("Mask %s: invalid (NaN/Inf) geotransform ignored", name)
            return

        west, south, east, north = array_bounds(src.height, src.width, transform)
        bbox = descriptor.bbox
        deltas = (
            abs(west - bbox.west),
            abs(south - bbox.south),
            abs(east - bbox.east),
            abs(north - bbox.north),
        )
        if max(deltas) > _BOUNDS_TOLERANCE_DEG:
            logger.warning(
                "Mask %s: embedded bounds (%.6f, %.6f, %.6f, %.6f) differ from descriptor bbox",
                name,
                west,
                south,
                east,
                north,
            )
