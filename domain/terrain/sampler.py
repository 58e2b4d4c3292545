"""Terrain Bounded Context - TerrainSampler.

Resolves geographic points to terrain classes from a baked class mask.

Lifecycle:
1) Construct with a descriptor (validated immediately, fails fast)
2) await ready() - loads the mask once through the MaskRepository port
3) sample()/sample_many() - total functions, never raise

If the mask cannot be loaded, ready() installs a 1x1 all-rough grid so
sampling keeps working, then raises MaskLoadError. Later ready() calls
raise the same error so no caller mistakes the fallback for a real mask.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import numpy as np
from pydantic import ValidationError

from domain.terrain.errors import InvalidMaskDescriptorError, MaskLoadError
from domain.terrain.repositories import MaskRepository
from domain.terrain.value_objects import (
    ClassGrid,
    GeoPoint,
    MaskDescriptor,
    TerrainClass,
)

logger = logging.getLogger(__name__)


class TerrainSampler:
    """Point -> TerrainClass lookup over one mask.

    Parameters
    ----------
    descriptor: MaskDescriptor | Mapping
        Mask location, pixel dimensions and bounding box.
    repository: MaskRepository
        Loader for the mask pixels.
    """

    def __init__(
        self,
        descriptor: MaskDescriptor | Mapping[str, Any],
        repository: MaskRepository,
    ) -> None:
        if not isinstance(descriptor, MaskDescriptor):
            try:
                descriptor = MaskDescriptor.model_validate(descriptor)
            except ValidationError as e:
                raise InvalidMaskDescriptorError(str(e)) from e
        self.descriptor = descriptor
        self._repository = repository
        self._grid: ClassGrid | None = None
        self._load_error: MaskLoadError | None = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._grid is not None

    @property
    def is_fallback(self) -> bool:
        return self._grid is not None and self._grid.is_fallback

    @property
    def grid(self) -> ClassGrid | None:
        return self._grid

    async def ready(self) -> None:
        """Load the mask once; later calls return immediately.

        Raises:
            MaskLoadError: If the source could not be loaded. Every caller,
                including ones that arrive after the failure, gets the same
                error. The sampler is ready (on the fallback grid) when this
                is raised.
        """
        if self._grid is not None:
            self._raise_if_fallback()
            return
        async with self._lock:
            if self._grid is not None:
                self._raise_if_fallback()
                return
            try:
                data = await asyncio.to_thread(
                    self._repository.load_classes, self.descriptor
                )
                expected = (self.descriptor.height, self.descriptor.width)
                if np.shape(data) != expected:
                    raise ValueError(
                        f"mask shape {np.shape(data)} does not match descriptor {expected}"
                    )
                self._grid = ClassGrid(data=data, bounds=self.descriptor.bbox)
            except Exception as e:
                logger.error("Failed to load terrain mask: %s", e)
                logger.warning("Installing 1x1 all-rough fallback mask")
                self._load_error = MaskLoadError(self.descriptor, str(e))
                self._grid = ClassGrid.fallback(self.descriptor.bbox)
                raise self._load_error from e

            logger.debug(
                "Terrain mask ready: %dx%d grid (palette v%d)",
                self._grid.width,
                self._grid.height,
                self.descriptor.palette_version,
            )

    def _raise_if_fallback(self) -> None:
        if self._load_error is not None:
            raise self._load_error

    def sample(self, point: GeoPoint) -> TerrainClass:
        """Return the terrain class at point; ROUGH when not ready or on error."""
        grid = self._grid
        if grid is None:
            logger.warning("Terrain mask not ready, returning default rough class")
            return TerrainClass.ROUGH

        try:
            col, row = grid.pixel_index(point)
            return TerrainClass.coerce(int(grid.data[row, col]))
        except Exception:
            logger.exception("Error sampling terrain mask")
            return TerrainClass.ROUGH

    def sample_many(self, points: Iterable[GeoPoint]) -> list[TerrainClass]:
        """Batch lookup with the same semantics as sample()."""
        pts = list(points)
        grid = self._grid
        if grid is None:
            logger.warning(
                "Terrain mask not ready, returning default rough class for %d points",
                len(pts),
            )
            return [TerrainClass.ROUGH] * len(pts)
        if not pts:
            return []

        try:
            lons = np.fromiter((p.longitude for p in pts), dtype=np.float64, count=len(pts))
            lats = np.fromiter((p.latitude for p in pts), dtype=np.float64, count=len(pts))
            ids = grid.classes_at(lons, lats)
        except Exception:
            logger.exception("Error batch-sampling terrain mask")
            return [TerrainClass.ROUGH] * len(pts)
        return [TerrainClass(int(v)) for v in ids]
