"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for terrain mask operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.terrain.value_objects import MaskDescriptor


class TerrainError(Exception):
    """Base error for terrain operations."""


class InvalidMaskDescriptorError(TerrainError, ValueError):
    """Mask descriptor is malformed or has non-positive dimensions."""


class InvalidRasterError(TerrainError):
    """File is not a valid class raster, wrong format, or corrupted."""


class MaskLoadError(TerrainError):
    """The mask could not be loaded; a fallback grid was installed instead.

    Attributes:
        descriptor: The descriptor whose source failed to load
    """

    def __init__(self, descriptor: "MaskDescriptor", reason: str) -> None:
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(
            f"Failed to load mask ({descriptor.width}x{descriptor.height}): {reason}; "
            "falling back to all-rough"
        )
