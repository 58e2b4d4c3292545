"""Infrastructure adapters for the terrain bounded context.

This module provides the infrastructure layer implementations for terrain
operations, including loading baked class masks with rasterio.
"""

from .mask_adapter import RasterioMaskAdapter

__all__ = ["RasterioMaskAdapter"]
