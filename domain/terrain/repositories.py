"""Domain Port(s) for Terrain I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from .value_objects import MaskDescriptor


class MaskRepository(Protocol):
    """Port for obtaining baked class masks from external sources.

    Implementations live in infrastructure (e.g., the rasterio adapter).
    """

    def load_classes(self, descriptor: MaskDescriptor) -> NDArray[np.uint8]:
        """Load the mask's class ids as a (height x width) uint8 array."""
        ...
