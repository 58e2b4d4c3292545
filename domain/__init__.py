"""Golf Aim Planner Domain Layer.

This package contains the core business logic organized by bounded contexts:
- terrain: Geography, the terrain-class mask and point sampling
- strokes: Expected-strokes cost model and Monte-Carlo evaluation
- aiming: Dispersion geometry and the aim-point search strategies
"""

# Imports alphabetized per project style (isort)
from domain import aiming, strokes, terrain

__all__ = ["aiming", "strokes", "terrain"]
