"""Terrain Bounded Context.

Responsible for physical geography and the baked course-condition mask:
- Value Objects: GeoPoint, BoundingBox, MaskDescriptor, ClassGrid, LocalFrame
- Services: TerrainSampler, great-circle and geodesic distance helpers
"""
