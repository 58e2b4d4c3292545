"""Root pytest configuration for all tests.

Provides the common course fixtures: a standard bounding box, a fairway-only
mask and a ready sampler over it.
"""

from __future__ import annotations

import asyncio

import pytest

from domain.terrain.sampler import TerrainSampler
from domain.terrain.value_objects import BoundingBox, GeoPoint, TerrainClass
from tests.conftest_utils import (
    STD_BBOX,
    StaticMaskRepository,
    make_descriptor,
    uniform_classes,
)


@pytest.fixture
def std_bbox() -> BoundingBox:
    return STD_BBOX


@pytest.fixture
def origin() -> GeoPoint:
    return GeoPoint(latitude=0.0, longitude=0.0)


@pytest.fixture
def fairway_sampler() -> TerrainSampler:
    """Ready sampler over an all-fairway 10x10 mask."""
    sampler = TerrainSampler(
        make_descriptor(), StaticMaskRepository(uniform_classes(TerrainClass.FAIRWAY))
    )
    asyncio.run(sampler.ready())
    return sampler
