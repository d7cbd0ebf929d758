"""Shared test fixtures for world generation tests."""

from collections.abc import Callable

import numpy as np
import pytest

from worldgen.config import BiomeThresholds, RegionConfig, TerrainConfig
from worldgen.grid import World
from worldgen.terrace import classify_terraces
from worldgen.types import Biome


@pytest.fixture
def thresholds() -> BiomeThresholds:
    """Default classification thresholds."""
    return BiomeThresholds()


@pytest.fixture
def make_world(thresholds: BiomeThresholds) -> Callable[..., World]:
    """Factory for worlds built from an explicit elevation grid.

    Terraces are classified from the elevation. Moisture defaults to zero
    and every cell starts as grassland unless ``biome`` is given.
    """

    def _make(
        elevation,
        moisture=None,
        biome: Biome | None = Biome.GRASSLAND,
        region_size: int = 16,
    ) -> World:
        elevation = np.asarray(elevation, dtype=np.float32)
        height, width = elevation.shape
        world = World(width, height, region_size=region_size)
        world.set_field("elevation", elevation)
        if moisture is not None:
            world.set_field("moisture", np.broadcast_to(moisture, elevation.shape))
        classify_terraces(world, 0, width, thresholds)
        if biome is not None:
            world.biome[:, :] = biome
        return world

    return _make


@pytest.fixture
def flat_world(make_world: Callable[..., World]) -> World:
    """5x5 grassland world at constant elevation, no walls or water."""
    return make_world(np.full((5, 5), 0.2))


@pytest.fixture
def small_config() -> TerrainConfig:
    """Small, fast configuration split across two workers."""
    return TerrainConfig(
        seed=7,
        width=64,
        height=64,
        workers=2,
        regions=RegionConfig(region_size=16),
    )
