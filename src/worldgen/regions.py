"""Region analysis: dominant biomes and bounded tree/rock/plant placement.

The grid is divided into square regions. Each region takes the biome that
dominates it, and that biome's density tables decide how many trees, rocks
and plants the region receives. Candidate cells are ranked by their density
field and popped from a max-heap until the quota is met or the heap runs dry.
"""

import heapq

import numpy as np
from numpy.typing import NDArray

from .config import RegionConfig
from .grid import World
from .types import NUM_BIOMES, PLACED_FEATURES, Biome, Feature


def dominant_biome(block: NDArray[np.uint8]) -> Biome:
    """Most common biome in a block. Ties go to the lowest biome value."""
    return Biome(int(np.argmax(np.bincount(block.ravel(), minlength=NUM_BIOMES))))


def _eligibility(world: World) -> dict[Feature, NDArray[np.bool_]]:
    """Cells allowed to hold each placed feature."""
    ocean = world.biome == Biome.OCEAN
    beach = world.biome == Biome.BEACH
    fixed = world.is_wall | world.is_river_bank
    return {
        Feature.TREE: ~(ocean | beach | world.is_river | fixed),
        Feature.ROCK: ~fixed,
        Feature.PLANT: ~(ocean | fixed),
    }


def _place(
    world: World,
    density: NDArray[np.float32],
    eligible: NDArray[np.bool_],
    feature: Feature,
    quota: int,
    y0: int,
    x0: int,
) -> int:
    """Pop the densest eligible cells of one region and mark them.

    A cell that already holds another placed feature is discarded without
    counting toward the quota.

    Returns:
        Number of cells marked.
    """
    if quota <= 0:
        return 0

    heap = [
        (-float(density[y, x]), (y0 + y) * world.width + (x0 + x))
        for y, x in zip(*np.nonzero(eligible))
    ]
    heapq.heapify(heap)

    placed = 0
    while heap and placed < quota:
        _, index = heapq.heappop(heap)
        x, y = world.coords(index)
        if int(world.features[y, x]) & PLACED_FEATURES:
            continue
        world.add_feature(x, y, feature)
        placed += 1
    return placed


def analyse_regions(
    world: World,
    x_begin: int,
    x_end: int,
    config: RegionConfig,
) -> dict[Feature, int]:
    """Pick dominant biomes and place features for the regions in a band.

    Trees are placed first, then rocks, then plants, so a cell holds at most
    one of them. Ocean, beach, river, wall and bank cells get no trees; wall
    and bank cells get no rocks; ocean, wall and bank cells get no plants.

    Args:
        world: World with final biomes, rivers and banks.
        x_begin: First column of the band, on a region boundary.
        x_end: One past the last column, on a region boundary.
        config: Region size and density tables.

    Returns:
        Count of each feature placed in the band.

    Raises:
        ValueError: If the world or band is not aligned to the region size.
    """
    size = config.region_size
    if size != world.region_size:
        raise ValueError(
            f"Region size {size} doesn't match world region size {world.region_size}"
        )
    if world.width % size or world.height % size:
        raise ValueError(
            f"World {world.width}x{world.height} is not divisible by region size {size}"
        )
    if x_begin % size or x_end % size:
        raise ValueError(f"Band [{x_begin}, {x_end}) is not aligned to region size {size}")

    eligibility = _eligibility(world)
    tables = [
        (Feature.TREE, world.tree, config.tree_density),
        (Feature.ROCK, world.rock, config.rock_density),
        (Feature.PLANT, world.plant, config.plant_density),
    ]
    placed = {feature: 0 for feature, _, _ in tables}

    for ry in range(world.height // size):
        for rx in range(x_begin // size, x_end // size):
            y0, x0 = ry * size, rx * size
            block = (slice(y0, y0 + size), slice(x0, x0 + size))
            biome = dominant_biome(world.biome[block])
            world.regions[ry, rx] = biome

            for feature, density, table in tables:
                placed[feature] += _place(
                    world,
                    density[block],
                    eligibility[feature][block],
                    feature,
                    config.quota(table, biome),
                    y0,
                    x0,
                )

    return placed
