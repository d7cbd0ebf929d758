"""Ground feature diffusion: blend neighbouring biomes into border cells."""

import numpy as np

from .adjacency import shift
from .grid import World
from .types import NUM_BIOMES, Biome, Direction, Feature

# All eight surrounding cells
NEIGHBOUR_OFFSETS = tuple((d.dx, d.dy) for d in Direction)


def add_ground_features(world: World, x_begin: int, x_end: int) -> int:
    """Mark cells of a column band that border a different biome.

    Each land cell that is not river, bank, wall, ocean or beach tallies the
    biomes of its eight neighbours, counting only neighbours on the same
    terrace that are neither river nor ocean. If one biome has a strict
    plurality and differs from the cell's own, the cell gets
    ``Feature.GROUND`` and ``nearby_biome`` records the biome to blend toward.
    Cells without a blend keep their own biome in ``nearby_biome``.

    Rivers, banks and biomes must be final before this runs.

    Args:
        world: World to update.
        x_begin: First column of the band.
        x_end: One past the last column of the band.

    Returns:
        Number of cells marked in the band.
    """
    band = slice(x_begin, x_end)
    biome = world.biome
    terrace = world.terrace.astype(np.int16)
    excluded = world.is_river | (biome == Biome.OCEAN)

    height = world.height
    counts = np.zeros((NUM_BIOMES, height, x_end - x_begin), dtype=np.uint8)
    for dx, dy in NEIGHBOUR_OFFSETS:
        ok = (shift(terrace, dx, dy, -1) == terrace) & ~shift(excluded, dx, dy, True)
        ok = ok[:, band]
        ys, xs = np.nonzero(ok)
        np.add.at(counts, (shift(biome, dx, dy, 0)[:, band][ok], ys, xs), 1)

    ranked = np.sort(counts, axis=0)
    plurality = ranked[-1] > ranked[-2]
    favourite = counts.argmax(axis=0).astype(np.uint8)

    own = biome[:, band]
    eligible = ~(
        world.is_river[:, band]
        | world.is_river_bank[:, band]
        | world.is_wall[:, band]
        | (own == Biome.OCEAN)
        | (own == Biome.BEACH)
    )
    blend = eligible & plurality & (favourite != own)

    world.nearby_biome[:, band] = np.where(blend, favourite, own)
    features = world.features[:, band]
    features[blend] |= np.uint32(Feature.GROUND)
    return int(np.count_nonzero(blend))
