"""Terrace bands: elevation quantised into five discrete levels."""

import numpy as np
from numpy.typing import NDArray

from .config import BiomeThresholds
from .grid import World

OCEAN_TERRACE = 0
BEACH_TERRACE = 1
LOWLANDS_TERRACE = 2
MIDLANDS_TERRACE = 3
HIGHLANDS_TERRACE = 4


def _edges(thresholds: BiomeThresholds) -> NDArray[np.float64]:
    return np.array(
        [
            thresholds.water_level,
            thresholds.beach_level,
            thresholds.midlands,
            thresholds.highlands,
        ],
        dtype=np.float64,
    )


def terrace_levels(
    elevation: NDArray[np.floating],
    thresholds: BiomeThresholds,
) -> NDArray[np.uint8]:
    """Terrace band of each elevation.

    A value equal to a threshold belongs to the band above it.
    """
    elevation = np.asarray(elevation)
    # Compare at the field's precision so terraces agree with biome thresholds
    edges = _edges(thresholds).astype(elevation.dtype)
    return np.searchsorted(edges, elevation, side="right").astype(np.uint8)


def terrace_level(height: float, thresholds: BiomeThresholds) -> int:
    """Terrace band of a single elevation."""
    return int(terrace_levels(np.asarray(height, dtype=np.float64), thresholds))


def classify_terraces(
    world: World,
    x_begin: int,
    x_end: int,
    thresholds: BiomeThresholds,
) -> None:
    """Assign terraces to a column band."""
    world.terrace[:, x_begin:x_end] = terrace_levels(
        world.elevation[:, x_begin:x_end], thresholds
    )
