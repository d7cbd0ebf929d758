"""Field synthesis: elevation, moisture, soil depth and feature densities.

Each function fills one column band ``[x_begin, x_end)`` of one field and
touches no other cells, so bands of the same field can run concurrently.
"""

import numpy as np
from numpy.typing import NDArray

from .config import ElevationConfig, NoiseConfig
from .grid import World
from .noise import NoiseField


def _band_coords(
    world: World,
    x_begin: int,
    x_end: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Normalised coordinates of a column band."""
    xs = np.arange(x_begin, x_end, dtype=np.float64) / world.width
    ys = np.arange(world.height, dtype=np.float64) / world.height
    return xs, ys


def _octaves(
    noise: NoiseField,
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    config: NoiseConfig,
) -> NDArray[np.float32]:
    return noise.fbm(
        xs,
        ys,
        config.frequency,
        octaves=config.octaves,
        lacunarity=config.lacunarity,
        gain=config.gain,
        scale=config.scale,
    )


def edge_bias(
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    config: ElevationConfig,
) -> NDArray[np.float32]:
    """Landmass-shaping bias over normalised coordinates.

    Distance from the map centre is normalised so the corners sit at 1;
    the bias is ``edge_offset * distance ** falloff_exponent`` plus a linear
    term that is ``y_bias`` on the top row and zero on the bottom.

    Args:
        xs: Normalised x coordinates.
        ys: Normalised y coordinates.
        config: Elevation parameters.

    Returns:
        Bias array of shape (len(ys), len(xs)).
    """
    xx, yy = np.meshgrid(xs, ys)
    dist = np.sqrt((xx - 0.5) ** 2 + (yy - 0.5) ** 2) / np.sqrt(0.5)
    bias = config.edge_offset * dist**config.falloff_exponent
    bias += config.y_bias * (1.0 - yy)
    return bias.astype(np.float32)


def fill_elevation(
    world: World,
    x_begin: int,
    x_end: int,
    noise: NoiseField,
    config: ElevationConfig,
) -> None:
    """Fill the elevation of a column band."""
    xs, ys = _band_coords(world, x_begin, x_end)
    elevation = _octaves(noise, xs, ys, config.noise) + edge_bias(xs, ys, config)
    world.elevation[:, x_begin:x_end] = elevation


def fill_moisture(
    world: World,
    x_begin: int,
    x_end: int,
    noise: NoiseField,
    config: NoiseConfig,
) -> None:
    """Fill the moisture of a column band."""
    xs, ys = _band_coords(world, x_begin, x_end)
    world.moisture[:, x_begin:x_end] = _octaves(noise, xs, ys, config)


def fill_soil_depth(
    world: World,
    x_begin: int,
    x_end: int,
    noise: NoiseField,
    config: NoiseConfig,
) -> None:
    """Fill soil depth of a column band.

    Soil thins with altitude: the band's elevation is subtracted from the
    noise, so elevation must be complete before this runs.
    """
    xs, ys = _band_coords(world, x_begin, x_end)
    soil = _octaves(noise, xs, ys, config)
    world.soil_depth[:, x_begin:x_end] = soil - world.elevation[:, x_begin:x_end]


def fill_density(
    world: World,
    field: str,
    x_begin: int,
    x_end: int,
    noise: NoiseField,
    config: NoiseConfig,
) -> None:
    """Fill a tree, rock or plant density band.

    Args:
        world: World to write into.
        field: "tree", "rock" or "plant".
        x_begin: First column of the band.
        x_end: One past the last column.
        noise: Noise for this field's seed.
        config: Noise parameters.
    """
    if field not in ("tree", "rock", "plant"):
        raise ValueError(f"Unknown density field: {field}")
    xs, ys = _band_coords(world, x_begin, x_end)
    getattr(world, field)[:, x_begin:x_end] = _octaves(noise, xs, ys, config)
