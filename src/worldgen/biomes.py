"""Biome classification from elevation, moisture and soil depth."""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import BiomeThresholds
from .grid import World
from .types import Biome

_DEFAULT_THRESHOLDS = BiomeThresholds()


def _by_moisture(
    m: NDArray[np.floating],
    t: BiomeThresholds,
    wet: Biome,
    moist: Biome,
    dry: Biome,
) -> NDArray[np.uint8]:
    return np.where(m > t.wet, wet, np.where(m > t.moist, moist, dry)).astype(np.uint8)


def _soil_rows(
    m: NDArray[np.floating],
    s: NDArray[np.floating],
    t: BiomeThresholds,
    thick: tuple[Biome, Biome, Biome],
    shallow: tuple[Biome, Biome, Biome],
    thin: tuple[Biome, Biome, Biome],
) -> NDArray[np.uint8]:
    return np.where(
        s > t.thick_soil,
        _by_moisture(m, t, *thick),
        np.where(s > t.shallow_soil, _by_moisture(m, t, *shallow), _by_moisture(m, t, *thin)),
    ).astype(np.uint8)


def classify_biomes(
    height: ArrayLike,
    moisture: ArrayLike,
    soil_depth: ArrayLike | None = None,
    thresholds: BiomeThresholds = _DEFAULT_THRESHOLDS,
) -> NDArray[np.uint8]:
    """Classify arrays of cells into biomes.

    Ocean and beach are decided by elevation alone. With soil depth, cells
    below ``no_soil`` are bare rock, then each elevation band picks a row by
    soil depth and a column by moisture. Without soil depth every cell is
    treated as having moderate (shallow-band) soil.

    Args:
        height: Elevation values.
        moisture: Moisture values, same shape.
        soil_depth: Optional soil depth values, same shape.
        thresholds: Classification thresholds.

    Returns:
        Biome values as uint8, same shape as the inputs.
    """
    t = thresholds
    h = np.asarray(height)
    m = np.asarray(moisture)
    if soil_depth is None:
        s = np.full(h.shape, (t.thick_soil + t.shallow_soil) / 2.0, dtype=h.dtype)
    else:
        s = np.asarray(soil_depth)

    highlands = _soil_rows(
        m,
        s,
        t,
        (Biome.MOORLAND, Biome.SHRUBLAND, Biome.GRASSLAND),
        (Biome.WOODLAND, Biome.SHRUBLAND, Biome.GRASSLAND),
        (Biome.GRASSLAND, Biome.GRASSLAND, Biome.GRASSLAND),
    )
    midlands = _soil_rows(
        m,
        s,
        t,
        (Biome.FOREST, Biome.WOODLAND, Biome.SHRUBLAND),
        (Biome.WOODLAND, Biome.SHRUBLAND, Biome.GRASSLAND),
        (Biome.SHRUBLAND, Biome.GRASSLAND, Biome.GRASSLAND),
    )
    lowlands = _soil_rows(
        m,
        s,
        t,
        (Biome.FENLAND, Biome.FOREST, Biome.WOODLAND),
        (Biome.WOODLAND, Biome.SHRUBLAND, Biome.HEATHLAND),
        (Biome.SHRUBLAND, Biome.GRASSLAND, Biome.HEATHLAND),
    )
    rock = np.where(m < t.dry, Biome.DRY_ROCK, Biome.MOIST_ROCK)

    conditions = [h < t.water_level, h < t.beach_level]
    choices = [np.uint8(Biome.OCEAN), np.uint8(Biome.BEACH)]
    if soil_depth is not None:
        conditions.append(s < t.no_soil)
        choices.append(rock)
    conditions += [h >= t.highlands, h >= t.midlands]
    choices += [highlands, midlands]

    return np.select(conditions, choices, default=lowlands).astype(np.uint8)


def classify_biome(
    height: float,
    moisture: float,
    soil_depth: float | None = None,
    thresholds: BiomeThresholds = _DEFAULT_THRESHOLDS,
) -> Biome:
    """Classify a single cell."""
    soil = None if soil_depth is None else np.float64(soil_depth)
    value = classify_biomes(np.float64(height), np.float64(moisture), soil, thresholds)
    return Biome(int(value))


def assign_biomes(
    world: World,
    x_begin: int,
    x_end: int,
    thresholds: BiomeThresholds,
    use_soil: bool = True,
) -> None:
    """Classify a column band and mark its wall cells.

    A wall is a cell whose northern neighbour sits on a higher terrace.
    Terraces must be complete before this runs.
    """
    band = slice(x_begin, x_end)
    soil = world.soil_depth[:, band] if use_soil else None
    world.biome[:, band] = classify_biomes(
        world.elevation[:, band], world.moisture[:, band], soil, thresholds
    )

    terrace = world.terrace[:, band]
    world.is_wall[0, band] = False
    world.is_wall[1:, band] = terrace[:-1] > terrace[1:]
