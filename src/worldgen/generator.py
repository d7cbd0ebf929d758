"""Main world generation orchestration.

Stages run in a fixed order. Parallel stages split the map into column
bands, one per worker, and every band of a stage finishes before the next
stage starts. Hydrology and cloud advection run on a single thread.
"""

import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from functools import partial
from typing import Any

import numpy as np
import structlog

from .adjacency import add_cliff_shadows, find_neighbours
from .biomes import assign_biomes
from .clouds import advect_moisture
from .config import TerrainConfig
from .diffusion import add_ground_features
from .fields import fill_density, fill_elevation, fill_moisture, fill_soil_depth
from .grid import World
from .hydrology import add_river_banks, add_rivers
from .noise import noise_field
from .pathfinding import generate_path
from .regions import analyse_regions
from .terrace import classify_terraces
from .types import Biome, Feature

logger = structlog.get_logger()

Band = tuple[int, int]


def column_bands(width: int, workers: int) -> list[Band]:
    """Split ``[0, width)`` into at most ``workers`` contiguous bands.

    Args:
        width: Number of columns.
        workers: Number of parallel workers.

    Returns:
        List of (x_begin, x_end) pairs covering every column once.
    """
    if width <= 0 or workers <= 0:
        raise ValueError(f"width and workers must be positive, got {width} and {workers}")
    step = -(-width // workers)
    return [(x, min(x + step, width)) for x in range(0, width, step)]


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Log the start and wall time of a generation stage."""
    logger.info("stage_started", stage=name)
    start = time.perf_counter()
    yield
    logger.info("stage_completed", stage=name, seconds=round(time.perf_counter() - start, 3))


def _run_phase(
    executor: ThreadPoolExecutor,
    bands: list[Band],
    *tasks: Callable[[int, int], Any],
) -> list[Any]:
    """Run every task over every band and wait for all of them.

    Exceptions raised by a task propagate from here.
    """
    futures = [
        executor.submit(task, x_begin, x_end) for task in tasks for x_begin, x_end in bands
    ]
    return [future.result() for future in futures]


def generate_world(
    config: TerrainConfig,
    path: tuple[tuple[int, int], tuple[int, int]] | None = None,
) -> World:
    """Generate a complete world from configuration.

    Args:
        config: World generation configuration.
        path: Optional (start, goal) cells to join with a path.

    Returns:
        The generated world.
    """
    width, height = config.width, config.height
    thresholds = config.thresholds
    world = World(width, height, config.regions.region_size)
    bands = column_bands(width, config.workers)

    logger.info(
        "generation_started",
        width=width,
        height=height,
        seed=config.seed,
        workers=config.workers,
        moisture_model=config.moisture.model,
        flow_strategy=config.hydrology.strategy,
    )
    start = time.perf_counter()

    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        # Stage A: Elevation
        with _stage("elevation"):
            _run_phase(
                executor,
                bands,
                partial(
                    fill_elevation,
                    world,
                    noise=noise_field(config.field_seed("elevation")),
                    config=config.elevation,
                ),
            )

        # Stage B: Fields that depend only on elevation
        with _stage("fields"):
            tasks = [partial(classify_terraces, world, thresholds=thresholds)]
            if config.moisture.model == "noise":
                tasks.append(
                    partial(
                        fill_moisture,
                        world,
                        noise=noise_field(config.field_seed("moisture")),
                        config=config.moisture.noise,
                    )
                )
            if config.soil.enabled:
                tasks.append(
                    partial(
                        fill_soil_depth,
                        world,
                        noise=noise_field(config.field_seed("soil")),
                        config=config.soil.noise,
                    )
                )
            for field in ("tree", "rock", "plant"):
                tasks.append(
                    partial(
                        fill_density,
                        world,
                        field,
                        noise=noise_field(config.field_seed(field)),
                        config=getattr(config.density, field),
                    )
                )
            _run_phase(executor, bands, *tasks)

        if config.moisture.model == "clouds":
            with _stage("clouds"):
                advect_moisture(world, config.moisture.clouds, thresholds)

        # Stage C: Neighbour graph over the whole grid, then shadow hints
        with _stage("adjacency"):
            find_neighbours(world, thresholds, config.exclude_feature_neighbours)
            _run_phase(executor, bands, partial(add_cliff_shadows, world))

        # Stage D: Biomes and walls
        with _stage("biomes"):
            _run_phase(
                executor,
                bands,
                partial(
                    assign_biomes,
                    world,
                    thresholds=thresholds,
                    use_soil=config.soil.enabled,
                ),
            )

        # Stage E: Hydrology
        with _stage("rivers"):
            add_rivers(world, config.hydrology, thresholds)

        with _stage("river_banks"):
            _run_phase(executor, bands, partial(add_river_banks, world, thresholds=thresholds))

        # Stage F: Ground blending and feature placement
        with _stage("ground"):
            _run_phase(executor, bands, partial(add_ground_features, world))

        with _stage("regions"):
            placed = _run_phase(
                executor, bands, partial(analyse_regions, world, config=config.regions)
            )

    totals = {feature.name.lower(): sum(p[feature] for p in placed) for feature in placed[0]}
    logger.info("features_placed", **totals)

    if path is not None:
        with _stage("path"):
            generate_path(world, path[0], path[1], config.paths)

    _log_world_stats(world)
    logger.info("generation_completed", seconds=round(time.perf_counter() - start, 3))
    return world


def _log_world_stats(world: World) -> None:
    """Log biome distribution and feature counts."""
    total = world.size
    counts = np.bincount(world.biome.ravel(), minlength=len(Biome))
    biomes = {
        biome.name.lower(): f"{counts[biome] / total:.1%}" for biome in Biome if counts[biome]
    }

    logger.info(
        "world_stats",
        cells=total,
        rivers=int(np.count_nonzero(world.is_river)),
        walls=int(np.count_nonzero(world.is_wall)),
        ground=int(np.count_nonzero(world.features & np.uint32(Feature.GROUND))),
        peaks=len(world.peaks),
        lakes=len(world.lakes),
        **biomes,
    )
