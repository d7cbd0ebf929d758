"""Cloud advection: moisture carried across the map by wind.

An alternative to the noise moisture field. Clouds spawn on the upwind
edges, drift one cell per step in a fixed heading and rain onto land.
"""

from dataclasses import dataclass

import structlog

from .config import BiomeThresholds, CloudConfig
from .grid import World
from .types import Direction

logger = structlog.get_logger()


@dataclass
class Cloud:
    """A moisture-carrying agent."""

    moisture: float
    direction: Direction
    x: int
    y: int
    can_split: bool = True

    def update(self, world: World, config: CloudConfig, water_level: float) -> bool:
        """Advance the cloud by one cell.

        Over water the cloud drifts without raining. Over land it rains
        ``config.rain`` scaled by the ratio of the next cell's height to the
        current one. Unlike a plain height ratio, both heights are measured
        above the water level, and a cell leaving the shore uses a ratio of
        1. Rising onto a higher terrace splits the cloud once: two children
        heading one compass point either side take a third of the moisture
        each, and the parent rains twice as hard with the remaining third.

        Returns:
            True when the cloud has terminated (dried up or left the map)
            and must be dropped from the queue.
        """
        if self.moisture <= 0:
            return True

        nx, ny = self.x + self.direction.dx, self.y + self.direction.dy
        if not world.in_bounds(nx, ny):
            return True

        next_height = float(world.elevation[ny, nx])
        if next_height < water_level:
            self.x, self.y = nx, ny
            return False

        current_rise = float(world.elevation[self.y, self.x]) - water_level
        multiplier = (next_height - water_level) / current_rise if current_rise > 0 else 1.0

        if self.can_split and world.terrace[ny, nx] > world.terrace[self.y, self.x]:
            share = self.moisture / 3
            for steps in (1, -1):
                world.clouds.append(
                    Cloud(share, self.direction.rotate(steps), self.x, self.y, can_split=False)
                )
            self.moisture = share
            self.can_split = False
            multiplier *= 2

        rain = config.rain * multiplier
        if self.moisture < rain:
            world.moisture[ny, nx] += self.moisture
            self.moisture = 0.0
        else:
            world.moisture[ny, nx] += rain
            self.moisture -= rain

        self.x, self.y = nx, ny
        return False


def spawn_clouds(world: World, config: CloudConfig) -> int:
    """Queue a cloud on every ``spacing``-th cell of the upwind edges.

    Args:
        world: World whose cloud queue is filled.
        config: Cloud parameters.

    Returns:
        Number of clouds spawned.
    """
    wind = config.wind
    origins: set[tuple[int, int]] = set()

    if wind.dx > 0:
        origins.update((0, y) for y in range(0, world.height, config.spacing))
    elif wind.dx < 0:
        origins.update((world.width - 1, y) for y in range(0, world.height, config.spacing))
    if wind.dy > 0:
        origins.update((x, 0) for x in range(0, world.width, config.spacing))
    elif wind.dy < 0:
        origins.update((x, world.height - 1) for x in range(0, world.width, config.spacing))

    for x, y in sorted(origins, key=lambda p: (p[1], p[0])):
        world.clouds.append(Cloud(config.initial_moisture, wind, x, y))
    return len(origins)


def advect_moisture(
    world: World,
    config: CloudConfig,
    thresholds: BiomeThresholds,
) -> int:
    """Replace the moisture field with rain from drifting clouds.

    Needs elevation and terraces. Runs single-threaded until every cloud
    has terminated.

    Returns:
        Number of cloud updates performed.
    """
    world.moisture[:, :] = config.baseline_moisture
    spawned = spawn_clouds(world, config)

    steps = 0
    while world.clouds:
        cloud = world.clouds.popleft()
        steps += 1
        if not cloud.update(world, config, thresholds.water_level):
            world.clouds.append(cloud)

    logger.info("clouds_advected", wind=config.wind.value, clouds=spawned, steps=steps)
    return steps
