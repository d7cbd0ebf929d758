"""Hydrology: flow accumulation, river promotion and river banks.

Two flow strategies are supported:

- greedy: cells are visited in descending elevation order and pass all of
  their water to the lowest valid successor. This is the default.
- proportional: cells are visited in topological order from the peaks and
  split their water between successors in proportion to the height drop.

Either way a land cell whose flow exceeds the saturation threshold becomes
river, together with a 3x3 block around it, so no river is narrower than
three cells.
"""

from collections import deque

import numpy as np
import structlog

from .adjacency import shift
from .config import BiomeThresholds, HydrologyConfig
from .grid import NO_CELL, World
from .terrace import OCEAN_TERRACE
from .types import Biome, Feature, RiverBank

logger = structlog.get_logger()


def ocean_mask(world: World, thresholds: BiomeThresholds) -> np.ndarray:
    """Cells below the water level."""
    return world.elevation < thresholds.water_level


def add_rivers(
    world: World,
    config: HydrologyConfig,
    thresholds: BiomeThresholds,
) -> int:
    """Accumulate flow over the neighbour graph and promote rivers.

    Must run single-threaded after adjacency and biomes are complete.

    Args:
        world: World with adjacency built.
        config: Hydrology parameters.
        thresholds: Supplies the water level.

    Returns:
        Number of river cells.
    """
    if not world.has_adjacency:
        raise ValueError("find_neighbours must run before add_rivers")

    ocean = ocean_mask(world, thresholds).ravel()
    own = np.maximum(world.moisture.ravel().astype(np.float64) + config.rainfall, 0.0)
    own[ocean] = 0.0

    if config.strategy == "greedy":
        _greedy_flow(world, own, ocean, config.saturation)
    else:
        accumulate_flow(world, own, ocean, config)

    river_cells = int(np.count_nonzero(world.is_river))
    logger.info(
        "rivers_added",
        strategy=config.strategy,
        river_cells=river_cells,
        peaks=len(world.peaks),
        lakes=len(world.lakes),
    )
    return river_cells


def _greedy_flow(
    world: World,
    own: np.ndarray,
    ocean: np.ndarray,
    saturation: float,
) -> None:
    """Height-sorted greedy flow to the lowest valid successor."""
    elevation = world.elevation.ravel()
    order = np.argsort(-elevation.astype(np.float64), kind="stable")
    water = np.zeros(world.size, dtype=np.float64)
    # Heading of the first transfer into each cell, used to orient sinks
    heading: dict[int, tuple[int, int]] = {}
    ranked = ranked_successors(world).tolist()

    for i in order.tolist():
        if ocean[i]:
            continue
        flow = water[i] + own[i]
        water[i] = flow

        successors = ranked[i]
        if flow > saturation:
            lowest = successors[0]
            direction = _heading(world, i, lowest) if lowest != NO_CELL else heading.get(i)
            add_water(world, i, direction)

        target = next(
            (s for s in successors if s != NO_CELL and valid_successor(world, i, s)), NO_CELL
        )
        if target == NO_CELL:
            # Terminal basin: the water stays here
            continue
        water[target] += flow
        heading.setdefault(target, _heading(world, i, target))

    world.water[:, :] = water.reshape(world.height, world.width)


def ranked_successors(world: World) -> np.ndarray:
    """Successor table with each row ordered from lowest to highest.

    Ties keep table order. Unused slots stay ``NO_CELL`` at the end of
    each row.
    """
    table = world.successors
    heights = np.where(table == NO_CELL, np.inf, world.elevation.ravel()[table])
    order = np.argsort(heights, axis=1, kind="stable")
    return np.take_along_axis(table, order, axis=1)


def accumulate_flow(
    world: World,
    own: np.ndarray,
    ocean: np.ndarray,
    config: HydrologyConfig,
) -> None:
    """Topological flow split by gradient share.

    Visits a cell only after every predecessor has passed on its water,
    starting from the peaks.
    """
    elevation = world.elevation.ravel().astype(np.float64)
    total_gradient = world.total_gradient.ravel()
    water = own.copy()
    water[world.peaks] += config.source_water

    pending = world.num_predecessors.astype(np.int32)
    queue: deque[int] = deque(world.peaks)

    while queue:
        i = queue.popleft()
        successors = world.successors_of(i)

        if water[i] > config.saturation and not ocean[i]:
            lowest = min(successors, key=lambda s: elevation[s]) if successors else None
            add_water(world, i, _heading(world, i, lowest) if lowest is not None else None)

        for s in successors:
            share = (elevation[i] - elevation[s]) / total_gradient[i]
            water[s] += share * water[i]
            pending[s] -= 1
            if pending[s] == 0:
                queue.append(s)

    world.water[:, :] = water.reshape(world.height, world.width)


def _heading(world: World, source: int, target: int) -> tuple[int, int]:
    sx, sy = world.coords(source)
    tx, ty = world.coords(target)
    return tx - sx, ty - sy


def valid_successor(world: World, current: int, successor: int) -> bool:
    """Whether water may flow from ``current`` into ``successor``.

    Flow within a terrace is always valid. Across a terrace step, both
    cells flanking ``current`` across the flow (the diagonal neighbours of
    the successor) must be off-grid, on the successor's terrace, or river or
    next to a river. A trickle can therefore only drop a terrace once it is
    already a full-width river.
    """
    cx, cy = world.coords(current)
    sx, sy = world.coords(successor)
    target_terrace = world.terrace[sy, sx]
    if world.terrace[cy, cx] == target_terrace:
        return True

    dx, dy = sx - cx, sy - cy
    for sign in (1, -1):
        px, py = cx + sign * dy, cy + sign * dx
        if not world.in_bounds(px, py):
            continue
        if world.terrace[py, px] == target_terrace:
            continue
        if not _river_adjacent(world, px, py):
            return False
    return True


def _river_adjacent(world: World, x: int, y: int) -> bool:
    if world.is_river[y, x]:
        return True
    for nx, ny in ((x, y - 1), (x + 1, y), (x, y + 1), (x - 1, y)):
        if world.in_bounds(nx, ny) and world.is_river[ny, nx]:
            return True
    return False


def add_water(
    world: World,
    index: int,
    direction: tuple[int, int] | None = None,
) -> int:
    """Promote a cell and a 3x3 block around it to river.

    The block contains the cell and extends downstream along ``direction``
    (centred across the flow), or is centred on the cell when there is no
    direction. Off-grid and ocean cells in the block are left alone.

    Args:
        world: World to mark.
        index: Flat index of the saturated cell.
        direction: Unit cardinal step of the flow, if any.

    Returns:
        Number of cells newly marked as river.
    """
    x, y = world.coords(index)
    if direction is None or direction == (0, 0):
        xs = range(x - 1, x + 2)
        ys = range(y - 1, y + 2)
    else:
        dx, dy = direction
        if dx != 0:
            xs = range(x, x + 3 * dx, dx)
            ys = range(y - 1, y + 2)
        else:
            xs = range(x - 1, x + 2)
            ys = range(y, y + 3 * dy, dy)

    marked = 0
    for by in ys:
        for bx in xs:
            if not world.in_bounds(bx, by) or world.is_river[by, bx]:
                continue
            if world.terrace[by, bx] == OCEAN_TERRACE:
                continue
            world.is_river[by, bx] = True
            world.biome[by, bx] = Biome.RIVER
            marked += 1
    return marked


def add_river_banks(
    world: World,
    x_begin: int,
    x_end: int,
    thresholds: BiomeThresholds,
) -> None:
    """Classify the water cells of a column band that border land.

    A water (river or ocean) cell with land to the north, east, south or
    west becomes a bank. Corner codes take priority over single sides.
    River cells flanked by a higher land terrace to the west or east also
    get water-shadow hints. Rivers must be final before this runs.
    """
    water = world.is_river | ocean_mask(world, thresholds)
    land = ~water
    north = shift(land, 0, -1, False)
    east = shift(land, 1, 0, False)
    south = shift(land, 0, 1, False)
    west = shift(land, -1, 0, False)

    codes = np.select(
        [
            north & west,
            north & east,
            south & west,
            south & east,
            north,
            south,
            west,
            east,
        ],
        [
            RiverBank.TOP_LEFT,
            RiverBank.TOP_RIGHT,
            RiverBank.BOTTOM_LEFT,
            RiverBank.BOTTOM_RIGHT,
            RiverBank.TOP,
            RiverBank.BOTTOM,
            RiverBank.LEFT,
            RiverBank.RIGHT,
        ],
        default=-1,
    )
    bank = water & (codes >= 0)

    terrace = world.terrace.astype(np.int16)
    higher_west = west & (shift(terrace, -1, 0, 0) > terrace)
    higher_east = east & (shift(terrace, 1, 0, 0) > terrace)

    band = slice(x_begin, x_end)
    bank_band = bank[:, band]
    world.is_river_bank[:, band] = bank_band
    world.river_bank[:, band] = np.where(bank_band, codes[:, band], 0).astype(np.uint8)

    features = world.features[:, band]
    features[bank_band] |= np.uint32(Feature.RIVER_BANK)
    river = world.is_river[:, band]
    features[river & higher_west[:, band]] |= np.uint32(Feature.LEFT_WATER_SHADOW)
    features[river & higher_east[:, band]] |= np.uint32(Feature.RIGHT_WATER_SHADOW)
