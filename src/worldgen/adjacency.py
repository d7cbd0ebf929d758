"""Neighbour graph: cardinal adjacency, flow direction and cliff shadows.

The graph is stored as index tables on the ``World`` (arena + index), built
in a single pass over the whole grid before hydrology runs.
"""

import numpy as np
from numpy.typing import NDArray

from .config import BiomeThresholds
from .grid import NO_CELL, World
from .types import CARDINAL_OFFSETS, Feature


def shift(arr: NDArray, dx: int, dy: int, fill) -> NDArray:
    """Array whose [y, x] holds ``arr[y + dy, x + dx]``, or ``fill`` off-grid."""
    height, width = arr.shape
    out = np.full_like(arr, fill)
    dst_y = slice(max(0, -dy), height - max(0, dy))
    src_y = slice(max(0, dy), height - max(0, -dy))
    dst_x = slice(max(0, -dx), width - max(0, dx))
    src_x = slice(max(0, dx), width - max(0, -dx))
    out[dst_y, dst_x] = arr[src_y, src_x]
    return out


def find_neighbours(
    world: World,
    thresholds: BiomeThresholds,
    exclude_features: bool = False,
) -> None:
    """Build neighbour, successor and predecessor tables.

    Ocean cells take no part in the graph. A neighbour is skipped if it is
    ocean, already river, or (when ``exclude_features``) holds a tree or
    rock. Retained neighbours that are strictly lower become successors and
    strictly higher ones predecessors. Cells with no predecessors are peaks;
    remaining cells with no successors are lakes.

    Args:
        world: World with elevation (and any rivers/features) in place.
        thresholds: Supplies the water level.
        exclude_features: Also skip tree and rock neighbours.
    """
    if world.has_adjacency:
        raise ValueError("Adjacency has already been built for this world")

    height, width = world.height, world.width
    elevation = world.elevation.astype(np.float64)
    cell_ids = np.arange(world.size, dtype=np.int32).reshape(height, width)

    usable = (world.elevation >= thresholds.water_level) & ~world.is_river
    if exclude_features:
        blocked = (world.features & np.uint32(Feature.TREE | Feature.ROCK)) != 0
        neighbour_ok = usable & ~blocked
    else:
        neighbour_ok = usable

    flat_ok = usable.ravel()
    total_gradient = np.zeros(world.size, dtype=np.float64)

    for dx, dy in CARDINAL_OFFSETS:
        other = shift(cell_ids, dx, dy, NO_CELL).ravel()
        other_ok = shift(neighbour_ok, dx, dy, False).ravel()
        delta = (elevation - shift(elevation, dx, dy, 0.0)).ravel()

        linked = flat_ok & other_ok
        cells = np.nonzero(linked)[0]
        _append(world.neighbours, world.num_neighbours, cells, other[cells])

        lower = cells[delta[cells] > 0]
        _append(world.successors, world.num_successors, lower, other[lower])
        total_gradient[lower] += delta[lower]

        higher = cells[delta[cells] < 0]
        _append(world.predecessors, world.num_predecessors, higher, other[higher])

    world.total_gradient[:, :] = total_gradient.reshape(height, width)

    peaks = flat_ok & (world.num_predecessors == 0)
    lakes = flat_ok & ~peaks & (world.num_successors == 0)
    world.peaks = np.nonzero(peaks)[0].tolist()
    world.lakes = np.nonzero(lakes)[0].tolist()
    world.is_peak[:, :] = peaks.reshape(height, width)
    world.is_lake[:, :] = lakes.reshape(height, width)
    world.has_adjacency = True


def _append(
    table: NDArray[np.int32],
    counts: NDArray[np.uint8],
    cells: NDArray[np.intp],
    others: NDArray[np.int32],
) -> None:
    """Append one entry per cell; each cell appears at most once in ``cells``."""
    table[cells, counts[cells]] = others
    counts[cells] += 1


def add_cliff_shadows(world: World, x_begin: int, x_end: int) -> None:
    """Mark shadow hints cast by higher terraces onto a column band.

    - LEFT/RIGHT_SHADOW: the west/east neighbour is on a higher terrace.
    - HORIZONTAL_SHADOW: the cell sits at the foot of a wall, i.e. its
      northern neighbour is on its terrace and the cell beyond is higher.
    - BOTTOM_LEFT/BOTTOM_RIGHT_SHADOW: only the north-west/north-east
      diagonal is higher (outer corner of a cliff).
    """
    terrace = world.terrace.astype(np.int16)
    north = shift(terrace, 0, -1, 0)
    north2 = shift(terrace, 0, -2, 0)
    east = shift(terrace, 1, 0, 0)
    west = shift(terrace, -1, 0, 0)
    north_east = shift(terrace, 1, -1, 0)
    north_west = shift(terrace, -1, -1, 0)

    rules = [
        (Feature.RIGHT_SHADOW, east > terrace),
        (Feature.LEFT_SHADOW, west > terrace),
        (Feature.HORIZONTAL_SHADOW, (north == terrace) & (north2 > north)),
        (
            Feature.BOTTOM_LEFT_SHADOW,
            (north_west > terrace) & (west <= terrace) & (north <= terrace),
        ),
        (
            Feature.BOTTOM_RIGHT_SHADOW,
            (north_east > terrace) & (east <= terrace) & (north <= terrace),
        ),
    ]

    band = slice(x_begin, x_end)
    features = world.features[:, band]
    for feature, mask in rules:
        features[mask[:, band]] |= np.uint32(feature)
