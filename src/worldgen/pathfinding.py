"""Weighted path graph over a finished world and shortest-path search.

The graph is an overlay rebuilt for each query: one node per cell, with up
to four directed edges per node stored as index tables like the world's
adjacency tables.

Edges:
- Rivers, banks, ocean and cells holding a tree or rock are obstacles
  with no edges in or out.
- A wall cell (cliff face) has a single edge, north onto the higher
  terrace, so a cliff can be climbed but not descended.
- Other cells link to cardinal neighbours on the same terrace, and may
  always step north. They enter a wall cell only where the wall run is at
  least three cells wide.
"""

import heapq
from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray

from .adjacency import shift
from .config import PathConfig
from .grid import NO_CELL, World
from .types import CARDINAL_OFFSETS, Biome, Feature

logger = structlog.get_logger()


@dataclass
class Path:
    """A route between two cells."""

    cells: list[tuple[int, int]]
    cost: float

    def __len__(self) -> int:
        return len(self.cells)


def walkable_mask(world: World) -> NDArray[np.bool_]:
    """Cells that can be part of a path."""
    obstacle = (world.features & np.uint32(Feature.TREE | Feature.ROCK)) != 0
    return ~(
        world.is_river
        | world.is_river_bank
        | (world.biome == Biome.OCEAN)
        | obstacle
    )


class PathGraph:
    """Directed, weighted cell graph."""

    def __init__(self, world: World):
        self.world = world
        self.edges = np.full((world.size, 4), NO_CELL, dtype=np.int32)
        self.costs = np.zeros((world.size, 4), dtype=np.float64)
        self.num_edges = np.zeros(world.size, dtype=np.uint8)

    @classmethod
    def from_world(cls, world: World, config: PathConfig | None = None) -> "PathGraph":
        """Build the graph for the current state of ``world``.

        Edge cost is ``1 + height_weight * |dh|``, plus ``terrace_penalty``
        when the terraces differ and ``wall_penalty`` when either end is a
        wall cell.
        """
        config = config or PathConfig()
        graph = cls(world)

        cell_ids = np.arange(world.size, dtype=np.int32).reshape(world.height, world.width)
        elevation = world.elevation.astype(np.float64)
        terrace = world.terrace.astype(np.int16)
        walkable = walkable_mask(world)
        wall = world.is_wall & walkable
        breach = wall & shift(wall, -1, 0, False) & shift(wall, 1, 0, False)

        for dx, dy in CARDINAL_OFFSETS:
            other_wall = shift(wall, dx, dy, False)
            other_terrace = shift(terrace, dx, dy, -1)
            same_terrace = other_terrace == terrace

            from_open = ~wall & np.where(
                other_wall, shift(breach, dx, dy, False), same_terrace | (dy == -1)
            )
            from_wall = wall & (dy == -1)
            linked = walkable & shift(walkable, dx, dy, False) & (from_open | from_wall)

            cost = (
                1.0
                + config.height_weight * np.abs(elevation - shift(elevation, dx, dy, 0.0))
                + config.terrace_penalty * ~same_terrace
                + config.wall_penalty * (wall | other_wall)
            )

            cells = np.nonzero(linked.ravel())[0]
            slots = graph.num_edges[cells]
            graph.edges[cells, slots] = shift(cell_ids, dx, dy, NO_CELL).ravel()[cells]
            graph.costs[cells, slots] = cost.ravel()[cells]
            graph.num_edges[cells] += 1

        return graph

    def edges_of(self, index: int) -> list[tuple[int, float]]:
        """(target, cost) pairs leaving a node."""
        count = self.num_edges[index]
        targets = self.edges[index, :count].tolist()
        return list(zip(targets, self.costs[index, :count].tolist()))

    def shortest_path(self, start: tuple[int, int], goal: tuple[int, int]) -> Path | None:
        """Uniform-cost search from ``start`` to ``goal``.

        Args:
            start: (x, y) of the first cell.
            goal: (x, y) of the last cell.

        Returns:
            The cheapest path, or None if the goal is unreachable.

        Raises:
            IndexError: If either end lies outside the world.
        """
        world = self.world
        source = world.index(*start)
        target = world.index(*goal)

        best = np.full(world.size, np.inf, dtype=np.float64)
        previous = np.full(world.size, NO_CELL, dtype=np.int64)
        best[source] = 0.0
        frontier: list[tuple[float, int]] = [(0.0, source)]

        while frontier:
            cost, current = heapq.heappop(frontier)
            if current == target:
                return Path(self._trace(previous, source, target), cost)
            if cost > best[current]:
                continue
            for neighbour, step in self.edges_of(current):
                candidate = cost + step
                if candidate < best[neighbour]:
                    best[neighbour] = candidate
                    previous[neighbour] = current
                    heapq.heappush(frontier, (candidate, neighbour))

        return None

    def _trace(
        self, previous: NDArray[np.int64], source: int, target: int
    ) -> list[tuple[int, int]]:
        cells = [target]
        while cells[-1] != source:
            cells.append(int(previous[cells[-1]]))
        cells.reverse()
        return [self.world.coords(i) for i in cells]


def generate_path(
    world: World,
    start: tuple[int, int],
    goal: tuple[int, int],
    config: PathConfig | None = None,
) -> Path | None:
    """Find a path and mark its cells with ``Feature.PATH``.

    An unreachable goal is not an error: nothing is marked and None is
    returned.
    """
    path = PathGraph.from_world(world, config).shortest_path(start, goal)
    if path is None:
        logger.warning("path_not_found", start=start, goal=goal)
        return None

    for x, y in path.cells:
        world.add_feature(x, y, Feature.PATH)
    logger.info(
        "path_generated", start=start, goal=goal, cells=len(path), cost=round(path.cost, 3)
    )
    return path
