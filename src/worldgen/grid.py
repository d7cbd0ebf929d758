"""World grid: array-backed cell storage and per-cell accessors.

Every per-cell attribute is a numpy array of shape (height, width), indexed
``[y, x]``. Flat index ``y * width + x`` addresses the same cell in the
``.ravel()`` views and in the adjacency tables, which hold indices into the
grid rather than references to cell objects.
"""

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .config import REGION_SIZE
from .types import PLACED_FEATURES, Biome, Feature, RiverBank

if TYPE_CHECKING:
    from .clouds import Cloud

# Padding value in neighbour/successor/predecessor tables.
NO_CELL = -1


class World:
    """Generated world state.

    Created once per run with fixed dimensions and mutated in place by each
    generation stage.
    """

    def __init__(self, width: int, height: int, region_size: int = REGION_SIZE):
        if width <= 0 or height <= 0:
            raise ValueError(f"World dimensions must be positive, got {width}x{height}")
        if region_size <= 0:
            raise ValueError(f"Region size must be positive, got {region_size}")

        self.width = width
        self.height = height
        self.region_size = region_size
        shape = (height, width)

        # Continuous fields
        self.elevation = np.zeros(shape, dtype=np.float32)
        self.moisture = np.zeros(shape, dtype=np.float32)
        self.soil_depth = np.zeros(shape, dtype=np.float32)
        self.tree = np.zeros(shape, dtype=np.float32)
        self.rock = np.zeros(shape, dtype=np.float32)
        self.plant = np.zeros(shape, dtype=np.float32)

        # Derived discrete attributes
        self.biome = np.zeros(shape, dtype=np.uint8)
        self.nearby_biome = np.zeros(shape, dtype=np.uint8)
        self.terrace = np.zeros(shape, dtype=np.uint8)
        self.features = np.zeros(shape, dtype=np.uint32)

        # Hydrology
        self.water = np.zeros(shape, dtype=np.float64)
        self.total_gradient = np.zeros(shape, dtype=np.float64)
        self.is_river = np.zeros(shape, dtype=bool)
        self.is_river_bank = np.zeros(shape, dtype=bool)
        self.river_bank = np.zeros(shape, dtype=np.uint8)
        self.is_wall = np.zeros(shape, dtype=bool)

        # Adjacency, filled once by find_neighbours
        size = width * height
        self.neighbours = np.full((size, 4), NO_CELL, dtype=np.int32)
        self.successors = np.full((size, 4), NO_CELL, dtype=np.int32)
        self.predecessors = np.full((size, 4), NO_CELL, dtype=np.int32)
        self.num_neighbours = np.zeros(size, dtype=np.uint8)
        self.num_successors = np.zeros(size, dtype=np.uint8)
        self.num_predecessors = np.zeros(size, dtype=np.uint8)
        self.peaks: list[int] = []
        self.lakes: list[int] = []
        self.is_peak = np.zeros(shape, dtype=bool)
        self.is_lake = np.zeros(shape, dtype=bool)
        self.has_adjacency = False

        # Coarse per-region dominant biome
        self.regions = np.zeros(
            (-(-height // region_size), -(-width // region_size)), dtype=np.uint8
        )

        # In-flight moisture agents (cloud advection only)
        self.clouds: deque["Cloud"] = deque()

    @property
    def size(self) -> int:
        """Number of cells."""
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        """Flat index of the cell at (x, y)."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} world")
        return y * self.width + x

    def coords(self, index: int) -> tuple[int, int]:
        """(x, y) of a flat index."""
        return index % self.width, index // self.width

    def location(self, x: int, y: int) -> "Location":
        """Read-only view of the cell at (x, y)."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} world")
        return Location(self, x, y)

    # --- Field setters ---

    def set_field(self, name: str, values: NDArray[np.float32]) -> None:
        """Replace a whole continuous field.

        Args:
            name: One of elevation, moisture, soil_depth, tree, rock, plant.
            values: Array of shape (height, width).
        """
        if name not in ("elevation", "moisture", "soil_depth", "tree", "rock", "plant"):
            raise ValueError(f"Unknown field: {name}")
        values = np.asarray(values, dtype=np.float32)
        if values.shape != (self.height, self.width):
            raise ValueError(
                f"{name} shape {values.shape} doesn't match "
                f"world dimensions ({self.height}, {self.width})"
            )
        getattr(self, name)[:, :] = values

    # --- Feature bits ---

    def add_feature(self, x: int, y: int, feature: Feature) -> None:
        self.features[y, x] |= np.uint32(feature)

    def has_feature(self, x: int, y: int, feature: Feature) -> bool:
        """Whether every bit of ``feature`` is set on the cell."""
        return (int(self.features[y, x]) & feature) == feature

    def placed_feature(self, x: int, y: int) -> Feature:
        """The tree/rock/plant bits set on a cell (EMPTY if none)."""
        return Feature(int(self.features[y, x]) & PLACED_FEATURES)

    def set_river_bank(self, x: int, y: int, code: RiverBank) -> None:
        self.is_river_bank[y, x] = True
        self.river_bank[y, x] = code
        self.features[y, x] |= np.uint32(Feature.RIVER_BANK)

    def blocked(self, x: int, y: int) -> bool:
        """Whether the cell cannot be walked on."""
        return bool(
            self.is_river[y, x]
            or self.is_wall[y, x]
            or self.biome[y, x] == Biome.OCEAN
            or self.features[y, x] & (Feature.TREE | Feature.ROCK)
        )

    def region(self, x: int, y: int) -> Biome:
        """Dominant biome of the region containing (x, y)."""
        return Biome(int(self.regions[y // self.region_size, x // self.region_size]))

    # --- Adjacency views ---

    def neighbours_of(self, index: int) -> list[int]:
        return self.neighbours[index, : self.num_neighbours[index]].tolist()

    def successors_of(self, index: int) -> list[int]:
        return self.successors[index, : self.num_successors[index]].tolist()

    def predecessors_of(self, index: int) -> list[int]:
        return self.predecessors[index, : self.num_predecessors[index]].tolist()


@dataclass(frozen=True)
class Location:
    """Read-only view of a single cell."""

    world: World
    x: int
    y: int

    @property
    def index(self) -> int:
        return self.y * self.world.width + self.x

    @property
    def height(self) -> float:
        return float(self.world.elevation[self.y, self.x])

    @property
    def moisture(self) -> float:
        return float(self.world.moisture[self.y, self.x])

    @property
    def soil_depth(self) -> float:
        return float(self.world.soil_depth[self.y, self.x])

    @property
    def biome(self) -> Biome:
        return Biome(int(self.world.biome[self.y, self.x]))

    @property
    def nearby_biome(self) -> Biome:
        return Biome(int(self.world.nearby_biome[self.y, self.x]))

    @property
    def terrace(self) -> int:
        return int(self.world.terrace[self.y, self.x])

    @property
    def features(self) -> Feature:
        return Feature(int(self.world.features[self.y, self.x]))

    def has_feature(self, feature: Feature) -> bool:
        return self.world.has_feature(self.x, self.y, feature)

    @property
    def is_river(self) -> bool:
        return bool(self.world.is_river[self.y, self.x])

    @property
    def is_river_bank(self) -> bool:
        return bool(self.world.is_river_bank[self.y, self.x])

    @property
    def river_bank(self) -> RiverBank | None:
        """Bank orientation, or None if the cell is not a bank."""
        if not self.is_river_bank:
            return None
        return RiverBank(int(self.world.river_bank[self.y, self.x]))

    @property
    def is_wall(self) -> bool:
        return bool(self.world.is_wall[self.y, self.x])

    @property
    def water(self) -> float:
        return float(self.world.water[self.y, self.x])

    @property
    def total_gradient(self) -> float:
        return float(self.world.total_gradient[self.y, self.x])

    @property
    def is_peak(self) -> bool:
        return bool(self.world.is_peak[self.y, self.x])

    @property
    def is_lake(self) -> bool:
        return bool(self.world.is_lake[self.y, self.x])

    def neighbours(self) -> list["Location"]:
        return [_view(self.world, i) for i in self.world.neighbours_of(self.index)]

    def successors(self) -> list["Location"]:
        return [_view(self.world, i) for i in self.world.successors_of(self.index)]

    def predecessors(self) -> list["Location"]:
        return [_view(self.world, i) for i in self.world.predecessors_of(self.index)]


def _view(world: World, index: int) -> Location:
    x, y = world.coords(index)
    return Location(world, x, y)
