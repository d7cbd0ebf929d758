"""Biome, feature and direction types shared across the generator."""

from enum import Enum, IntEnum, IntFlag


class Biome(IntEnum):
    """Biome classification, stored as uint8 in the biome array."""

    OCEAN = 0
    RIVER = 1
    BEACH = 2
    DRY_ROCK = 3
    MOIST_ROCK = 4
    HEATHLAND = 5
    SHRUBLAND = 6
    GRASSLAND = 7
    MOORLAND = 8
    FENLAND = 9
    WOODLAND = 10
    FOREST = 11

    @property
    def is_water(self) -> bool:
        """Whether this biome is open water."""
        return self in _WATER_BIOMES


NUM_BIOMES = len(Biome)

_WATER_BIOMES = frozenset({Biome.OCEAN, Biome.RIVER})


class Feature(IntFlag):
    """Per-cell feature bits, stored in the features array."""

    EMPTY = 0
    TREE = 1
    ROCK = 1 << 1
    PLANT = 1 << 2

    RIGHT_SHADOW = 1 << 3
    HORIZONTAL_SHADOW = 1 << 4
    LEFT_SHADOW = 1 << 5
    BOTTOM_LEFT_SHADOW = 1 << 6
    BOTTOM_RIGHT_SHADOW = 1 << 7
    LEFT_WATER_SHADOW = 1 << 8
    RIGHT_WATER_SHADOW = 1 << 9

    GROUND = 1 << 10
    RIVER_BANK = 1 << 11
    PATH = 1 << 12


# Placed objects; at most one per cell.
PLACED_FEATURES = Feature.TREE | Feature.ROCK | Feature.PLANT


class RiverBank(IntEnum):
    """Which side(s) of a water cell face land."""

    TOP_LEFT = 0
    TOP = 1
    TOP_RIGHT = 2
    LEFT = 3
    RIGHT = 4
    BOTTOM_LEFT = 5
    BOTTOM = 6
    BOTTOM_RIGHT = 7


class Direction(str, Enum):
    """Compass headings, clockwise from north. North is -y."""

    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"
    NW = "nw"

    @property
    def dx(self) -> int:
        return _OFFSETS[self][0]

    @property
    def dy(self) -> int:
        return _OFFSETS[self][1]

    def rotate(self, steps: int) -> "Direction":
        """Return the heading ``steps`` compass points clockwise."""
        order = list(Direction)
        return order[(order.index(self) + steps) % len(order)]


_OFFSETS: dict[Direction, tuple[int, int]] = {
    Direction.N: (0, -1),
    Direction.NE: (1, -1),
    Direction.E: (1, 0),
    Direction.SE: (1, 1),
    Direction.S: (0, 1),
    Direction.SW: (-1, 1),
    Direction.W: (-1, 0),
    Direction.NW: (-1, -1),
}

# Cardinal neighbour offsets in scan order: N, E, S, W.
CARDINAL_OFFSETS: tuple[tuple[int, int], ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))
