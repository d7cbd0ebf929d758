"""Procedural world generation package.

This package generates large terraced worlds from seeded noise fields,
including elevation, moisture, biomes, hydrology (rivers and banks),
cliff walls, tree/rock/plant placement, and weighted paths.
"""

from .config import TerrainConfig
from .generator import column_bands, generate_world
from .grid import Location, World
from .pathfinding import Path, PathGraph, generate_path
from .types import Biome, Direction, Feature, RiverBank
from .validation import ValidationResult, validate_world

__all__ = [
    "Biome",
    "Direction",
    "Feature",
    "Location",
    "Path",
    "PathGraph",
    "RiverBank",
    "TerrainConfig",
    "ValidationResult",
    "World",
    "column_bands",
    "generate_path",
    "generate_world",
    "validate_world",
]
