"""Post-generation validation of world invariants."""

import numpy as np
import structlog
from scipy import ndimage

from .grid import World
from .terrace import OCEAN_TERRACE
from .types import PLACED_FEATURES

logger = structlog.get_logger()


class ValidationResult:
    """Result of world validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_world(world: World) -> ValidationResult:
    """Validate a generated world against its invariants.

    Args:
        world: Fully generated world.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    # Check 1: Terrace never decreases with elevation
    _check_terrace_monotonic(world, result)

    # Check 2: No water body narrower than three cells
    _check_water_width(world, result)

    # Check 3: At most one of tree/rock/plant per cell
    _check_placed_features(world, result)

    # Check 4: Walls sit below a higher terrace
    _check_walls(world, result)

    # Check 5: Something worth looking at
    _check_land_and_rivers(world, result)

    if result.passed:
        logger.info("validation_passed", warnings=len(result.warnings))
    else:
        logger.warning("validation_failed", errors=result.errors)

    for warning in result.warnings:
        logger.warning("validation_warning", message=warning)

    return result


def _check_terrace_monotonic(world: World, result: ValidationResult) -> None:
    """Check terrace is a non-decreasing function of elevation."""
    order = np.argsort(world.elevation.ravel(), kind="stable")
    terraces = world.terrace.ravel()[order].astype(np.int16)
    drops = int(np.count_nonzero(np.diff(terraces) < 0))
    if drops > 0:
        result.add_error(f"Terrace decreases with elevation at {drops} cells")


def _check_water_width(world: World, result: ValidationResult) -> None:
    """Check every river cell lies in a fully-water 3x3 block.

    Cells beyond the edge of the map count as water.
    """
    water = world.is_river | (world.terrace == OCEAN_TERRACE)
    structure = np.ones((3, 3), dtype=bool)
    eroded = ndimage.binary_erosion(water, structure=structure, border_value=1)
    opened = ndimage.binary_dilation(eroded, structure=structure)

    narrow = int(np.count_nonzero(world.is_river & ~opened))
    if narrow > 0:
        result.add_error(f"{narrow} river cells in water narrower than 3 cells")


def _check_placed_features(world: World, result: ValidationResult) -> None:
    """Check tree, rock and plant bits are mutually exclusive."""
    placed = world.features & np.uint32(PLACED_FEATURES)
    multiple = int(np.count_nonzero(placed & (placed - np.uint32(1))))
    if multiple > 0:
        result.add_error(f"{multiple} cells hold more than one placed feature")


def _check_walls(world: World, result: ValidationResult) -> None:
    """Check walls match terrace drops from the north."""
    expected = np.zeros_like(world.is_wall)
    expected[1:] = world.terrace[:-1] > world.terrace[1:]
    mismatched = int(np.count_nonzero(expected != world.is_wall))
    if mismatched > 0:
        result.add_error(f"{mismatched} cells have inconsistent wall flags")


def _check_land_and_rivers(world: World, result: ValidationResult) -> None:
    """Warn about degenerate but valid worlds."""
    if not np.any(world.terrace != OCEAN_TERRACE):
        result.add_warning("No land found")
    elif not np.any(world.is_river):
        result.add_warning("No rivers formed")
