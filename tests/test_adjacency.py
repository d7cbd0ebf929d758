"""Tests for the neighbour graph and cliff shadows."""

import numpy as np
import pytest

from worldgen.adjacency import add_cliff_shadows, find_neighbours, shift
from worldgen.config import BiomeThresholds
from worldgen.grid import World
from worldgen.types import Feature


def _slope_3x3(make_world):
    """3x3 grid whose height decreases strictly from left to right."""
    return make_world(np.tile([0.3, 0.2, 0.1], (3, 1)))


class TestShift:
    """Tests for the neighbour-view helper."""

    def test_shift_east(self) -> None:
        """Each cell sees its east neighbour, with fill past the edge."""
        arr = np.arange(6).reshape(2, 3)
        np.testing.assert_array_equal(shift(arr, 1, 0, -1), [[1, 2, -1], [4, 5, -1]])

    def test_shift_north(self) -> None:
        """Each cell sees its north neighbour."""
        arr = np.arange(6).reshape(2, 3)
        np.testing.assert_array_equal(shift(arr, 0, -1, -1), [[-1, -1, -1], [0, 1, 2]])


class TestFindNeighbours:
    """Tests for adjacency construction."""

    def test_peak_and_lake(self, make_world, thresholds: BiomeThresholds) -> None:
        """Top-left of a left-to-right slope is a peak, bottom-right a lake."""
        world = _slope_3x3(make_world)
        find_neighbours(world, thresholds)

        top_left = world.location(0, 0)
        bottom_right = world.location(2, 2)
        assert top_left.is_peak
        assert top_left.predecessors() == []
        assert bottom_right.is_lake
        assert bottom_right.successors() == []

    def test_peak_and_lake_masks_match_lists(
        self, make_world, thresholds: BiomeThresholds
    ) -> None:
        """The per-cell masks agree with the peak and lake index lists."""
        world = _slope_3x3(make_world)
        find_neighbours(world, thresholds)

        assert np.nonzero(world.is_peak.ravel())[0].tolist() == world.peaks
        assert np.nonzero(world.is_lake.ravel())[0].tolist() == world.lakes
        assert not world.location(1, 1).is_peak
        assert not world.location(1, 1).is_lake

    def test_successors_are_lower(self, make_world, thresholds: BiomeThresholds) -> None:
        """Successors are strictly lower, predecessors strictly higher."""
        world = _slope_3x3(make_world)
        find_neighbours(world, thresholds)

        centre = world.location(1, 1)
        assert [(loc.x, loc.y) for loc in centre.successors()] == [(2, 1)]
        assert [(loc.x, loc.y) for loc in centre.predecessors()] == [(0, 1)]
        assert len(centre.neighbours()) == 4

    def test_total_gradient(self, make_world, thresholds: BiomeThresholds) -> None:
        """Total gradient sums the drops to successors."""
        world = _slope_3x3(make_world)
        find_neighbours(world, thresholds)
        assert world.location(0, 0).total_gradient == pytest.approx(0.1, abs=1e-6)
        assert world.location(2, 2).total_gradient == 0.0

    def test_ocean_excluded(self, make_world, thresholds: BiomeThresholds) -> None:
        """Ocean cells take no part in the graph."""
        elevation = np.full((3, 3), 0.2)
        elevation[1, 1] = -1.0
        world = make_world(elevation)
        find_neighbours(world, thresholds)

        centre = world.index(1, 1)
        assert world.num_neighbours[centre] == 0
        assert centre not in world.peaks
        assert centre not in world.lakes
        assert centre not in world.neighbours_of(world.index(1, 0))

    def test_river_excluded(self, make_world, thresholds: BiomeThresholds) -> None:
        """Cells already marked as river are skipped."""
        world = _slope_3x3(make_world)
        world.is_river[1, 1] = True
        find_neighbours(world, thresholds)
        assert world.index(1, 1) not in world.neighbours_of(world.index(0, 1))

    def test_feature_exclusion(self, make_world, thresholds: BiomeThresholds) -> None:
        """The stricter variant skips tree and rock neighbours."""
        world = _slope_3x3(make_world)
        world.add_feature(2, 1, Feature.TREE)
        find_neighbours(world, thresholds, exclude_features=True)
        assert world.index(2, 1) not in world.successors_of(world.index(1, 1))

    def test_isolated_cell_is_peak(self, make_world, thresholds: BiomeThresholds) -> None:
        """A cell with no links is a peak rather than a lake."""
        world = make_world(np.full((1, 1), 0.2))
        find_neighbours(world, thresholds)
        assert world.peaks == [0]
        assert world.lakes == []

    def test_built_once(self, make_world, thresholds: BiomeThresholds) -> None:
        """Adjacency cannot be rebuilt."""
        world = _slope_3x3(make_world)
        find_neighbours(world, thresholds)
        with pytest.raises(ValueError):
            find_neighbours(world, thresholds)

    def test_neighbours_in_bounds(self, thresholds: BiomeThresholds) -> None:
        """Every neighbour index is a valid cell."""
        world = World(6, 4)
        world.elevation[:, :] = np.random.default_rng(2).uniform(0, 1, (4, 6))
        find_neighbours(world, thresholds)
        for i in range(world.size):
            assert all(0 <= n < world.size for n in world.neighbours_of(i))


class TestCliffShadows:
    """Tests for shadow hints."""

    def test_side_shadows(self) -> None:
        """Cells beside a higher terrace get left/right shadows."""
        world = World(3, 1)
        world.terrace[0] = [2, 3, 2]
        add_cliff_shadows(world, 0, 3)
        assert world.has_feature(0, 0, Feature.RIGHT_SHADOW)
        assert world.has_feature(2, 0, Feature.LEFT_SHADOW)
        assert not world.has_feature(1, 0, Feature.LEFT_SHADOW)

    def test_horizontal_shadow(self) -> None:
        """The cell below a wall gets a horizontal shadow."""
        world = World(1, 4)
        world.terrace[:, 0] = [3, 2, 2, 2]
        add_cliff_shadows(world, 0, 1)
        assert world.has_feature(0, 2, Feature.HORIZONTAL_SHADOW)
        assert not world.has_feature(0, 1, Feature.HORIZONTAL_SHADOW)
        assert not world.has_feature(0, 3, Feature.HORIZONTAL_SHADOW)

    def test_corner_shadows(self) -> None:
        """Cells diagonally below a raised cell get corner shadows."""
        world = World(3, 3)
        world.terrace[:, :] = 2
        world.terrace[1, 1] = 3
        add_cliff_shadows(world, 0, 3)
        assert world.has_feature(2, 2, Feature.BOTTOM_LEFT_SHADOW)
        assert world.has_feature(0, 2, Feature.BOTTOM_RIGHT_SHADOW)
        assert not world.has_feature(1, 2, Feature.BOTTOM_LEFT_SHADOW)

    def test_band_only(self) -> None:
        """Hints are written only inside the band."""
        world = World(3, 1)
        world.terrace[0] = [2, 3, 2]
        add_cliff_shadows(world, 0, 1)
        assert world.has_feature(0, 0, Feature.RIGHT_SHADOW)
        assert world.features[0, 2] == 0
