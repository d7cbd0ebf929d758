"""Tests for hydrology: flow, river promotion and banks."""

import numpy as np
import pytest

from worldgen.adjacency import find_neighbours
from worldgen.config import BiomeThresholds, HydrologyConfig
from worldgen.grid import NO_CELL
from worldgen.hydrology import (
    add_river_banks,
    add_rivers,
    add_water,
    ranked_successors,
    valid_successor,
)
from worldgen.types import Biome, Feature, RiverBank


def _linear_slope(make_world, thresholds, length: int = 10, moisture: float = 1.0):
    """Single-row downhill slope, all on the midlands terrace."""
    elevation = np.linspace(0.4, 0.1, length)[np.newaxis, :]
    world = make_world(elevation, moisture=moisture)
    find_neighbours(world, thresholds)
    return world


class TestAddRivers:
    """Tests for greedy flow accumulation."""

    def test_linear_slope_river_count(self, make_world, thresholds: BiomeThresholds) -> None:
        """Rivers start where the accumulated flow first exceeds saturation."""
        world = _linear_slope(make_world, thresholds)
        config = HydrologyConfig(saturation=4.0, rainfall=0.0)

        river_cells = add_rivers(world, config, thresholds)

        # Flow at cell k is k + 1, first exceeding 4 at k = 4
        assert river_cells == 10 - 4
        assert not world.is_river[0, :4].any()
        assert world.is_river[0, 4:].all()

    def test_flow_accumulates_downhill(self, make_world, thresholds: BiomeThresholds) -> None:
        """Each cell carries everything above it plus its own water."""
        world = _linear_slope(make_world, thresholds)
        add_rivers(world, HydrologyConfig(saturation=100.0, rainfall=0.0), thresholds)
        np.testing.assert_allclose(world.water[0], np.arange(1, 11))
        assert not world.is_river.any()

    def test_negative_moisture_contributes_nothing(
        self, make_world, thresholds: BiomeThresholds
    ) -> None:
        """Own water is clipped at zero."""
        world = _linear_slope(make_world, thresholds, moisture=-2.0)
        add_rivers(world, HydrologyConfig(rainfall=1.0), thresholds)
        assert np.all(world.water == 0)

    def test_river_cells_become_river_biome(
        self, make_world, thresholds: BiomeThresholds
    ) -> None:
        """Promoted cells take the river biome."""
        world = _linear_slope(make_world, thresholds)
        add_rivers(world, HydrologyConfig(saturation=4.0, rainfall=0.0), thresholds)
        assert np.all(world.biome[world.is_river] == Biome.RIVER)

    def test_requires_adjacency(self, make_world, thresholds: BiomeThresholds) -> None:
        """Adjacency must be built first."""
        world = make_world(np.full((3, 3), 0.2))
        with pytest.raises(ValueError):
            add_rivers(world, HydrologyConfig(), thresholds)

    def test_ocean_never_river(self, make_world, thresholds: BiomeThresholds) -> None:
        """Water running into the sea does not turn ocean into river."""
        elevation = np.linspace(0.4, -0.8, 12)[np.newaxis, :]
        world = make_world(elevation, moisture=1.0)
        find_neighbours(world, thresholds)
        add_rivers(world, HydrologyConfig(saturation=2.0, rainfall=0.0), thresholds)

        ocean = world.elevation < thresholds.water_level
        assert ocean.any()
        assert not world.is_river[ocean].any()

    def test_proportional_strategy(self, make_world, thresholds: BiomeThresholds) -> None:
        """Peaks seed source water that runs down the whole slope."""
        world = _linear_slope(make_world, thresholds, moisture=-1.0)
        config = HydrologyConfig(
            strategy="proportional", saturation=1.0, rainfall=0.0, source_water=1.5
        )
        add_rivers(world, config, thresholds)
        np.testing.assert_allclose(world.water[0], 1.5)
        assert world.is_river.all()


class TestAddWater:
    """Tests for river squaring."""

    def test_centred_block(self, make_world) -> None:
        """Without a direction the 3x3 block is centred on the cell."""
        world = make_world(np.full((5, 5), 0.2))
        marked = add_water(world, world.index(2, 2))
        assert marked == 9
        assert world.is_river[1:4, 1:4].all()
        assert world.is_river.sum() == 9

    def test_block_extends_downstream(self, make_world) -> None:
        """The block runs downstream from the cell, centred across the flow."""
        world = make_world(np.full((5, 5), 0.2))
        add_water(world, world.index(2, 0), direction=(0, 1))
        assert world.is_river[0:3, 1:4].all()
        assert world.is_river.sum() == 9

    def test_clipped_at_edges(self, make_world) -> None:
        """Off-grid cells are ignored."""
        world = make_world(np.full((5, 5), 0.2))
        assert add_water(world, world.index(0, 0)) == 4

    def test_ocean_left_alone(self, make_world) -> None:
        """Ocean cells inside the block stay ocean."""
        elevation = np.full((3, 3), 0.2)
        elevation[:, 0] = -1.0
        world = make_world(elevation)
        assert add_water(world, world.index(1, 1)) == 6
        assert not world.is_river[:, 0].any()

    def test_existing_river_not_recounted(self, make_world) -> None:
        """Only newly promoted cells are counted."""
        world = make_world(np.full((5, 5), 0.2))
        add_water(world, world.index(2, 2))
        assert add_water(world, world.index(3, 2)) == 3


class TestRankedSuccessors:
    """Tests for the lowest-first successor table."""

    def test_lowest_first(self, make_world, thresholds: BiomeThresholds) -> None:
        """Successors are ordered by height with empty slots last."""
        world = make_world(
            np.array([[0.4, 0.1, 0.4], [0.35, 0.3, 0.25], [0.4, 0.2, 0.4]])
        )
        find_neighbours(world, thresholds)

        ranked = ranked_successors(world)
        centre = world.index(1, 1)
        assert ranked[centre].tolist() == [
            world.index(1, 0),
            world.index(1, 2),
            world.index(2, 1),
            NO_CELL,
        ]
        assert sorted(ranked[centre][:3].tolist()) == sorted(world.successors_of(centre))

    def test_lake_row_empty(self, make_world, thresholds: BiomeThresholds) -> None:
        """A cell with nowhere to drain has an empty row."""
        world = _linear_slope(make_world, thresholds, length=3)
        ranked = ranked_successors(world)
        assert ranked[world.index(2, 0)].tolist() == [NO_CELL] * 4


class TestValidSuccessor:
    """Tests for terrace-gated flow."""

    def test_same_terrace_valid(self, make_world) -> None:
        """Flow within a terrace is always valid."""
        world = make_world(np.full((3, 3), 0.2))
        assert valid_successor(world, world.index(1, 0), world.index(1, 1))

    def test_terrace_step_needs_river(self, make_world) -> None:
        """Dropping a terrace needs river beside the current cell."""
        elevation = np.array(
            [
                [0.2, 0.2, 0.2],
                [-0.1, -0.1, -0.1],
                [-0.1, -0.1, -0.1],
            ]
        )
        world = make_world(elevation)
        current, successor = world.index(1, 0), world.index(1, 1)
        assert not valid_successor(world, current, successor)

        world.is_river[0, 0] = True
        world.is_river[0, 2] = True
        assert valid_successor(world, current, successor)

    def test_flank_on_lower_terrace(self, make_world) -> None:
        """Flanks already on the successor's terrace don't block."""
        elevation = np.array(
            [
                [-0.1, 0.2, -0.1],
                [-0.1, -0.1, -0.1],
            ]
        )
        world = make_world(elevation)
        assert valid_successor(world, world.index(1, 0), world.index(1, 1))


class TestAddRiverBanks:
    """Tests for bank orientation."""

    def _pond(self, make_world):
        world = make_world(np.full((5, 5), 0.2))
        add_water(world, world.index(2, 2))
        return world

    def test_bank_codes(self, make_world, thresholds: BiomeThresholds) -> None:
        """Edge water cells face the land around them."""
        world = self._pond(make_world)
        add_river_banks(world, 0, 5, thresholds)

        assert world.location(1, 1).river_bank == RiverBank.TOP_LEFT
        assert world.location(2, 1).river_bank == RiverBank.TOP
        assert world.location(3, 1).river_bank == RiverBank.TOP_RIGHT
        assert world.location(1, 2).river_bank == RiverBank.LEFT
        assert world.location(3, 2).river_bank == RiverBank.RIGHT
        assert world.location(1, 3).river_bank == RiverBank.BOTTOM_LEFT
        assert world.location(2, 3).river_bank == RiverBank.BOTTOM
        assert world.location(3, 3).river_bank == RiverBank.BOTTOM_RIGHT

    def test_interior_and_land_not_banks(
        self, make_world, thresholds: BiomeThresholds
    ) -> None:
        """Surrounded water and dry land are not banks."""
        world = self._pond(make_world)
        add_river_banks(world, 0, 5, thresholds)
        assert world.location(2, 2).river_bank is None
        assert not world.location(0, 0).is_river_bank
        assert world.is_river_bank.sum() == 8

    def test_bank_feature_bit(self, make_world, thresholds: BiomeThresholds) -> None:
        """Banks carry the river-bank feature."""
        world = self._pond(make_world)
        add_river_banks(world, 0, 5, thresholds)
        banks = (world.features & np.uint32(Feature.RIVER_BANK)) != 0
        np.testing.assert_array_equal(banks, world.is_river_bank)

    def test_ocean_shore(self, make_world, thresholds: BiomeThresholds) -> None:
        """Ocean cells beside land are banks too."""
        elevation = np.full((3, 3), 0.2)
        elevation[:, 2] = -1.0
        world = make_world(elevation)
        add_river_banks(world, 0, 3, thresholds)
        assert world.location(2, 1).river_bank == RiverBank.LEFT
        assert not world.location(1, 1).is_river_bank

    def test_water_shadows(self, make_world, thresholds: BiomeThresholds) -> None:
        """River cells beside higher land get water shadows."""
        world = make_world(np.array([[0.7, 0.2, 0.2, 0.2, 0.7]]))
        world.is_river[0, 1:4] = True
        add_river_banks(world, 0, 5, thresholds)
        assert world.has_feature(1, 0, Feature.LEFT_WATER_SHADOW)
        assert world.has_feature(3, 0, Feature.RIGHT_WATER_SHADOW)
        assert not world.has_feature(2, 0, Feature.LEFT_WATER_SHADOW)
