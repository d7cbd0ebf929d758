"""World generation configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .types import Biome, Direction

REGION_SIZE = 64

# Offsets applied to the master seed for fields without an explicit seed.
SEED_OFFSETS: dict[str, int] = {
    "elevation": 0,
    "moisture": 300,
    "soil": 400,
    "tree": 500,
    "rock": 600,
    "plant": 700,
}


class NoiseConfig(BaseModel):
    """Noise parameters for a single synthesised field."""

    frequency: float = Field(default=5.0, description="Base frequency over the map")
    octaves: int = Field(default=4, description="Number of octaves summed")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    gain: float = Field(default=0.5, description="Amplitude multiplier per octave")
    scale: float = Field(default=1.0, description="Multiplier applied to the sum")


class ElevationConfig(BaseModel):
    """Elevation field parameters."""

    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    edge_offset: float = Field(
        default=-1.0,
        description="Elevation added at the map corners (negative sinks edges)",
    )
    falloff_exponent: float = Field(
        default=2.0, description="Exponent applied to normalised distance from centre"
    )
    y_bias: float = Field(
        default=0.0, description="Linear bias, strongest at the top row"
    )


class CloudConfig(BaseModel):
    """Cloud advection moisture parameters."""

    wind: Direction = Field(default=Direction.E, description="Heading of the clouds")
    initial_moisture: float = Field(default=8.0, description="Moisture per spawned cloud")
    rain: float = Field(default=0.5, description="Base rain per step over land")
    baseline_moisture: float = Field(
        default=-0.5, description="Moisture of every cell before clouds rain"
    )
    spacing: int = Field(default=1, ge=1, description="Edge cells between clouds")


class MoistureConfig(BaseModel):
    """Moisture field parameters."""

    noise: NoiseConfig = Field(default_factory=lambda: NoiseConfig(frequency=2.0))
    model: Literal["noise", "clouds"] = Field(
        default="noise", description="Noise field or cloud advection"
    )
    clouds: CloudConfig = Field(default_factory=CloudConfig)


class SoilConfig(BaseModel):
    """Soil depth parameters."""

    noise: NoiseConfig = Field(default_factory=lambda: NoiseConfig(frequency=20.0))
    enabled: bool = Field(
        default=True, description="Synthesise soil and use it for biomes"
    )


class DensityConfig(BaseModel):
    """Tree, rock and plant density fields."""

    tree: NoiseConfig = Field(default_factory=lambda: NoiseConfig(frequency=200.0))
    rock: NoiseConfig = Field(default_factory=lambda: NoiseConfig(frequency=150.0))
    plant: NoiseConfig = Field(default_factory=lambda: NoiseConfig(frequency=250.0))


class BiomeThresholds(BaseModel):
    """Elevation, moisture and soil thresholds for biomes and terraces."""

    water_level: float = -0.4
    beach_level: float = -0.3
    midlands: float = 0.0
    highlands: float = 0.5
    dry: float = -0.5
    moist: float = 0.0
    wet: float = 0.3
    no_soil: float = -1.5
    thick_soil: float = -0.2
    shallow_soil: float = -0.7

    @model_validator(mode="after")
    def _check_elevation_order(self) -> "BiomeThresholds":
        levels = [self.water_level, self.beach_level, self.midlands, self.highlands]
        if levels != sorted(levels):
            raise ValueError(
                "elevation thresholds must satisfy "
                "water_level <= beach_level <= midlands <= highlands"
            )
        return self


class HydrologyConfig(BaseModel):
    """River formation parameters."""

    strategy: Literal["greedy", "proportional"] = Field(
        default="greedy", description="Height-sorted greedy flow or gradient split"
    )
    saturation: float = Field(default=4.0, description="Flow above which a cell is river")
    rainfall: float = Field(
        default=1.0, description="Water added to each land cell's own moisture"
    )
    source_water: float = Field(
        default=1.5, description="Extra water at peaks (proportional strategy)"
    )


def _tree_density() -> dict[Biome, float]:
    return {
        Biome.OCEAN: 0.0,
        Biome.RIVER: 0.0,
        Biome.BEACH: 0.0,
        Biome.DRY_ROCK: 1 / 512,
        Biome.MOIST_ROCK: 1 / 256,
        Biome.HEATHLAND: 1 / 96,
        Biome.SHRUBLAND: 1 / 64,
        Biome.GRASSLAND: 1 / 128,
        Biome.MOORLAND: 1 / 128,
        Biome.FENLAND: 1 / 128,
        Biome.WOODLAND: 1 / 32,
        Biome.FOREST: 1 / 16,
    }


def _rock_density() -> dict[Biome, float]:
    return {
        Biome.OCEAN: 0.0,
        Biome.RIVER: 1 / 512,
        Biome.BEACH: 1 / 256,
        Biome.DRY_ROCK: 1 / 32,
        Biome.MOIST_ROCK: 1 / 48,
        Biome.HEATHLAND: 1 / 128,
        Biome.SHRUBLAND: 1 / 256,
        Biome.GRASSLAND: 1 / 256,
        Biome.MOORLAND: 1 / 96,
        Biome.FENLAND: 1 / 256,
        Biome.WOODLAND: 1 / 512,
        Biome.FOREST: 1 / 512,
    }


def _plant_density() -> dict[Biome, float]:
    return {
        Biome.OCEAN: 0.0,
        Biome.RIVER: 1 / 256,
        Biome.BEACH: 0.0,
        Biome.DRY_ROCK: 1 / 512,
        Biome.MOIST_ROCK: 1 / 256,
        Biome.HEATHLAND: 1 / 32,
        Biome.SHRUBLAND: 1 / 32,
        Biome.GRASSLAND: 1 / 16,
        Biome.MOORLAND: 1 / 32,
        Biome.FENLAND: 1 / 24,
        Biome.WOODLAND: 1 / 48,
        Biome.FOREST: 1 / 64,
    }


class RegionConfig(BaseModel):
    """Region size and per-biome feature density tables.

    Densities are fractions of a region's area populated when the biome
    dominates that region.
    """

    region_size: int = Field(default=REGION_SIZE, ge=1, description="Region edge in cells")
    tree_density: dict[Biome, float] = Field(default_factory=_tree_density)
    rock_density: dict[Biome, float] = Field(default_factory=_rock_density)
    plant_density: dict[Biome, float] = Field(default_factory=_plant_density)

    def quota(self, table: dict[Biome, float], biome: Biome) -> int:
        """Number of features a region dominated by ``biome`` receives."""
        return int(self.region_size * self.region_size * table.get(biome, 0.0))


class PathConfig(BaseModel):
    """Edge cost weights for the path graph."""

    height_weight: float = Field(default=1.0, description="Cost per unit height change")
    terrace_penalty: float = Field(default=2.0, description="Cost of changing terrace")
    wall_penalty: float = Field(default=1.0, description="Cost of entering or leaving a wall")


class TerrainConfig(BaseModel):
    """Complete world generation configuration."""

    seed: int = Field(default=42, description="Master seed")
    seeds: dict[str, int] = Field(
        default_factory=dict, description="Per-field seed overrides"
    )
    width: int = Field(default=2304, gt=0, description="World width in cells")
    height: int = Field(default=1536, gt=0, description="World height in cells")
    workers: int = Field(default=4, ge=1, description="Parallel column bands")
    exclude_feature_neighbours: bool = Field(
        default=False, description="Drop tree/rock cells from the flow graph"
    )

    elevation: ElevationConfig = Field(default_factory=ElevationConfig)
    moisture: MoistureConfig = Field(default_factory=MoistureConfig)
    soil: SoilConfig = Field(default_factory=SoilConfig)
    density: DensityConfig = Field(default_factory=DensityConfig)
    thresholds: BiomeThresholds = Field(default_factory=BiomeThresholds)
    hydrology: HydrologyConfig = Field(default_factory=HydrologyConfig)
    regions: RegionConfig = Field(default_factory=RegionConfig)
    paths: PathConfig = Field(default_factory=PathConfig)

    @model_validator(mode="after")
    def _check_partitioning(self) -> "TerrainConfig":
        size = self.regions.region_size
        if self.height % size != 0:
            raise ValueError(f"height {self.height} is not a multiple of region size {size}")
        if self.width % (size * self.workers) != 0:
            raise ValueError(
                f"width {self.width} is not a multiple of region size {size} "
                f"x {self.workers} workers"
            )
        unknown = set(self.seeds) - set(SEED_OFFSETS)
        if unknown:
            raise ValueError(f"unknown seed fields: {sorted(unknown)}")
        return self

    def field_seed(self, name: str) -> int:
        """Seed for a named field, explicit or derived from the master seed."""
        if name in self.seeds:
            return self.seeds[name]
        return self.seed + SEED_OFFSETS[name]
