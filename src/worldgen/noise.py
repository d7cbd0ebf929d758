"""Seeded coherent noise for field synthesis.

Wraps OpenSimplex and sums octaves at doubling frequency and halving
amplitude. Evaluation is stateless once the permutation table is built,
so a single ``NoiseField`` may be shared by every worker.
"""

from functools import lru_cache

import numpy as np
from numpy.typing import NDArray
from opensimplex import OpenSimplex


class NoiseField:
    """Multi-octave OpenSimplex noise for one seed."""

    def __init__(self, seed: int):
        self.seed = seed
        self._simplex = OpenSimplex(seed=seed)

    def evaluate(self, x: float, y: float) -> float:
        """Evaluate single-octave noise at a point.

        Args:
            x: Sample x coordinate (already scaled by frequency).
            y: Sample y coordinate.

        Returns:
            Noise value in roughly [-1, 1].
        """
        return float(self._simplex.noise2(x, y))

    def fbm(
        self,
        xs: NDArray[np.float64],
        ys: NDArray[np.float64],
        frequency: float,
        octaves: int = 4,
        lacunarity: float = 2.0,
        gain: float = 0.5,
        scale: float = 1.0,
    ) -> NDArray[np.float32]:
        """Sum octaves of noise over a rectangular lattice.

        Amplitudes are 1, gain, gain^2, ... and are not normalised, so with
        four octaves the sum lies in roughly [-1.9, 1.9].

        Args:
            xs: Normalised x coordinates (x / width), one per column.
            ys: Normalised y coordinates (y / height), one per row.
            frequency: Base frequency.
            octaves: Number of octaves to sum.
            lacunarity: Frequency multiplier between octaves.
            gain: Amplitude multiplier between octaves.
            scale: Multiplier applied to the final sum.

        Returns:
            Array of shape (len(ys), len(xs)).
        """
        result = np.zeros((len(ys), len(xs)), dtype=np.float64)
        freq = frequency
        amplitude = 1.0

        for _ in range(octaves):
            result += amplitude * self._simplex.noise2array(freq * xs, freq * ys)
            freq *= lacunarity
            amplitude *= gain

        return (scale * result).astype(np.float32)


@lru_cache(maxsize=32)
def noise_field(seed: int) -> NoiseField:
    """Shared ``NoiseField`` for a seed."""
    return NoiseField(seed)


def evaluate(seed: int, x: float, y: float, frequency: float = 1.0) -> float:
    """Four-octave noise at one normalised coordinate.

    Matches ``NoiseField.fbm`` for the same seed and frequency.
    """
    field = noise_field(seed)
    total = 0.0
    amplitude = 1.0
    freq = frequency
    for _ in range(4):
        total += amplitude * field.evaluate(freq * x, freq * y)
        freq *= 2.0
        amplitude *= 0.5
    return total
