"""
Seeded randomness for biome map generation.

Everything inside the engine draws its "random" numbers from a SeededField,
a stateless sine hash of the tile coordinate, so identical seeds produce
identical maps. Python's random and NumPy's random are not used in the engine.
"""

import math
import uuid

import numpy as np

HASH_X = 12.9898
HASH_Z = 78.233
HASH_SCALE = 43758.5453


def seeded_value(x: float, z: float, offset: float, seed: float) -> float:
    """
    Hash a tile coordinate into [0, 1).

    Args:
        x: Tile x coordinate
        z: Tile z coordinate
        offset: Stream offset, keeps independent draws for the same tile apart
        seed: Terrain seed

    Returns:
        Deterministic value in [0, 1)
    """
    shift = seed + offset
    return abs(math.sin((x + shift) * HASH_X + (z + shift) * HASH_Z) * HASH_SCALE) % 1.0


class SeededField:
    """Deterministic hash field bound to one terrain seed."""

    def __init__(self, seed: float):
        self.seed = float(seed)

    def value(self, x: float, z: float, offset: float = 0.0) -> float:
        return seeded_value(x, z, offset, self.seed)

    def values(self, xs: np.ndarray, zs: np.ndarray, offset: float = 0.0) -> np.ndarray:
        """Vectorized variant of value() for whole coordinate arrays."""
        shift = self.seed + offset
        xs = np.asarray(xs, dtype=np.float64)
        zs = np.asarray(zs, dtype=np.float64)
        raw = np.abs(np.sin((xs + shift) * HASH_X + (zs + shift) * HASH_Z) * HASH_SCALE)
        return np.mod(raw, 1.0)

    def __repr__(self) -> str:
        return f"SeededField(seed={self.seed!r})"


def new_session_seed() -> float:
    """
    Draw a fresh terrain seed for a session that did not supply one.

    This is the only unseeded source in the package and it is used before the
    engine starts, never inside it.
    """
    return (uuid.uuid4().int % 1_000_000) / 100.0
