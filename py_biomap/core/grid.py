"""
Square tile grid centred on the origin.

Tiles are addressed by integer (x, z) in [-half_size, half_size]; arrays
indexed [x + half_size, z + half_size] hold per-tile data.
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

MIN_MAP_SIZE = 50
MAX_MAP_SIZE = 500


def clamp_map_size(size: int, min_size: int = MIN_MAP_SIZE, max_size: int = MAX_MAP_SIZE) -> int:
    """
    Clamp a grid size to the allowed range and make it odd.

    An even size is bumped to the next odd value, or to the previous one
    when the next would leave the range.
    """
    if min_size > max_size:
        raise ValueError(f"Invalid map size bounds: {min_size} > {max_size}")

    size = max(min_size, min(max_size, int(size)))
    if size % 2 == 0:
        size = size + 1 if size + 1 <= max_size else size - 1
    return size


@dataclass(frozen=True)
class Grid:
    """An N x N tile grid with its centre at (0, 0)."""

    size: int

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError(f"Grid size must be positive, got {self.size}")
        if self.size % 2 == 0:
            raise ValueError(f"Grid size must be odd so the centre is a tile, got {self.size}")

    @property
    def half_size(self) -> int:
        return self.size // 2

    @property
    def tile_count(self) -> int:
        return self.size * self.size

    def contains(self, x: int, z: int) -> bool:
        h = self.half_size
        return -h <= x <= h and -h <= z <= h

    def to_index(self, x: int, z: int) -> Tuple[int, int]:
        """Tile coordinate to array index."""
        return x + self.half_size, z + self.half_size

    def to_coordinate(self, i: int, j: int) -> Tuple[int, int]:
        """Array index to tile coordinate."""
        return i - self.half_size, j - self.half_size

    def coordinates(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Tile coordinates as two (size, size) arrays.

        Returns:
            (xs, zs) where xs[i, j] and zs[i, j] are the coordinates of index (i, j)
        """
        axis = np.arange(self.size, dtype=np.int64) - self.half_size
        xs, zs = np.meshgrid(axis, axis, indexing="ij")
        return xs, zs

    def center_order(self) -> np.ndarray:
        """
        Flat tile indices ordered by distance from the centre.

        Ties are broken by x, then z, both ascending. Squared distances are
        integers so the order is exact.
        """
        xs, zs = self.coordinates()
        xs = xs.ravel()
        zs = zs.ravel()
        d2 = xs * xs + zs * zs
        return np.lexsort((zs, xs, d2))

    def iter_coordinates(self) -> Iterator[Tuple[int, int]]:
        h = self.half_size
        for x in range(-h, h + 1):
            for z in range(-h, h + 1):
                yield x, z
