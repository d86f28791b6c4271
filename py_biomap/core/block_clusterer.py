"""
Block clustering post-pass.

Rewrites per-biome tile counts into contiguous axis-aligned squares packed
around the grid centre:
1. Optional land/water clamp (population sizing mode)
2. Packing: biggest biome first, largest fitting square nearest the centre
3. Fill: any cell left over gets the overflow biome

Per-biome totals are preserved exactly and every cell is covered once.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import structlog

from .biome_table import BiomeTable
from .grid import Grid
from .quotas import round_half_up
from .tile_assigner import UNASSIGNED, TileAssignmentMap

logger = structlog.get_logger()


@dataclass(frozen=True)
class PlacedBlock:
    """A square region of one biome; (x, z) is its minimum corner tile."""

    biome: str
    x: int
    z: int
    size: int

    @property
    def area(self) -> int:
        return self.size * self.size


@dataclass
class ClusteringResult:
    """Output of one block clustering run."""

    assignment: TileAssignmentMap
    counts: Dict[str, int]  # Requested counts after the clamp
    blocks: List[PlacedBlock] = field(default_factory=list)
    shortfall: Dict[str, int] = field(default_factory=dict)
    filled: int = 0  # Cells backfilled with the overflow biome


class BlockClusterer:
    """Packs biome counts into square blocks on one grid."""

    def __init__(self, grid: Grid, table: BiomeTable):
        self.grid = grid
        self.table = table

    def cluster(self, counts: Mapping[str, int], water_tiles: Optional[int] = None) -> ClusteringResult:
        """
        Clamp (optionally) and pack biome counts into blocks.

        Args:
            counts: Tile count per biome id, summing to at most N²
            water_tiles: Total water tiles to enforce, None skips the clamp

        Returns:
            ClusteringResult with a fully covered assignment map
        """
        counts = self._validated(counts)
        if water_tiles is not None:
            counts = self.clamp_water(counts, water_tiles)

        logger.info("Block clustering", size=self.grid.size, biomes=sum(1 for c in counts.values() if c > 0))

        size = self.grid.size
        half = self.grid.half_size
        occupied = np.zeros((size, size), dtype=bool)
        codes = np.full((size, size), UNASSIGNED, dtype=np.int16)
        result = ClusteringResult(assignment=TileAssignmentMap(self.grid, self.table, codes), counts=dict(counts))

        order = sorted(
            (b for b in self.table.ids if counts[b] > 0),
            key=lambda b: (-counts[b], self.table.code(b)),
        )

        for biome_id in order:
            code = self.table.code(biome_id)
            remaining = counts[biome_id]

            while remaining > 0:
                side = max(1, math.isqrt(remaining))
                spot = self._place_square(occupied, side)
                if spot is None:
                    spot = self._first_free_cell(occupied)
                if spot is None:
                    logger.warning("No space left for biome", biome=biome_id, outstanding=remaining)
                    result.shortfall[biome_id] = remaining
                    break

                i, j, s = spot
                occupied[i:i + s, j:j + s] = True
                codes[i:i + s, j:j + s] = code
                remaining -= s * s
                result.blocks.append(PlacedBlock(biome_id, i - half, j - half, s))

        free = ~occupied
        result.filled = int(np.count_nonzero(free))
        if result.filled:
            codes[free] = self.table.code(self.table.overflow)
            logger.info("Filled leftover cells", biome=self.table.overflow, cells=result.filled)

        logger.info("Block clustering completed", blocks=len(result.blocks), shortfall=sum(result.shortfall.values()))
        return result

    def clamp_water(self, counts: Mapping[str, int], water_tiles: int) -> Dict[str, int]:
        """
        Force the land/water split to an exact water tile total.

        Land biomes shrink proportionally (floor), the flooring remainder goes
        one tile at a time to the largest original land biomes (ties by id).
        Freshwater keeps its table share of the water; saltwater takes the rest.

        Args:
            counts: Tile count per biome id
            water_tiles: Desired total of water tiles

        Returns:
            New counts summing to N²
        """
        tile_count = self.grid.tile_count
        if not 0 <= water_tiles <= tile_count:
            raise ValueError(f"Water target {water_tiles} outside [0, {tile_count}]")

        counts = self._validated(counts)
        saltwater = self.table.water_default or self.table.overflow
        freshwater = self.table.freshwater
        land_ids = self.table.land_ids()
        other_water = [
            b for b in self.table.water_ids() if b not in (saltwater, freshwater)
        ]

        available = water_tiles - sum(counts[b] for b in other_water)
        desired_fresh = 0
        if freshwater is not None:
            fractions = self.table.fractions()
            water_fraction = fractions[freshwater] + fractions[saltwater]
            share = fractions[freshwater] / water_fraction if water_fraction > 0 else 0.0
            desired_fresh = min(round_half_up(water_tiles * share), max(available, 0))

        allowed_land = tile_count - water_tiles
        land_sum = sum(counts[b] for b in land_ids)

        clamped = dict(counts)
        if land_sum > allowed_land:
            for biome_id in land_ids:
                clamped[biome_id] = counts[biome_id] * allowed_land // land_sum

            remainder = allowed_land - sum(clamped[b] for b in land_ids)
            by_size = sorted(land_ids, key=lambda b: (-counts[b], b))
            step = 0
            while remainder > 0:
                clamped[by_size[step % len(by_size)]] += 1
                remainder -= 1
                step += 1

            logger.info("Land clamped", original=land_sum, allowed=allowed_land)

        if freshwater is not None:
            clamped[freshwater] = desired_fresh

        clamped[saltwater] = 0
        clamped[saltwater] = tile_count - sum(clamped.values())
        if clamped[saltwater] < 0:
            raise ValueError("Water clamp left no room for saltwater")

        return clamped

    def _validated(self, counts: Mapping[str, int]) -> Dict[str, int]:
        unknown = set(counts) - set(self.table.ids)
        if unknown:
            raise ValueError(f"Counts reference unknown biomes: {sorted(unknown)}")

        result = {b: int(counts.get(b, 0)) for b in self.table.ids}
        if any(c < 0 for c in result.values()):
            raise ValueError("Biome counts must be non-negative")
        if sum(result.values()) > self.grid.tile_count:
            raise ValueError(
                f"Counts sum to {sum(result.values())}, grid has {self.grid.tile_count} tiles"
            )
        return result

    def _place_square(self, occupied: np.ndarray, side: int) -> Optional[Tuple[int, int, int]]:
        """
        Find the largest free square of side <= `side`, closest to the centre.

        Feasibility is monotonic in the side length, so the side is found by
        binary search over a summed-area table of the occupancy grid.
        """
        integral = np.zeros((occupied.shape[0] + 1, occupied.shape[1] + 1), dtype=np.int32)
        integral[1:, 1:] = occupied.astype(np.int32).cumsum(axis=0).cumsum(axis=1)

        best = None
        lo, hi = 1, min(side, self.grid.size)
        while lo <= hi:
            mid = (lo + hi) // 2
            free = self._free_windows(integral, mid)
            if free[0].size:
                best = (mid, free)
                lo = mid + 1
            else:
                hi = mid - 1

        if best is None:
            return None

        s, (rows, cols) = best
        n = self.grid.size
        d2 = (2 * rows + s - n) ** 2 + (2 * cols + s - n) ** 2
        pick = np.lexsort((cols, rows, d2))[0]
        return int(rows[pick]), int(cols[pick]), s

    @staticmethod
    def _free_windows(integral: np.ndarray, s: int) -> Tuple[np.ndarray, np.ndarray]:
        """Top-left indices of every fully unoccupied s x s window."""
        sums = integral[s:, s:] - integral[:-s, s:] - integral[s:, :-s] + integral[:-s, :-s]
        return np.nonzero(sums == 0)

    @staticmethod
    def _first_free_cell(occupied: np.ndarray) -> Optional[Tuple[int, int, int]]:
        """First unoccupied cell in row-major order, as a 1x1 spot."""
        flat = np.flatnonzero(~occupied)
        if flat.size == 0:
            return None
        i, j = divmod(int(flat[0]), occupied.shape[1])
        return i, j, 1
