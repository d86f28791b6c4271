"""
Single-pass biome assignment against a live quota ledger.

Tiles are visited from the centre outwards, so the natural clusters near the
middle are placed first and the quota squeeze happens at the edges.
"""

from typing import Dict, Iterator, Mapping, Optional, Tuple

import numpy as np
import structlog

from .biome_table import BiomeTable
from .cluster_field import ClusterField, ClusterMap
from .fallback import FallbackResolver
from .grid import Grid
from .quotas import QuotaLedger

logger = structlog.get_logger()

UNASSIGNED = -1


class TileAssignmentMap:
    """Exactly one biome per grid tile, stored as int16 codes."""

    def __init__(self, grid: Grid, table: BiomeTable, codes: Optional[np.ndarray] = None):
        self.grid = grid
        self.table = table
        if codes is None:
            codes = np.full((grid.size, grid.size), UNASSIGNED, dtype=np.int16)
        if codes.shape != (grid.size, grid.size):
            raise ValueError(f"Code array shape {codes.shape} does not match grid size {grid.size}")
        self.codes = codes

    def biome_at(self, x: int, z: int) -> str:
        if not self.grid.contains(x, z):
            raise KeyError(f"Tile ({x}, {z}) is outside the grid")
        code = int(self.codes[self.grid.to_index(x, z)])
        if code == UNASSIGNED:
            raise KeyError(f"Tile ({x}, {z}) has no biome")
        return self.table.ids[code]

    def is_complete(self) -> bool:
        return bool(np.all(self.codes != UNASSIGNED))

    def counts(self) -> Dict[str, int]:
        """Tile count per biome id, in table order (zero counts included)."""
        assigned = self.codes[self.codes != UNASSIGNED].astype(np.int64)
        totals = np.bincount(assigned, minlength=len(self.table))
        return {biome_id: int(totals[code]) for code, biome_id in enumerate(self.table.ids)}

    def items(self) -> Iterator[Tuple[Tuple[int, int], str]]:
        for x, z in self.grid.iter_coordinates():
            code = int(self.codes[self.grid.to_index(x, z)])
            if code != UNASSIGNED:
                yield (x, z), self.table.ids[code]

    def to_dict(self) -> Dict[Tuple[int, int], str]:
        return dict(self.items())

    def __len__(self) -> int:
        return int(np.count_nonzero(self.codes != UNASSIGNED))


class TileAssigner:
    """Assigns every tile a biome so per-biome totals equal the targets exactly."""

    def __init__(
        self,
        grid: Grid,
        table: BiomeTable,
        cluster_field: ClusterField,
        resolver: FallbackResolver,
    ):
        self.grid = grid
        self.table = table
        self.cluster_field = cluster_field
        self.resolver = resolver

    def assign(
        self,
        targets: Mapping[str, int],
        cluster_map: Optional[ClusterMap] = None,
    ) -> TileAssignmentMap:
        """
        Run the assignment pass.

        Args:
            targets: Target tile count per biome id, summing to the tile count
            cluster_map: Precomputed cluster field output (computed if omitted)

        Returns:
            Complete TileAssignmentMap
        """
        total = sum(targets.values())
        if total != self.grid.tile_count:
            raise ValueError(f"Targets sum to {total}, grid has {self.grid.tile_count} tiles")

        logger.info("Assigning tiles", size=self.grid.size, tiles=self.grid.tile_count)

        cluster_map = cluster_map or self.cluster_field.evaluate()
        preferred_codes = cluster_map.preferred.ravel()

        ledger = QuotaLedger(targets, order=self.table.ids)
        result = TileAssignmentMap(self.grid, self.table)
        flat = result.codes.ravel()
        ids = self.table.ids
        size = self.grid.size
        half = self.grid.half_size

        fallbacks = 0
        for index in self.grid.center_order():
            index = int(index)
            biome_id = ledger.sole_open()
            if biome_id is None:
                biome_id = ids[preferred_codes[index]]
                if not ledger.has_capacity(biome_id):
                    x = index // size - half
                    z = index % size - half
                    biome_id = self.resolver.resolve(biome_id, x, z, ledger)
                    fallbacks += 1

            if not ledger.take(biome_id):
                logger.warning("Assigned biome beyond its quota", biome=biome_id)
            flat[index] = self.table.code(biome_id)

        logger.info("Tile assignment completed", fallbacks=fallbacks, biomes=len(ids))
        return result
