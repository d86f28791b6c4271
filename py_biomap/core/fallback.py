"""
Substitute biome selection when the preferred biome's quota is exhausted.

Resolution order, first success wins:
1. Missing-biome injection: a biome never placed so far, favoring one whose
   conventional quadrant matches the tile
2. Rare-biome boost: a biome with few tiles placed so far
3. Similarity fallback: the preferred biome's fallback list
4. Any biome with quota left, in table order
5. The table's absolute default

Diversity rules run before similarity so small grids do not starve rare biomes.
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog

from ..utils.random import SeededField
from .biome_table import BiomeTable, Quadrant
from .quotas import QuotaLedger

logger = structlog.get_logger()

# Independent hash streams per decision
DIVERSITY_OFFSET = 1000.0
MISSING_PICK_OFFSET = 2000.0
RARE_OFFSET = 3000.0
RARE_PICK_OFFSET = 4000.0


@dataclass
class FallbackOptions:
    """Fallback resolution options."""

    missing_biome_probability: float = 0.4
    rare_biome_probability: float = 0.3
    rare_biome_threshold: int = 50  # Placed-tile count below which a biome is rare


class FallbackResolver:
    """Picks a substitute biome for a tile whose preferred biome is full."""

    def __init__(
        self,
        table: BiomeTable,
        field: SeededField,
        island_radius: float,
        options: Optional[FallbackOptions] = None,
    ):
        """
        Initialize the resolver.

        Args:
            table: Biome table with fallback lists and quadrant preferences
            field: Seeded hash providing the reproducible diversity draws
            island_radius: Tiles per island-normalized unit
            options: Fallback options
        """
        self.table = table
        self.field = field
        self.island_radius = island_radius
        self.options = options or FallbackOptions()

    def resolve(self, preferred: str, x: int, z: int, ledger: QuotaLedger) -> str:
        """
        Choose the biome to place at (x, z) instead of `preferred`.

        Args:
            preferred: Preferred biome id (exhausted)
            x: Tile x coordinate
            z: Tile z coordinate
            ledger: Live quota ledger (read only here)

        Returns:
            Biome id; it has quota left unless every category is exhausted
        """
        return (
            self._missing_biome(x, z, ledger)
            or self._rare_biome(x, z, ledger)
            or self._similar_biome(preferred, ledger)
            or self._any_remaining(ledger)
            or self._absolute_default(preferred, x, z)
        )

    def _missing_biome(self, x: int, z: int, ledger: QuotaLedger) -> Optional[str]:
        missing = ledger.missing()
        if not missing:
            return None
        if self.field.value(x, z, DIVERSITY_OFFSET) >= self.options.missing_biome_probability:
            return None

        quadrant = Quadrant.of(x / self.island_radius, z / self.island_radius)
        for biome_id in missing:
            if quadrant in self.table.favored_quadrants(biome_id):
                return biome_id

        return self._pick(missing, x, z, MISSING_PICK_OFFSET)

    def _rare_biome(self, x: int, z: int, ledger: QuotaLedger) -> Optional[str]:
        rare = ledger.rare(self.options.rare_biome_threshold)
        if not rare:
            return None
        if self.field.value(x, z, RARE_OFFSET) >= self.options.rare_biome_probability:
            return None
        return self._pick(rare, x, z, RARE_PICK_OFFSET)

    def _similar_biome(self, preferred: str, ledger: QuotaLedger) -> Optional[str]:
        for biome_id in self.table.get(preferred).fallback_priority:
            if ledger.has_capacity(biome_id):
                return biome_id
        return None

    def _any_remaining(self, ledger: QuotaLedger) -> Optional[str]:
        for biome_id in self.table.ids:
            if ledger.has_capacity(biome_id):
                return biome_id
        return None

    def _absolute_default(self, preferred: str, x: int, z: int) -> str:
        logger.warning("All quotas exhausted, using absolute default", preferred=preferred, x=x, z=z)
        return self.table.absolute_default

    def _pick(self, candidates: List[str], x: int, z: int, offset: float) -> str:
        index = int(self.field.value(x, z, offset) * len(candidates))
        return candidates[min(index, len(candidates) - 1)]
