"""
Integer tile quotas per biome and the ledger that tracks them.

QuotaCalculator turns area fractions into exact tile counts for an N x N grid;
QuotaLedger is the mutable remaining-quota counter owned by one assignment pass.
"""

import math
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from .biome_table import BiomeTable

logger = structlog.get_logger()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return int(math.floor(value + 0.5))


class QuotaCalculator:
    """Computes per-biome tile quotas that sum exactly to the tile count."""

    def __init__(self, table: BiomeTable):
        self.table = table

    def calculate(self, size: int, weights: Optional[Mapping[str, float]] = None) -> Dict[str, int]:
        """
        Compute the target quota of every category.

        Args:
            size: Grid side length N
            weights: Area (or fraction) per biome id; defaults to the table fractions.
                Only relative magnitudes matter.

        Returns:
            Dictionary biome id -> tile count, in table order, summing to N²
        """
        tile_count = size * size
        if size <= 0 or tile_count <= 0:
            raise ValueError(f"Cannot compute quotas for grid size {size}")

        weights = dict(weights) if weights is not None else self.table.fractions()
        unknown = set(weights) - set(self.table.ids)
        if unknown:
            raise ValueError(f"Weights reference unknown biomes: {sorted(unknown)}")
        if any(w < 0 for w in weights.values()):
            raise ValueError("Biome weights must be non-negative")

        total = sum(weights.values())
        if total <= 0:
            raise ValueError("Biome weights must sum to a positive value")

        quotas = {
            biome_id: round_half_up(tile_count * weights.get(biome_id, 0.0) / total)
            for biome_id in self.table.ids
        }

        residual = tile_count - sum(quotas.values())
        quotas[self.table.overflow] += residual

        if quotas[self.table.overflow] < 0:
            self._cover_deficit(quotas)

        logger.debug(
            "Quotas calculated",
            size=size,
            tiles=tile_count,
            residual=residual,
            overflow=self.table.overflow,
        )
        return quotas

    def _cover_deficit(self, quotas: Dict[str, int]):
        """Take a negative overflow back from the largest other categories, one tile each."""
        deficit = -quotas[self.table.overflow]
        quotas[self.table.overflow] = 0

        while deficit > 0:
            donors = sorted(
                (b for b in self.table.ids if quotas[b] > 0),
                key=lambda b: (-quotas[b], self.table.code(b)),
            )
            for biome_id in donors:
                if deficit == 0:
                    break
                quotas[biome_id] -= 1
                deficit -= 1


class QuotaLedger:
    """
    Remaining-quota counter for a single assignment pass.

    Counts only ever go down and never below zero, so at all times
    0 <= remaining <= target for every category.
    """

    def __init__(self, targets: Mapping[str, int], order: Optional[Sequence[str]] = None):
        """
        Initialize the ledger.

        Args:
            targets: Target tile count per biome id
            order: Iteration order for queries (defaults to the targets' order)
        """
        self.order = tuple(order) if order is not None else tuple(targets)
        self._target = {b: int(targets.get(b, 0)) for b in self.order}
        if any(count < 0 for count in self._target.values()):
            raise ValueError("Quota targets must be non-negative")

        self._remaining = dict(self._target)
        self.open_count = sum(1 for count in self._remaining.values() if count > 0)

    def target(self, biome_id: str) -> int:
        return self._target[biome_id]

    def remaining(self, biome_id: str) -> int:
        return self._remaining[biome_id]

    def placed(self, biome_id: str) -> int:
        return self._target[biome_id] - self._remaining[biome_id]

    def has_capacity(self, biome_id: str) -> bool:
        return self._remaining.get(biome_id, 0) > 0

    def take(self, biome_id: str) -> bool:
        """
        Consume one tile of a category's quota.

        Returns:
            False (and leaves the ledger untouched) if the category is exhausted
        """
        if self._remaining.get(biome_id, 0) <= 0:
            return False
        self._remaining[biome_id] -= 1
        if self._remaining[biome_id] == 0:
            self.open_count -= 1
        return True

    def sole_open(self) -> Optional[str]:
        """The only category with quota left, or None if there are zero or several."""
        if self.open_count != 1:
            return None
        for biome_id in self.order:
            if self._remaining[biome_id] > 0:
                return biome_id
        return None

    def open_ids(self) -> List[str]:
        return [b for b in self.order if self._remaining[b] > 0]

    def missing(self) -> List[str]:
        """Categories never placed yet that still have quota."""
        return [b for b in self.order if 0 < self._remaining[b] == self._target[b]]

    def rare(self, threshold: int) -> List[str]:
        """Categories with fewer than `threshold` tiles placed that still have quota."""
        return [
            b for b in self.order
            if self._remaining[b] > 0 and self._target[b] - self._remaining[b] < threshold
        ]

    def placed_counts(self) -> Dict[str, int]:
        return {b: self.placed(b) for b in self.order}

    def __repr__(self) -> str:
        return f"QuotaLedger(open={self.open_count}, remaining={sum(self._remaining.values())})"
