"""
Biome category table.

This module defines:
- The immutable BiomeCategory / ClusterSeed records the engine is parameterized by
- Geographic quadrants used by the missing-biome rule
- The Earth table: 14 categories, their surface-area fractions, similarity
  fallbacks and the island cluster-seed layout
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

# Earth category ids
SALTWATER = "saltwater"
FRESHWATER = "freshwater"
DESERTS = "deserts"
BOREAL_FOREST = "borealForest"
TEMPERATE_GRASSLAND = "temperateGrassland"
TEMPERATE_FOREST = "temperateForest"
TUNDRA = "tundra"
TROPICAL_RAINFOREST = "tropicalRainforest"
SAVANNA = "savanna"
MOUNTAINS = "mountains"
SCRUB = "scrub"
URBAN = "urban"
CROPLAND = "cropland"
PASTURELAND = "pastureland"

# Share of Earth's surface that is land
LAND_SHARE = 0.292


class Quadrant(str, Enum):
    """Island quadrant by sign of the normalized coordinates (north is +z)."""

    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"

    @classmethod
    def of(cls, ix: float, iz: float) -> "Quadrant":
        if iz >= 0:
            return cls.NORTHEAST if ix >= 0 else cls.NORTHWEST
        return cls.SOUTHEAST if ix >= 0 else cls.SOUTHWEST


@dataclass(frozen=True)
class ClusterSeed:
    """A named place where a biome naturally occurs, in island-normalized units."""

    name: str
    sx: float
    sz: float
    biome: str
    radius: float


@dataclass(frozen=True)
class BiomeCategory:
    """One land/water classification and its allocation metadata."""

    id: str
    name: str
    earth_area_fraction: float
    fallback_priority: Tuple[str, ...] = ()
    is_water: bool = False
    color: str = "#808080"
    favored_quadrants: FrozenSet[Quadrant] = field(default_factory=frozenset)


class BiomeTable:
    """
    Ordered biome categories plus the cluster-seed layout.

    The table is the single thing that distinguishes one visual taxonomy from
    another; every engine component takes it as a parameter.
    """

    def __init__(
        self,
        categories: Sequence[BiomeCategory],
        seeds: Sequence[ClusterSeed] = (),
        land_default: Optional[str] = None,
        overflow: Optional[str] = None,
        water_default: Optional[str] = None,
        freshwater: Optional[str] = None,
        absolute_default: Optional[str] = None,
    ):
        """
        Initialize and validate a biome table.

        Args:
            categories: Categories in declaration order
            seeds: Cluster seeds in declaration order (order is the tie-break)
            land_default: Answer when no seed claims an island tile (default: first category)
            overflow: Category absorbing rounding residuals and unfilled cells (default: largest fraction)
            water_default: Answer outside the coastline, None disables the ocean ring
            freshwater: Target of the lake/river rule, None disables it
            absolute_default: Terminal fallback answer (default: overflow)
        """
        if not categories:
            raise ValueError("Biome table needs at least one category")

        self.categories: Tuple[BiomeCategory, ...] = tuple(categories)
        self.ids: Tuple[str, ...] = tuple(c.id for c in self.categories)
        if len(set(self.ids)) != len(self.ids):
            raise ValueError("Biome category ids must be unique")

        self._by_id: Dict[str, BiomeCategory] = {c.id: c for c in self.categories}
        self._codes: Dict[str, int] = {c.id: i for i, c in enumerate(self.categories)}
        self.seeds: Tuple[ClusterSeed, ...] = tuple(seeds)

        self.overflow = overflow or max(self.categories, key=lambda c: c.earth_area_fraction).id
        self.land_default = land_default or self.ids[0]
        self.water_default = water_default
        self.freshwater = freshwater
        self.absolute_default = absolute_default or self.overflow

        self._validate()
        self._favored = self._build_favored_quadrants()

    def _validate(self):
        """Fail fast on tables that would leave the quota invariant undefined."""
        total = 0.0
        for category in self.categories:
            if category.earth_area_fraction < 0:
                raise ValueError(f"Negative area fraction for biome '{category.id}'")
            total += category.earth_area_fraction
            for fallback_id in category.fallback_priority:
                if fallback_id not in self._by_id:
                    raise ValueError(f"Biome '{category.id}' falls back to unknown biome '{fallback_id}'")
        if total <= 0:
            raise ValueError("Biome area fractions must sum to a positive value")

        for seed in self.seeds:
            if seed.biome not in self._by_id:
                raise ValueError(f"Cluster seed '{seed.name}' references unknown biome '{seed.biome}'")
            if seed.radius <= 0:
                raise ValueError(f"Cluster seed '{seed.name}' needs a positive radius")

        for role in ("overflow", "land_default", "water_default", "freshwater", "absolute_default"):
            biome_id = getattr(self, role)
            if biome_id is not None and biome_id not in self._by_id:
                raise ValueError(f"Table role '{role}' references unknown biome '{biome_id}'")

    def _build_favored_quadrants(self) -> Dict[str, FrozenSet[Quadrant]]:
        favored = {}
        for category in self.categories:
            if category.favored_quadrants:
                favored[category.id] = frozenset(category.favored_quadrants)
            else:
                favored[category.id] = frozenset(
                    Quadrant.of(seed.sx, seed.sz) for seed in self.seeds if seed.biome == category.id
                )
        return favored

    def __len__(self) -> int:
        return len(self.categories)

    def __iter__(self):
        return iter(self.categories)

    def __contains__(self, biome_id: str) -> bool:
        return biome_id in self._by_id

    def get(self, biome_id: str) -> BiomeCategory:
        return self._by_id[biome_id]

    def code(self, biome_id: str) -> int:
        """Integer code of a category (its declaration index)."""
        return self._codes[biome_id]

    def fractions(self) -> Dict[str, float]:
        return {c.id: c.earth_area_fraction for c in self.categories}

    def favored_quadrants(self, biome_id: str) -> FrozenSet[Quadrant]:
        return self._favored[biome_id]

    def water_ids(self) -> List[str]:
        return [c.id for c in self.categories if c.is_water]

    def land_ids(self) -> List[str]:
        return [c.id for c in self.categories if not c.is_water]


def earth_biome_table() -> BiomeTable:
    """
    Build the Earth biome table.

    Land fractions are share-of-land times LAND_SHARE. Cropland and pastureland
    overlap the natural biomes on the real planet, so the fractions sum to
    about 1.09 and are normalized when quotas are computed.
    """
    categories = [
        BiomeCategory(SALTWATER, "Saltwater", 0.6903,
                      (FRESHWATER,), is_water=True, color="#466eab"),
        BiomeCategory(FRESHWATER, "Freshwater", 0.0177,
                      (SALTWATER,), is_water=True, color="#6ba9cb"),
        BiomeCategory(DESERTS, "Deserts", 0.0555,
                      (SCRUB, SAVANNA, TEMPERATE_GRASSLAND), color="#fbe79f"),
        BiomeCategory(BOREAL_FOREST, "Boreal Forest", 0.0496,
                      (TEMPERATE_FOREST, TUNDRA, MOUNTAINS), color="#4b6b32"),
        BiomeCategory(TEMPERATE_GRASSLAND, "Temperate Grassland", 0.0380,
                      (PASTURELAND, SAVANNA, CROPLAND), color="#c8d68f"),
        BiomeCategory(TEMPERATE_FOREST, "Temperate Forest", 0.0380,
                      (BOREAL_FOREST, TROPICAL_RAINFOREST, TEMPERATE_GRASSLAND), color="#29bc56"),
        BiomeCategory(TUNDRA, "Tundra", 0.0321,
                      (BOREAL_FOREST, MOUNTAINS, SCRUB), color="#96784b"),
        BiomeCategory(TROPICAL_RAINFOREST, "Tropical Rainforest", 0.0292,
                      (TEMPERATE_FOREST, SAVANNA), color="#7dcb35"),
        BiomeCategory(SAVANNA, "Savanna", 0.0234,
                      (TEMPERATE_GRASSLAND, SCRUB, DESERTS), color="#d2d082"),
        BiomeCategory(MOUNTAINS, "Mountains", 0.0175,
                      (TUNDRA, SCRUB, BOREAL_FOREST), color="#a0a0a0"),
        BiomeCategory(SCRUB, "Scrub", 0.0088,
                      (DESERTS, SAVANNA, TEMPERATE_GRASSLAND), color="#b5b887"),
        BiomeCategory(URBAN, "Urban", 0.0020,
                      (CROPLAND, PASTURELAND), color="#5a5a5a"),
        BiomeCategory(CROPLAND, "Cropland", 0.0585,
                      (PASTURELAND, TEMPERATE_GRASSLAND, URBAN), color="#8b6b3d"),
        BiomeCategory(PASTURELAND, "Pastureland", 0.0320,
                      (TEMPERATE_GRASSLAND, CROPLAND, SAVANNA), color="#9acd32"),
    ]

    seeds = [
        ClusterSeed("capital", 0.0, 0.0, URBAN, 0.12),
        ClusterSeed("great lake", -0.37, 0.31, FRESHWATER, 0.12),
        ClusterSeed("central plains", -0.25, -0.05, CROPLAND, 0.30),
        ClusterSeed("river valley", 0.15, 0.30, CROPLAND, 0.22),
        ClusterSeed("eastern pastures", 0.35, 0.05, PASTURELAND, 0.28),
        ClusterSeed("western pastures", -0.55, 0.10, PASTURELAND, 0.22),
        ClusterSeed("northern range", 0.10, 0.50, MOUNTAINS, 0.20),
        ClusterSeed("southeast highlands", 0.45, -0.20, MOUNTAINS, 0.15),
        ClusterSeed("polar north", 0.0, 0.90, TUNDRA, 0.35),
        ClusterSeed("northwest taiga", -0.45, 0.65, BOREAL_FOREST, 0.35),
        ClusterSeed("northeast taiga", 0.45, 0.65, BOREAL_FOREST, 0.30),
        ClusterSeed("steppe", -0.20, 0.35, TEMPERATE_GRASSLAND, 0.25),
        ClusterSeed("western woods", -0.70, -0.20, TEMPERATE_FOREST, 0.30),
        ClusterSeed("eastern woods", 0.70, 0.35, TEMPERATE_FOREST, 0.28),
        ClusterSeed("southwest desert", -0.45, -0.60, DESERTS, 0.40),
        ClusterSeed("southern savanna", 0.10, -0.60, SAVANNA, 0.30),
        ClusterSeed("southeast jungle", 0.60, -0.50, TROPICAL_RAINFOREST, 0.35),
        ClusterSeed("southern scrub", -0.10, -0.90, SCRUB, 0.20),
    ]

    return BiomeTable(
        categories,
        seeds,
        land_default=SCRUB,
        overflow=SALTWATER,
        water_default=SALTWATER,
        freshwater=FRESHWATER,
        absolute_default=SALTWATER,
    )
