"""
Natural biome preference by nearest cluster seed.

For every tile the field answers "which biome would naturally be here":
- Outside the (slightly wobbly) coastline: the water default
- In low basins and along the river channel: freshwater
- Inside a seed's influence radius: the nearest seed's biome
- Anywhere else on the island: the land default

Regions are compact and never blended. The elevation proxy (central ridge plus
octave noise) only drives the lake rule.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import structlog

from ..utils.random import SeededField
from .biome_table import BiomeTable
from .grid import Grid

logger = structlog.get_logger()

NOISE_OFFSET = 500.0
OCTAVE_STRIDE = 97.0


@dataclass
class ClusterOptions:
    """Cluster field options."""

    island_radius_factor: float = 0.65  # Island radius as a share of half the grid
    ocean_threshold: float = 1.0  # Normalized distance where the ocean starts
    coast_wobble: float = 1.0  # Scale of the coastline wobble (0 = perfect circle)

    # Elevation proxy
    ridge_weight: float = 0.65  # Share of the central ridge vs. noise
    spine_strength: float = 0.35  # Extra height along the north-south spine
    noise_scales: Tuple[int, ...] = (12, 6, 3)  # Octave cell sizes in tiles
    noise_weights: Tuple[float, ...] = (0.5, 0.3, 0.2)
    elevation_scale: float = 10.0
    elevation_offset: float = 1.0

    # Freshwater features
    lake_level: float = 0.2  # Elevation below which basins fill with water
    lake_min_distance: float = 0.3
    lake_max_distance: float = 0.85
    river_origin: Optional[Tuple[float, float]] = (-0.37, 0.31)
    river_amplitude: float = 0.18
    river_frequency: float = 6.0
    river_half_width: float = 1.25  # In tiles


@dataclass
class ClusterMap:
    """Preferred biome code and elevation proxy for every tile of a grid."""

    preferred: np.ndarray  # int16, indexed [x + half, z + half]
    elevation: np.ndarray  # float64, same indexing


class ClusterField:
    """Resolves the naturally preferred biome of tiles on one grid."""

    def __init__(
        self,
        table: BiomeTable,
        grid: Grid,
        field: SeededField,
        options: Optional[ClusterOptions] = None,
    ):
        """
        Initialize the cluster field.

        Args:
            table: Biome table with cluster seeds and default roles
            grid: Grid being generated
            field: Seeded hash for the elevation noise
            options: Cluster options
        """
        self.table = table
        self.grid = grid
        self.field = field
        self.options = options or ClusterOptions()

        if len(self.options.noise_scales) != len(self.options.noise_weights):
            raise ValueError("noise_scales and noise_weights must have the same length")

        self.island_radius = max(self.options.island_radius_factor * grid.half_size, 0.5)

        self._seed_x = np.array([s.sx for s in table.seeds], dtype=np.float64)
        self._seed_z = np.array([s.sz for s in table.seeds], dtype=np.float64)
        self._seed_r2 = np.array([s.radius * s.radius for s in table.seeds], dtype=np.float64)
        self._seed_codes = np.array([table.code(s.biome) for s in table.seeds], dtype=np.int16)

    def island_coordinates(self, x: float, z: float) -> Tuple[float, float]:
        """Tile coordinate to island-normalized coordinate."""
        return x / self.island_radius, z / self.island_radius

    def evaluate(self) -> ClusterMap:
        """Compute preferred biomes and elevation for the whole grid at once."""
        xs, zs = self.grid.coordinates()
        preferred, elevation = self._classify(xs, zs)
        logger.debug(
            "Cluster field evaluated",
            size=self.grid.size,
            seeds=len(self.table.seeds),
            island_radius=self.island_radius,
        )
        return ClusterMap(preferred=preferred, elevation=elevation)

    def preferred_biome(self, x: int, z: int) -> str:
        """Preferred biome id of a single tile."""
        preferred, _ = self._classify(np.array([x]), np.array([z]))
        return self.table.ids[int(preferred[0])]

    def elevation(self, x: int, z: int) -> float:
        """Elevation proxy of a single tile."""
        _, elevation = self._classify(np.array([x]), np.array([z]))
        return float(elevation[0])

    def _classify(self, xs: np.ndarray, zs: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        xs = np.asarray(xs, dtype=np.float64)
        zs = np.asarray(zs, dtype=np.float64)
        ix = xs / self.island_radius
        iz = zs / self.island_radius
        distance = np.sqrt(ix * ix + iz * iz)

        elevation = self._elevation(xs, zs, ix, iz, distance)

        preferred = np.full(xs.shape, self.table.code(self.table.land_default), dtype=np.int16)

        seed_code = self._nearest_seed(ix, iz)
        claimed = seed_code >= 0
        preferred[claimed] = seed_code[claimed]

        if self.table.freshwater is not None:
            fresh = self._freshwater_mask(ix, iz, distance, elevation)
            preferred[fresh] = self.table.code(self.table.freshwater)

        if self.table.water_default is not None:
            ocean = self._ocean_mask(ix, iz, distance)
            preferred[ocean] = self.table.code(self.table.water_default)

        return preferred, elevation

    def _nearest_seed(self, ix: np.ndarray, iz: np.ndarray) -> np.ndarray:
        """
        Code of the nearest seed whose radius covers each tile, -1 where none does.

        Seeds are visited in declaration order with a strict comparison, so
        equidistant seeds resolve to the one declared first.
        """
        best_d2 = np.full(ix.shape, np.inf)
        best_code = np.full(ix.shape, -1, dtype=np.int16)

        for k in range(len(self._seed_codes)):
            dx = ix - self._seed_x[k]
            dz = iz - self._seed_z[k]
            d2 = dx * dx + dz * dz
            wins = (d2 < self._seed_r2[k]) & (d2 < best_d2)
            best_d2[wins] = d2[wins]
            best_code[wins] = self._seed_codes[k]

        return best_code

    def _coast_wobble(self, ix: np.ndarray, iz: np.ndarray) -> np.ndarray:
        return self.options.coast_wobble * (
            np.sin(ix * 4.0 + iz * 2.4) * 0.1 + np.cos(ix * 2.4 - iz * 4.0) * 0.08
        )

    def _ocean_mask(self, ix: np.ndarray, iz: np.ndarray, distance: np.ndarray) -> np.ndarray:
        return distance + self._coast_wobble(ix, iz) > self.options.ocean_threshold

    def _freshwater_mask(
        self,
        ix: np.ndarray,
        iz: np.ndarray,
        distance: np.ndarray,
        elevation: np.ndarray,
    ) -> np.ndarray:
        opts = self.options
        lakes = (
            (elevation < opts.lake_level)
            & (distance >= opts.lake_min_distance)
            & (distance <= opts.lake_max_distance)
        )

        if opts.river_origin is None:
            return lakes

        origin_x, origin_z = opts.river_origin
        channel = origin_x + np.sin((iz - origin_z) * opts.river_frequency) * opts.river_amplitude
        half_width = opts.river_half_width / self.island_radius
        river = (np.abs(ix - channel) <= half_width) & (iz >= origin_z) & (distance <= opts.ocean_threshold)
        return lakes | river

    def _elevation(
        self,
        xs: np.ndarray,
        zs: np.ndarray,
        ix: np.ndarray,
        iz: np.ndarray,
        distance: np.ndarray,
    ) -> np.ndarray:
        """
        Elevation proxy: a central ridge with a north-south spine plus octave noise.

        The unscaled value lies in [0, 1); it is then scaled and offset.
        """
        opts = self.options

        falloff = np.clip(1.0 - distance, 0.0, 1.0)
        spine = np.exp(-((ix - 0.25 * iz) ** 2) / 0.02)
        ridge = falloff * (1.0 + opts.spine_strength * spine) / (1.0 + opts.spine_strength)

        noise = np.zeros(xs.shape, dtype=np.float64)
        weight_total = sum(opts.noise_weights) or 1.0
        for octave, (scale, weight) in enumerate(zip(opts.noise_scales, opts.noise_weights)):
            cell_x = np.floor(xs / scale)
            cell_z = np.floor(zs / scale)
            noise += weight * self.field.values(cell_x, cell_z, NOISE_OFFSET + octave * OCTAVE_STRIDE)
        noise /= weight_total

        raw = opts.ridge_weight * ridge + (1.0 - opts.ridge_weight) * noise
        return raw * opts.elevation_scale - opts.elevation_offset
