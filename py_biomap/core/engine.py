"""
Biome map generation engine and regeneration session.

The engine wires the components together for one request:
AreaModel -> QuotaCalculator -> ClusterField -> TileAssigner -> BlockClusterer.
Every invocation builds its own ledger and occupancy grid and discards them
afterwards; MapSession only keeps the last finished map.
"""

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import numpy as np
import structlog

from ..config import settings
from ..utils.random import SeededField, new_session_seed
from .area_model import area_breakdown, population_map_size
from .biome_table import BiomeTable, earth_biome_table
from .block_clusterer import BlockClusterer, PlacedBlock
from .cluster_field import ClusterField, ClusterOptions
from .fallback import FallbackOptions, FallbackResolver
from .grid import Grid, clamp_map_size
from .quotas import QuotaCalculator
from .tile_assigner import TileAssigner, TileAssignmentMap

logger = structlog.get_logger()


@dataclass
class GenerationRequest:
    """Inputs of one regeneration."""

    year: int = 2025
    use_population_sizing: bool = True
    map_size: Optional[int] = None  # Overrides the size derived from year/mode
    seed: Optional[float] = None  # Per-session random seed when omitted
    block_clustering: bool = True
    water_fraction: float = 0.709


@dataclass
class BiomeCount:
    """Target vs. actual tile count of one biome."""

    biome: str
    name: str
    target: int
    actual: int

    @property
    def delta(self) -> int:
        return self.actual - self.target


@dataclass
class GeneratedMap:
    """Everything produced by one regeneration."""

    request: GenerationRequest
    grid: Grid
    seed: float
    targets: Dict[str, int]
    tile_map: TileAssignmentMap  # Natural, cluster-driven assignment
    final_map: TileAssignmentMap  # What the rendering layer draws
    elevation: np.ndarray
    blocks: List[PlacedBlock] = field(default_factory=list)
    shortfall: Dict[str, int] = field(default_factory=dict)
    generation_time_seconds: float = 0.0

    def report(self) -> List[BiomeCount]:
        """Per-biome target vs. actual counts of the final map."""
        actual = self.final_map.counts()
        table = self.final_map.table
        return [
            BiomeCount(biome_id, table.get(biome_id).name, self.targets.get(biome_id, 0), actual[biome_id])
            for biome_id in table.ids
        ]

    def elevation_at(self, x: int, z: int) -> float:
        return float(self.elevation[self.grid.to_index(x, z)])


class BiomeMapEngine:
    """Deterministic biome map generator parameterized by a biome table."""

    def __init__(
        self,
        table: Optional[BiomeTable] = None,
        cluster_options: Optional[ClusterOptions] = None,
        fallback_options: Optional[FallbackOptions] = None,
        min_map_size: Optional[int] = None,
        max_map_size: Optional[int] = None,
        default_map_size: Optional[int] = None,
    ):
        """
        Initialize the engine.

        Args:
            table: Biome table (Earth table by default)
            cluster_options: Cluster field options
            fallback_options: Fallback options (defaults from settings)
            min_map_size: Smallest grid size (defaults from settings)
            max_map_size: Largest grid size (defaults from settings)
            default_map_size: Size when population sizing is off (defaults from settings)
        """
        self.table = table or earth_biome_table()
        self.cluster_options = cluster_options or ClusterOptions()
        self.fallback_options = fallback_options or FallbackOptions(
            missing_biome_probability=settings.missing_biome_probability,
            rare_biome_probability=settings.rare_biome_probability,
            rare_biome_threshold=settings.rare_biome_threshold,
        )
        self.min_map_size = min_map_size if min_map_size is not None else settings.min_map_size
        self.max_map_size = max_map_size if max_map_size is not None else settings.max_map_size
        self.default_map_size = default_map_size if default_map_size is not None else settings.default_map_size

    def map_size(self, request: GenerationRequest) -> int:
        """Grid size for a request: explicit override, population-derived, or default."""
        if request.map_size is not None:
            return clamp_map_size(request.map_size, self.min_map_size, self.max_map_size)
        if request.use_population_sizing:
            return population_map_size(request.year, self.min_map_size, self.max_map_size)
        return clamp_map_size(self.default_map_size, self.min_map_size, self.max_map_size)

    def generate(self, request: GenerationRequest) -> GeneratedMap:
        """
        Generate a biome map.

        Args:
            request: Generation inputs

        Returns:
            GeneratedMap whose final map covers the grid exactly once
        """
        if not 0.0 <= request.water_fraction <= 1.0:
            raise ValueError(f"Water fraction must be within [0, 1], got {request.water_fraction}")

        started = time.perf_counter()
        seed = request.seed if request.seed is not None else new_session_seed()
        grid = Grid(self.map_size(request))
        field_ = SeededField(seed)

        logger.info(
            "Generating biome map",
            year=request.year,
            size=grid.size,
            seed=seed,
            population_sizing=request.use_population_sizing,
        )

        weights = area_breakdown(request.year, self.table)
        targets = QuotaCalculator(self.table).calculate(grid.size, weights)

        cluster_field = ClusterField(self.table, grid, field_, self.cluster_options)
        cluster_map = cluster_field.evaluate()
        resolver = FallbackResolver(self.table, field_, cluster_field.island_radius, self.fallback_options)
        tile_map = TileAssigner(grid, self.table, cluster_field, resolver).assign(targets, cluster_map)

        final_map = tile_map
        blocks: List[PlacedBlock] = []
        shortfall: Dict[str, int] = {}
        if request.block_clustering:
            water_tiles = None
            if request.use_population_sizing:
                water_tiles = math.floor(grid.tile_count * request.water_fraction)
            clustered = BlockClusterer(grid, self.table).cluster(tile_map.counts(), water_tiles)
            final_map = clustered.assignment
            blocks = clustered.blocks
            shortfall = clustered.shortfall
            targets = clustered.counts

        generated = GeneratedMap(
            request=request,
            grid=grid,
            seed=seed,
            targets=targets,
            tile_map=tile_map,
            final_map=final_map,
            elevation=cluster_map.elevation,
            blocks=blocks,
            shortfall=shortfall,
            generation_time_seconds=time.perf_counter() - started,
        )

        mismatched = [c.biome for c in generated.report() if c.delta != 0]
        if mismatched:
            logger.warning("Biome counts differ from targets", biomes=mismatched)

        logger.info(
            "Biome map generated",
            size=grid.size,
            blocks=len(blocks),
            seconds=round(generated.generation_time_seconds, 3),
        )
        return generated


Hook = Callable[[], Awaitable[None]]


class MapSession:
    """
    Regeneration workflow around the engine.

    Only one regeneration runs at a time: a request arriving while another is
    in progress is dropped, not queued. The last finished map stays available
    read-only until the next one replaces it.
    """

    def __init__(self, engine: Optional[BiomeMapEngine] = None):
        self.engine = engine or BiomeMapEngine()
        self.latest: Optional[GeneratedMap] = None
        self.in_progress = False

    async def regenerate(
        self,
        request: GenerationRequest,
        before: Optional[Hook] = None,
        after: Optional[Hook] = None,
    ) -> Optional[GeneratedMap]:
        """
        Run one regeneration unless another is already running.

        Args:
            request: Generation inputs
            before: Awaited before the engine runs (e.g. asset loading)
            after: Awaited after the engine finished

        Returns:
            The new map, or None if the request was dropped
        """
        if self.in_progress:
            logger.info("Regeneration already in progress, dropping request", year=request.year)
            return None

        self.in_progress = True
        try:
            if before is not None:
                await before()
            # Off the event loop so overlapping requests see the guard
            generated = await asyncio.to_thread(self.engine.generate, request)
            self.latest = generated
            if after is not None:
                await after()
            return generated
        finally:
            self.in_progress = False
