"""
Core biome allocation and clustering engine.
"""

from .biome_table import BiomeCategory, BiomeTable, ClusterSeed, Quadrant, earth_biome_table
from .grid import Grid, clamp_map_size
from .quotas import QuotaCalculator, QuotaLedger
from .cluster_field import ClusterField, ClusterMap, ClusterOptions
from .fallback import FallbackOptions, FallbackResolver
from .tile_assigner import TileAssigner, TileAssignmentMap
from .block_clusterer import BlockClusterer, ClusteringResult, PlacedBlock
from .engine import BiomeMapEngine, GeneratedMap, GenerationRequest, MapSession

__all__ = ['BiomeCategory', 'BiomeTable', 'ClusterSeed', 'Quadrant', 'earth_biome_table',
           'Grid', 'clamp_map_size', 'QuotaCalculator', 'QuotaLedger',
           'ClusterField', 'ClusterMap', 'ClusterOptions',
           'FallbackOptions', 'FallbackResolver', 'TileAssigner', 'TileAssignmentMap',
           'BlockClusterer', 'ClusteringResult', 'PlacedBlock',
           'BiomeMapEngine', 'GeneratedMap', 'GenerationRequest', 'MapSession']
