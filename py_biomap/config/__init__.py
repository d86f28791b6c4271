"""
Configuration for biome map generation.
"""

from .config import Settings, settings

__all__ = ['Settings', 'settings']
