"""
Earth surface area per person.

Maps a calendar year to a world-population estimate and from there to the
share of Earth's surface each person would own, broken down by biome.
"""

import math
from typing import Dict, Optional

from .biome_table import (
    BOREAL_FOREST,
    CROPLAND,
    PASTURELAND,
    SAVANNA,
    TEMPERATE_FOREST,
    TEMPERATE_GRASSLAND,
    TROPICAL_RAINFOREST,
    URBAN,
    BiomeTable,
    earth_biome_table,
)
from .grid import clamp_map_size

EARTH_SURFACE_AREA_M2 = 510_072_000_000_000
OCEAN_SHARE = 0.7092
LAND_SHARE = 0.2908

BASE_POPULATION = 8_045_311_447  # UN estimate, 1 January 2023
BASE_YEAR = 2023

# Compound growth rates by period
HISTORICAL_GROWTH = 0.0084
GROWTH_TO_2030 = 0.0067
GROWTH_TO_2050 = 0.0043
GROWTH_AFTER_2050 = 0.001

# Share of each biome group people can realistically use
USABLE_FOREST_SHARE = 0.15
USABLE_GRASSLAND_SHARE = 0.35


def world_population(year: int) -> int:
    """
    Estimate world population for a year.

    Backwards from 2023 the recent average growth rate is undone; forwards the
    growth rate declines in steps at 2030 and 2050.
    """
    if year < BASE_YEAR:
        population = BASE_POPULATION / math.pow(1 + HISTORICAL_GROWTH, BASE_YEAR - year)
    elif year <= 2030:
        population = BASE_POPULATION * math.pow(1 + GROWTH_TO_2030, year - BASE_YEAR)
    elif year <= 2050:
        pop_2030 = BASE_POPULATION * math.pow(1 + GROWTH_TO_2030, 2030 - BASE_YEAR)
        population = pop_2030 * math.pow(1 + GROWTH_TO_2050, year - 2030)
    else:
        pop_2050 = (
            BASE_POPULATION
            * math.pow(1 + GROWTH_TO_2030, 2030 - BASE_YEAR)
            * math.pow(1 + GROWTH_TO_2050, 2050 - 2030)
        )
        population = pop_2050 * math.pow(1 + GROWTH_AFTER_2050, year - 2050)

    return int(round(population))


def total_area_per_person(year: int) -> float:
    """Earth's surface area divided by the world population, in m²."""
    return EARTH_SURFACE_AREA_M2 / world_population(year)


def ocean_area_per_person(year: int) -> float:
    return total_area_per_person(year) * OCEAN_SHARE


def land_area_per_person(year: int) -> float:
    return total_area_per_person(year) * LAND_SHARE


def area_breakdown(year: int, table: Optional[BiomeTable] = None) -> Dict[str, float]:
    """
    Per-person area for every biome category, in m².

    Args:
        year: Calendar year
        table: Biome table supplying the surface fractions (Earth table by default)

    Returns:
        Dictionary mapping biome id to square meters per person
    """
    table = table or earth_biome_table()
    total = total_area_per_person(year)
    return {category.id: total * category.earth_area_fraction for category in table}


def usable_area_per_person(year: int) -> float:
    """
    Area per person that is suitable for agriculture or habitation, in m².

    Only part of the forests and grasslands count; farmland and urban land
    count in full.
    """
    breakdown = area_breakdown(year)
    forests = breakdown[BOREAL_FOREST] + breakdown[TEMPERATE_FOREST] + breakdown[TROPICAL_RAINFOREST]
    grasslands = breakdown[TEMPERATE_GRASSLAND] + breakdown[SAVANNA]
    farmland = breakdown[PASTURELAND] + breakdown[CROPLAND]
    return (
        forests * USABLE_FOREST_SHARE
        + grasslands * USABLE_GRASSLAND_SHARE
        + farmland
        + breakdown[URBAN]
    )


def population_map_size(year: int, min_size: int = 50, max_size: int = 500) -> int:
    """
    Grid size showing one person's share of the planet at 1 tile = 1 m².

    Args:
        year: Calendar year
        min_size: Smallest allowed size
        max_size: Largest allowed size

    Returns:
        Odd grid size within [min_size, max_size]
    """
    side = math.floor(math.sqrt(total_area_per_person(year)))
    return clamp_map_size(side, min_size, max_size)
