"""Shared fixtures."""

import pytest

from py_biomap.core.biome_table import BiomeCategory, BiomeTable, earth_biome_table


@pytest.fixture
def earth_table():
    return earth_biome_table()


@pytest.fixture
def two_biome_table():
    """Categories A and B, no seeds, no water rules; the cluster field always answers A."""
    return BiomeTable(
        [
            BiomeCategory("A", "Alpha", 0.4, ("B",), color="#ff0000"),
            BiomeCategory("B", "Beta", 0.6, ("A",), color="#0000ff"),
        ],
        land_default="A",
    )
