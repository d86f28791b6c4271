"""Tests for the biome category table."""

import pytest

from py_biomap.core.biome_table import (
    BiomeCategory,
    BiomeTable,
    ClusterSeed,
    Quadrant,
    SALTWATER,
    SCRUB,
    TROPICAL_RAINFOREST,
    TUNDRA,
    URBAN,
)


class TestQuadrant:

    def test_quadrants(self):
        assert Quadrant.of(0.5, 0.5) == Quadrant.NORTHEAST
        assert Quadrant.of(-0.5, 0.5) == Quadrant.NORTHWEST
        assert Quadrant.of(0.5, -0.5) == Quadrant.SOUTHEAST
        assert Quadrant.of(-0.5, -0.5) == Quadrant.SOUTHWEST

    def test_axes_count_as_north_and_east(self):
        assert Quadrant.of(0.0, 0.0) == Quadrant.NORTHEAST


class TestEarthTable:
    """Test the built-in Earth table."""

    def test_categories(self, earth_table):
        assert len(earth_table) == 14
        assert earth_table.ids[0] == SALTWATER
        assert earth_table.get(SALTWATER).earth_area_fraction == pytest.approx(0.6903)
        assert sum(earth_table.fractions().values()) == pytest.approx(1.0926)

    def test_roles(self, earth_table):
        assert earth_table.overflow == SALTWATER
        assert earth_table.water_default == SALTWATER
        assert earth_table.absolute_default == SALTWATER
        assert earth_table.land_default == SCRUB

    def test_water_and_land(self, earth_table):
        assert earth_table.water_ids() == ["saltwater", "freshwater"]
        assert len(earth_table.land_ids()) == 12

    def test_seeds(self, earth_table):
        assert len(earth_table.seeds) == 18
        assert earth_table.seeds[0].biome == URBAN
        assert all(seed.biome in earth_table for seed in earth_table.seeds)

    def test_favored_quadrants_follow_seeds(self, earth_table):
        assert earth_table.favored_quadrants(TROPICAL_RAINFOREST) == frozenset({Quadrant.SOUTHEAST})
        assert earth_table.favored_quadrants(TUNDRA) == frozenset({Quadrant.NORTHEAST})

    def test_codes_follow_declaration_order(self, earth_table):
        for code, category in enumerate(earth_table):
            assert earth_table.code(category.id) == code


class TestTableValidation:
    """Test table construction errors."""

    def test_empty(self):
        with pytest.raises(ValueError):
            BiomeTable([])

    def test_duplicate_ids(self):
        with pytest.raises(ValueError):
            BiomeTable([BiomeCategory("A", "A", 0.5), BiomeCategory("A", "A", 0.5)])

    def test_unknown_fallback(self):
        with pytest.raises(ValueError):
            BiomeTable([BiomeCategory("A", "A", 1.0, ("Z",))])

    def test_negative_fraction(self):
        with pytest.raises(ValueError):
            BiomeTable([BiomeCategory("A", "A", -0.1), BiomeCategory("B", "B", 1.0)])

    def test_zero_fraction_sum(self):
        with pytest.raises(ValueError):
            BiomeTable([BiomeCategory("A", "A", 0.0)])

    def test_bad_seed(self):
        categories = [BiomeCategory("A", "A", 1.0)]
        with pytest.raises(ValueError):
            BiomeTable(categories, [ClusterSeed("nowhere", 0.0, 0.0, "Z", 0.2)])
        with pytest.raises(ValueError):
            BiomeTable(categories, [ClusterSeed("point", 0.0, 0.0, "A", 0.0)])

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            BiomeTable([BiomeCategory("A", "A", 1.0)], water_default="ocean")

    def test_default_roles(self):
        table = BiomeTable([BiomeCategory("A", "A", 0.2), BiomeCategory("B", "B", 0.8)])
        assert table.land_default == "A"
        assert table.overflow == "B"
        assert table.absolute_default == "B"
        assert table.water_default is None
        assert table.freshwater is None

    def test_explicit_favored_quadrants(self):
        table = BiomeTable([
            BiomeCategory("A", "A", 1.0, favored_quadrants=frozenset({Quadrant.NORTHWEST})),
        ])
        assert table.favored_quadrants("A") == frozenset({Quadrant.NORTHWEST})
