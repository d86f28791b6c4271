"""Tests for block clustering."""

import math

import numpy as np
import pytest

from py_biomap.core.biome_table import BiomeCategory, BiomeTable
from py_biomap.core.block_clusterer import BlockClusterer, PlacedBlock
from py_biomap.core.grid import Grid
from py_biomap.core.quotas import QuotaCalculator


@pytest.fixture
def abc_table():
    return BiomeTable(
        [
            BiomeCategory("A", "Alpha", 0.5),
            BiomeCategory("B", "Beta", 0.3),
            BiomeCategory("C", "Gamma", 0.2),
        ],
        overflow="C",
    )


def assert_exact_cover(result, grid):
    """Blocks never overlap and, with the fill, every cell is covered once."""
    cover = np.zeros((grid.size, grid.size), dtype=np.int32)
    half = grid.half_size
    for block in result.blocks:
        i, j = block.x + half, block.z + half
        assert 0 <= i and i + block.size <= grid.size
        assert 0 <= j and j + block.size <= grid.size
        cover[i:i + block.size, j:j + block.size] += 1
    assert cover.max() <= 1
    assert int(np.count_nonzero(cover)) + result.filled == grid.tile_count
    assert result.assignment.is_complete()


class TestPacking:
    """Test square packing."""

    def test_counts_preserved(self, abc_table):
        grid = Grid(21)
        counts = {"A": 300, "B": 100, "C": 41}
        result = BlockClusterer(grid, abc_table).cluster(counts)
        assert result.assignment.counts() == counts
        assert result.shortfall == {}
        assert result.filled == 0
        assert_exact_cover(result, grid)

    def test_largest_biome_is_centred(self, abc_table):
        result = BlockClusterer(Grid(21), abc_table).cluster({"A": 300, "B": 100, "C": 41})
        assert result.blocks[0] == PlacedBlock("A", -8, -8, 17)
        assert result.assignment.biome_at(0, 0) == "A"

    def test_block_sizes_follow_remaining_count(self, abc_table):
        result = BlockClusterer(Grid(21), abc_table).cluster({"A": 300, "B": 100, "C": 41})
        a_blocks = [b for b in result.blocks if b.biome == "A"]
        assert a_blocks[0].size == math.isqrt(300)
        assert sum(b.area for b in a_blocks) == 300

    def test_blocks_per_biome_sum_to_counts(self, abc_table):
        result = BlockClusterer(Grid(21), abc_table).cluster({"A": 200, "B": 150, "C": 91})
        for biome_id in ("A", "B", "C"):
            assert sum(b.area for b in result.blocks if b.biome == biome_id) == result.counts[biome_id]

    def test_leftover_cells_filled_with_overflow(self, abc_table):
        grid = Grid(5)
        result = BlockClusterer(grid, abc_table).cluster({"A": 10})
        assert result.filled == 15
        assert result.assignment.counts() == {"A": 10, "B": 0, "C": 15}
        assert_exact_cover(result, grid)

    def test_deterministic(self, earth_table):
        grid = Grid(51)
        counts = QuotaCalculator(earth_table).calculate(51)
        first = BlockClusterer(grid, earth_table).cluster(counts)
        second = BlockClusterer(grid, earth_table).cluster(counts)
        assert first.blocks == second.blocks
        assert np.array_equal(first.assignment.codes, second.assignment.codes)

    def test_earth_counts(self, earth_table):
        grid = Grid(51)
        counts = QuotaCalculator(earth_table).calculate(51)
        result = BlockClusterer(grid, earth_table).cluster(counts)
        assert result.assignment.counts() == counts
        assert_exact_cover(result, grid)

    def test_invalid_counts(self, abc_table):
        clusterer = BlockClusterer(Grid(5), abc_table)
        with pytest.raises(ValueError):
            clusterer.cluster({"A": 26})
        with pytest.raises(ValueError):
            clusterer.cluster({"A": -1})
        with pytest.raises(ValueError):
            clusterer.cluster({"Z": 1})


class TestWaterClamp:
    """Test the land/water clamp."""

    @pytest.fixture
    def counts(self, earth_table):
        return QuotaCalculator(earth_table).calculate(101)

    def test_clamp_at_101(self, earth_table, counts):
        grid = Grid(101)
        water_tiles = math.floor(10201 * 0.709)
        clamped = BlockClusterer(grid, earth_table).clamp_water(counts, water_tiles)

        water = sum(clamped[b] for b in earth_table.water_ids())
        land = sum(clamped[b] for b in earth_table.land_ids())
        assert water_tiles == 7232
        assert water == 7232
        assert land == 10201 - 7232
        assert sum(clamped.values()) == 10201

    def test_land_shrinks_proportionally(self, earth_table, counts):
        clamped = BlockClusterer(Grid(101), earth_table).clamp_water(counts, 7232)
        for biome_id in earth_table.land_ids():
            assert clamped[biome_id] <= counts[biome_id]
        assert clamped["cropland"] > clamped["urban"]

    def test_freshwater_keeps_its_share(self, earth_table, counts):
        clamped = BlockClusterer(Grid(101), earth_table).clamp_water(counts, 7232)
        share = 0.0177 / (0.0177 + 0.6903)
        assert clamped["freshwater"] == int(math.floor(7232 * share + 0.5))

    def test_land_under_limit_is_untouched(self, earth_table, counts):
        clamped = BlockClusterer(Grid(101), earth_table).clamp_water(counts, 1000)
        for biome_id in earth_table.land_ids():
            assert clamped[biome_id] == counts[biome_id]
        assert sum(clamped.values()) == 10201

    def test_invalid_water_target(self, earth_table, counts):
        clusterer = BlockClusterer(Grid(101), earth_table)
        with pytest.raises(ValueError):
            clusterer.clamp_water(counts, -1)
        with pytest.raises(ValueError):
            clusterer.clamp_water(counts, 10202)

    def test_cluster_applies_clamp(self, earth_table, counts):
        grid = Grid(101)
        result = BlockClusterer(grid, earth_table).cluster(counts, water_tiles=7232)
        final = result.assignment.counts()
        assert final == result.counts
        assert sum(final[b] for b in earth_table.water_ids()) == 7232
        assert_exact_cover(result, grid)

    def test_remainder_goes_to_largest_then_by_id(self):
        """Flooring leaves 2 tiles: the largest biome gets one, then the tie breaks by id."""
        table = BiomeTable(
            [
                BiomeCategory("ocean", "Ocean", 0.5, is_water=True),
                BiomeCategory("zeta", "Zeta", 0.2),
                BiomeCategory("beta", "Beta", 0.15),
                BiomeCategory("alpha", "Alpha", 0.15),
            ],
            water_default="ocean",
        )
        counts = {"ocean": 8, "zeta": 7, "beta": 5, "alpha": 5}
        clamped = BlockClusterer(Grid(5), table).clamp_water(counts, 12)
        # floors are 5, 3, 3 for 13 land tiles
        assert clamped == {"ocean": 12, "zeta": 6, "beta": 3, "alpha": 4}
