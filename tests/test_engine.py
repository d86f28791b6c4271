"""Tests for the generation engine and regeneration session."""

import asyncio
import math

import numpy as np
import pytest

from py_biomap.core.engine import BiomeMapEngine, GenerationRequest, MapSession
from py_biomap.core.fallback import FallbackOptions


@pytest.fixture
def engine():
    return BiomeMapEngine(
        fallback_options=FallbackOptions(),
        min_map_size=11,
        max_map_size=151,
        default_map_size=41,
    )


def fixed_request(**overrides):
    values = dict(year=2025, use_population_sizing=False, map_size=51, seed=12.5)
    values.update(overrides)
    return GenerationRequest(**values)


class TestBiomeMapEngine:
    """Test end-to-end generation."""

    def test_generate(self, engine):
        generated = engine.generate(fixed_request())
        assert generated.grid.size == 51
        assert generated.seed == 12.5
        assert generated.final_map.is_complete()
        assert generated.tile_map.is_complete()
        assert sum(generated.targets.values()) == 51 * 51
        assert generated.generation_time_seconds >= 0
        assert generated.elevation.shape == (51, 51)

    def test_report_matches_targets(self, engine):
        generated = engine.generate(fixed_request())
        report = generated.report()
        assert len(report) == 14
        assert all(count.delta == 0 for count in report)
        assert sum(count.actual for count in report) == 51 * 51

    def test_natural_map_keeps_quotas(self, engine):
        generated = engine.generate(fixed_request())
        tile_counts = generated.tile_map.counts()
        final_counts = generated.final_map.counts()
        assert tile_counts == final_counts

    def test_deterministic(self, engine):
        first = engine.generate(fixed_request())
        second = engine.generate(fixed_request())
        assert np.array_equal(first.tile_map.codes, second.tile_map.codes)
        assert np.array_equal(first.final_map.codes, second.final_map.codes)
        assert first.blocks == second.blocks

    def test_seed_changes_map(self, engine):
        first = engine.generate(fixed_request(seed=1.0))
        second = engine.generate(fixed_request(seed=2.0))
        assert not np.array_equal(first.tile_map.codes, second.tile_map.codes)

    def test_without_block_clustering(self, engine):
        generated = engine.generate(fixed_request(block_clustering=False))
        assert generated.final_map is generated.tile_map
        assert generated.blocks == []

    def test_population_mode_clamps_water(self, engine):
        generated = engine.generate(fixed_request(use_population_sizing=True, map_size=101))
        counts = generated.final_map.counts()
        water = counts["saltwater"] + counts["freshwater"]
        assert water == math.floor(101 * 101 * 0.709)

    def test_default_size_without_population_sizing(self, engine):
        generated = engine.generate(fixed_request(map_size=None))
        assert generated.grid.size == 41

    def test_population_size(self, engine):
        assert engine.map_size(GenerationRequest(year=2025)) == 151
        assert BiomeMapEngine().map_size(GenerationRequest(year=2025)) == 251

    def test_map_size_override_is_clamped(self, engine):
        assert engine.map_size(fixed_request(map_size=60)) == 61
        assert engine.map_size(fixed_request(map_size=4)) == 11

    def test_invalid_water_fraction(self, engine):
        with pytest.raises(ValueError):
            engine.generate(fixed_request(water_fraction=1.5))

    def test_tile_elevation(self, engine):
        generated = engine.generate(fixed_request())
        assert generated.elevation_at(0, 0) == generated.elevation[25, 25]


class TestMapSession:
    """Test the regeneration workflow."""

    def test_regenerate_keeps_latest(self, engine):
        session = MapSession(engine)
        assert session.latest is None
        generated = asyncio.run(session.regenerate(fixed_request()))
        assert generated is not None
        assert session.latest is generated
        assert not session.in_progress

    def test_hooks_run_around_generation(self, engine):
        session = MapSession(engine)
        calls = []

        async def before():
            calls.append(("before", session.latest))

        async def after():
            calls.append(("after", session.latest))

        generated = asyncio.run(session.regenerate(fixed_request(), before=before, after=after))
        assert calls == [("before", None), ("after", generated)]

    def test_request_during_regeneration_is_dropped(self, engine):
        session = MapSession(engine)
        nested = []

        async def before():
            assert session.in_progress
            nested.append(await session.regenerate(fixed_request(seed=99.0)))

        generated = asyncio.run(session.regenerate(fixed_request(), before=before))
        assert nested == [None]
        assert generated.seed == 12.5
        assert session.latest is generated

    def test_failed_regeneration_releases_guard(self, engine):
        session = MapSession(engine)
        previous = asyncio.run(session.regenerate(fixed_request()))
        with pytest.raises(ValueError):
            asyncio.run(session.regenerate(fixed_request(water_fraction=-0.1)))
        assert not session.in_progress
        assert session.latest is previous

    def test_overlapping_regenerations(self, engine):
        """The second of two concurrent regenerations is dropped while the first runs."""
        session = MapSession(engine)

        async def run_both():
            return await asyncio.gather(
                session.regenerate(fixed_request(seed=1.0)),
                session.regenerate(fixed_request(seed=2.0)),
            )

        first, second = asyncio.run(run_both())
        assert first is not None and first.seed == 1.0
        assert second is None
        assert session.latest is first
        assert not session.in_progress
