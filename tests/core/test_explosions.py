"""Tests for the explosion engine."""

from unittest.mock import patch

import numpy as np
import pytest

from photoburst.core.explosions import (
    BASE_COUNT,
    PHOTO_BASE_COUNT,
    SATURN_RING_DELAY,
    SATURN_RING_STRENGTH,
    ExplosionEngine,
)
from photoburst.core.particles import ParticleRingBuffer


@pytest.fixture
def engine(rng):
    return ExplosionEngine(ParticleRingBuffer(32000), rng=rng)


def _written(engine, count):
    """Slices of the last `count` records (no wrap in these tests)."""
    end = engine.particles.cursor
    return slice(end - count, end)


class TestParticleCount:
    def test_count_range(self, engine):
        for _ in range(20):
            engine.particles.cursor = 0
            count = engine.spawn_explosion((0, 10, 0), pattern="PEONY")
            assert int(BASE_COUNT * 0.75) <= count <= int(BASE_COUNT * 1.25)

    def test_photo_count_range(self, engine):
        count = engine.spawn_explosion((0, 10, 0), pattern="PEONY", is_photo_linked=True)
        assert int(PHOTO_BASE_COUNT * 0.75) <= count <= int(PHOTO_BASE_COUNT * 1.25)

    def test_zero_strength_is_noop(self, engine):
        assert engine.spawn_explosion((0, 0, 0), pattern="RING", strength=0.0) == 0
        assert engine.particles.cursor == 0

    def test_negative_strength_clamps(self, engine):
        assert engine.spawn_explosion((0, 0, 0), pattern="PEONY", strength=-2.0) == 0

    def test_strength_scales_count(self, engine):
        count = engine.spawn_explosion((0, 0, 0), pattern="PEONY", strength=0.5)
        assert count <= int(BASE_COUNT * 1.25 * 0.5)

    def test_cursor_advances_by_count(self, engine):
        count = engine.spawn_explosion((0, 0, 0), pattern="WILLOW")
        assert engine.particles.cursor == count


class TestParticleAttributes:
    def test_attribute_ranges(self, engine):
        center = np.array([3.0, 12.0, -2.0])
        count = engine.spawn_explosion(center, pattern="PEONY", time=4.0)
        s = _written(engine, count)
        p = engine.particles

        np.testing.assert_allclose(p.start_time[s], 4.0)
        assert p.lifetime[s].min() >= 1.1 - 1e-6
        assert p.lifetime[s].max() <= 1.65 + 1e-6
        assert p.size[s].min() >= 6.5 - 1e-5
        assert p.size[s].max() <= 12.5 + 1e-5
        assert np.all(np.abs(p.origin[s] - center) <= 0.3 + 1e-5)
        assert p.seed[s].min() >= 0 and p.seed[s].max() < 1000
        assert p.kind_blend[s].min() >= 0 and p.kind_blend[s].max() < 1

    def test_photo_attribute_ranges(self, engine):
        count = engine.spawn_explosion((0, 0, 0), pattern="PEONY", is_photo_linked=True)
        s = _written(engine, count)
        p = engine.particles
        assert p.lifetime[s].min() >= 1.35 - 1e-6
        assert p.lifetime[s].max() <= 2.05 + 1e-6
        assert p.size[s].max() <= 12.5 * 1.06 + 1e-4
        assert p.size[s].min() >= 6.5 * 1.06 - 1e-4

    def test_colors_jitter_around_palette(self, engine):
        palette = np.array([[0.5, 0.25, 0.75]])
        count = engine.spawn_explosion((0, 0, 0), palette=palette, pattern="PEONY")
        colors = engine.particles.color[_written(engine, count)]
        assert np.all(np.abs(colors - palette[0]) <= 0.04 + 1e-6)

    def test_colors_clamped(self, engine):
        palette = np.array([[1.0, 1.0, 0.0]])
        count = engine.spawn_explosion((0, 0, 0), palette=palette, pattern="PEONY")
        colors = engine.particles.color[_written(engine, count)]
        assert colors.min() >= 0.0
        assert colors.max() <= 1.0

    def test_empty_palette_uses_fallback(self, engine):
        count = engine.spawn_explosion((0, 0, 0), palette=np.zeros((0, 3)), pattern="PEONY")
        assert count > 0
        colors = engine.particles.color[_written(engine, count)]
        fallback = np.concatenate(engine.fallback_palettes)
        nearest = np.min(
            np.abs(colors[:, None, :] - fallback[None, :, :]).max(axis=2), axis=1
        )
        assert np.all(nearest <= 0.04 + 1e-6)

    def test_speed_scales_with_strength(self, rng):
        engine = ExplosionEngine(ParticleRingBuffer(32000), rng=rng)
        count = engine.spawn_explosion((0, 0, 0), pattern="RING", strength=1.0)
        fast = np.linalg.norm(engine.particles.velocity[:count], axis=1).mean()
        start = engine.particles.cursor
        count2 = engine.spawn_explosion((0, 0, 0), pattern="RING", strength=0.5)
        slow = np.linalg.norm(engine.particles.velocity[start:start + count2], axis=1).mean()
        assert slow < fast


class TestSaturn:
    def test_saturn_spawns_ring_companion(self, engine):
        center = (1.0, 15.0, 2.0)
        with patch.object(engine, "spawn_explosion", wraps=engine.spawn_explosion) as spy:
            engine.spawn_explosion(center, time=3.0, pattern="SATURN", strength=1.0)

        assert spy.call_count == 2
        ring_call = spy.call_args_list[1]
        np.testing.assert_allclose(ring_call.args[0], center)
        assert ring_call.kwargs["pattern"] == "RING"
        assert ring_call.kwargs["time"] == pytest.approx(3.0 + SATURN_RING_DELAY)
        assert ring_call.kwargs["strength"] == pytest.approx(SATURN_RING_STRENGTH)

    def test_ring_companion_carries_photo_flag(self, engine):
        with patch.object(engine, "spawn_explosion", wraps=engine.spawn_explosion) as spy:
            engine.spawn_explosion((0, 0, 0), pattern="SATURN", is_photo_linked=True)
        assert spy.call_args_list[1].kwargs["is_photo_linked"] is True

    def test_companion_even_when_main_burst_empty(self, engine):
        with patch.object(engine, "spawn_explosion", wraps=engine.spawn_explosion) as spy:
            engine.spawn_explosion((0, 0, 0), pattern="SATURN", strength=0.0)
        assert spy.call_count == 2

    @pytest.mark.parametrize("pattern", ["PEONY", "RING", "HEART", "SPIRAL", "WILLOW"])
    def test_other_patterns_single_burst(self, engine, pattern):
        with patch.object(engine, "spawn_explosion", wraps=engine.spawn_explosion) as spy:
            engine.spawn_explosion((0, 0, 0), pattern=pattern)
        assert spy.call_count == 1


class TestOverflow:
    def test_burst_larger_than_arena(self, rng):
        engine = ExplosionEngine(ParticleRingBuffer(500), rng=rng)
        count = engine.spawn_explosion((0, 0, 0), pattern="PEONY", time=1.0)
        assert count > 500
        assert engine.particles.cursor == count % 500
        assert engine.particles.live_count(1.0) == 500

    def test_determinism(self):
        a = ExplosionEngine(ParticleRingBuffer(4000), rng=np.random.default_rng(5))
        b = ExplosionEngine(ParticleRingBuffer(4000), rng=np.random.default_rng(5))
        a.spawn_explosion((0, 0, 0), pattern="HEART")
        b.spawn_explosion((0, 0, 0), pattern="HEART")
        np.testing.assert_array_equal(a.particles.velocity, b.particles.velocity)
