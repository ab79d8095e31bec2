"""
Explosion engine.

Turns one explosion request into a batch of fully specified particles in
the ring buffer. Pattern compositing rules live here too: a SATURN burst
always brings its RING companion.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from photoburst.colors import jitter_colors, normalize_palette, palette_from_hex
from photoburst.config import FALLBACK_PALETTES, PATTERNS
from photoburst.core.particles import ParticleRingBuffer
from photoburst.core.patterns import (
    make_pattern_params,
    resolve_pattern,
    sample_directions,
    sample_speeds,
)

logger = logging.getLogger(__name__)

BASE_COUNT = 1100
PHOTO_BASE_COUNT = 1700
SATURN_RING_DELAY = 0.02
SATURN_RING_STRENGTH = 0.58


class ExplosionEngine:
    """
    Writes explosions into a ParticleRingBuffer.

    Args:
        particles: Target arena.
        rng: Random source; a fresh unseeded generator when omitted.
        fallback_palettes: Hex palettes used when a request has none.
    """

    def __init__(
        self,
        particles: ParticleRingBuffer,
        rng: Optional[np.random.Generator] = None,
        fallback_palettes: Sequence[Sequence[str]] = FALLBACK_PALETTES,
    ):
        self.particles = particles
        self.rng = rng if rng is not None else np.random.default_rng()
        self.fallback_palettes = [palette_from_hex(p) for p in fallback_palettes]

    def random_fallback_palette(self) -> np.ndarray:
        return self.fallback_palettes[int(self.rng.integers(len(self.fallback_palettes)))]

    def random_pattern(self) -> str:
        return PATTERNS[int(self.rng.integers(len(PATTERNS)))]

    def spawn_explosion(
        self,
        center,
        palette=None,
        time: float = 0.0,
        pattern: Optional[str] = None,
        strength: float = 1.0,
        is_photo_linked: bool = False,
    ) -> int:
        """
        Spawn one burst.

        Args:
            center: (x, y, z) burst center.
            palette: (k, 3) linear RGB; None or empty picks a fallback palette.
            time: Start time shared by every particle.
            pattern: Pattern name; None picks one at random.
            strength: Scales particle count and speed; negatives clamp to 0.
            is_photo_linked: Denser, longer-lived, slightly larger particles.

        Returns:
            Number of particles written for this burst (companions excluded).
        """
        rng = self.rng
        pattern = resolve_pattern(pattern) if pattern else self.random_pattern()
        strength = max(0.0, float(strength))
        center = np.asarray(center, dtype=np.float32).reshape(3)

        colors = normalize_palette(palette)
        if colors is None:
            colors = self.random_fallback_palette()

        base = PHOTO_BASE_COUNT if is_photo_linked else BASE_COUNT
        count = int(np.floor(base * rng.uniform(0.75, 1.25) * strength))

        if count > 0:
            self._write_burst(center, colors, time, pattern, strength, is_photo_linked, count)

        if pattern == "SATURN":
            self.spawn_explosion(
                center,
                palette=colors,
                time=time + SATURN_RING_DELAY,
                pattern="RING",
                strength=strength * SATURN_RING_STRENGTH,
                is_photo_linked=is_photo_linked,
            )

        logger.debug(f"{pattern} burst: {count} particles at t={time:.2f}")
        return count

    def _write_burst(
        self,
        center: np.ndarray,
        colors: np.ndarray,
        time: float,
        pattern: str,
        strength: float,
        is_photo_linked: bool,
        count: int,
    ):
        rng = self.rng
        params = make_pattern_params(pattern, rng)
        dirs = sample_directions(pattern, count, params, rng)
        speed = sample_speeds(pattern, count, rng) * rng.uniform(8.5, 13.5, count) * strength

        noise = (rng.random((count, 3)) - 0.5) * np.array([1.8, 1.4, 1.8])
        velocity = dirs * speed[:, None] + noise

        base_colors = colors[rng.integers(len(colors), size=count)]
        color = jitter_colors(base_colors, rng, amount=0.08)

        origin = center + (rng.random((count, 3)) - 0.5) * 0.6

        life_lo, life_hi = (1.35, 2.05) if is_photo_linked else (1.1, 1.65)
        size_scale = 1.06 if is_photo_linked else 1.0

        start = self.particles.allocate(count)
        self.particles.write_batch(start, {
            "origin": origin,
            "velocity": velocity,
            "color": color,
            "start_time": np.full(count, time),
            "lifetime": rng.uniform(life_lo, life_hi, count),
            "size": rng.uniform(6.5, 12.5, count) * size_scale,
            "seed": rng.random(count) * 1000.0,
            "kind_blend": rng.random(count),
        })
