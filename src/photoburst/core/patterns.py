"""
Explosion pattern library.

Maps a pattern name to initial particle directions and speed factors.
Everything here is pure given the injected random generator: the same
seed always yields the same burst.

Patterns:
- PEONY: uniform sphere (also the fallback for unknown names)
- RING: planar circle with one shared tilt per burst
- HEART: parametric heart curve with one shared tilt per burst
- SPIRAL: six turns around the vertical axis, upward biased
- WILLOW: upward-biased sphere, slowest pattern
- CHRYSANTHEMUM / SATURN: slightly flattened sphere
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

_SPEED_RANGES: Dict[str, Tuple[float, float]] = {
    "PEONY": (0.9, 1.25),
    "RING": (0.95, 1.25),
    "HEART": (0.85, 1.15),
    "SPIRAL": (0.85, 1.25),
    "WILLOW": (0.7, 1.05),
    "CHRYSANTHEMUM": (0.9, 1.25),
    "SATURN": (0.85, 1.25),
}

_DIAG = (1.0 / math.sqrt(2.0), 1.0 / math.sqrt(2.0), 0.0)

# Candidate tilt axes and max tilt angle (radians) for patterns that share
# one orientation across the whole burst
_TILTS: Dict[str, Tuple[Tuple[Tuple[float, float, float], ...], float]] = {
    "RING": (((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), _DIAG), 0.6),
    "HEART": (((0.0, 1.0, 0.0), (1.0, 0.0, 0.0), _DIAG), 0.8),
}


@dataclass(frozen=True)
class PatternParams:
    """Parameters shared by every particle of one explosion."""
    rotation: Optional[Rotation] = None


def resolve_pattern(pattern: Optional[str]) -> str:
    """Upper-case known names; anything else falls back to PEONY."""
    if pattern is None:
        return "PEONY"
    name = str(pattern).upper()
    return name if name in _SPEED_RANGES else "PEONY"


def make_pattern_params(pattern: str, rng: np.random.Generator) -> Optional[PatternParams]:
    """
    Draw the shared orientation for RING and HEART bursts.

    Returns None for patterns without shared parameters.
    """
    tilt = _TILTS.get(resolve_pattern(pattern))
    if tilt is None:
        return None
    axes, max_angle = tilt
    axis = np.asarray(axes[int(rng.integers(len(axes)))], dtype=np.float64)
    angle = rng.uniform(-max_angle, max_angle)
    return PatternParams(rotation=Rotation.from_rotvec(axis * angle))


def heart_curve(t) -> np.ndarray:
    """
    Heart curve point(s) scaled by 1/18, before noise and rotation.

    heart_curve(0) == (0, 5/18, 0).
    """
    t = np.asarray(t, dtype=np.float64)
    x = 16.0 * np.sin(t) ** 3
    y = 13.0 * np.cos(t) - 5.0 * np.cos(2 * t) - 2.0 * np.cos(3 * t) - np.cos(4 * t)
    return np.stack([x / 18.0, y / 18.0, np.zeros_like(t)], axis=-1)


def _uniform_sphere(n: int, rng: np.random.Generator):
    theta = 2.0 * np.pi * rng.random(n)
    phi = np.arccos(2.0 * rng.random(n) - 1.0)
    return np.sin(phi) * np.cos(theta), np.cos(phi), np.sin(phi) * np.sin(theta)


def _normalize(vecs: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vecs, axis=-1, keepdims=True)
    return vecs / np.maximum(norms, 1e-9)


def sample_directions(
    pattern: str,
    count: int,
    params: Optional[PatternParams],
    rng: np.random.Generator,
    indices: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Unit direction vectors for particles of one burst.

    Args:
        pattern: Pattern name.
        count: Total particles in the burst (drives the curve parameter).
        params: Shared burst parameters from make_pattern_params().
        rng: Random source.
        indices: Particle indices to sample; defaults to range(count).

    Returns:
        (len(indices), 3) float64 array of unit vectors.
    """
    pattern = resolve_pattern(pattern)
    if indices is None:
        indices = np.arange(max(0, int(count)))
    i = np.asarray(indices, dtype=np.float64)
    n = len(i)
    if n == 0:
        return np.zeros((0, 3))
    frac = i / max(1, int(count))

    if pattern == "RING":
        angle = frac * 2.0 * np.pi + rng.random(n) * 0.2
        vecs = np.stack(
            [np.cos(angle), (rng.random(n) - 0.5) * 0.08, np.sin(angle)], axis=-1
        )
    elif pattern == "HEART":
        vecs = heart_curve(frac * 2.0 * np.pi)
        vecs[:, 2] = (rng.random(n) - 0.5) * (8.0 / 18.0)
    elif pattern == "SPIRAL":
        angle = frac * np.pi * 12.0
        radius = 0.2 + 0.8 * rng.random(n)
        vecs = np.stack(
            [np.cos(angle) * radius, -0.2 + 1.2 * rng.random(n), np.sin(angle) * radius],
            axis=-1,
        )
    elif pattern == "WILLOW":
        x, cy, z = _uniform_sphere(n, rng)
        vecs = np.stack([x, np.abs(cy) * 0.62 + 0.2, z], axis=-1)
    elif pattern in ("CHRYSANTHEMUM", "SATURN"):
        x, cy, z = _uniform_sphere(n, rng)
        vecs = np.stack([x, cy * 0.95, z], axis=-1)
    else:
        vecs = np.stack(_uniform_sphere(n, rng), axis=-1)

    if params is not None and params.rotation is not None:
        vecs = params.rotation.apply(vecs)
    return _normalize(vecs)


def sample_direction(
    pattern: str,
    index: int,
    count: int,
    params: Optional[PatternParams],
    rng: np.random.Generator,
) -> np.ndarray:
    """Direction of particle `index` out of `count`."""
    return sample_directions(pattern, count, params, rng, indices=np.array([index]))[0]


def sample_speeds(pattern: str, count: int, rng: np.random.Generator) -> np.ndarray:
    """Per-particle speed factors for a pattern."""
    lo, hi = _SPEED_RANGES[resolve_pattern(pattern)]
    return lo + (hi - lo) * rng.random(max(0, int(count)))


def sample_speed(pattern: str, rng: np.random.Generator) -> float:
    """Single speed factor for a pattern."""
    return float(sample_speeds(pattern, 1, rng)[0])


def speed_range(pattern: str) -> Tuple[float, float]:
    return _SPEED_RANGES[resolve_pattern(pattern)]
