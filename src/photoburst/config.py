"""
Configuration for the firework engine.

Every tunable lives in a dataclass so a show can be built from defaults
and selectively overridden, the same way renderers take a config object.
"""

from dataclasses import dataclass, field
from typing import List, Tuple


PATTERNS: List[str] = [
    "PEONY",
    "CHRYSANTHEMUM",
    "RING",
    "HEART",
    "SPIRAL",
    "WILLOW",
    "SATURN",
]

# Curated palettes used whenever a shell has no photo palette
FALLBACK_PALETTES: List[List[str]] = [
    ["#ff2b2b", "#ffd000", "#ff6d00", "#ffffff"],
    ["#00d5ff", "#4c7dff", "#a855ff", "#ffffff"],
    ["#ff2bd6", "#ff8a00", "#ffe86b", "#ffffff"],
    ["#00ff9a", "#00d5ff", "#ffd000", "#ffffff"],
    ["#ff3b3b", "#ffb300", "#ffe86b", "#ff7b00", "#ffffff"],
]

# Companion burst fired after a chained shell
CHAINED_PALETTE: List[str] = ["#ffffff", "#ffe86b", "#ffd000"]
CHAINED_PATTERNS: List[str] = ["PEONY", "CHRYSANTHEMUM", "RING"]

# Patterns picked when a photo is ignited by hand
PHOTO_PATTERNS: List[str] = ["PEONY", "SATURN", "CHRYSANTHEMUM", "HEART"]


@dataclass
class FireworksConfig:
    """Ballistics and particle budget."""
    max_particles: int = 32000
    gravity: Tuple[float, float, float] = (0.0, -11.5, 0.0)
    auto_fire_rate: float = 7.5  # shells per second
    auto_fire_jitter: float = 0.35
    base_shell_speed: float = 26.0
    shell_speed_jitter: float = 9.0
    ground_y: float = -12.0
    max_shells: int = 32

    def __post_init__(self):
        if self.max_particles < 1:
            raise ValueError(f"max_particles must be >= 1, got {self.max_particles}")
        if self.max_shells < 1:
            raise ValueError(f"max_shells must be >= 1, got {self.max_shells}")


@dataclass
class PhotoConfig:
    """Photo ingestion and extraction settings."""
    palette_samples: int = 220
    mosaic_target_size: int = 84
    mosaic_max_points: int = 3600
    workers: int = 2
    photo_shot_chance: float = 0.12  # share of auto-fire shots using a photo


@dataclass
class MosaicPoolConfig:
    """Mosaic replay pool sizing."""
    pool_size: int = 4
    max_points: int = 4096
    point_size: float = 12.8
    life: float = 1.35

    def __post_init__(self):
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.max_points < 1:
            raise ValueError(f"max_points must be >= 1, got {self.max_points}")


@dataclass
class GestureConfig:
    """How long auto-fire survives after the hand drops out of view."""
    lost_hand_grace_seconds: float = 0.45


@dataclass
class ShowConfig:
    """Everything a FireworkShow needs."""
    fireworks: FireworksConfig = field(default_factory=FireworksConfig)
    photo: PhotoConfig = field(default_factory=PhotoConfig)
    mosaic: MosaicPoolConfig = field(default_factory=MosaicPoolConfig)
    gesture: GestureConfig = field(default_factory=GestureConfig)

    # Launch field, world units
    launch_half_width: float = 14.0
    launch_z_range: Tuple[float, float] = (-12.0, 6.0)
    opening_salvo: int = 6
