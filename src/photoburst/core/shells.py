"""
Shell ballistics and detonation.

Shells are immutable records moved through explicit transition functions:

    LAUNCHED -> FLYING -> EXPLODING -> REMOVED

Each tick resolves due chained explosions first, then integrates every
shell and detonates the ones whose fuse ran out or that hit the ground.
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from photoburst.colors import normalize_palette, palette_from_hex
from photoburst.config import CHAINED_PALETTE, CHAINED_PATTERNS, FireworksConfig
from photoburst.core.explosions import ExplosionEngine
from photoburst.core.patterns import resolve_pattern

logger = logging.getLogger(__name__)

# Shells feel only part of gravity; exploded particles get all of it.
# Keep this fixed, the launch speeds are tuned against it.
SHELL_GRAVITY_FACTOR = 0.38
MAX_DT = 0.033
SHELL_SLOTS_RESERVED = 6
CHAIN_PROBABILITY = 0.35
CHAIN_STRENGTH = 0.62
CHAIN_LIFT = 0.6
DETONATION_FLOOR = 4.0

Vec3 = Tuple[float, float, float]
ExplodeCallback = Callable[["Shell", np.ndarray, float], Any]


class ShellState(enum.Enum):
    LAUNCHED = "launched"
    FLYING = "flying"
    EXPLODING = "exploding"
    REMOVED = "removed"


@dataclass(frozen=True)
class Shell:
    id: str
    position: Vec3
    velocity: Vec3
    explode_at: float
    pattern: Optional[str]
    palette: Optional[np.ndarray] = None
    is_photo_linked: bool = False
    photo_payload: Any = None
    has_chained_explosion: bool = False
    chained_delay: float = 0.0
    state: ShellState = ShellState.LAUNCHED


@dataclass(frozen=True)
class PendingExplosion:
    """A delayed explosion request, fired once simulated time reaches `time`."""
    center: Vec3
    palette: Optional[np.ndarray]
    time: float
    pattern: Optional[str]
    strength: float = 1.0
    is_photo_linked: bool = False


def clamp_dt(dt: float) -> float:
    return min(max(float(dt), 0.0), MAX_DT)


def integrate(shell: Shell, dt: float, gravity_y: float) -> Shell:
    """Advance one shell by `dt`; LAUNCHED shells become FLYING."""
    vx, vy, vz = shell.velocity
    vy += gravity_y * dt * SHELL_GRAVITY_FACTOR
    px, py, pz = shell.position
    return replace(
        shell,
        position=(px + vx * dt, py + vy * dt, pz + vz * dt),
        velocity=(vx, vy, vz),
        state=ShellState.FLYING,
    )


def detonation_due(shell: Shell, time: float, ground_y: float) -> bool:
    return time >= shell.explode_at or shell.position[1] <= ground_y


def explosion_center(shell: Shell, ground_y: float) -> np.ndarray:
    x, y, z = shell.position
    return np.array([x, max(ground_y + DETONATION_FLOOR, y), z], dtype=np.float32)


class ShellSimulator:
    """
    Owns the in-flight shells and the chained-explosion queue.

    Args:
        engine: Explosion engine that receives detonations.
        config: Ballistics settings.
        rng: Random source for launches and chained bursts.
        on_explode: Called as on_explode(shell, center, time) once per detonation.
    """

    def __init__(
        self,
        engine: ExplosionEngine,
        config: Optional[FireworksConfig] = None,
        rng: Optional[np.random.Generator] = None,
        on_explode: Optional[ExplodeCallback] = None,
    ):
        self.engine = engine
        self.cfg = config or FireworksConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.on_explode = on_explode
        self.shells: List[Shell] = []
        self.pending: List[PendingExplosion] = []
        self.chained_palette = palette_from_hex(CHAINED_PALETTE)
        # Shell twinkle draws must not disturb the simulation sequence
        self._display_rng = np.random.default_rng(int(self.rng.integers(1 << 32)))

    @property
    def active_count(self) -> int:
        return len(self.shells)

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    @property
    def shell_limit(self) -> int:
        return self.cfg.max_shells - SHELL_SLOTS_RESERVED

    def launch_shell(
        self,
        origin_x: float,
        origin_z: float,
        time: float,
        palette=None,
        pattern: Optional[str] = None,
        is_photo_linked: bool = False,
        photo_payload: Any = None,
    ) -> Optional[Shell]:
        """
        Launch a shell from ground level.

        Returns the new shell, or None when the sky is already full. A
        missing pattern is picked at launch so listeners see the real one.
        """
        if len(self.shells) >= self.shell_limit:
            logger.debug(f"Shell dropped: {len(self.shells)} active (limit {self.shell_limit})")
            return None

        rng = self.rng
        cfg = self.cfg
        speed = cfg.base_shell_speed + rng.random() * cfg.shell_speed_jitter
        vx = origin_x * 0.18 + (rng.random() - 0.5) * 0.9
        vz = origin_z * 0.12 + (rng.random() - 0.5) * 0.7

        shell = Shell(
            id=f"{int(rng.integers(1 << 48)):012x}",
            position=(float(origin_x), float(cfg.ground_y), float(origin_z)),
            velocity=(float(vx), float(speed), float(vz)),
            explode_at=float(time + rng.uniform(1.0, 1.6)),
            pattern=resolve_pattern(pattern) if pattern else self.engine.random_pattern(),
            palette=normalize_palette(palette),
            is_photo_linked=bool(is_photo_linked),
            photo_payload=photo_payload,
            has_chained_explosion=bool(rng.random() < CHAIN_PROBABILITY) and not is_photo_linked,
            chained_delay=float(rng.uniform(0.18, 0.42)),
        )
        self.shells.append(shell)
        return shell

    def update(self, dt: float, time: float):
        """Advance one tick: chained explosions, then shell flight."""
        dt = clamp_dt(dt)
        self._resolve_pending(time)

        gravity_y = self.cfg.gravity[1]
        flying: List[Shell] = []
        exploding: List[Shell] = []
        for shell in self.shells:
            shell = integrate(shell, dt, gravity_y)
            if detonation_due(shell, time, self.cfg.ground_y):
                exploding.append(replace(shell, state=ShellState.EXPLODING))
            else:
                flying.append(shell)

        # Detonated shells leave the sky before any listener runs
        self.shells = flying
        for shell in exploding:
            self._detonate(shell, time)

    def _resolve_pending(self, time: float):
        due = [ev for ev in self.pending if time >= ev.time]
        if not due:
            return
        self.pending = [ev for ev in self.pending if time < ev.time]
        for ev in due:
            self.engine.spawn_explosion(
                ev.center,
                palette=ev.palette,
                time=ev.time,
                pattern=ev.pattern,
                strength=ev.strength,
                is_photo_linked=ev.is_photo_linked,
            )

    def _detonate(self, shell: Shell, time: float) -> Shell:
        center = explosion_center(shell, self.cfg.ground_y)
        self.engine.spawn_explosion(
            center,
            palette=shell.palette,
            time=time,
            pattern=shell.pattern,
            strength=1.2 if shell.is_photo_linked else 1.0,
            is_photo_linked=shell.is_photo_linked,
        )

        if self.on_explode is not None:
            self.on_explode(shell, center.copy(), time)

        if shell.has_chained_explosion:
            self.pending.append(PendingExplosion(
                center=(float(center[0]), float(center[1]) + CHAIN_LIFT, float(center[2])),
                palette=self.chained_palette,
                time=time + shell.chained_delay,
                pattern=CHAINED_PATTERNS[int(self.rng.integers(len(CHAINED_PATTERNS)))],
                strength=CHAIN_STRENGTH,
            ))

        logger.debug(f"Shell {shell.id} detonated at y={center[1]:.1f}")
        return replace(shell, state=ShellState.REMOVED)

    def shell_positions(self) -> np.ndarray:
        """(n, 3) positions of shells in flight."""
        if not self.shells:
            return np.zeros((0, 3), dtype=np.float32)
        return np.array([s.position for s in self.shells], dtype=np.float32)

    def shell_colors(self) -> np.ndarray:
        """(n, 3) display colors, a random palette entry per shell per call."""
        colors = np.zeros((len(self.shells), 3), dtype=np.float32)
        for i, shell in enumerate(self.shells):
            palette = shell.palette
            if palette is None:
                fallbacks = self.engine.fallback_palettes
                palette = fallbacks[int(self._display_rng.integers(len(fallbacks)))]
            colors[i] = palette[int(self._display_rng.integers(len(palette)))]
        return colors
