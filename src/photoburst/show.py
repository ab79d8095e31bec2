"""
Firework show orchestration.

Wires the particle arena, explosion engine, shell simulator, mosaic pool
and photo library into one tick-driven object, and turns trigger events
(gestures from an external recognizer, pointer presses) into launches.

Tick order:
    1. apply finished photo extractions
    2. auto-fire
    3. chained explosions, then shell flight and detonation
    4. mosaic pool refresh
"""

import logging
from typing import Any, Callable, List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from photoburst.config import PHOTO_PATTERNS, ShowConfig
from photoburst.core.explosions import ExplosionEngine
from photoburst.core.particles import ParticleRingBuffer
from photoburst.core.shells import Shell, ShellSimulator, clamp_dt
from photoburst.mosaic_pool import MosaicPlaybackPool
from photoburst.photo.library import PhotoHandle, PhotoLibrary

logger = logging.getLogger(__name__)

# Photo detonation follow-up
PHOTO_RING_LIFT = 0.8
PHOTO_RING_DELAY = 0.05
PHOTO_RING_STRENGTH = 0.55
MOSAIC_DELAY = 0.08

GESTURES = ("OPEN", "FIST", "PINCH", "NEUTRAL", "NONE")


class FireworkShow:
    """
    The whole display engine behind one update() call per frame.

    Args:
        config: Show configuration.
        seed: Seed for every random stream in the show.
        on_explode: Extra listener, called as on_explode(shell, center, time)
            after the show's own photo handling.
    """

    def __init__(
        self,
        config: Optional[ShowConfig] = None,
        seed: Optional[int] = None,
        on_explode: Optional[Callable[[Shell, np.ndarray, float], Any]] = None,
    ):
        self.cfg = config or ShowConfig()
        streams = [np.random.default_rng(s) for s in np.random.SeedSequence(seed).spawn(5)]
        self.rng = streams[0]

        self.particles = ParticleRingBuffer(self.cfg.fireworks.max_particles)
        self.engine = ExplosionEngine(self.particles, rng=streams[1])
        self.simulator = ShellSimulator(
            self.engine,
            config=self.cfg.fireworks,
            rng=streams[2],
            on_explode=self._handle_explode,
        )
        self.mosaic_pool = MosaicPlaybackPool(self.cfg.mosaic, rng=streams[3])
        self.library = PhotoLibrary(self.cfg.photo, rng=streams[4])
        self.listener = on_explode

        self.auto_fire = False
        self.last_fire_time = 0.0
        self.hand_detected = False
        self.hand_x = 0.0
        self.last_hand_time = 0.0
        self.gesture = "NONE"
        self.selected_photo_id: Optional[int] = None

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, dt: float, time: float, view_rotation: Optional[Rotation] = None):
        dt = clamp_dt(dt)
        self.library.poll()
        if self.auto_fire:
            self._auto_fire(time)
        self.simulator.update(dt, time)
        self.mosaic_pool.update(time, view_rotation)

    def _auto_fire(self, time: float):
        fw = self.cfg.fireworks
        interval = 1.0 / fw.auto_fire_rate
        jitter = fw.auto_fire_jitter
        if time - self.last_fire_time <= interval * self.rng.uniform(1 - jitter, 1 + jitter):
            return
        self.last_fire_time = time

        photo = None
        if self.library.visible_photos() and self.rng.random() < self.cfg.photo.photo_shot_chance:
            photo = self.library.get_selected_or_random(self.selected_photo_id)

        if self.hand_detected:
            x = self._hand_world_x()
        else:
            x = self.rng.uniform(-self.cfg.launch_half_width, self.cfg.launch_half_width)

        self.simulator.launch_shell(
            x,
            self._random_z(),
            time,
            palette=self._photo_palette(photo),
            is_photo_linked=photo is not None,
            photo_payload=photo,
        )

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def handle_gesture(self, gesture: Optional[str], time: float, hand_x: Optional[float] = None):
        """
        React to a classified hand gesture.

        OPEN starts auto-fire, FIST stops it, PINCH ignites a photo once
        per pinch. NONE means no hand in view; auto-fire stops after the
        grace period.
        """
        gesture = str(gesture or "NONE").upper()
        if gesture not in GESTURES:
            logger.debug(f"Ignoring unknown gesture {gesture!r}")
            return

        if gesture == "NONE":
            self.hand_detected = False
            if time - self.last_hand_time > self.cfg.gesture.lost_hand_grace_seconds:
                self.auto_fire = False
            self.gesture = gesture
            return

        self.hand_detected = True
        self.last_hand_time = time
        if hand_x is not None:
            self.hand_x = float(hand_x)

        previous = self.gesture
        self.gesture = gesture
        if gesture == "OPEN":
            self.auto_fire = True
        elif gesture == "FIST":
            self.auto_fire = False
        elif gesture == "PINCH" and previous != "PINCH":
            self.ignite_photo(time)

    def ignite_photo(self, time: float) -> Optional[Shell]:
        """Launch a photo shell from the hand position."""
        photo = self.library.get_selected_or_random(self.selected_photo_id)
        if photo is None:
            logger.info("No photos to ignite")
            return None

        pattern = PHOTO_PATTERNS[int(self.rng.integers(len(PHOTO_PATTERNS)))]
        return self.simulator.launch_shell(
            self._hand_world_x(),
            self._random_z(),
            time,
            palette=self._photo_palette(photo),
            pattern=pattern,
            is_photo_linked=True,
            photo_payload=photo,
        )

    def pointer_launch(self, world_x: float, time: float) -> Optional[Shell]:
        """Launch a regular shell at a clicked/touched x position."""
        return self.simulator.launch_shell(
            world_x,
            self._random_z(),
            time,
            palette=self.engine.random_fallback_palette(),
        )

    def opening_salvo(self, time: float) -> List[Shell]:
        launched = []
        half = self.cfg.launch_half_width
        for _ in range(self.cfg.opening_salvo):
            shell = self.simulator.launch_shell(
                self.rng.uniform(-half, half),
                self.rng.uniform(-10.0, 4.0),
                time,
                palette=self.engine.random_fallback_palette(),
            )
            if shell is not None:
                launched.append(shell)
        return launched

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    def add_photo(self, raw_image: Any, source_id: Optional[str] = None) -> PhotoHandle:
        return self.library.add_photo(raw_image, source_id)

    def remove_photo(self, photo_id: int):
        self.library.remove_photo(photo_id)
        if self.selected_photo_id == photo_id:
            self.selected_photo_id = None

    def select_photo(self, photo_id: Optional[int]):
        self.selected_photo_id = photo_id

    def _handle_explode(self, shell: Shell, center: np.ndarray, time: float):
        photo = shell.photo_payload if shell.is_photo_linked else None
        mosaic = getattr(photo, "mosaic", None)
        if mosaic is not None and len(mosaic):
            self.engine.spawn_explosion(
                center + np.array([0.0, PHOTO_RING_LIFT, 0.0], dtype=np.float32),
                palette=self._photo_palette(photo),
                time=time + PHOTO_RING_DELAY,
                pattern="RING",
                strength=PHOTO_RING_STRENGTH,
                is_photo_linked=True,
            )
            self.mosaic_pool.spawn(
                center,
                mosaic,
                time + MOSAIC_DELAY,
                point_size=self.cfg.mosaic.point_size,
                life=self.cfg.mosaic.life,
            )

        if self.listener is not None:
            self.listener(shell, center, time)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _photo_palette(self, photo: Optional[PhotoHandle]) -> np.ndarray:
        if photo is not None and photo.palette is not None and len(photo.palette):
            return photo.palette
        return self.engine.random_fallback_palette()

    def _hand_world_x(self) -> float:
        return float(np.clip(self.hand_x, -1.0, 1.0)) * self.cfg.launch_half_width

    def _random_z(self) -> float:
        lo, hi = self.cfg.launch_z_range
        return self.rng.uniform(lo, hi)

    def close(self):
        self.library.shutdown()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
