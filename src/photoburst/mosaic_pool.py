"""
Mosaic playback pool.

A fixed set of display instances replays photo mosaics as billboarded
point bursts. When every instance is busy the one that would finish
first is reclaimed.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from photoburst.config import MosaicPoolConfig
from photoburst.photo.extractor import Mosaic

logger = logging.getLogger(__name__)

RELEASE_MARGIN = 0.25


@dataclass
class MosaicDisplayInstance:
    """Attribute buffers for one replayed mosaic."""
    max_points: int
    positions: np.ndarray = field(init=False)
    colors: np.ndarray = field(init=False)
    seeds: np.ndarray = field(init=False)
    start_times: np.ndarray = field(init=False)
    lifes: np.ndarray = field(init=False)
    count: int = 0
    in_use: bool = False
    end_time: float = 0.0
    center: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    orientation: Rotation = field(default_factory=Rotation.identity)

    def __post_init__(self):
        n = self.max_points
        self.positions = np.zeros((n, 3), dtype=np.float32)
        self.colors = np.zeros((n, 3), dtype=np.float32)
        self.seeds = np.zeros(n, dtype=np.float32)
        self.start_times = np.zeros(n, dtype=np.float32)
        self.lifes = np.zeros(n, dtype=np.float32)

    def release(self):
        self.in_use = False
        self.count = 0


class MosaicPlaybackPool:
    """
    Bounded pool of mosaic display instances.

    Args:
        config: Pool size and per-instance point capacity.
        rng: Random source for per-point seeds.
    """

    def __init__(
        self,
        config: Optional[MosaicPoolConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.cfg = config or MosaicPoolConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.instances: List[MosaicDisplayInstance] = [
            MosaicDisplayInstance(self.cfg.max_points) for _ in range(self.cfg.pool_size)
        ]

    @property
    def active(self) -> List[MosaicDisplayInstance]:
        return [inst for inst in self.instances if inst.in_use]

    def _acquire(self) -> MosaicDisplayInstance:
        for inst in self.instances:
            if not inst.in_use:
                return inst
        oldest = min(self.instances, key=lambda inst: inst.end_time)
        logger.debug(f"Mosaic pool full, reclaiming instance ending at {oldest.end_time:.2f}")
        return oldest

    def spawn(
        self,
        center,
        mosaic: Optional[Mosaic],
        time: float,
        point_size: float = 12.5,
        life: float = 1.35,
    ) -> Optional[MosaicDisplayInstance]:
        """
        Start replaying a mosaic.

        Returns:
            The instance used, or None when the mosaic is empty.
        """
        if mosaic is None or len(mosaic) == 0:
            return None

        inst = self._acquire()
        count = min(inst.max_points, len(mosaic))

        inst.positions[:count, :2] = mosaic.positions[:count] * point_size
        inst.positions[:count, 2] = 0.0
        inst.colors[:count] = mosaic.colors[:count]
        inst.seeds[:count] = self.rng.random(count) * 1000.0
        inst.start_times[:count] = time
        inst.lifes[:count] = life

        inst.count = count
        inst.center = np.asarray(center, dtype=np.float32).reshape(3).copy()
        inst.in_use = True
        inst.end_time = float(time + life + RELEASE_MARGIN)
        return inst

    def update(self, time: float, view_rotation: Optional[Rotation] = None):
        """
        Release finished instances and turn active ones toward the viewer.

        Args:
            time: Current simulation time.
            view_rotation: Camera orientation; identity when omitted.
        """
        facing = view_rotation if view_rotation is not None else Rotation.identity()
        for inst in self.instances:
            if not inst.in_use:
                continue
            if time > inst.end_time:
                inst.release()
                continue
            inst.orientation = facing

    def world_points(self, inst: MosaicDisplayInstance) -> np.ndarray:
        """(count, 3) instance points in world space."""
        local = inst.positions[:inst.count]
        if not len(local):
            return np.zeros((0, 3), dtype=np.float32)
        return (inst.orientation.apply(local) + inst.center).astype(np.float32)
