"""
Fixed-capacity particle store.

Particles live in a flat struct-of-arrays arena addressed by integer
index. A cursor hands out contiguous (wrapping) index ranges; when the
arena is full the oldest records are simply overwritten. Overflow is a
resource policy, not an error.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

# Field name -> components per record
FIELDS: Dict[str, int] = {
    "origin": 3,
    "velocity": 3,
    "color": 3,
    "start_time": 1,
    "lifetime": 1,
    "size": 1,
    "seed": 1,
    "kind_blend": 1,
}


@dataclass
class ParticleRecord:
    """One particle, as written by the explosion engine."""
    origin: Tuple[float, float, float]
    velocity: Tuple[float, float, float]
    color: Tuple[float, float, float]
    start_time: float
    lifetime: float
    size: float
    seed: float
    kind_blend: float

    def is_live(self, time: float) -> bool:
        return self.start_time <= time <= self.start_time + self.lifetime


class ParticleRingBuffer:
    """
    Circular particle arena.

    Arrays are float32 and exposed read-only by convention so a renderer
    can upload them directly; only the explosion engine writes.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self.cursor = 0
        self.dirty = False

        n = self.capacity
        self.origin = np.zeros((n, 3), dtype=np.float32)
        self.velocity = np.zeros((n, 3), dtype=np.float32)
        self.color = np.zeros((n, 3), dtype=np.float32)
        # Never-written slots start dead: start_time far in the past, zero life
        self.start_time = np.full(n, -1e9, dtype=np.float32)
        self.lifetime = np.zeros(n, dtype=np.float32)
        self.size = np.zeros(n, dtype=np.float32)
        self.seed = np.zeros(n, dtype=np.float32)
        self.kind_blend = np.zeros(n, dtype=np.float32)

    def allocate(self, count: int) -> int:
        """
        Reserve `count` slots and return the first index.

        The returned index is always in [0, capacity); the reserved range
        wraps modulo capacity. Negative counts reserve nothing.
        """
        count = max(0, int(count))
        start = self.cursor
        self.cursor = (self.cursor + count) % self.capacity
        self.dirty = True
        return start

    def _check_index(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < self.capacity:
            raise IndexError(f"particle index {index} outside [0, {self.capacity})")
        return index

    def write_particle(self, index: int, record: ParticleRecord):
        """Overwrite every field of one slot."""
        i = self._check_index(index)
        self.origin[i] = record.origin
        self.velocity[i] = record.velocity
        self.color[i] = record.color
        self.start_time[i] = record.start_time
        self.lifetime[i] = record.lifetime
        self.size[i] = record.size
        self.seed[i] = record.seed
        self.kind_blend[i] = record.kind_blend
        self.dirty = True

    def write_batch(self, start: int, fields: Dict[str, np.ndarray]) -> np.ndarray:
        """
        Write a run of particles beginning at `start`, wrapping around.

        Args:
            start: First slot, usually the value returned by allocate().
            fields: Arrays keyed like FIELDS, all with the same leading length.

        Returns:
            The slot indices that were written.
        """
        start = self._check_index(start)
        missing = set(FIELDS) - set(fields)
        if missing:
            raise KeyError(f"missing particle fields: {sorted(missing)}")

        count = len(fields["start_time"])
        slots = (start + np.arange(count)) % self.capacity
        # A run longer than the arena laps itself; only the last lap survives
        keep = slice(max(0, count - self.capacity), count)
        slots = slots[keep]

        for name, width in FIELDS.items():
            values = np.asarray(fields[name], dtype=np.float32)
            if width > 1:
                values = values.reshape(count, width)
            getattr(self, name)[slots] = values[keep]

        self.dirty = True
        return slots

    def read_particle(self, index: int) -> ParticleRecord:
        i = self._check_index(index)
        return ParticleRecord(
            origin=tuple(float(v) for v in self.origin[i]),
            velocity=tuple(float(v) for v in self.velocity[i]),
            color=tuple(float(v) for v in self.color[i]),
            start_time=float(self.start_time[i]),
            lifetime=float(self.lifetime[i]),
            size=float(self.size[i]),
            seed=float(self.seed[i]),
            kind_blend=float(self.kind_blend[i]),
        )

    def live_mask(self, time: float) -> np.ndarray:
        """Boolean mask of particles alive at `time`."""
        age = np.float32(time) - self.start_time
        return (age >= 0) & (age <= self.lifetime)

    def live_count(self, time: float) -> int:
        return int(np.count_nonzero(self.live_mask(time)))

    def take_dirty(self) -> bool:
        """Return and clear the dirty flag (for buffer uploads)."""
        was_dirty = self.dirty
        self.dirty = False
        return was_dirty

    def as_arrays(self) -> Dict[str, np.ndarray]:
        """All attribute arrays keyed by field name."""
        return {name: getattr(self, name) for name in FIELDS}
