"""Core simulation modules."""

from photoburst.core.explosions import ExplosionEngine
from photoburst.core.particles import ParticleRecord, ParticleRingBuffer
from photoburst.core.shells import PendingExplosion, Shell, ShellSimulator, ShellState

__all__ = [
    "ExplosionEngine",
    "ParticleRecord",
    "ParticleRingBuffer",
    "PendingExplosion",
    "Shell",
    "ShellSimulator",
    "ShellState",
]
