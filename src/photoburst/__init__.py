"""Particle firework engine with photo-driven palettes and mosaics."""

from photoburst.config import ShowConfig
from photoburst.core.explosions import ExplosionEngine
from photoburst.core.particles import ParticleRingBuffer
from photoburst.core.shells import ShellSimulator
from photoburst.mosaic_pool import MosaicPlaybackPool
from photoburst.photo.extractor import PhotoMosaicExtractor
from photoburst.photo.library import PhotoLibrary
from photoburst.show import FireworkShow

__version__ = "0.1.0"
__all__ = [
    "ExplosionEngine",
    "FireworkShow",
    "MosaicPlaybackPool",
    "ParticleRingBuffer",
    "PhotoLibrary",
    "PhotoMosaicExtractor",
    "ShellSimulator",
    "ShowConfig",
]
