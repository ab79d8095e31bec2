"""Photo ingestion: palette and mosaic extraction."""

from photoburst.photo.extractor import (
    Mosaic,
    MosaicPoint,
    PhotoMosaicExtractor,
    extract_mosaic,
    extract_palette,
)
from photoburst.photo.library import PhotoHandle, PhotoLibrary, PhotoStatus

__all__ = [
    "Mosaic",
    "MosaicPoint",
    "PhotoHandle",
    "PhotoLibrary",
    "PhotoMosaicExtractor",
    "PhotoStatus",
    "extract_mosaic",
    "extract_palette",
]
