"""
Photo to palette / mosaic extraction.

Both extractors work on a small downsampled copy of the image:

- Palette: random pixel draws, dark and transparent draws rejected,
  decimated in draw order down to at most 18 linear colors.
- Mosaic: edge pixels (4-neighbour luma contrast) plus a sparse random
  fill of bright flat regions, as aspect-corrected 2D points.

Results are random but reproducible for a given generator state.
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from PIL import Image

from photoburst.colors import luma, srgb_to_linear
from photoburst.config import PhotoConfig

logger = logging.getLogger(__name__)

ImageSource = Union[Image.Image, np.ndarray, bytes, str, Path]

PALETTE_MAX_SIDE = 140
PALETTE_MIN_SAMPLES = 8
PALETTE_MAX_COLORS = 18
PALETTE_TARGET_COLORS = 16
MIN_ALPHA = 0.35
PALETTE_MIN_LUMA = 0.08

MOSAIC_LUMA_ALPHA_CUTOFF = 0.2
MOSAIC_MIN_LUMA = 0.06
MOSAIC_FILL_MIN_LUMA = 0.12
EDGE_THRESHOLD = 0.16
FILL_CHANCE = 0.06
POSITION_NOISE = 0.01


@dataclass(frozen=True)
class MosaicPoint:
    x: float
    y: float
    color: Tuple[float, float, float]


@dataclass
class Mosaic:
    """Sparse point cloud of a photo; position y points up."""
    aspect: float
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float32))
    colors: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    is_edge: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def points(self) -> List[MosaicPoint]:
        return [
            MosaicPoint(float(p[0]), float(p[1]), tuple(float(c) for c in col))
            for p, col in zip(self.positions, self.colors)
        ]


@dataclass
class ExtractionResult:
    palette: Optional[np.ndarray]
    mosaic: Optional[Mosaic]


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode any supported source to an RGBA PIL image.

    Accepts PIL images, numpy arrays (H, W), (H, W, 3) or (H, W, 4) as uint8
    or floats in [0, 1], encoded bytes, or a file path.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    if isinstance(source, (bytes, bytearray)):
        with Image.open(io.BytesIO(source)) as img:
            return img.convert("RGBA")
    if isinstance(source, (str, Path)):
        with Image.open(source) as img:
            return img.convert("RGBA")
    if isinstance(source, np.ndarray):
        arr = source
        if arr.dtype != np.uint8:
            arr = (np.clip(arr.astype(np.float32), 0.0, 1.0) * 255).round().astype(np.uint8)
        if arr.ndim == 2:
            arr = np.stack([arr] * 3, axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported image array shape {source.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        return Image.fromarray(np.ascontiguousarray(arr))
    raise ValueError(f"Unsupported image source: {type(source).__name__}")


def downsample(image: ImageSource, max_side: int) -> np.ndarray:
    """
    Shrink to fit `max_side`, preserving aspect; never upscales.

    Returns:
        (H, W, 4) float32 RGBA array in [0, 1].
    """
    img = load_image(image)
    src_w, src_h = img.size
    if not src_w or not src_h:
        raise ValueError("Invalid image size")

    scale = min(1.0, max_side / max(src_w, src_h))
    width = max(1, int(round(src_w * scale)))
    height = max(1, int(round(src_h * scale)))
    if (width, height) != (src_w, src_h):
        img = img.resize((width, height), Image.BILINEAR)
    return np.asarray(img, dtype=np.float32) / 255.0


def extract_palette(
    image: ImageSource,
    sample_count: int = 220,
    rng: Optional[np.random.Generator] = None,
) -> Optional[np.ndarray]:
    """
    Sample a palette from an image.

    Args:
        image: Image source.
        sample_count: Number of random pixel draws.
        rng: Random source.

    Returns:
        (k, 3) float32 linear RGB with 1 <= k <= 18, or None when fewer
        than 8 draws were bright and opaque enough.
    """
    rng = rng if rng is not None else np.random.default_rng()
    pixels = downsample(image, PALETTE_MAX_SIDE)
    h, w = pixels.shape[:2]

    n = max(0, int(sample_count))
    xs = rng.integers(0, w, size=n)
    ys = rng.integers(0, h, size=n)
    draws = pixels[ys, xs]

    rgb = draws[:, :3]
    accepted = (draws[:, 3] >= MIN_ALPHA) & (luma(rgb) >= PALETTE_MIN_LUMA)
    samples = srgb_to_linear(rgb[accepted])

    if len(samples) < PALETTE_MIN_SAMPLES:
        return None

    stride = max(1, len(samples) // PALETTE_TARGET_COLORS)
    return samples[::stride][:PALETTE_MAX_COLORS]


def extract_mosaic(
    image: ImageSource,
    target_size: int = 84,
    max_points: int = 3600,
    rng: Optional[np.random.Generator] = None,
) -> Mosaic:
    """
    Build the edge + fill point cloud of an image.

    Args:
        image: Image source.
        target_size: Longest side of the working copy.
        max_points: Cap; larger clouds are shuffled then truncated.
        rng: Random source.

    Returns:
        Mosaic, possibly empty.
    """
    rng = rng if rng is not None else np.random.default_rng()
    pixels = downsample(image, target_size)
    h, w = pixels.shape[:2]
    aspect = w / h

    if h < 3 or w < 3:
        return Mosaic(aspect=aspect)

    rgb = pixels[..., :3]
    alpha = pixels[..., 3]
    lum = luma(rgb)
    lum[alpha < MOSAIC_LUMA_ALPHA_CUTOFF] = 0.0

    c = lum[1:-1, 1:-1]
    contrast = np.maximum.reduce([
        np.abs(c - lum[1:-1, :-2]),
        np.abs(c - lum[1:-1, 2:]),
        np.abs(c - lum[:-2, 1:-1]),
        np.abs(c - lum[2:, 1:-1]),
    ])

    is_edge = contrast > EDGE_THRESHOLD
    is_fill = (rng.random(c.shape) < FILL_CHANCE) & (c > MOSAIC_FILL_MIN_LUMA)
    keep = (
        (c >= MOSAIC_MIN_LUMA)
        & (is_edge | is_fill)
        & (alpha[1:-1, 1:-1] >= MIN_ALPHA)
    )

    ys, xs = np.nonzero(keep)
    edge = is_edge[ys, xs]
    ys = ys + 1
    xs = xs + 1
    n = len(xs)

    positions = np.empty((n, 2), dtype=np.float32)
    positions[:, 0] = (xs / (w - 1) - 0.5) * aspect + (rng.random(n) - 0.5) * POSITION_NOISE
    positions[:, 1] = -(ys / (h - 1) - 0.5) + (rng.random(n) - 0.5) * POSITION_NOISE
    colors = srgb_to_linear(rgb[ys, xs])

    if n > max_points:
        # Shuffle before truncating so the cap doesn't favour the top rows
        order = rng.permutation(n)[:max(0, int(max_points))]
        positions, colors, edge = positions[order], colors[order], edge[order]

    return Mosaic(aspect=aspect, positions=positions, colors=colors, is_edge=edge)


class PhotoMosaicExtractor:
    """
    Runs both extractions with one config.

    process() never raises for bad image data: each stage that fails
    yields None and the caller falls back to defaults.
    """

    def __init__(self, config: Optional[PhotoConfig] = None):
        self.cfg = config or PhotoConfig()

    def extract_palette(self, image: ImageSource, rng: Optional[np.random.Generator] = None):
        return extract_palette(image, self.cfg.palette_samples, rng)

    def extract_mosaic(self, image: ImageSource, rng: Optional[np.random.Generator] = None):
        return extract_mosaic(
            image,
            target_size=self.cfg.mosaic_target_size,
            max_points=self.cfg.mosaic_max_points,
            rng=rng,
        )

    def process(self, image: ImageSource, rng: Optional[np.random.Generator] = None) -> ExtractionResult:
        rng = rng if rng is not None else np.random.default_rng()

        # Decode once; both stages share the working image
        try:
            decoded = load_image(image)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning(f"Could not decode photo: {e}")
            return ExtractionResult(palette=None, mosaic=None)

        try:
            palette = self.extract_palette(decoded, rng)
        except ValueError as e:
            logger.warning(f"Palette extraction failed: {e}")
            palette = None

        try:
            mosaic = self.extract_mosaic(decoded, rng)
        except ValueError as e:
            logger.warning(f"Mosaic extraction failed: {e}")
            mosaic = None

        return ExtractionResult(palette=palette, mosaic=mosaic)
