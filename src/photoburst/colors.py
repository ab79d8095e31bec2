"""
Color helpers.

Palettes are (k, 3) float32 arrays of linear-light RGB in [0, 1].
Conversions are vectorized so the same code serves single colors,
palettes and whole images.
"""

from typing import Iterable, List, Optional

import numpy as np
from PIL import ImageColor


def srgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """
    Convert sRGB-encoded channels to linear light.

    Args:
        srgb: Array of channel values in [0, 1].

    Returns:
        float32 array of the same shape.
    """
    c = np.asarray(srgb, dtype=np.float32)
    return np.where(
        c <= 0.04045,
        c / 12.92,
        ((c + 0.055) / 1.055) ** 2.4,
    ).astype(np.float32)


def luma(rgb: np.ndarray) -> np.ndarray:
    """Rec. 709 luma of (..., 3) sRGB values in [0, 1]."""
    rgb = np.asarray(rgb, dtype=np.float32)
    return (
        0.2126 * rgb[..., 0] + 0.7152 * rgb[..., 1] + 0.0722 * rgb[..., 2]
    ).astype(np.float32)


def palette_from_hex(hex_list: Iterable[str]) -> np.ndarray:
    """Build a linear palette from '#rrggbb' strings."""
    rgb = [ImageColor.getrgb(h)[:3] for h in hex_list]
    return srgb_to_linear(np.array(rgb, dtype=np.float32) / 255.0)


def normalize_palette(palette) -> Optional[np.ndarray]:
    """
    Coerce a palette-like value to a (k, 3) float32 array.

    Returns None for missing or empty palettes so callers can pick
    a fallback.
    """
    if palette is None:
        return None
    arr = np.asarray(palette, dtype=np.float32)
    if arr.size == 0:
        return None
    arr = arr.reshape(-1, 3)
    return np.clip(arr, 0.0, 1.0)


def jitter_colors(
    base: np.ndarray,
    rng: np.random.Generator,
    amount: float = 0.08,
) -> np.ndarray:
    """Offset each channel by U[-amount/2, amount/2] and clamp to [0, 1]."""
    noise = (rng.random(base.shape) - 0.5) * amount
    return np.clip(base + noise, 0.0, 1.0).astype(np.float32)


def palette_to_hex(palette: np.ndarray) -> List[str]:
    """Linear palette back to sRGB hex strings (for summaries and logs)."""
    lin = np.clip(np.asarray(palette, dtype=np.float32), 0.0, 1.0)
    srgb = np.where(
        lin <= 0.0031308,
        lin * 12.92,
        1.055 * lin ** (1.0 / 2.4) - 0.055,
    )
    ints = np.round(srgb * 255).astype(int)
    return ["#{:02x}{:02x}{:02x}".format(*row) for row in ints]
