"""Pytest configuration and shared fixtures."""

import io
import logging

import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so every test run draws the same numbers."""
    return np.random.default_rng(1234)


@pytest.fixture
def flat_gray_image() -> Image.Image:
    """
    80x80 mid-gray image.

    sRGB gray 128 has luma ~0.502 and no contrast anywhere.
    """
    return Image.new("RGBA", (80, 80), (128, 128, 128, 255))


@pytest.fixture
def split_image() -> Image.Image:
    """40x40 image, left half black, right half white: one vertical edge."""
    arr = np.zeros((40, 40, 4), dtype=np.uint8)
    arr[..., 3] = 255
    arr[:, 20:, :3] = 255
    return Image.fromarray(arr)


@pytest.fixture
def dark_image() -> Image.Image:
    """
    Black 140x140 image with a single bright pixel.

    Practically every palette draw lands on black (luma < 0.08).
    """
    arr = np.zeros((140, 140, 3), dtype=np.uint8)
    arr[70, 70] = (255, 255, 255)
    return Image.fromarray(arr)


@pytest.fixture
def colorful_image() -> Image.Image:
    """120x60 image of bright vertical color bands."""
    bands = [(255, 40, 40), (40, 255, 40), (40, 40, 255), (255, 220, 0)]
    arr = np.zeros((60, 120, 3), dtype=np.uint8)
    for i, color in enumerate(bands):
        arr[:, i * 30:(i + 1) * 30] = color
    return Image.fromarray(arr)


@pytest.fixture
def png_bytes(colorful_image) -> bytes:
    """colorful_image encoded as PNG."""
    buf = io.BytesIO()
    colorful_image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def reset_photoburst_logger():
    """Undo setup_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger("photoburst")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
