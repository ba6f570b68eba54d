import io
from typing import Tuple

import numpy as np
from PIL import Image


def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
    color: Tuple[int, ...] = (200, 120, 40),
) -> bytes:
    """Encodes a solid-color image of the given size and format."""
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_noise_png(width: int, height: int, seed: int = 0) -> bytes:
    """Encodes random pixels as PNG; noise keeps the compressed payload large."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def image_size(data: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def image_format(data: bytes) -> str:
    with Image.open(io.BytesIO(data)) as image:
        return image.format
