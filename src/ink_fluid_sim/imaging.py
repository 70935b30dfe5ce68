"""
Image I/O for backgrounds and exported frames.

Images on disk are row-major and top-down ``(rows, cols, channels)``. The
engine stores pictures as ``(width, height, channels)`` indexed ``[x, y]``
with ``y = 0`` at the bottom, the layout Taichi canvases use.
"""
from typing import Tuple

import numpy as np
import PIL.Image


def to_engine_layout(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(np.transpose(image[::-1], (1, 0, 2)))


def to_image_layout(rgba: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(np.transpose(rgba, (1, 0, 2))[::-1])


def load_background(path: str, size: Tuple[int, int]) -> np.ndarray:
    """Loads an image, resamples it to ``size`` (width, height) and returns float RGBA in engine layout."""
    with PIL.Image.open(path) as img:
        img = img.convert("RGBA").resize((int(size[0]), int(size[1])), PIL.Image.Resampling.BILINEAR)
        arr = np.asarray(img, dtype=np.float32) / 255.0
    return to_engine_layout(arr)


def save_png(rgba_u8: np.ndarray, path: str):
    """Writes an engine-layout ``uint8`` RGBA frame to disk."""
    PIL.Image.fromarray(np.asarray(to_image_layout(rgba_u8), dtype=np.uint8)).save(path)
