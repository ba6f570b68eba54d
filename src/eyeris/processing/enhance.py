import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    """Returns the process-wide pool for row chunks, creating it on first use."""
    global _executor
    if _executor is None:
        with _executor_lock:
            if _executor is None:
                _executor = ThreadPoolExecutor(
                    max_workers=os.cpu_count() or 1,
                    thread_name_prefix="eyeris-enhance",
                )
    return _executor


def _brighten_rows(rows: np.ndarray, factor: float) -> np.ndarray:
    # Truncating cast after the clamp, so 255 * factor maps back to 255.
    scaled = rows.astype(np.float32) * factor
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)


def brighten(pixels: np.ndarray, factor: float = 1.1, workers: Optional[int] = None) -> np.ndarray:
    """
    Scales every channel value by `factor`, clamped to [0, 255].

    The image is split into contiguous row chunks which are processed on a
    shared thread pool and stitched back together in their original order.
    numpy releases the GIL for the arithmetic, so the chunks run in parallel.

    Args:
        pixels: A (height, width, channels) uint8 array.
        factor: Multiplier applied to each channel value.
        workers: Number of row chunks; defaults to the number of CPUs.

    Returns:
        A new uint8 array with the same shape as `pixels`.
    """
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 pixel array, got {pixels.dtype}.")
    if factor < 0:
        raise ValueError("Brightness factor must not be negative.")

    height = pixels.shape[0]
    if height == 0:
        return pixels.copy()

    chunk_count = max(1, min(workers or os.cpu_count() or 1, height))
    chunks = np.array_split(pixels, chunk_count, axis=0)

    enhanced = list(_get_executor().map(lambda chunk: _brighten_rows(chunk, factor), chunks))
    return np.concatenate(enhanced, axis=0)
