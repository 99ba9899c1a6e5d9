"""Sample grid access: strided views over flat buffers and ``.npy`` loading."""

import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


def sample_grid_from_buffer(
    buffer, width: int, height: int, stride: int | None = None
) -> np.ndarray:
    """View a flat row-major ``uint8`` buffer as a ``(height, width)`` grid.

    ``stride`` is the distance in samples between the starts of consecutive
    rows and defaults to ``width``. The returned array shares memory with
    ``buffer``; no samples are copied.
    """
    stride = width if stride is None else stride
    if width <= 0 or height <= 0:
        raise ValueError(f"grid size must be positive, got {width}x{height}")
    if stride < width:
        raise ValueError(f"stride {stride} is smaller than width {width}")

    if isinstance(buffer, np.ndarray):
        flat = buffer
    else:
        flat = np.frombuffer(buffer, dtype=np.uint8)
    if flat.dtype != np.uint8 or flat.ndim != 1:
        raise ValueError("buffer must be a flat uint8 sequence")

    required = (height - 1) * stride + width
    if flat.size < required:
        raise ValueError(
            f"buffer holds {flat.size} samples, a {width}x{height} grid with "
            f"stride {stride} needs {required}"
        )

    return np.lib.stride_tricks.as_strided(
        flat,
        shape=(height, width),
        strides=(stride * flat.strides[0], flat.strides[0]),
        writeable=False,
    )


def load_sample_grid(path: Path) -> np.ndarray:
    """Load a 2D ``uint8`` grayscale grid from a ``.npy`` file (memory-mapped)."""
    path = Path(path)
    if path.suffix != ".npy":
        raise ValueError(f"expected a .npy file, got {path.name}")

    grid = np.load(path, mmap_mode="r")
    if grid.ndim != 2:
        raise ValueError(f"{path.name} must hold a 2D array, got shape {grid.shape}")
    if grid.dtype != np.uint8:
        raise ValueError(f"{path.name} must hold uint8 samples, got {grid.dtype}")

    logger.debug("Loaded %s grid of shape %s", path.name, grid.shape)
    return grid


__all__ = ["sample_grid_from_buffer", "load_sample_grid"]
