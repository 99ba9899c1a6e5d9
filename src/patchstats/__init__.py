"""Window mean and standard deviation from patch integral images."""

from patchstats.config import PatchStatsConfig, load_config
from patchstats.errors import (
    AccumulatorOverflowError,
    PatchGeometryError,
    PatchStatsError,
)
from patchstats.integral import (
    MAX_SQUARE,
    build_patch_integrals,
    max_patch_area,
    select_accumulator,
)
from patchstats.io import load_sample_grid, sample_grid_from_buffer
from patchstats.types import PatchGeometry, PatchIntegrals, WindowStats
from patchstats.window import (
    calc_mean_std,
    local_mean_std,
    rect_sum,
    window_mean_std,
)

__all__ = [
    # Data types
    "PatchGeometry",
    "PatchIntegrals",
    "WindowStats",
    # Integral builder
    "MAX_SQUARE",
    "build_patch_integrals",
    "max_patch_area",
    "select_accumulator",
    # Window evaluator
    "calc_mean_std",
    "window_mean_std",
    "rect_sum",
    "local_mean_std",
    # Grid access and configuration
    "sample_grid_from_buffer",
    "load_sample_grid",
    "PatchStatsConfig",
    "load_config",
    # Errors
    "PatchStatsError",
    "PatchGeometryError",
    "AccumulatorOverflowError",
]
