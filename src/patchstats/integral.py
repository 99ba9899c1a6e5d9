"""Patch integral builder (functional API).

Pipeline per patch:
- select_accumulator(area) -> unsigned dtype wide enough for the squares
- _integrate_patch(view, sum_table, sq_table) -> fills both tables in place
- build_patch_integrals(grid, geometry) -> PatchIntegrals

The patch is addressed as a strided view into the caller's grid, so no
samples are copied. Tables are zero-padded by one row and one column so
windows touching the patch edge need no special case.
"""

import os
import logging

import numpy as np
import numba as nb

from patchstats.errors import AccumulatorOverflowError
from patchstats.types import PatchGeometry, PatchIntegrals

os.environ.setdefault("NUMBA_LOGGER_LEVEL", "WARNING")
logging.getLogger("numba.core.ssa").setLevel(logging.WARNING)
logging.getLogger("numba.core.byteflow").setLevel(logging.WARNING)
logging.getLogger("numba.core.interpreter").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

MAX_SAMPLE = 255
MAX_SQUARE = MAX_SAMPLE * MAX_SAMPLE

SUPPORTED_ACCUMULATORS = (np.dtype(np.uint32), np.dtype(np.uint64))


def max_patch_area(dtype) -> int:
    """Largest patch area whose sum of squared 8-bit samples fits in ``dtype``.

    ``uint32`` supports 66051 pixels (about 257x257); ``uint64`` is bounded
    only by memory in practice.
    """
    dtype = np.dtype(dtype)
    if dtype.kind != "u":
        raise ValueError(f"accumulator must be an unsigned integer dtype, got {dtype}")
    return int(np.iinfo(dtype).max) // MAX_SQUARE


def select_accumulator(area: int, accumulator=None) -> np.dtype:
    """Pick the integral table dtype for a patch of ``area`` pixels.

    With ``accumulator=None`` the narrowest supported dtype that cannot wrap is
    returned. An explicit dtype is honoured only if it is wide enough;
    otherwise ``AccumulatorOverflowError`` is raised.
    """
    if accumulator is None:
        for dtype in SUPPORTED_ACCUMULATORS:
            if area <= max_patch_area(dtype):
                return dtype
        raise AccumulatorOverflowError(
            f"patch area {area} exceeds the largest supported accumulator"
        )

    dtype = np.dtype(accumulator)
    if dtype not in SUPPORTED_ACCUMULATORS:
        raise ValueError(
            f"unsupported accumulator {dtype}; use one of "
            f"{', '.join(str(d) for d in SUPPORTED_ACCUMULATORS)}"
        )
    limit = max_patch_area(dtype)
    if area > limit:
        raise AccumulatorOverflowError(
            f"patch area {area} exceeds {limit}, the largest area a {dtype} "
            f"sum-of-squares table can hold"
        )
    return dtype


@nb.njit
def _integrate_patch(patch, sum_table, sq_table):
    height, width = patch.shape
    for i in range(1, height + 1):
        for j in range(1, width + 1):
            v = np.uint64(patch[i - 1, j - 1])
            sum_table[i, j] = (
                v + sum_table[i, j - 1] + sum_table[i - 1, j] - sum_table[i - 1, j - 1]
            )
            sq_table[i, j] = (
                v * v + sq_table[i, j - 1] + sq_table[i - 1, j] - sq_table[i - 1, j - 1]
            )


def build_patch_integrals(
    grid: np.ndarray, geometry: PatchGeometry, accumulator=None
) -> PatchIntegrals:
    """Build the sum and sum-of-squares integral tables of one patch.

    Args:
        grid: 2D ``uint8`` array ``(H, W)`` holding the full sample grid.
        geometry: Patch location and size inside ``grid``.
        accumulator: Optional table dtype (``uint32`` or ``uint64``). Defaults
            to the narrowest dtype that cannot overflow for this patch.

    Returns:
        ``PatchIntegrals`` with two ``(height + 1, width + 1)`` tables.

    Raises:
        ValueError: If ``grid`` is not a 2D ``uint8`` array.
        PatchGeometryError: If the patch does not lie inside ``grid``.
        AccumulatorOverflowError: If an explicit ``accumulator`` is too narrow.
    """
    if grid.ndim != 2:
        raise ValueError("grid must be a 2D array")
    if grid.dtype != np.uint8:
        raise ValueError(f"grid must have dtype uint8, got {grid.dtype}")

    geometry.check_within(grid.shape)
    dtype = select_accumulator(geometry.area, accumulator)
    if accumulator is None and dtype != SUPPORTED_ACCUMULATORS[0]:
        logger.info(
            "Patch area %d exceeds %d; widening integral tables to %s",
            geometry.area,
            max_patch_area(SUPPORTED_ACCUMULATORS[0]),
            dtype,
        )
    logger.debug(
        "Integrating patch x0=%d y0=%d %dx%d with %s tables",
        geometry.x0,
        geometry.y0,
        geometry.width,
        geometry.height,
        dtype,
    )

    patch = np.asarray(grid)[
        geometry.y0 : geometry.y0 + geometry.height,
        geometry.x0 : geometry.x0 + geometry.width,
    ]
    sum_table = np.zeros(geometry.table_shape, dtype=dtype)
    sq_table = np.zeros(geometry.table_shape, dtype=dtype)
    _integrate_patch(patch, sum_table, sq_table)

    return PatchIntegrals(sum_table=sum_table, sq_table=sq_table, geometry=geometry)


__all__ = [
    "MAX_SAMPLE",
    "MAX_SQUARE",
    "SUPPORTED_ACCUMULATORS",
    "max_patch_area",
    "select_accumulator",
    "build_patch_integrals",
]
