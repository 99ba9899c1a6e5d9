"""Window statistics from patch integral tables.

A local patch point ``(px, py)`` sits at table index ``(py + 1, px + 1)``
because of the zero padding row and column. For a window of radius ``r`` the
four corners are::

    a               b
       -------------
      |             |
      |   (px, py)  |
      |             |
    c  -------------  d

and the window sum is ``d + a - b - c`` in each table.
"""

import logging
import math

import numpy as np

from patchstats.errors import PatchGeometryError
from patchstats.integral import MAX_SQUARE
from patchstats.types import PatchIntegrals, WindowStats

logger = logging.getLogger(__name__)

_INT64_MAX = int(np.iinfo(np.int64).max)


def rect_sum(table: np.ndarray, top: int, left: int, bottom: int, right: int) -> int:
    """Sum over the patch-local half-open rectangle ``[top, bottom) x [left, right)``.

    Corner values are widened to Python integers before the subtraction, so
    unsigned tables never wrap on the intermediate result.
    """
    height, width = table.shape
    if not (0 <= top <= bottom < height and 0 <= left <= right < width):
        raise PatchGeometryError(
            f"rectangle rows [{top}, {bottom}) cols [{left}, {right}) is outside "
            f"a {height - 1}x{width - 1} patch"
        )
    return (
        int(table[bottom, right])
        + int(table[top, left])
        - int(table[top, right])
        - int(table[bottom, left])
    )


def _variance(s1: int, s2: int, n: int, exact: bool) -> float:
    if exact:
        # n*s2 - s1**2 >= 0 for integer samples, evaluated without rounding
        return (n * s2 - s1 * s1) / (n * n)
    coeff = 1.0 / n
    return coeff * (s2 - s1 * s1 * coeff)


def calc_mean_std(
    sum_table: np.ndarray,
    sq_table: np.ndarray,
    px: int,
    py: int,
    radius: int,
    exact: bool = True,
) -> WindowStats:
    """Mean and standard deviation of the ``(2r+1)^2`` window centred at ``(px, py)``.

    Args:
        sum_table: Integral table of samples, shape ``(H + 1, W + 1)``.
        sq_table: Integral table of squared samples, same shape.
        px: Window centre column, local to the patch.
        py: Window centre row, local to the patch.
        radius: Window radius ``r >= 0``.
        exact: Evaluate the variance numerator in exact integer arithmetic.
            ``False`` uses ``(s2 - s1 * s1 / n) / n`` in floating point.

    Returns:
        ``WindowStats(mean, std)``.

    Raises:
        ValueError: If ``radius`` is negative or the tables differ in shape.
        PatchGeometryError: If the window leaves the patch.
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    if sum_table.shape != sq_table.shape:
        raise ValueError("sum_table and sq_table must have the same shape")

    top, left = py - radius, px - radius
    bottom, right = py + 1 + radius, px + 1 + radius
    table_h, table_w = sum_table.shape
    if top < 0 or left < 0 or bottom > table_h - 1 or right > table_w - 1:
        raise PatchGeometryError(
            f"window centred at ({px}, {py}) with radius {radius} leaves the "
            f"{table_w - 1}x{table_h - 1} patch"
        )

    side = 2 * radius + 1
    n = side * side
    s1 = rect_sum(sum_table, top, left, bottom, right)
    s2 = rect_sum(sq_table, top, left, bottom, right)

    mean = s1 / n
    std = math.sqrt(max(_variance(s1, s2, n, exact), 0.0))
    return WindowStats(mean=mean, std=std)


def window_mean_std(
    integrals: PatchIntegrals, px: int, py: int, radius: int, exact: bool = True
) -> WindowStats:
    """Evaluate one window against the tables of ``integrals``."""
    return calc_mean_std(
        integrals.sum_table, integrals.sq_table, px, py, radius, exact=exact
    )


def _corner_sums(table: np.ndarray, side: int, dtype) -> np.ndarray:
    t = table.astype(dtype, copy=False)
    return t[side:, side:] + t[:-side, :-side] - t[:-side, side:] - t[side:, :-side]


def local_mean_std(
    integrals: PatchIntegrals, radius: int, exact: bool = True
) -> tuple[np.ndarray, np.ndarray]:
    """Mean and std of every window of ``radius`` that fits inside the patch.

    Element ``[y, x]`` of each output belongs to the window centred at local
    ``(x + radius, y + radius)``; both outputs have shape
    ``(height - 2 * radius, width - 2 * radius)``.

    Raises:
        ValueError: If ``radius`` is negative.
        PatchGeometryError: If no window of this radius fits in the patch.
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    side = 2 * radius + 1
    if side > integrals.height or side > integrals.width:
        raise PatchGeometryError(
            f"no window of radius {radius} fits in a "
            f"{integrals.width}x{integrals.height} patch"
        )

    n = side * side
    # n*s2 and s1**2 are each bounded by n**2 * 255**2
    if n * n * MAX_SQUARE <= _INT64_MAX:
        work_dtype = np.int64
    else:
        logger.debug("Window area %d too large for int64; using object arithmetic", n)
        work_dtype = object

    s1 = _corner_sums(integrals.sum_table, side, work_dtype)
    s2 = _corner_sums(integrals.sq_table, side, work_dtype)

    mean = (s1 / n).astype(np.float64)
    if exact:
        var = ((n * s2 - s1 * s1) / (n * n)).astype(np.float64)
    else:
        coeff = 1.0 / n
        var = (coeff * (s2 - s1 * s1 * coeff)).astype(np.float64)
    std = np.sqrt(np.maximum(var, 0.0))
    return mean, std


__all__ = ["rect_sum", "calc_mean_std", "window_mean_std", "local_mean_std"]
