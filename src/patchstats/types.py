"""Dataclasses shared by the integral builder and the window evaluator."""

import numbers
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from patchstats.errors import PatchGeometryError


@dataclass(frozen=True, slots=True)
class PatchGeometry:
    """Rectangular patch inside a sample grid.

    ``x0``/``y0`` are the grid column/row of the patch's top-left sample.
    """

    x0: int
    y0: int
    width: int
    height: int

    def __post_init__(self) -> None:
        for name in ("x0", "y0", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise PatchGeometryError(f"'{name}' must be an integer, got {value!r}")
        if self.width <= 0 or self.height <= 0:
            raise PatchGeometryError(
                f"patch size must be positive, got {self.width}x{self.height}"
            )
        if self.x0 < 0 or self.y0 < 0:
            raise PatchGeometryError(
                f"patch origin must be non-negative, got ({self.x0}, {self.y0})"
            )

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def table_shape(self) -> tuple[int, int]:
        """Shape of the zero-padded integral tables for this patch."""
        return self.height + 1, self.width + 1

    def check_within(self, grid_shape: tuple[int, int]) -> None:
        """Raise ``PatchGeometryError`` unless the patch fits in ``grid_shape``."""
        grid_h, grid_w = grid_shape
        if self.x0 + self.width > grid_w or self.y0 + self.height > grid_h:
            raise PatchGeometryError(
                f"patch (x0={self.x0}, y0={self.y0}, {self.width}x{self.height}) "
                f"exceeds grid of {grid_w}x{grid_h}"
            )


@dataclass(frozen=True, slots=True, eq=False)
class PatchIntegrals:
    """Integral tables of raw and squared samples over one patch.

    Both tables have shape ``(height + 1, width + 1)``; row 0 and column 0 are
    zero padding.
    """

    sum_table: np.ndarray
    sq_table: np.ndarray
    geometry: PatchGeometry

    @property
    def dtype(self) -> np.dtype:
        return self.sum_table.dtype

    @property
    def height(self) -> int:
        return self.geometry.height

    @property
    def width(self) -> int:
        return self.geometry.width

    @property
    def total(self) -> int:
        return int(self.sum_table[-1, -1])

    @property
    def total_sq(self) -> int:
        return int(self.sq_table[-1, -1])


@dataclass(frozen=True, slots=True)
class WindowStats:
    """Mean and population standard deviation of one window."""

    mean: float
    std: float

    def __iter__(self) -> Iterator[float]:
        yield self.mean
        yield self.std


__all__ = ["PatchGeometry", "PatchIntegrals", "WindowStats"]
