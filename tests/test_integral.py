"""Tests for the patch integral builder."""

import logging

import numpy as np
import pytest

from patchstats.errors import AccumulatorOverflowError, PatchGeometryError
from patchstats.integral import (
    MAX_SQUARE,
    build_patch_integrals,
    max_patch_area,
    select_accumulator,
)
from patchstats.types import PatchGeometry


def _reference_table(patch: np.ndarray) -> np.ndarray:
    table = np.cumsum(np.cumsum(patch.astype(np.int64), axis=0), axis=1)
    return np.pad(table, ((1, 0), (1, 0)), mode="constant")


@pytest.fixture
def random_grid():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(40, 50), dtype=np.uint8)


class TestBuildPatchIntegrals:
    """Test table contents produced by the builder."""

    def test_uniform_patch(self):
        """A constant patch grows linearly in the sum table and quadratically in value."""
        grid = np.full((13, 13), 100, dtype=np.uint8)
        integrals = build_patch_integrals(grid, PatchGeometry(0, 0, 13, 13))

        i, j = np.indices((14, 14))
        np.testing.assert_array_equal(integrals.sum_table, 100 * i * j)
        np.testing.assert_array_equal(integrals.sq_table, 10000 * i * j)
        assert integrals.sum_table.shape == (14, 14)

    def test_padding_is_zero(self, random_grid):
        """Row 0 and column 0 of both tables stay zero."""
        integrals = build_patch_integrals(random_grid, PatchGeometry(3, 5, 17, 11))
        for table in (integrals.sum_table, integrals.sq_table):
            assert not table[0, :].any()
            assert not table[:, 0].any()

    def test_matches_cumulative_sums(self, random_grid):
        """Every cell equals the exact sum of the rectangle above and left of it."""
        geometry = PatchGeometry(x0=7, y0=4, width=21, height=16)
        patch = random_grid[4:20, 7:28]
        integrals = build_patch_integrals(random_grid, geometry)

        np.testing.assert_array_equal(integrals.sum_table, _reference_table(patch))
        np.testing.assert_array_equal(
            integrals.sq_table, _reference_table(patch.astype(np.int64) ** 2)
        )

    def test_bottom_right_is_patch_total(self, random_grid):
        """The last cell holds the brute-force patch sum and sum of squares."""
        geometry = PatchGeometry(x0=10, y0=10, width=13, height=13)
        patch = random_grid[10:23, 10:23].astype(np.int64)
        integrals = build_patch_integrals(random_grid, geometry)

        assert integrals.total == int(patch.sum())
        assert integrals.total_sq == int((patch**2).sum())

    def test_ramp_patch_totals(self):
        """Values 0..168 row-major give the closed-form totals."""
        grid = np.arange(169, dtype=np.uint8).reshape(13, 13)
        integrals = build_patch_integrals(grid, PatchGeometry(0, 0, 13, 13))

        assert integrals.total == sum(range(169))
        assert integrals.total_sq == sum(k * k for k in range(169))

    def test_patch_at_grid_corner(self, random_grid):
        """A patch touching the bottom-right grid edge is accepted."""
        geometry = PatchGeometry(x0=45, y0=35, width=5, height=5)
        integrals = build_patch_integrals(random_grid, geometry)
        assert integrals.total == int(random_grid[35:, 45:].astype(np.int64).sum())

    def test_integrals_keep_geometry(self, random_grid):
        """The returned bundle records the patch it was built from."""
        geometry = PatchGeometry(1, 2, 3, 4)
        integrals = build_patch_integrals(random_grid, geometry)
        assert integrals.geometry == geometry
        assert integrals.height == 4
        assert integrals.width == 3


class TestBuilderValidation:
    """Test precondition failures of the builder."""

    def test_patch_outside_grid(self):
        """A patch extending beyond the grid is rejected, not clamped."""
        grid = np.zeros((8, 8), dtype=np.uint8)
        with pytest.raises(PatchGeometryError, match="exceeds grid"):
            build_patch_integrals(grid, PatchGeometry(x0=5, y0=0, width=10, height=4))

        with pytest.raises(PatchGeometryError, match="exceeds grid"):
            build_patch_integrals(grid, PatchGeometry(x0=0, y0=7, width=2, height=2))

    def test_negative_origin(self):
        """Negative origins fail at construction."""
        with pytest.raises(PatchGeometryError, match="origin"):
            PatchGeometry(x0=-1, y0=0, width=3, height=3)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"x0": 0, "y0": 0, "width": 3.5, "height": 3},
            {"x0": 0, "y0": 0, "width": True, "height": 3},
            {"x0": "1", "y0": 0, "width": 3, "height": 3},
        ],
    )
    def test_non_integer_geometry(self, kwargs):
        """Non-integer coordinates fail at construction with a geometry error."""
        with pytest.raises(PatchGeometryError, match="must be an integer"):
            PatchGeometry(**kwargs)

    def test_numpy_integer_geometry(self):
        """Numpy integers are valid coordinates."""
        geometry = PatchGeometry(np.int64(1), np.int32(2), np.int64(3), np.int64(4))
        assert geometry.area == 12

    def test_empty_patch(self):
        """Zero-sized patches fail at construction."""
        with pytest.raises(PatchGeometryError, match="positive"):
            PatchGeometry(x0=0, y0=0, width=0, height=3)

    def test_wrong_dtype(self):
        """Only 8-bit samples are accepted."""
        grid = np.zeros((8, 8), dtype=np.uint16)
        with pytest.raises(ValueError, match="uint8"):
            build_patch_integrals(grid, PatchGeometry(0, 0, 4, 4))

    def test_wrong_ndim(self):
        """Only 2D grids are accepted."""
        grid = np.zeros((2, 8, 8), dtype=np.uint8)
        with pytest.raises(ValueError, match="2D"):
            build_patch_integrals(grid, PatchGeometry(0, 0, 4, 4))


class TestAccumulatorSelection:
    """Test overflow-aware accumulator choice."""

    def test_max_patch_area(self):
        """uint32 holds the squares of 66051 saturated samples."""
        assert max_patch_area(np.uint32) == 66051
        assert max_patch_area(np.uint32) * MAX_SQUARE <= 2**32 - 1
        assert (max_patch_area(np.uint32) + 1) * MAX_SQUARE > 2**32 - 1

    def test_max_patch_area_rejects_signed(self):
        """Signed dtypes are not accumulators."""
        with pytest.raises(ValueError, match="unsigned"):
            max_patch_area(np.int32)

    def test_default_selection(self):
        """The narrowest safe dtype is chosen automatically."""
        assert select_accumulator(169) == np.uint32
        assert select_accumulator(66051) == np.uint32
        assert select_accumulator(66052) == np.uint64

    def test_explicit_narrow_dtype_overflow(self):
        """Requesting uint32 for too large a patch raises instead of wrapping."""
        with pytest.raises(AccumulatorOverflowError, match="66051"):
            select_accumulator(66052, np.uint32)

    def test_explicit_dtype_by_name(self):
        """Accumulators may be named by string."""
        assert select_accumulator(100, "uint64") == np.uint64

    def test_unsupported_dtype(self):
        """Only uint32 and uint64 tables are supported."""
        with pytest.raises(ValueError, match="unsupported accumulator"):
            select_accumulator(100, np.int64)


class TestOverflow:
    """Test saturated patches whose squares exceed 32 bits."""

    SIDE = 258  # 258 * 258 = 66564 > 66051

    def test_widened_by_default(self, caplog):
        """Large saturated patches get uint64 tables with exact totals."""
        grid = np.full((self.SIDE, self.SIDE), 255, dtype=np.uint8)
        caplog.set_level(logging.INFO, logger="patchstats.integral")

        integrals = build_patch_integrals(grid, PatchGeometry(0, 0, self.SIDE, self.SIDE))

        area = self.SIDE * self.SIDE
        assert integrals.dtype == np.uint64
        assert integrals.total_sq == MAX_SQUARE * area
        assert integrals.total_sq > 2**32 - 1
        assert "widening" in caplog.text

    def test_explicit_uint32_rejected(self):
        """An explicit uint32 request for the same patch is refused."""
        grid = np.full((self.SIDE, self.SIDE), 255, dtype=np.uint8)
        with pytest.raises(AccumulatorOverflowError):
            build_patch_integrals(
                grid, PatchGeometry(0, 0, self.SIDE, self.SIDE), accumulator=np.uint32
            )

    def test_explicit_uint64_small_patch(self):
        """Wider tables can be requested for small patches too."""
        grid = np.full((4, 4), 255, dtype=np.uint8)
        integrals = build_patch_integrals(grid, PatchGeometry(0, 0, 4, 4), "uint64")
        assert integrals.dtype == np.uint64
        assert integrals.total_sq == 16 * MAX_SQUARE
