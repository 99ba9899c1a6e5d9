"""Exceptions raised by patch integral and window statistics routines."""


class PatchStatsError(Exception):
    """Base class for patchstats errors."""


class PatchGeometryError(PatchStatsError, ValueError):
    """Patch or window extends outside the available grid or table."""


class AccumulatorOverflowError(PatchStatsError, OverflowError):
    """Accumulator dtype is too narrow for the patch's sum of squares."""


__all__ = ["PatchStatsError", "PatchGeometryError", "AccumulatorOverflowError"]
