"""YAML configuration for patch window queries."""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from patchstats.types import PatchGeometry

logger = logging.getLogger(__name__)

_ACCUMULATORS = {"uint32", "uint64"}


@dataclass(slots=True)
class PatchStatsConfig:
    """Patch location, window and accumulator choice for one query."""

    x0: int = 170
    y0: int = 150
    width: int = 13
    height: int = 13
    px: int = 6
    py: int = 6
    radius: int = 6
    accumulator: str | None = None

    def __post_init__(self) -> None:
        for name in ("x0", "y0", "width", "height", "px", "py", "radius"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{name}' must be an integer, got {value!r}")
        if self.accumulator is not None and self.accumulator not in _ACCUMULATORS:
            raise ValueError(
                f"'accumulator' must be one of {sorted(_ACCUMULATORS)}, "
                f"got {self.accumulator!r}"
            )

    @property
    def geometry(self) -> PatchGeometry:
        return PatchGeometry(x0=self.x0, y0=self.y0, width=self.width, height=self.height)

    def merged(self, **overrides: Any) -> "PatchStatsConfig":
        """Return a copy with every non-``None`` override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def load_config(file_path: Path) -> PatchStatsConfig:
    """Load a ``PatchStatsConfig`` from a YAML mapping.

    Keys missing from the file keep their defaults. Unknown keys are rejected.
    """
    file_path = Path(file_path)
    try:
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to load YAML file {file_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must contain a YAML mapping")

    known = {f.name for f in fields(PatchStatsConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {file_path}: {', '.join(unknown)}")

    logger.debug("Loaded config from %s: %s", file_path, data)
    return PatchStatsConfig(**data)


__all__ = ["PatchStatsConfig", "load_config"]
