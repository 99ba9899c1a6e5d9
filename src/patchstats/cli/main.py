"""Command-line helpers for patchstats."""

import logging
import math
from pathlib import Path

import numpy as np
import typer

from patchstats.config import PatchStatsConfig, load_config
from patchstats.errors import PatchStatsError
from patchstats.integral import build_patch_integrals
from patchstats.io import load_sample_grid
from patchstats.window import window_mean_std

app = typer.Typer(help="patchstats utilities")
logger = logging.getLogger(__name__)

CHECK_TOLERANCE = 1e-9


def _direct_mean_std(grid: np.ndarray, config: PatchStatsConfig) -> tuple[float, float]:
    """Mean and population std computed straight from the window's samples."""
    cx = config.x0 + config.px
    cy = config.y0 + config.py
    r = config.radius
    window = np.asarray(grid[cy - r : cy + r + 1, cx - r : cx + r + 1], dtype=np.float64)
    return float(window.mean()), float(window.std())


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """patchstats utility commands."""
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(levelname)s: %(message)s",
        )
    return None


@app.command()
def window(
    grid_path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="2D uint8 grayscale grid stored as .npy.",
    ),
    config_path: Path | None = typer.Option(
        None,
        "-c",
        "--config",
        exists=True,
        dir_okay=False,
        readable=True,
        help="YAML file with patch, window and accumulator settings.",
    ),
    x0: int | None = typer.Option(None, help="Patch left column in the grid."),
    y0: int | None = typer.Option(None, help="Patch top row in the grid."),
    width: int | None = typer.Option(None, help="Patch width."),
    height: int | None = typer.Option(None, help="Patch height."),
    px: int | None = typer.Option(None, help="Window centre column inside the patch."),
    py: int | None = typer.Option(None, help="Window centre row inside the patch."),
    radius: int | None = typer.Option(None, "-r", "--radius", help="Window radius."),
    accumulator: str | None = typer.Option(
        None, help="Integral table dtype: uint32 or uint64 (default: automatic)."
    ),
    check: bool = typer.Option(
        False, "--check", help="Compare with a direct computation over the window."
    ),
) -> None:
    """Compute mean and std of one square window via patch integral tables."""
    try:
        config = load_config(config_path) if config_path else PatchStatsConfig()
        config = config.merged(
            x0=x0,
            y0=y0,
            width=width,
            height=height,
            px=px,
            py=py,
            radius=radius,
            accumulator=accumulator,
        )
        grid = load_sample_grid(grid_path)
        integrals = build_patch_integrals(grid, config.geometry, config.accumulator)
        stats = window_mean_std(integrals, config.px, config.py, config.radius)
    except (PatchStatsError, ValueError) as exc:
        logger.error("Window statistics failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    logger.info(
        "Window centre (%d, %d) radius %d in patch (%d, %d) %dx%d",
        config.px,
        config.py,
        config.radius,
        config.x0,
        config.y0,
        config.width,
        config.height,
    )
    typer.echo(f"mean={stats.mean:.10f}, std={stats.std:.10f}")

    if check:
        ref_mean, ref_std = _direct_mean_std(grid, config)
        typer.echo(f"direct mean={ref_mean:.10f}, std={ref_std:.10f}")
        if not (
            math.isclose(stats.mean, ref_mean, rel_tol=0.0, abs_tol=CHECK_TOLERANCE)
            and math.isclose(stats.std, ref_std, rel_tol=0.0, abs_tol=CHECK_TOLERANCE)
        ):
            typer.echo("Mismatch between integral and direct results", err=True)
            raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
