"""
Smoothing stages that run before thresholding.

Both stages share one boundary rule (``edge_mode``). The default, ``"nearest"``,
clamps window indices to the closest valid row/column, so a border pixel sees
copies of itself rather than mirrored interior values.
"""

from __future__ import annotations

import numpy as np
from scipy import ndimage as ndi

from .config import DetectionConfig
from .grid import Grid


def median_smooth(grid: Grid, size: int, mode: str = "nearest") -> Grid:
    """Median of the ``size x size`` window around every cell.

    ``size=1`` is the identity.
    """
    if size == 1:
        return grid
    out = ndi.median_filter(grid.data, size=int(size), mode=mode)
    return Grid(out)


def estimate_background(grid: Grid, sigma: float, mode: str = "nearest") -> np.ndarray:
    """Isotropic Gaussian low-pass of the grid, used as the slowly varying baseline."""
    return ndi.gaussian_filter(grid.data, sigma=float(sigma), mode=mode)


def subtract_background(grid: Grid, sigma: float, mode: str = "nearest") -> Grid:
    """One-sided background removal: ``max(grid - background, 0)``."""
    background = estimate_background(grid, sigma, mode=mode)
    corrected = np.clip(grid.data - background, 0.0, None)
    return Grid(corrected)


def preprocess(grid: Grid, config: DetectionConfig) -> Grid:
    """Apply the enabled stages in order: median, then background removal."""
    out = grid
    if config.median_filter:
        out = median_smooth(out, config.filter_size, mode=config.edge_mode)
    if config.background_correction:
        out = subtract_background(out, config.background_sigma, mode=config.edge_mode)
    return out
