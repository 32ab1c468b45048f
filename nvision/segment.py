"""
Binary thresholding and connected-component labeling.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from skimage import measure

from .grid import Grid


def binarize(processed: Grid, threshold: float) -> np.ndarray:
    """Mask of cells strictly above ``threshold * max(processed)``.

    An all-zero grid gives a cut of 0 and an all-False mask.
    """
    cut = float(threshold) * processed.max()
    mask = processed.data > cut
    mask.setflags(write=False)
    return mask


def label_regions(mask: np.ndarray, connectivity: int = 1) -> Tuple[np.ndarray, int]:
    """Label connected True pixels.

    Labels run 1..n in raster-scan order of each region's first pixel; 0 marks
    background. ``connectivity=1`` joins orthogonal neighbours only,
    ``connectivity=2`` also joins diagonals.
    """
    labeled, count = measure.label(mask, connectivity=connectivity, background=0, return_num=True)
    return labeled, int(count)
