"""
Summary figures for a detection report (the numbers shown next to the results table).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np

from .pipeline import DetectionReport


def summarize(report: DetectionReport, shape: Optional[Tuple[int, int]] = None, bins: int = 10) -> Dict[str, Any]:
    """Totals, averages, density and an intensity histogram.

    ``density`` is centers per pixel of the scan. ``shape`` defaults to the
    report's mask shape.
    """
    height, width = shape if shape is not None else report.shape
    n = report.total
    if n == 0:
        return {
            "total_centers": 0,
            "average_size": 0.0,
            "average_intensity": 0.0,
            "average_confidence": 0.0,
            "density": 0.0,
            "histogram": {"bins": [], "counts": []},
        }
    sizes = np.asarray([c.size for c in report.centers], dtype=np.float64)
    intensities = np.asarray([c.intensity for c in report.centers], dtype=np.float64)
    confidences = np.asarray([c.confidence for c in report.centers], dtype=np.float64)
    counts, edges = np.histogram(intensities, bins=bins)
    return {
        "total_centers": int(n),
        "average_size": float(sizes.mean()),
        "average_intensity": float(intensities.mean()),
        "average_confidence": float(confidences.mean()),
        "density": float(n) / float(height * width),
        "histogram": {"bins": edges.tolist(), "counts": counts.astype(int).tolist()},
    }
