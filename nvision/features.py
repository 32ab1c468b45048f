"""
Per-region measurements and the size/confidence gates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from skimage import measure

from .config import DetectionConfig
from .grid import Grid

CENTER_FIELDS = ("id", "x", "y", "size", "intensity", "confidence")


@dataclass(frozen=True)
class DetectedCenter:
    """One accepted NV-center candidate.

    ``x``/``y`` are the unweighted centroid in column/row pixel units.
    ``bbox`` is ``(min_row, min_col, max_row, max_col)`` with exclusive maxima;
    it is kept for inspection only and is not part of the serialized record.
    """

    id: int
    x: float
    y: float
    size: int
    intensity: float
    confidence: float
    bbox: Optional[Tuple[int, int, int, int]] = field(default=None, compare=False, repr=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": int(self.id),
            "x": float(self.x),
            "y": float(self.y),
            "size": int(self.size),
            "intensity": float(self.intensity),
            "confidence": float(self.confidence),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "DetectedCenter":
        return cls(
            id=int(obj["id"]),
            x=float(obj["x"]),
            y=float(obj["y"]),
            size=int(obj["size"]),
            intensity=float(obj["intensity"]),
            confidence=float(obj["confidence"]),
        )


def extract_centers(labeled: np.ndarray, processed: Grid, config: DetectionConfig) -> List[DetectedCenter]:
    """Measure every labeled region and keep those passing both gates.

    The size gate runs before the confidence gate. Ids are assigned 1..n to the
    survivors in label order.
    """
    peak = processed.max()
    centers: List[DetectedCenter] = []
    for region in measure.regionprops(labeled, intensity_image=processed.data):
        size = int(region.area)
        if size < config.min_size or size > config.max_size:
            continue
        # Any labeled pixel lies above a non-negative cut, so peak > 0 here.
        # Averaging peak-normalized values keeps the sum finite near float64 max.
        if peak > 0:
            normalized = region.image_intensity[region.image] / peak
            confidence = min(float(normalized.mean()), 1.0)
        else:
            confidence = 0.0
        intensity = confidence * peak
        if confidence < config.confidence_threshold:
            continue
        row, col = region.centroid
        centers.append(
            DetectedCenter(
                id=len(centers) + 1,
                x=float(col),
                y=float(row),
                size=size,
                intensity=intensity,
                confidence=float(confidence),
                bbox=tuple(int(v) for v in region.bbox),
            )
        )
    return centers
