"""
Synthetic FSM scans for demos and tests.

A scan is a radial background gradient plus uniform noise, with Gaussian spots
of radius ``sqrt(size / pi)`` painted on top and the result clipped to 1.0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .grid import Grid


@dataclass(frozen=True)
class Spot:
    x: float
    y: float
    size: int
    intensity: float

    @property
    def radius(self) -> float:
        return float(np.sqrt(self.size / np.pi))


def default_spots(n: int, size: int, seed: int = 0, margin: int = 5) -> List[Spot]:
    """``n`` reproducible spots kept ``margin`` pixels away from the edges."""
    rng = np.random.default_rng(seed)
    lo, hi = margin, max(margin + 1, size - margin)
    spots: List[Spot] = []
    for _ in range(int(n)):
        spots.append(
            Spot(
                x=float(rng.integers(lo, hi)),
                y=float(rng.integers(lo, hi)),
                size=int(rng.integers(6, 12)),
                intensity=float(rng.uniform(0.75, 0.85)),
            )
        )
    return spots


def make_scan(
    size: int = 500,
    spots: Optional[Sequence[Spot]] = None,
    seed: int = 0,
    noise: float = 0.1,
    background: bool = True,
) -> Grid:
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float64)
    half = size / 2.0
    data = np.zeros((size, size), dtype=np.float64)
    if background:
        r = np.sqrt(((xx - half) / half) ** 2 + ((yy - half) / half) ** 2)
        data += np.maximum(0.0, 0.3 - 0.2 * r)
    if noise > 0:
        data += rng.random((size, size)) * float(noise)

    for spot in spots or ():
        radius = spot.radius
        dist = np.sqrt((xx - spot.x) ** 2 + (yy - spot.y) ** 2)
        inside = dist <= 2.0 * radius
        data[inside] += spot.intensity * np.exp(-((dist[inside] / radius) ** 2))

    return Grid(np.clip(data, 0.0, 1.0))


def scan_payload(grid: Grid) -> Dict[str, Any]:
    """The ``{"scan_data": ...}`` input object for ``grid``."""
    return {"scan_data": grid.to_rows()}
