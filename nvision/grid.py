"""
Intensity grid for a single FSM scan.

A ``Grid`` wraps a read-only ``float64`` array. Construction is the only place
input values are checked; every later stage can assume a finite, non-negative,
rectangular array with at least one cell.
"""

from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple

import numpy as np

from .errors import InvalidInput


@dataclass(frozen=True, eq=False)
class Grid:
    """Immutable ``height x width`` array of fluorescence intensities."""

    data: np.ndarray

    def __post_init__(self) -> None:
        arr = _validated_array(self.data)
        arr.setflags(write=False)
        object.__setattr__(self, "data", arr)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> "Grid":
        return cls(_rows_to_array(rows))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Grid":
        """Build a grid from the ``{"scan_data": [[...], ...]}`` input object."""
        if not isinstance(payload, Mapping):
            raise InvalidInput("Scan payload must be a JSON object")
        if "scan_data" not in payload:
            raise InvalidInput("Scan payload is missing 'scan_data'")
        return cls.from_rows(payload["scan_data"])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    def at(self, y: int, x: int) -> float:
        """Value at row ``y``, column ``x``; negative indices are not wrapped."""
        if not (0 <= y < self.height and 0 <= x < self.width):
            raise IndexError(f"({y}, {x}) outside grid of shape {self.shape}")
        return float(self.data[y, x])

    def max(self) -> float:
        return float(self.data.max())

    def to_rows(self) -> list[list[float]]:
        return self.data.tolist()

    def equals(self, other: "Grid") -> bool:
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))


def load_scan(path: Path) -> Grid:
    """Read a scan JSON file from disk."""
    path = Path(path)
    if not path.exists():
        raise InvalidInput(f"Missing scan JSON: {path}")
    try:
        payload = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInput(f"Scan file is not valid JSON: {path}") from exc
    return Grid.from_payload(payload)


def _rows_to_array(rows: Sequence[Sequence[float]]) -> np.ndarray:
    if isinstance(rows, np.ndarray):
        return _validated_array(rows)
    if not isinstance(rows, (list, tuple)):
        raise InvalidInput("'scan_data' must be an array of rows")
    if not rows:
        raise InvalidInput("'scan_data' must contain at least one row")
    width = None
    for i, row in enumerate(rows):
        if not isinstance(row, (list, tuple)):
            raise InvalidInput(f"Row {i} of 'scan_data' is not an array")
        if width is None:
            width = len(row)
        elif len(row) != width:
            raise InvalidInput(
                f"Row {i} has length {len(row)}, expected {width} (rows must be equal length)"
            )
        for value in row:
            # bool is an int subclass; a scan of true/false is not intensity data.
            if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
                raise InvalidInput(f"Row {i} contains a non-numeric value: {value!r}")
    try:
        return np.asarray(rows, dtype=np.float64)
    except (OverflowError, TypeError, ValueError) as exc:
        raise InvalidInput(f"Scan data does not fit in float64: {exc}") from exc


def _validated_array(data: Any) -> np.ndarray:
    if isinstance(data, np.ndarray):
        if not (np.issubdtype(data.dtype, np.integer) or np.issubdtype(data.dtype, np.floating)):
            raise InvalidInput(f"Scan data must be an integer or float array, got dtype {data.dtype}")
        arr = np.array(data, dtype=np.float64, copy=True)
    else:
        arr = _rows_to_array(data).copy()
    if arr.ndim != 2:
        raise InvalidInput(f"Scan data must be 2D, got {arr.ndim}D")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise InvalidInput(f"Scan data must be at least 1x1, got {arr.shape[0]}x{arr.shape[1]}")
    if not np.isfinite(arr).all():
        raise InvalidInput("Scan data contains NaN or infinite values")
    if (arr < 0).any():
        raise InvalidInput("Scan data contains negative intensities")
    return arr
