"""
Detection run orchestration.

``detect()`` is the single entry point of the core: Grid x DetectionConfig ->
DetectionReport. It is a pure, synchronous transform with no I/O, so separate
scans can be processed concurrently in separate workers without locking.

Stages run strictly forward::

    Idle -> Preprocessing -> Thresholding -> Labeling -> Extracting -> Done

and any error moves the run to ``Failed``. All validation happens while the run
is ``Idle``; no partial report is ever produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectionConfig
from .errors import DetectionError, InvalidConfig, InvalidInput, ResourceExhausted
from .features import DetectedCenter, extract_centers
from .grid import Grid
from .preprocess import preprocess
from .segment import binarize, label_regions

GridLike = Union[Grid, np.ndarray, Sequence[Sequence[float]], Mapping[str, Any]]
ConfigLike = Union[DetectionConfig, Mapping[str, Any], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    THRESHOLDING = "thresholding"
    LABELING = "labeling"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


_ORDER = (
    PipelineState.IDLE,
    PipelineState.PREPROCESSING,
    PipelineState.THRESHOLDING,
    PipelineState.LABELING,
    PipelineState.EXTRACTING,
    PipelineState.DONE,
)


@dataclass(frozen=True, eq=False)
class DetectionReport:
    """Result of one run: accepted centers, the config used and the labeling mask."""

    centers: Tuple[DetectedCenter, ...]
    config: DetectionConfig
    mask: np.ndarray

    @property
    def total(self) -> int:
        return len(self.centers)

    @property
    def shape(self) -> Tuple[int, int]:
        return int(self.mask.shape[0]), int(self.mask.shape[1])


class DetectionRun:
    """One pass of the pipeline over one scan.

    A run is single-use: ``execute()`` moves it to ``Done`` or ``Failed`` and a
    second call raises ``RuntimeError``.
    """

    def __init__(self, grid: GridLike, config: ConfigLike = None):
        self._grid_in = grid
        self._config_in = config
        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]
        self.error: Optional[DetectionError] = None
        self.report: Optional[DetectionReport] = None

    def execute(self) -> DetectionReport:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Detection run already finished (state={self.state.value})")
        try:
            grid = _coerce_grid(self._grid_in)
            config = _coerce_config(self._config_in)

            self._advance(PipelineState.PREPROCESSING)
            processed = preprocess(grid, config)

            self._advance(PipelineState.THRESHOLDING)
            mask = binarize(processed, config.threshold)

            self._advance(PipelineState.LABELING)
            labeled, _count = label_regions(mask, connectivity=config.connectivity)

            self._advance(PipelineState.EXTRACTING)
            centers = extract_centers(labeled, processed, config)
        except DetectionError as exc:
            self._fail(exc)
            raise
        except MemoryError as exc:
            err = ResourceExhausted(f"Out of memory while {self.state.value}")
            self._fail(err)
            raise err from exc

        self.report = DetectionReport(centers=tuple(centers), config=config, mask=mask)
        self._advance(PipelineState.DONE)
        return self.report

    def _advance(self, nxt: PipelineState) -> None:
        expected = _ORDER[_ORDER.index(self.state) + 1]
        if nxt is not expected:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {nxt.value}")
        self.state = nxt
        self.history.append(nxt)

    def _fail(self, exc: DetectionError) -> None:
        self.error = exc
        self.state = PipelineState.FAILED
        self.history.append(PipelineState.FAILED)


def detect(grid: GridLike, config: ConfigLike = None) -> DetectionReport:
    """Run the full detection pipeline on one scan.

    ``grid`` may be a ``Grid``, a 2D array/list of rows, or a ``{"scan_data": ...}``
    mapping; ``config`` may be a ``DetectionConfig`` or a parameter mapping
    (``None`` uses the defaults). Raises ``InvalidInput``, ``InvalidConfig`` or
    ``ResourceExhausted``. Zero detections is a normal, successful report.
    """
    return DetectionRun(grid, config).execute()


def _coerce_grid(grid: GridLike) -> Grid:
    if isinstance(grid, Grid):
        return grid
    if isinstance(grid, Mapping):
        return Grid.from_payload(grid)
    if grid is None:
        raise InvalidInput("No scan data provided")
    return Grid(grid)


def _coerce_config(config: ConfigLike) -> DetectionConfig:
    if config is None:
        config = DetectionConfig()
    elif isinstance(config, Mapping):
        config = DetectionConfig.from_mapping(config)
    elif not isinstance(config, DetectionConfig):
        raise InvalidConfig(f"Unsupported config type: {type(config).__name__}")
    return config.validate()
