"""
Detection parameters.

``DetectionConfig`` is the explicit, immutable replacement for the widget-bound
variables of the desktop tool: every option the detection run reads lives here
and nowhere else. Defaults match the web demo's initial parameter panel.
"""

from __future__ import annotations

import json
import math
import numbers
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import InvalidConfig

EDGE_MODES = ("nearest", "reflect")
CONNECTIVITIES = (1, 2)

# camelCase keys used by the web parameter panel.
_CAMEL_TO_SNAKE = {
    "minSize": "min_size",
    "maxSize": "max_size",
    "backgroundCorrection": "background_correction",
    "confidenceThreshold": "confidence_threshold",
    "medianFilter": "median_filter",
    "filterSize": "filter_size",
    "backgroundSigma": "background_sigma",
    "edgeMode": "edge_mode",
}

# Display-only options the panel sends along; they never reach the core.
_IGNORED_KEYS = {"colormap", "showMarkers", "show_markers"}


@dataclass(frozen=True)
class DetectionConfig:
    """Options for one detection run."""

    threshold: float = 0.75
    min_size: int = 3
    max_size: int = 15
    background_correction: bool = True
    confidence_threshold: float = 0.8
    median_filter: bool = True
    filter_size: int = 3
    background_sigma: float = 10.0
    # 1 = orthogonal neighbours only, 2 = include diagonals (skimage convention).
    connectivity: int = 1
    edge_mode: str = "nearest"

    def validate(self) -> "DetectionConfig":
        """Raise ``InvalidConfig`` naming the first bad field; return self otherwise."""
        for name in ("threshold", "confidence_threshold"):
            value = getattr(self, name)
            if not _is_real(value) or not (0.0 <= float(value) <= 1.0):
                raise InvalidConfig(f"{name} must be within [0, 1], got {value!r}")
        for name in ("min_size", "max_size"):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                raise InvalidConfig(f"{name} must be a positive integer, got {value!r}")
        if self.min_size >= self.max_size:
            raise InvalidConfig(
                f"min_size must be smaller than max_size, got {self.min_size} >= {self.max_size}"
            )
        if not _is_int(self.filter_size) or self.filter_size < 1 or self.filter_size % 2 == 0:
            raise InvalidConfig(f"filter_size must be a positive odd integer, got {self.filter_size!r}")
        if not _is_real(self.background_sigma) or not float(self.background_sigma) > 0:
            raise InvalidConfig(f"background_sigma must be > 0, got {self.background_sigma!r}")
        for name in ("background_correction", "median_filter"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfig(f"{name} must be a boolean, got {getattr(self, name)!r}")
        if not _is_int(self.connectivity) or self.connectivity not in CONNECTIVITIES:
            raise InvalidConfig(f"connectivity must be 1 or 2, got {self.connectivity!r}")
        if self.edge_mode not in EDGE_MODES:
            raise InvalidConfig(f"edge_mode must be one of {EDGE_MODES}, got {self.edge_mode!r}")
        return self

    def with_overrides(self, **overrides: Any) -> "DetectionConfig":
        """Copy with the non-``None`` overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any], base: "DetectionConfig | None" = None) -> "DetectionConfig":
        """Build a config from snake_case or camelCase keys layered over ``base``."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in obj.items():
            name = _CAMEL_TO_SNAKE.get(key, key)
            if name in _IGNORED_KEYS:
                continue
            if name not in known:
                raise InvalidConfig(f"Unknown detection parameter: {key!r}")
            if name in values:
                raise InvalidConfig(f"Detection parameter {name!r} is given more than once")
            values[name] = value
        return replace(base or cls(), **values)


def load_params(path: Path, base: DetectionConfig | None = None) -> DetectionConfig:
    """Read a JSON params file; a top-level ``params`` block is also accepted."""
    path = Path(path)
    if not path.exists():
        raise InvalidConfig(f"Missing params JSON: {path}")
    try:
        obj = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidConfig(f"Params file is not valid JSON: {path}") from exc
    if isinstance(obj, dict) and isinstance(obj.get("params"), dict):
        obj = obj["params"]
    if not isinstance(obj, dict):
        raise InvalidConfig(f"Params file must hold a JSON object: {path}")
    return DetectionConfig.from_mapping(obj, base=base)


def _is_real(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


def _is_int(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)
