"""
Serialization of detection reports.

The JSON shape is::

    {"centers": [{"id", "x", "y", "size", "intensity", "confidence"}, ...],
     "total": int,
     "params": {...DetectionConfig fields...},
     "binary_image": [[bool, ...], ...]}

CSV export carries one row per center with the same six columns.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np
import pandas as pd

from .config import DetectionConfig
from .errors import InvalidInput
from .features import CENTER_FIELDS, DetectedCenter
from .pipeline import DetectionReport


def report_to_dict(report: DetectionReport) -> Dict[str, Any]:
    return {
        "centers": [c.as_dict() for c in report.centers],
        "total": int(report.total),
        "params": report.config.as_dict(),
        "binary_image": report.mask.astype(bool).tolist(),
    }


def report_from_dict(obj: Mapping[str, Any]) -> DetectionReport:
    """Parse the JSON shape back into a report."""
    for key in ("centers", "params", "binary_image"):
        if key not in obj:
            raise InvalidInput(f"Report is missing {key!r}")
    centers = tuple(DetectedCenter.from_dict(c) for c in obj["centers"])
    if "total" in obj and int(obj["total"]) != len(centers):
        raise InvalidInput(f"Report total {obj['total']} does not match {len(centers)} centers")
    mask = np.asarray(obj["binary_image"], dtype=bool)
    if mask.ndim != 2:
        raise InvalidInput("Report 'binary_image' must be a 2D array")
    mask.setflags(write=False)
    config = DetectionConfig.from_mapping(obj["params"])
    return DetectionReport(centers=centers, config=config, mask=mask)


def write_report_json(report: DetectionReport, path: Path, extra: Mapping[str, Any] | None = None) -> Path:
    """Write the report JSON; ``extra`` keys are merged at the top level."""
    payload = report_to_dict(report)
    if extra:
        payload.update(extra)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2))
    return path


def read_report_json(path: Path) -> DetectionReport:
    path = Path(path)
    if not path.exists():
        raise InvalidInput(f"Missing report JSON: {path}")
    try:
        obj = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInput(f"Report file is not valid JSON: {path}") from exc
    return report_from_dict(obj)


def centers_frame(report: DetectionReport) -> pd.DataFrame:
    rows = [c.as_dict() for c in report.centers]
    return pd.DataFrame(rows, columns=list(CENTER_FIELDS))


def write_centers_csv(report: DetectionReport, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    centers_frame(report).to_csv(path, index=False)
    return path
