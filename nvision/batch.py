"""
Batch detection over a directory of scan files.

One worker per scan: every ``detect()`` call owns its buffers, so scans are
farmed out to a process pool with no shared state. Bad scan files are recorded
in the summary and do not stop the batch.
"""

from __future__ import annotations

import json
import os
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config import DetectionConfig
from .contracts import NV_CENTERS_CONTRACT
from .errors import InvalidInput
from .features import CENTER_FIELDS
from .grid import load_scan
from .pipeline import detect
from .profiles import as_policy_dict
from .stats import summarize
from .utils.logging import get_logger
from .utils.provenance import write_provenance

logger = get_logger(__name__)


@dataclass
class BatchParams:
    """Inputs and outputs for a batch run."""

    data_root: Path
    out_path: Path
    config: DetectionConfig = field(default_factory=DetectionConfig)
    profile: Optional[str] = None
    workers: int = 1
    pattern: str = "*.json"
    exclude_dirs: Sequence[str] = field(default_factory=tuple)
    emit_csv: bool = False
    csv_path: Optional[Path] = None
    provenance: bool = True


def find_scan_files(root: Path, pattern: str = "*.json", exclude_dirs: Sequence[str] = ()) -> List[Path]:
    """All files under ``root`` matching ``pattern``, sorted by path."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Missing data root: {root}")
    excl = set(exclude_dirs)
    files = [
        p for p in root.rglob(pattern)
        if p.is_file() and not any(part in excl for part in p.relative_to(root).parts[:-1])
    ]
    return sorted(files, key=str)


def run(params: BatchParams) -> Path:
    """Detect centers in every scan under ``data_root`` and write a summary JSON."""
    config = params.config.validate()
    out_path = Path(params.out_path).resolve()
    skip = {out_path, out_path.parent / "provenance.json"}
    files = [
        f for f in find_scan_files(params.data_root, params.pattern, params.exclude_dirs)
        if f.resolve() not in skip
    ]
    logger.info("Found %d scan files under %s", len(files), params.data_root)

    config_dict = config.as_dict()
    started = time.perf_counter()
    if params.workers <= 1 or len(files) <= 1:
        entries = [_process_scan(str(f), config_dict) for f in files]
    else:
        workers = min(int(params.workers), len(files), os.cpu_count() or 1)
        logger.info("Running %d scans on %d workers", len(files), workers)
        with ProcessPoolExecutor(max_workers=workers) as pool:
            entries = list(pool.map(_process_scan, [str(f) for f in files], [config_dict] * len(files)))
    elapsed = time.perf_counter() - started

    for entry in entries:
        if "error" in entry:
            logger.warning("Skipped %s: %s", entry["path"], entry["error"])
        else:
            logger.debug("%s: %d centers", entry["path"], entry["total"])

    summary: Dict[str, Any] = {
        **NV_CENTERS_CONTRACT,
        "data_root": str(Path(params.data_root).resolve()),
        "profile": params.profile,
        "params": config_dict,
        "policy": as_policy_dict(),
        "files": entries,
        "total_count": int(sum(e.get("total", 0) for e in entries)),
        "failed_count": int(sum(1 for e in entries if "error" in e)),
    }

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(summary, indent=2))
    logger.info(
        "Wrote %s (%d centers in %d files, %d failed, %.1fs)",
        out_path, summary["total_count"], len(entries), summary["failed_count"], elapsed,
    )

    if params.emit_csv:
        csv_path = Path(params.csv_path) if params.csv_path else out_path.with_suffix(".csv")
        write_batch_csv(entries, csv_path)
        logger.info("Wrote %s", csv_path)

    if params.provenance:
        write_provenance(
            out_path.parent,
            extra={
                "component": "batch",
                "inputs": [e["path"] for e in entries],
                "params": config_dict,
                "elapsed_s": round(elapsed, 3),
            },
        )
    return out_path


def write_batch_csv(entries: Sequence[Dict[str, Any]], path: Path) -> Path:
    """One row per center across all files, with a leading ``file`` column."""
    rows: List[Dict[str, Any]] = []
    for entry in entries:
        for center in entry.get("centers", []) or []:
            rows.append({"file": entry["path"], **{k: center[k] for k in CENTER_FIELDS}})
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=["file", *CENTER_FIELDS]).to_csv(path, index=False)
    return path


def _process_scan(path: str, config_dict: Dict[str, Any]) -> Dict[str, Any]:
    started = time.perf_counter()
    try:
        grid = load_scan(Path(path))
    except InvalidInput as exc:
        return {"path": path, "error": str(exc)}
    report = detect(grid, DetectionConfig(**config_dict))
    return {
        "path": path,
        "shape": list(grid.shape),
        "total": report.total,
        "centers": [c.as_dict() for c in report.centers],
        "stats": summarize(report),
        "elapsed_s": round(time.perf_counter() - started, 4),
    }
