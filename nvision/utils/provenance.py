from __future__ import annotations

import json
import os
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def _safe_git_sha() -> str | None:
    # Avoid shelling out; allow env override if CI sets it
    return os.environ.get("GIT_SHA") or None


def _library_versions() -> Dict[str, str]:
    import numpy
    import pandas
    import scipy
    import skimage

    from nvision import __version__

    return {
        "nvision": __version__,
        "numpy": numpy.__version__,
        "scipy": scipy.__version__,
        "scikit-image": skimage.__version__,
        "pandas": pandas.__version__,
    }


def provenance_record(extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "timestamp": _now_iso(),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "git_sha": _safe_git_sha(),
        "libraries": _library_versions(),
    }
    if extra:
        payload.update(extra)
    return payload


def write_provenance(out_dir: Path, filename: str = "provenance.json", extra: Dict[str, Any] | None = None) -> Path | None:
    """Write a lightweight provenance record to `out_dir/filename`.

    Includes timestamp, Python and library versions, platform, optional GIT_SHA
    env var, and any extra fields provided by the caller (e.g., inputs, params).
    Returns None instead of raising if the directory is not writeable.
    """
    try:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / filename
        path.write_text(json.dumps(provenance_record(extra), indent=2))
        return path
    except OSError:
        # Non-fatal; provenance should never break a detection run
        return None
