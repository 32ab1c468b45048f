#!/usr/bin/env python3
"""
Run NV-center detection over a directory of scan JSON files.

This is a thin CLI wrapper over `nvision.batch.run()`. Each scan is processed
independently; scans that fail to load are listed in the summary with their
error instead of aborting the run.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

# Ensure the repository root is importable when running as a script.
_HERE = Path(__file__).resolve()
_ROOT = _HERE.parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from nvision.batch import BatchParams, run
from nvision.config import load_params
from nvision.errors import DetectionError
from nvision.profiles import PROFILES, get_profile
from nvision.utils.logging import setup_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Batch NV-center detection over scan JSON files")
    parser.add_argument("--data-root", type=Path, required=True, help="Folder with scan JSON files")
    parser.add_argument("--out", type=Path, required=True, help="Output summary JSON path")
    parser.add_argument("--profile", default="ui_default", choices=sorted(PROFILES), help="Parameter profile")
    parser.add_argument("--params", type=Path, default=None, help="Optional JSON params file layered over the profile")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (default: 1)")
    parser.add_argument("--exclude-dir", action="append", default=[], help="Exclude files within directories with this name (repeatable)")
    parser.add_argument("--emit-csv", action="store_true", help="Also write all centers to CSV beside the summary")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress")
    args = parser.parse_args()

    setup_logging(level="INFO" if args.verbose else "WARNING")

    config = get_profile(args.profile).config
    try:
        if args.params is not None:
            config = load_params(args.params, base=config)
        run(
            BatchParams(
                data_root=args.data_root,
                out_path=args.out,
                config=config,
                profile=args.profile,
                workers=int(args.workers),
                exclude_dirs=tuple(args.exclude_dir),
                emit_csv=bool(args.emit_csv),
            )
        )
    except (DetectionError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
