"""
Command-line interface: detect, batch, synth, profiles.

Reading files, building a ``DetectionConfig`` from user options and exporting
the result all happen here; the core only sees a Grid and a config.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import click

from .batch import BatchParams, run as run_batch
from .config import EDGE_MODES, DetectionConfig, load_params
from .contracts import NV_CENTERS_CONTRACT
from .errors import DetectionError
from .grid import load_scan
from .pipeline import detect
from .profiles import PROFILES, get_profile
from .report import report_to_dict, write_centers_csv, write_report_json
from .stats import summarize
from .synthetic import default_spots, make_scan, scan_payload
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def emit_json(d: dict, pretty: bool = True):
    """Print dict as JSON."""
    click.echo(json.dumps(d, indent=2) if pretty else json.dumps(d))


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def detection_options(fn):
    """Shared parameter flags; unset flags fall back to the params file, then the profile."""
    options = [
        click.option("--profile", type=click.Choice(sorted(PROFILES)), default="ui_default", show_default=True,
                     help="Starting parameter profile"),
        click.option("--params", "params_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     default=None, help="JSON file with detection parameters"),
        click.option("--threshold", type=float, default=None, help="Cut as a fraction of the peak intensity"),
        click.option("--min-size", type=int, default=None, help="Minimum region size in pixels"),
        click.option("--max-size", type=int, default=None, help="Maximum region size in pixels"),
        click.option("--confidence-threshold", type=float, default=None, help="Minimum confidence to keep"),
        click.option("--background-correction/--no-background-correction", default=None,
                     help="Subtract a Gaussian background estimate"),
        click.option("--background-sigma", type=float, default=None, help="Background smoothing scale (px)"),
        click.option("--median-filter/--no-median-filter", default=None, help="Median-smooth before thresholding"),
        click.option("--filter-size", type=int, default=None, help="Median window side length (odd)"),
        click.option("--connectivity", type=click.Choice(["1", "2"]), default=None,
                     help="1 = orthogonal neighbours, 2 = include diagonals"),
        click.option("--edge-mode", type=click.Choice(EDGE_MODES), default=None, help="Border handling for smoothing"),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def build_config(profile: str, params_path: Optional[Path], **flags: Any) -> DetectionConfig:
    config = get_profile(profile).config
    if params_path is not None:
        config = load_params(params_path, base=config)
    if flags.get("connectivity") is not None:
        flags["connectivity"] = int(flags["connectivity"])
    return config.with_overrides(**flags).validate()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Also log to this file")
def cli(verbose: bool, log_file: Optional[Path]):
    """NV-center detection tools for FSM scans."""
    setup_logging(level="DEBUG" if verbose else "WARNING", log_file=log_file)


@cli.command("detect")
@click.argument("scan", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@detection_options
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the report JSON here instead of stdout")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also write centers as CSV")
@click.option("--stats", "with_stats", is_flag=True, help="Include summary statistics")
def detect_cmd(scan: Path, profile: str, params_path: Optional[Path], out: Optional[Path],
               csv_path: Optional[Path], with_stats: bool, **flags: Any):
    """Detect NV-center candidates in one scan JSON file."""
    try:
        config = build_config(profile, params_path, **flags)
        grid = load_scan(scan)
        logger.info("Loaded %s (%dx%d)", scan, grid.height, grid.width)
        report = detect(grid, config)
    except DetectionError as e:
        _fail(e)
        return
    logger.info("Detected %d centers", report.total)

    extra: Dict[str, Any] = {"contract": NV_CENTERS_CONTRACT}
    if with_stats:
        extra["stats"] = summarize(report)

    if csv_path is not None:
        write_centers_csv(report, csv_path)
        logger.info("Wrote %s", csv_path)
    if out is not None:
        write_report_json(report, out, extra=extra)
        click.echo(f"Detected {report.total} NV centers -> {out}")
    else:
        emit_json({**report_to_dict(report), **extra})


@cli.command("batch")
@click.argument("data_root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@detection_options
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), required=True, help="Summary JSON path")
@click.option("--workers", type=int, default=1, show_default=True, help="Worker processes")
@click.option("--pattern", default="*.json", show_default=True, help="Scan filename pattern")
@click.option("--exclude-dir", "exclude_dirs", multiple=True, help="Skip files inside directories with this name")
@click.option("--csv", "emit_csv", is_flag=True, help="Also write all centers to CSV beside the summary")
@click.option("--no-provenance", is_flag=True, help="Do not write provenance.json")
def batch_cmd(data_root: Path, profile: str, params_path: Optional[Path], out: Path, workers: int,
              pattern: str, exclude_dirs: tuple, emit_csv: bool, no_provenance: bool, **flags: Any):
    """Detect NV-center candidates in every scan under DATA_ROOT."""
    try:
        config = build_config(profile, params_path, **flags)
        path = run_batch(
            BatchParams(
                data_root=data_root,
                out_path=out,
                config=config,
                profile=profile,
                workers=workers,
                pattern=pattern,
                exclude_dirs=exclude_dirs,
                emit_csv=emit_csv,
                provenance=not no_provenance,
            )
        )
    except (DetectionError, FileNotFoundError) as e:
        _fail(e)
        return
    summary = json.loads(path.read_text())
    click.echo(
        f"{summary['total_count']} NV centers in {len(summary['files'])} files "
        f"({summary['failed_count']} failed) -> {path}"
    )


@cli.command("synth")
@click.argument("out", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--size", type=click.IntRange(min=1), default=100, show_default=True, help="Scan side length (px)")
@click.option("--spots", type=click.IntRange(min=0), default=10, show_default=True, help="Number of bright spots")
@click.option("--seed", type=int, default=0, show_default=True, help="Random seed")
@click.option("--noise", type=float, default=0.1, show_default=True, help="Uniform noise amplitude")
@click.option("--truth", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also write the planted spot list as JSON")
def synth_cmd(out: Path, size: int, spots: int, seed: int, noise: float, truth: Optional[Path]):
    """Write a synthetic scan JSON with planted bright spots."""
    planted = default_spots(spots, size, seed=seed)
    grid = make_scan(size, planted, seed=seed, noise=noise)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(scan_payload(grid)))
    if truth is not None:
        truth.parent.mkdir(parents=True, exist_ok=True)
        truth.write_text(json.dumps([asdict(s) for s in planted], indent=2))
    click.echo(f"Wrote {size}x{size} scan with {len(planted)} spots -> {out}")


@cli.command("profiles")
def profiles_cmd():
    """List the named parameter profiles."""
    emit_json({name: {"notes": p.notes, "params": p.config.as_dict()} for name, p in PROFILES.items()})


if __name__ == "__main__":
    cli()
