import json
import subprocess
import sys
from pathlib import Path

from nvision.synthetic import Spot, make_scan, scan_payload


def test_run_nv_batch_cli(tmp_path: Path):
    scans = tmp_path / "scans"
    scans.mkdir()
    grid = make_scan(40, [Spot(10, 10, 9, 0.8), Spot(30, 28, 9, 0.8)], noise=0.0, background=False)
    (scans / "scan.json").write_text(json.dumps(scan_payload(grid)))
    out_path = tmp_path / "summary.json"

    script = Path("scripts/run_nv_batch.py").resolve()
    result = subprocess.run(
        [sys.executable, str(script), "--data-root", str(scans), "--out", str(out_path), "--profile", "permissive"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, f"stdout:\n{result.stdout}\nstderr:\n{result.stderr}"
    assert out_path.exists()

    out = json.loads(out_path.read_text())
    assert out["profile"] == "permissive"
    assert out["total_count"] == 2
    assert out["failed_count"] == 0


def test_run_nv_batch_cli_reports_bad_params(tmp_path: Path):
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"min_size": 10, "max_size": 2}))
    script = Path("scripts/run_nv_batch.py").resolve()
    result = subprocess.run(
        [sys.executable, str(script), "--data-root", str(tmp_path), "--out", str(tmp_path / "s.json"),
         "--params", str(params)],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 1
    assert "min_size" in result.stderr
