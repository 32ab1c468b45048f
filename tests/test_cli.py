import json
from pathlib import Path

import pandas as pd
from click.testing import CliRunner

from nvision.cli import cli
from nvision.synthetic import Spot, make_scan, scan_payload


def _scan(path: Path) -> Path:
    grid = make_scan(40, [Spot(10, 10, 9, 0.8), Spot(30, 28, 9, 0.8)], noise=0.0, background=False)
    path.write_text(json.dumps(scan_payload(grid)))
    return path


PERMISSIVE_FLAGS = [
    "--threshold", "0.3",
    "--min-size", "1",
    "--max-size", "100",
    "--confidence-threshold", "0",
    "--no-median-filter",
    "--no-background-correction",
]


def test_detect_prints_report_json(tmp_path: Path):
    scan = _scan(tmp_path / "scan.json")
    result = CliRunner().invoke(cli, ["detect", str(scan), *PERMISSIVE_FLAGS, "--stats"])
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["total"] == 2
    assert [c["id"] for c in out["centers"]] == [1, 2]
    assert out["params"]["median_filter"] is False
    assert out["contract"]["purpose"] == "nv_center_candidates"
    assert out["stats"]["total_centers"] == 2


def test_detect_writes_files(tmp_path: Path):
    scan = _scan(tmp_path / "scan.json")
    out = tmp_path / "out" / "report.json"
    csv = tmp_path / "out" / "centers.csv"
    result = CliRunner().invoke(
        cli, ["detect", str(scan), "--profile", "permissive", "--out", str(out), "--csv", str(csv)]
    )
    assert result.exit_code == 0, result.output
    assert "Detected 2 NV centers" in result.output
    report = json.loads(out.read_text())
    assert report["total"] == 2
    assert len(pd.read_csv(csv)) == 2


def test_detect_params_file_and_flag_precedence(tmp_path: Path):
    scan = _scan(tmp_path / "scan.json")
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"threshold": 0.9, "minSize": 1, "maxSize": 50}))
    result = CliRunner().invoke(
        cli, ["detect", str(scan), "--profile", "permissive", "--params", str(params), "--threshold", "0.2"]
    )
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["params"]["threshold"] == 0.2
    assert out["params"]["max_size"] == 50
    assert out["params"]["background_correction"] is False


def test_detect_invalid_config_exits_nonzero(tmp_path: Path):
    scan = _scan(tmp_path / "scan.json")
    result = CliRunner().invoke(cli, ["detect", str(scan), "--min-size", "10", "--max-size", "5"])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "min_size" in result.output


def test_detect_invalid_scan_exits_nonzero(tmp_path: Path):
    scan = tmp_path / "bad.json"
    scan.write_text(json.dumps({"scan_data": [[1.0, "x"]]}))
    result = CliRunner().invoke(cli, ["detect", str(scan)])
    assert result.exit_code == 1
    assert "non-numeric" in result.output


def test_detect_undecodable_scan_exits_nonzero(tmp_path: Path):
    scan = tmp_path / "binary.json"
    scan.write_bytes(b"\xff\xfe\x00garbage")
    result = CliRunner().invoke(cli, ["detect", str(scan)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "not valid JSON" in result.output


def test_synth_then_batch(tmp_path: Path):
    runner = CliRunner()
    scans = tmp_path / "scans"
    for seed in (1, 2):
        result = runner.invoke(
            cli, ["synth", str(scans / f"scan_{seed}.json"), "--size", "48", "--spots", "3", "--seed", str(seed),
                  "--truth", str(tmp_path / "truth" / f"truth_{seed}.json")]
        )
        assert result.exit_code == 0, result.output
    truth = json.loads((tmp_path / "truth" / "truth_1.json").read_text())
    assert len(truth) == 3
    assert set(truth[0]) == {"x", "y", "size", "intensity"}

    out = tmp_path / "summary.json"
    result = runner.invoke(cli, ["batch", str(scans), "--out", str(out), "--csv", "--no-provenance"])
    assert result.exit_code == 0, result.output
    summary = json.loads(out.read_text())
    assert len(summary["files"]) == 2
    assert summary["profile"] == "ui_default"
    assert out.with_suffix(".csv").exists()
    assert not (tmp_path / "provenance.json").exists()


def test_profiles_command():
    result = CliRunner().invoke(cli, ["profiles"])
    assert result.exit_code == 0
    assert set(json.loads(result.output)) == {"ui_default", "permissive", "strict"}
